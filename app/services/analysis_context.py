import logging
import time
from enum import Enum
from typing import Callable

from app.core.exceptions import PipelineTimeout

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "Idle"
    FETCHING_YOUR_APP = "FetchingYourApp"
    FETCHING_COMPETITOR = "FetchingCompetitor"
    CLUSTERING = "Clustering"
    RECONCILING = "Reconciling"
    SYNTHESIZING = "Synthesizing"
    DONE = "Done"
    FAILED = "Failed"


class AnalysisContext:
    """
    Per-request state passed through every stage of one comparison.

    Holds the single deadline for the whole run; each external call asks
    ``bound()`` for its timeout so no call can outlive the overall budget.
    """

    def __init__(
        self,
        budget_seconds: float,
        request_id: str = "-",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.budget_seconds = budget_seconds
        self.request_id = request_id
        self._clock = clock
        self.deadline = clock() + budget_seconds
        self.state = PipelineState.IDLE

    def remaining(self) -> float:
        return max(0.0, self.deadline - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def bound(self, timeout: float) -> float:
        """
        Clip a per-call timeout to the remaining budget.

        Raises:
            PipelineTimeout: If the budget is already spent
        """
        remaining = self.remaining()
        if remaining <= 0.0:
            raise self.timeout_error()
        return min(timeout, remaining)

    def transition(self, state: PipelineState) -> None:
        logger.info(f"[{self.request_id}] {self.state.value} -> {state.value}")
        self.state = state

    def timeout_error(self) -> PipelineTimeout:
        return PipelineTimeout(
            details=(
                f"Competitive analysis exceeded its {self.budget_seconds:g}s budget "
                f"while in stage {self.state.value}"
            )
        )
