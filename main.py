from app.core.config import settings
from app.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload_enabled,
        log_level=settings.LOG_LEVEL.lower(),
    )
