COMPETITIVE_SYSTEM_PROMPT = (
    "You are a product insights assistant for mobile app teams. "
    "Respond only with structured JSON."
)

COMPETITIVE_SYNTHESIS_PROMPT = """
Given this competitive review analysis data (JSON below), produce JSON ONLY with keys: insights, recommendations, marketPosition.

Rules:
- 6-8 insights. Each object MUST include fields:
  {{ id(optional), type(strength|weakness|opportunity|threat), category, description(<200 chars), evidence[string...], priority(high|medium|low), theme(optional), yourRating(optional number), competitorRating(optional number), ratingDelta(optional number), yourCount(optional number), competitorCount(optional number), sentiment(optional positive|neutral|negative), confidence(optional 0-1) }}
- 5-7 recommendations. Each MUST include:
  {{ id(optional), title(<70), description(<220), impact(high|medium|low), effort(high|medium|low), category(feature|ux|performance|marketing|retention|growth), basedOn[array of insight indices like i0], metric(optional), expectedImpact(optional short), targetDelta(optional short), timeframe(optional short), basedOnThemes(optional array) }}
- marketPosition: {{ rank(1|2), totalApps(2), ratingComparison(above|below|average), volumeComparison(above|below|average), uniqueStrengths[theme...], competitiveGaps[theme...] }}
- Ground numeric fields using sharedThemes when possible; set ratingDelta = yourRating - competitorRating.
- If a numeric cannot be derived, omit it (do NOT guess).
- No prose outside JSON.

Data:
{analysis_data}

JSON:
""".strip()
