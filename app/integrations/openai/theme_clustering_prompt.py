THEME_CLUSTERING_PROMPT = """Analyze these app reviews and group them into themes. Return ONLY valid JSON with no additional text.

Schema: {{"clusters": [{{"theme": "", "summary": "", "reviewNumbers": [], "sentiment": "", "avgRating": 0}}]}}

Rules:
- Maximum {max_themes} themes (only include the most meaningful)
- Summaries under {summary_limit} characters (concise but clear, mention key user sentiment + primary driver)
- Include review numbers that match each theme
- sentiment is one of: positive, neutral, negative
- Calculate average rating per theme
- Prefer grouping by user value or pain vs technical jargon

Reviews:
{reviews_block}

JSON:""".strip()
