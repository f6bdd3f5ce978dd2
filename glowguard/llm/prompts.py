"""Prompt templates for the advisory safety check.

Templates use ``{placeholder}`` syntax for substitution via ``str.format()``.
"""

QUICK_CHECK_SYSTEM_PROMPT = """\
You are a cosmetic safety reviewer for an online marketplace. You only ever \
answer with a single JSON object and no other text.
"""

QUICK_CHECK_PROMPT = """\
Quick safety check for cosmetic ingredients. List ONLY the concerning \
ingredients in this list (toxic, banned, or dangerous), including known \
toxins hidden behind alternative names.

Ingredients:
{ingredients}

Respond with JSON only:
{{"concerns": [{{"ingredient": "name", "severity": "critical|high|medium|low", "reason": "short explanation"}}], "safe": true/false}}
If all ingredients are safe, return: {{"concerns": [], "safe": true}}
"""
