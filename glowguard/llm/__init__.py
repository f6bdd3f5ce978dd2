"""GlowGuard LLM integration module.

Provides a thin wrapper around the Anthropic API and the quick advisory
check the ingredient scanner consults.
"""

from glowguard.llm.advisory import LLMAdvisoryChecker, parse_quick_check
from glowguard.llm.client import LLMClient, LLMResponse

__all__ = [
    "LLMAdvisoryChecker",
    "LLMClient",
    "LLMResponse",
    "parse_quick_check",
]
