"""Quick AI opinion on an ingredient list.

Best-effort by contract: any failure yields ``checked=False`` and the
scanner carries on with registry results alone.
"""

from __future__ import annotations

import json
import logging
import re

from glowguard.llm.client import LLMClient
from glowguard.llm.prompts import QUICK_CHECK_PROMPT, QUICK_CHECK_SYSTEM_PROMPT
from glowguard.scanner.models import AdvisoryConcern, AdvisoryResult

logger = logging.getLogger(__name__)

MIN_INGREDIENTS_LENGTH = 5

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_quick_check(text: str) -> AdvisoryResult:
    """Extract concerns from a model reply.

    Accepts both ``{"concerns": ["name", ...]}`` and the richer
    ``{"concerns": [{"ingredient", "severity", "reason"}]}`` shapes.
    A reply without a JSON object counts as checked with no concerns.
    """
    found = _JSON_OBJECT.search(text or "")
    if not found:
        return AdvisoryResult(checked=True)

    data = json.loads(found.group(0))
    concerns: list[AdvisoryConcern] = []
    for item in data.get("concerns") or []:
        if isinstance(item, str):
            if item.strip():
                concerns.append(AdvisoryConcern(ingredient=item.strip()))
        elif isinstance(item, dict) and item.get("ingredient"):
            concerns.append(
                AdvisoryConcern(
                    ingredient=str(item["ingredient"]).strip(),
                    severity=str(item.get("severity") or "high"),
                    reason=str(item.get("reason") or ""),
                )
            )
    return AdvisoryResult(checked=True, concerns=concerns)


class LLMAdvisoryChecker:
    """Advisory checker backed by an Anthropic model."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client.configured

    def quick_check(self, ingredients: str) -> AdvisoryResult:
        if not self.client.configured or len((ingredients or "").strip()) < MIN_INGREDIENTS_LENGTH:
            return AdvisoryResult(checked=False)

        try:
            response = self.client.complete(
                QUICK_CHECK_PROMPT.format(ingredients=ingredients),
                system_prompt=QUICK_CHECK_SYSTEM_PROMPT,
            )
            return parse_quick_check(response.content)
        except Exception as exc:
            logger.warning("Quick AI check failed: %s", exc)
            return AdvisoryResult(checked=False)
