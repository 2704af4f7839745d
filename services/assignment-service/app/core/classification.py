"""
Validation and normalization of classifier replies.

The classifier is best-effort: its reply may be fenced in Markdown, use
camelCase keys, carry a priority outside the allowed set or omit fields
entirely. Everything here turns that into a Classification that can be
written to a ticket without further checks.
"""
import json
import re
from typing import Iterable, List, Optional

from pydantic import ValidationError

from app.core.exceptions import ClassifierResponseError
from app.schemas.classification import Classification, ClassifierResult
from app.schemas.ticket import PriorityEnum

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

ALLOWED_PRIORITIES = [p.value for p in PriorityEnum]


def parse_classifier_output(text: Optional[str]) -> ClassifierResult:
    """
    Parse the classifier's text reply into a ClassifierResult.

    Raises:
        ClassifierResponseError: If the reply is empty, not JSON, or not a JSON object
    """
    if not text or not text.strip():
        raise ClassifierResponseError("Empty classifier response")

    body = text.strip()
    match = _FENCE_RE.match(body)
    if match:
        body = match.group(1)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ClassifierResponseError(f"Classifier response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ClassifierResponseError(f"Expected a JSON object, got {type(data).__name__}")

    try:
        return ClassifierResult.model_validate(data)
    except ValidationError as e:
        raise ClassifierResponseError(f"Invalid classifier response: {e}") from e


def normalize_priority(value: Optional[str], case_sensitive: bool = False) -> PriorityEnum:
    if not isinstance(value, str):
        return PriorityEnum.MEDIUM
    candidate = value.strip()
    if not case_sensitive:
        candidate = candidate.lower()
    if candidate in ALLOWED_PRIORITIES:
        return PriorityEnum(candidate)
    return PriorityEnum.MEDIUM


def normalize_skills(skills: Iterable[str]) -> List[str]:
    """Strip, drop blanks and exact duplicates, keep first-seen order."""
    seen = set()
    result = []
    for skill in skills:
        cleaned = skill.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def normalize(result: Optional[ClassifierResult], case_sensitive: bool = False) -> Classification:
    if result is None:
        return Classification()
    return Classification(
        priority=normalize_priority(result.priority, case_sensitive),
        helpful_notes=result.helpful_notes or "",
        related_skills=normalize_skills(result.related_skills),
    )
