import uuid
import logging
from typing import Any, List, NamedTuple

from diagnosis.schemas import DiagnosisSuggestion, RedFlag, LiteratureResult
from diagnosis.citations import resolve_citations
from inference.llm import parse_json_object

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = ("high", "moderate", "low")
RED_FLAG_SEVERITIES = ("critical", "warning")

class NormalizedDiagnosis(NamedTuple):
    suggestions: List[DiagnosisSuggestion]
    red_flags: List[RedFlag]

def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""

def _text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [t for t in (_text(v) for v in value) if t]

def _rank(value: Any, position: int) -> int:
    if isinstance(value, bool):
        return position
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdecimal() and int(value) > 0:
        return int(value)
    return position

def _confidence(value: Any) -> str:
    c = _text(value).lower()
    if c in CONFIDENCE_LEVELS:
        return c
    if c:
        logger.warning("Unrecognized suggestion confidence %r, defaulting to 'low'", c)
    return "low"

def _entry(raw: Any, label_key: str) -> dict:
    if isinstance(raw, dict):
        return raw
    logger.warning("Non-object %s entry (%s) defaulted", label_key, type(raw).__name__)
    return {label_key: raw} if isinstance(raw, str) else {}

def normalize_suggestion(raw: Any, position: int, literature: List[LiteratureResult]) -> DiagnosisSuggestion:
    s = _entry(raw, "diagnosis")
    return DiagnosisSuggestion(
        id=str(uuid.uuid4()),
        diagnosis=_text(s.get("diagnosis")),
        confidence=_confidence(s.get("confidence")),
        severity_rank=_rank(s.get("severity_rank"), position),
        reasoning=_text(s.get("reasoning")),
        key_findings=_text_list(s.get("keyFindings")),
        workup=_text_list(s.get("workup")),
        management=_text_list(s.get("management")),
        citations=resolve_citations(s.get("citationRefs"), literature),
    )

def normalize_red_flag(raw: Any, literature: List[LiteratureResult]) -> RedFlag:
    r = _entry(raw, "flag")
    severity = _text(r.get("severity")).lower() or "warning"
    if severity not in RED_FLAG_SEVERITIES:
        logger.warning("Unrecognized red flag severity %r passed through", severity)
    return RedFlag(
        id=str(uuid.uuid4()),
        flag=_text(r.get("flag")),
        severity=severity,
        action=_text(r.get("action")),
        timeframe=_text(r.get("timeframe")) or None,
        citations=resolve_citations(r.get("citationRefs"), literature),
    )

def _check_ranks(suggestions: List[DiagnosisSuggestion]) -> None:
    ranks = sorted(s.severity_rank for s in suggestions)
    if ranks != list(range(1, len(suggestions) + 1)):
        logger.warning("Severity ranks are not a permutation of 1..%d: %s", len(suggestions), ranks)

def normalize(raw_json: str, literature: List[LiteratureResult]) -> NormalizedDiagnosis:
    """
    Turn the model's JSON payload into typed suggestions and red flags.

    Raises MalformedResponse when the payload is not a JSON object. Individual
    entries never fail the batch: every entry of "suggestions" yields exactly
    one DiagnosisSuggestion, with defaults filling whatever is missing.
    """
    data = parse_json_object(raw_json)

    raw_suggestions = data.get("suggestions")
    if not isinstance(raw_suggestions, list):
        raw_suggestions = []
    raw_flags = data.get("redFlags")
    if not isinstance(raw_flags, list):
        raw_flags = []

    suggestions = [
        normalize_suggestion(s, i, literature)
        for i, s in enumerate(raw_suggestions, start=1)
    ]
    red_flags = [normalize_red_flag(r, literature) for r in raw_flags]

    if suggestions:
        _check_ranks(suggestions)
    return NormalizedDiagnosis(suggestions=suggestions, red_flags=red_flags)
