import logging
from enum import Enum
from typing import Callable, TypeVar, Optional

from inference.errors import AIServiceError, InferenceUnavailable, GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailurePolicy(str, Enum):
    DEGRADE_TO_EMPTY = "degrade_to_empty"
    PROPAGATE = "propagate"


def guarded(stage: str, policy: FailurePolicy, fn: Callable[[], T],
            fallback: Optional[Callable[[], T]] = None) -> T:
    """
    Run one provider-backed step under an explicit failure policy.

    DEGRADE_TO_EMPTY: log and return fallback() (None when no fallback given).
    PROPAGATE: InferenceUnavailable is re-raised untouched, any other
    AIServiceError becomes GenerationError.

    Only the stage name and error class are logged; payloads may carry PHI.
    """
    try:
        return fn()
    except InferenceUnavailable as e:
        logger.warning("[%s] AI service unavailable: %s", stage, e)
        if policy is FailurePolicy.PROPAGATE:
            raise
        return fallback() if fallback else None
    except AIServiceError as e:
        logger.error("[%s] %s: %s", stage, e.__class__.__name__, e)
        if policy is FailurePolicy.PROPAGATE:
            raise GenerationError(f"{stage} failed") from e
        return fallback() if fallback else None
