import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from diagnosis.schemas import CaseFacts, DiagnosisResult, LiteratureResult, SearchSource
from diagnosis.prompts import build_prompts
from diagnosis.normalizer import normalize, NormalizedDiagnosis
from inference.llm import OpenAICompatibleLLM, DIAGNOSIS, get_llm
from inference.policy import FailurePolicy, guarded
from literature.search import search_medical_literature
from compliance.audit import audit_event

logger = logging.getLogger(__name__)

HISTORY_SNIPPET_CHARS = 200

SearchFn = Callable[[str, int, Optional[str]], Awaitable[List[LiteratureResult]]]

def _to_sources(literature: List[LiteratureResult]) -> List[SearchSource]:
    return [
        SearchSource(
            id=r.id,
            title=r.title,
            source=r.source,
            authors=r.authors,
            year=r.year,
            url=r.url,
            source_type=r.source_type,
        )
        for r in literature
    ]

async def _search(search: SearchFn, facts: CaseFacts) -> List[LiteratureResult]:
    try:
        return await search(facts.chief_complaint, facts.age, facts.history[:HISTORY_SNIPPET_CHARS] or None)
    except Exception:
        logger.exception("[diagnosis.search] literature search raised; continuing without references")
        return []

def _empty() -> NormalizedDiagnosis:
    return NormalizedDiagnosis(suggestions=[], red_flags=[])

async def generate_diagnosis_suggestions(facts: CaseFacts, *, llm: Optional[OpenAICompatibleLLM] = None,
                                         search: SearchFn = search_medical_literature) -> DiagnosisResult:
    """
    Literature search -> prompts -> LLM -> normalized suggestions.

    Best-effort end to end: an unconfigured provider returns an empty result
    before any network call, and provider/parse failures keep the sources but
    return no suggestions or red flags.
    """
    if llm is None:
        llm = guarded("diagnosis.configure", FailurePolicy.DEGRADE_TO_EMPTY, get_llm)
        if llm is None:
            return DiagnosisResult()

    literature = await _search(search, facts)
    logger.info("[diagnosis] %d literature references", len(literature))

    prompts = build_prompts(facts, literature)

    def infer() -> NormalizedDiagnosis:
        raw = llm.complete(prompts.system, prompts.user, DIAGNOSIS)
        return normalize(raw, literature)

    out = await asyncio.to_thread(
        guarded, "diagnosis.infer", FailurePolicy.DEGRADE_TO_EMPTY, infer, _empty
    )

    audit_event("diagnosis.generated", {
        "references": len(literature),
        "suggestions": len(out.suggestions),
        "red_flags": len(out.red_flags),
    })
    return DiagnosisResult(
        suggestions=out.suggestions,
        red_flags=out.red_flags,
        sources=_to_sources(literature),
    )
