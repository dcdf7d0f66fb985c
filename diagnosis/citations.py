from typing import Any, List, Optional

from diagnosis.schemas import Citation, LiteratureResult

def _as_ref(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("[").rstrip("]").isdecimal():
        return int(value.strip().lstrip("[").rstrip("]"))
    return None

def resolve_citation(ref: Any, literature: List[LiteratureResult]) -> Optional[Citation]:
    """
    Map a 1-based reference number from model output onto the literature list.
    Anything outside [1, len(literature)] or not an integer resolves to None:
    the model may cite references that were never supplied.
    """
    n = _as_ref(ref)
    if n is None or n < 1 or n > len(literature):
        return None
    src = literature[n - 1]
    return Citation(
        id=src.id,
        source=src.source,
        title=src.title,
        year=src.year,
        url=src.url,
        excerpt=src.snippet,
        source_type=src.source_type,
        authors=src.authors,
        ref_number=n,
    )

def resolve_citations(refs: Any, literature: List[LiteratureResult]) -> List[Citation]:
    if not isinstance(refs, list):
        refs = [refs] if refs is not None else []
    out: List[Citation] = []
    for ref in refs:
        c = resolve_citation(ref, literature)
        if c is not None:
            out.append(c)
    return out
