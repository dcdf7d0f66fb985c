import os
import logging
from typing import List, Optional

import httpx

from diagnosis.schemas import LiteratureResult

logger = logging.getLogger(__name__)

NCBI_API_KEY = os.getenv("NCBI_API_KEY", "").strip()
NCBI_EMAIL = os.getenv("NCBI_EMAIL", "").strip()
NCBI_TOOL = os.getenv("NCBI_TOOL", "EDCaseAI").strip()
SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", "10"))

EUTILS = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"

def _params(extra: dict) -> dict:
    p = dict(extra)
    if NCBI_API_KEY:
        p["api_key"] = NCBI_API_KEY
    if NCBI_TOOL:
        p["tool"] = NCBI_TOOL
    if NCBI_EMAIL:
        p["email"] = NCBI_EMAIL
    return p

async def esearch_pubmed(client: httpx.AsyncClient, term: str, retmax: int = 5) -> list[str]:
    params = _params({
        "db": "pubmed",
        "term": term,
        "retmode": "json",
        "retmax": str(retmax),
        "sort": "relevance",
    })
    r = await client.get(f"{EUTILS}/esearch.fcgi", params=params)
    r.raise_for_status()
    data = r.json()
    ids = data.get("esearchresult", {}).get("idlist", []) if isinstance(data, dict) else None
    if not isinstance(ids, list):
        raise ValueError("Unexpected esearch payload")
    return [str(i) for i in ids]

async def esummary_pubmed(client: httpx.AsyncClient, ids: list[str]) -> dict:
    if not ids:
        return {}
    params = _params({
        "db": "pubmed",
        "id": ",".join(ids),
        "retmode": "json",
    })
    r = await client.get(f"{EUTILS}/esummary.fcgi", params=params)
    r.raise_for_status()
    return r.json()

def _format_authors(authors: list) -> Optional[str]:
    names = [a.get("name") for a in (authors or []) if isinstance(a, dict) and a.get("name")]
    if not names:
        return None
    joined = ", ".join(names[:3])
    return f"{joined} et al." if len(names) > 3 else joined

def to_results(ids: list[str], summary: dict) -> List[LiteratureResult]:
    result = summary.get("result", {}) if isinstance(summary, dict) else {}
    out: List[LiteratureResult] = []
    for pmid in ids:
        rec = result.get(pmid)
        if not isinstance(rec, dict) or rec.get("error"):
            continue
        title = rec.get("title") or ""
        pubdate = (rec.get("pubdate") or "").split()
        out.append(LiteratureResult(
            id=f"pubmed_{pmid}",
            title=title,
            source=rec.get("fulljournalname") or rec.get("source") or "PubMed",
            authors=_format_authors(rec.get("authors")),
            year=pubdate[0] if pubdate else "",
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
            snippet=title,
            source_type="pubmed",
        ))
    return out

async def search_pubmed(client: httpx.AsyncClient, query: str, max_results: int = 5) -> List[LiteratureResult]:
    """Best-effort: any HTTP, network or parse failure yields []."""
    try:
        ids = await esearch_pubmed(client, f"{query} emergency medicine", retmax=max_results)
        if not ids:
            return []
        summary = await esummary_pubmed(client, ids)
        return to_results(ids, summary)
    except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
        logger.warning("PubMed search failed: %s", e.__class__.__name__)
        return []
