import asyncio
import logging
from typing import List, Optional

import httpx

from diagnosis.schemas import LiteratureResult
from literature.pubmed import search_pubmed, SEARCH_TIMEOUT
from literature.wikem import search_wikem
from literature.registry import select_references

logger = logging.getLogger(__name__)

MAX_RESULTS = 20
USER_AGENT = "EDCaseAI/1.0"

def build_query(complaint: str, is_pediatric: bool, history_snippet: Optional[str] = None) -> str:
    peds = "pediatric" if is_pediatric else ""
    if history_snippet:
        parts = [complaint, history_snippet, peds]
    else:
        parts = [complaint, peds, "emergency"]
    return " ".join(" ".join(p for p in parts if p).split())

async def _gather(client: httpx.AsyncClient, complaint: str, query: str) -> tuple:
    results = await asyncio.gather(
        search_pubmed(client, query, 5),
        search_wikem(client, complaint, 3),
        return_exceptions=True,
    )
    out = []
    for name, res in zip(("pubmed", "wikem"), results):
        if isinstance(res, Exception):
            logger.warning("%s search raised %s; skipping", name, res.__class__.__name__)
            res = []
        out.append(res)
    return tuple(out)

async def search_medical_literature(complaint: str, age: int, history_snippet: Optional[str] = None,
                                    *, client: Optional[httpx.AsyncClient] = None) -> List[LiteratureResult]:
    """
    Curated references first, then PubMed, then WikEM; de-duplicated by id.
    Never raises: search is enrichment, the diagnosis call proceeds without it.
    """
    complaint = (complaint or "").strip()
    if not complaint:
        return []

    is_pediatric = age <= 16
    query = build_query(complaint, is_pediatric, (history_snippet or "").strip() or None)

    curated = select_references(complaint, is_pediatric)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT, headers={"User-Agent": USER_AGENT}) as c:
                pubmed, wikem = await _gather(c, complaint, query)
        else:
            pubmed, wikem = await _gather(client, complaint, query)
    except Exception:
        logger.exception("Medical literature search failed")
        pubmed, wikem = [], []

    seen = set()
    out: List[LiteratureResult] = []
    for r in [*curated, *pubmed, *wikem]:
        if r.id in seen:
            continue
        seen.add(r.id)
        out.append(r)
    return out[:MAX_RESULTS]
