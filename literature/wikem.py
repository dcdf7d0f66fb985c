import re
import logging
from datetime import datetime, timezone
from typing import List
from urllib.parse import quote

import httpx

from diagnosis.schemas import LiteratureResult

logger = logging.getLogger(__name__)

WIKEM_API = "https://wikem.org/w/api.php"

def html_to_text(html: str) -> str:
    return re.sub(r"<[^>]+>", "", html or "")

async def search_wikem(client: httpx.AsyncClient, query: str, limit: int = 3) -> List[LiteratureResult]:
    """Best-effort: any HTTP, network or parse failure yields []."""
    params = {
        "action": "query",
        "list": "search",
        "srsearch": query,
        "srnamespace": "0",
        "srlimit": str(limit),
        "format": "json",
    }
    try:
        r = await client.get(WIKEM_API, params=params)
        r.raise_for_status()
        hits = (r.json().get("query") or {}).get("search") or []
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning("WikEM search failed: %s", e.__class__.__name__)
        return []

    year = str(datetime.now(timezone.utc).year)
    out: List[LiteratureResult] = []
    for h in hits:
        if not isinstance(h, dict) or not h.get("title"):
            continue
        title = h["title"]
        out.append(LiteratureResult(
            id=f"wikem_{h.get('pageid', title)}",
            title=title,
            source="WikEM - Global Emergency Medicine Wiki",
            year=year,
            url=f"https://wikem.org/wiki/{quote(title.replace(' ', '_'))}",
            snippet=html_to_text(h.get("snippet", "")),
            source_type="wikem",
        ))
    return out
