import json
import logging
from datetime import datetime, timezone

logger = logging.getLogger("audit")

def audit_event(event_type: str, payload: dict):
    """
    Log an audit event as a single JSON line.
    Payloads carry ids, stage names and counts only, never case text.
    """
    rec = {"ts": datetime.now(timezone.utc).isoformat(), "event": event_type, "payload": payload}
    logger.info("AUDIT_EVENT %s", json.dumps(rec, default=str))
