"""In-memory, per-session key-value storage for the wizard."""

import json
import logging
import threading
from typing import Dict, Optional

from ..models.claim import ClaimRecord

logger = logging.getLogger(__name__)

SCOPE_DATA_KEY = "scopeData"
DRAFT_TEXT_KEY = "draftText"


class SessionStore:
    """
    Ephemeral string storage scoped to one browser session.

    Values are kept as strings; the claim record is stored as JSON under
    ``scopeData`` and the pasted input under ``draftText`` so a failed
    extraction can be resubmitted. Nothing survives a process restart.
    """

    def __init__(self):
        self._sessions: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def get_item(self, session_id: str, key: str) -> Optional[str]:
        with self._lock:
            return self._sessions.get(session_id, {}).get(key)

    def set_item(self, session_id: str, key: str, value: str) -> None:
        with self._lock:
            self._sessions.setdefault(session_id, {})[key] = value

    def remove_item(self, session_id: str, key: str) -> None:
        with self._lock:
            self._sessions.get(session_id, {}).pop(key, None)

    def clear(self, session_id: str) -> None:
        """Drop everything stored for a session ("start over")."""
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info(f"Cleared session storage for {session_id}")

    def load_record(self, session_id: str) -> Optional[ClaimRecord]:
        """
        Read the claim record back, or None when the session has none.

        The stored JSON was written by save_record, so it is trusted as-is.
        """
        raw = self.get_item(session_id, SCOPE_DATA_KEY)
        if raw is None:
            return None
        return ClaimRecord.from_dict(json.loads(raw))

    def save_record(self, session_id: str, record: ClaimRecord) -> None:
        self.set_item(session_id, SCOPE_DATA_KEY, json.dumps(record.to_dict()))
        logger.debug(f"Stored claim record for {session_id} ({len(record.trades)} trades)")

    def load_draft(self, session_id: str) -> str:
        return self.get_item(session_id, DRAFT_TEXT_KEY) or ""

    def save_draft(self, session_id: str, text: str) -> None:
        self.set_item(session_id, DRAFT_TEXT_KEY, text)
