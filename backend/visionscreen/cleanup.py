from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Optional

from .engine.session import TestSession


def purge_stale_sessions(sessions: Dict[str, TestSession], *, max_age: timedelta, now: Optional[datetime] = None) -> int:
	"""Drop sessions nobody has touched for ``max_age``; abandoned tests are never saved."""
	threshold = (now or datetime.utcnow()) - max_age
	stale = [sid for sid, session in sessions.items() if session.last_activity_at < threshold]
	for sid in stale:
		del sessions[sid]
	return len(stale)
