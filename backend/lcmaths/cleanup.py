from __future__ import annotations
import asyncio
import logging
from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from .errors import commit
from .models import AuthSession, utcnow

logger = logging.getLogger(__name__)

PURGE_INTERVAL_SECONDS = 24 * 60 * 60


def purge_expired_sessions(db: Session) -> int:
	# Logging out deletes a session row; this catches the ones that simply aged out
	res = db.execute(delete(AuthSession).where(AuthSession.expires_at <= utcnow()))
	commit(db)
	removed = res.rowcount or 0
	if removed:
		logger.info("Purged %d expired sessions", removed)
	return removed


def run_purge(session_factory: sessionmaker) -> int:
	db = session_factory()
	try:
		return purge_expired_sessions(db)
	finally:
		db.close()


async def cleanup_watcher(session_factory: sessionmaker) -> None:
	# Startup already ran one purge; repeat daily
	while True:
		await asyncio.sleep(PURGE_INTERVAL_SECONDS)
		try:
			run_purge(session_factory)
		except Exception:
			logger.exception("Session purge failed")
