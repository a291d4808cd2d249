from __future__ import annotations
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .errors import commit
from .models import AuthSession, User, utcnow


class SessionStore:
	"""Maps opaque session tokens to users, backed by the ``auth_sessions`` table."""

	def __init__(self, db: Session, *, ttl_hours: int) -> None:
		self.db = db
		self.ttl = timedelta(hours=ttl_hours)

	def resolve(self, token: Optional[str]) -> Optional[User]:
		# Anything odd about the token just means "not logged in"
		if not token or len(token) > 64:
			return None
		row = (
			self.db.query(User)
			.join(AuthSession, AuthSession.user_id == User.id)
			.filter(AuthSession.id == token, AuthSession.expires_at > utcnow())
			.first()
		)
		return row

	def create(self, user_id: int) -> str:
		token = secrets.token_urlsafe(32)
		self.db.add(AuthSession(id=token, user_id=user_id, expires_at=utcnow() + self.ttl))
		commit(self.db)
		return token

	def revoke(self, token: Optional[str]) -> None:
		if not token:
			return
		self.db.execute(delete(AuthSession).where(AuthSession.id == token))
		commit(self.db)

