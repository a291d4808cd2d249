from __future__ import annotations
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool


Base = declarative_base()

# Largest value an INTEGER primary key can hold
MAX_ROW_ID = 2 ** 63 - 1


def make_engine(database_url: str) -> Engine:
	kwargs = {}
	if database_url.startswith("sqlite"):
		kwargs["connect_args"] = {"check_same_thread": False}
		# In-memory databases live inside one connection; share it across threads
		if database_url in ("sqlite://", "sqlite:///:memory:"):
			kwargs["poolclass"] = StaticPool
	return create_engine(database_url, future=True, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
	from . import models  # noqa: F401  registers tables on Base.metadata
	Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
	db = request.app.state.session_factory()
	try:
		yield db
	finally:
		db.close()


def parse_row_id(raw: str) -> Optional[int]:
	"""Parse a path segment as a row id; None when it cannot name a row."""
	try:
		value = int(raw)
	except ValueError:
		return None
	if value < 1 or value > MAX_ROW_ID:
		return None
	return value
