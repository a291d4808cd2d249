from __future__ import annotations
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session


class StorageError(Exception):
	"""Raised when a write to the relational store fails."""


class UniqueConstraintViolation(StorageError):
	"""A row clashed with an existing unique key (email, slug)."""

	def __init__(self, field: str, message: Optional[str] = None) -> None:
		self.field = field
		super().__init__(message or f"{field} already exists")


def commit(db: Session, *, unique_field: Optional[str] = None, message: Optional[str] = None) -> None:
	"""Commit the session, translating constraint failures into typed errors.

	``unique_field`` names the key a failing INSERT is expected to clash on; an
	IntegrityError is then reported as :class:`UniqueConstraintViolation`.
	Anything else is rolled back and re-raised untouched.
	"""
	try:
		db.commit()
	except IntegrityError as err:
		db.rollback()
		if unique_field is not None:
			raise UniqueConstraintViolation(unique_field, message) from err
		raise
	except SQLAlchemyError:
		db.rollback()
		raise
