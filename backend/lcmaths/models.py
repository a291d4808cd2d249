from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from .db import Base


def utcnow() -> datetime:
	# Naive UTC so values compare cleanly with what SQLite hands back
	return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
	__tablename__ = "users"
	id = Column(Integer, primary_key=True, autoincrement=True)
	# Stored lower-cased, which makes the unique constraint case-insensitive
	email = Column(String(256), unique=True, nullable=False, index=True)
	password_hash = Column(String(256), nullable=False)
	is_admin = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	id = Column(String(64), primary_key=True)
	user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	expires_at = Column(DateTime, nullable=False, index=True)


class Topic(Base):
	__tablename__ = "topics"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	slug = Column(String(128), unique=True, nullable=False, index=True)
	level = Column(String(16), nullable=False)
	paper = Column(Integer, nullable=False)
	order_index = Column(Integer, default=0, nullable=False)
	notes_html = Column(Text, default="", nullable=False)


class Question(Base):
	__tablename__ = "questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False, index=True)
	text = Column(Text, nullable=False)
	marking_scheme = Column(Text, nullable=False)
	max_marks = Column(Integer, nullable=False)
	source_ref = Column(String(256), nullable=True)


class Attempt(Base):
	__tablename__ = "attempts"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
	question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
	answer_text = Column(Text, nullable=False)
	# Null for explanation-only attempts
	marks_awarded = Column(Integer, nullable=True)
	feedback_json = Column(Text, nullable=False)  # JSON string snapshot
	created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
