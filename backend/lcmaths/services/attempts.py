from __future__ import annotations
import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..errors import commit
from ..evaluator import Feedback
from ..models import Attempt


def record_attempt(
	db: Session,
	*,
	user_id: int,
	question_id: int,
	answer_text: str,
	marks_awarded: Optional[int],
	feedback: Feedback,
) -> int:
	"""Append one attempt row and return its id. The question must already exist."""
	row = Attempt(
		user_id=user_id,
		question_id=question_id,
		answer_text=answer_text,
		marks_awarded=marks_awarded,
		feedback_json=json.dumps(feedback.model_dump(by_alias=True)),
	)
	db.add(row)
	commit(db)
	return row.id


def load_feedback(raw: Optional[str]) -> Optional[Dict[str, Any]]:
	if not raw:
		return None
	try:
		return Feedback.model_validate_json(raw).model_dump(by_alias=True)
	except ValueError:
		return None


def recent_attempts(db: Session, user_id: int, question_id: int, limit: int = 3) -> List[Dict[str, Any]]:
	rows = (
		db.query(Attempt)
		.filter(Attempt.user_id == user_id, Attempt.question_id == question_id)
		.order_by(Attempt.created_at.desc(), Attempt.id.desc())
		.limit(limit)
		.all()
	)
	return [
		{
			"id": r.id,
			"marks_awarded": r.marks_awarded,
			"created_at": r.created_at.isoformat(),
			"feedback": load_feedback(r.feedback_json),
		}
		for r in rows
	]
