from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db, parse_row_id
from ..models import User
from ..services import catalog
from ..services.attempts import recent_attempts
from .auth import require_user

router = APIRouter(tags=["catalog"])


@router.get("/topics")
def list_topics(user: User = Depends(require_user), db: Session = Depends(get_db)):
	return catalog.list_topics(db, user.id)


@router.get("/topic/{slug}")
def topic_detail(slug: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
	detail = catalog.topic_detail(db, user.id, slug)
	if detail is None:
		raise HTTPException(status_code=404, detail="Topic not found")
	return detail


@router.get("/question/{question_id}")
def question_detail(question_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
	row_id = parse_row_id(question_id)
	question = catalog.get_question(db, row_id) if row_id is not None else None
	if question is None:
		raise HTTPException(status_code=404, detail="Question not found")
	detail = catalog.question_detail(db, question)
	detail["attempts"] = recent_attempts(db, user.id, question.id, limit=3)
	return detail
