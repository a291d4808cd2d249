from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import MAX_ROW_ID, get_db
from ..evaluator import AnswerEvaluator
from ..models import User
from ..services import catalog
from ..services.attempts import record_attempt
from .auth import require_user

router = APIRouter(tags=["attempts"])


class AttemptRequest(BaseModel):
	question_id: Optional[int] = Field(default=None, validation_alias="questionId", ge=1, le=MAX_ROW_ID)
	answer_text: Optional[str] = Field(default=None, validation_alias="answerText")
	# "explain" asks for a walkthrough; anything else is marked
	mode: Optional[str] = None


def get_evaluator(request: Request) -> AnswerEvaluator:
	return request.app.state.evaluator


@router.post("/attempts")
async def create_attempt(
	req: AttemptRequest,
	user: User = Depends(require_user),
	db: Session = Depends(get_db),
	evaluator: AnswerEvaluator = Depends(get_evaluator),
):
	if not req.question_id or not req.answer_text or not req.answer_text.strip():
		raise HTTPException(status_code=400, detail="questionId and answerText are required.")
	# Keep blocking database work off the event loop while Gemini calls are in flight
	question = await run_in_threadpool(catalog.get_question, db, req.question_id)
	if question is None:
		raise HTTPException(status_code=404, detail="Question not found")

	result = await evaluator.evaluate(req.mode, question, req.answer_text)
	attempt_id = await run_in_threadpool(
		record_attempt,
		db,
		user_id=user.id,
		question_id=question.id,
		answer_text=req.answer_text,
		marks_awarded=result.marks_awarded,
		feedback=result.feedback,
	)
	return {
		"ok": True,
		"attemptId": attempt_id,
		"marksAwarded": result.marks_awarded,
		"feedback": result.feedback.model_dump(by_alias=True),
	}
