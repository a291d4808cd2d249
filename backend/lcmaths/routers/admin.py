from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import MAX_ROW_ID, get_db
from ..models import Topic, User
from ..services import catalog
from .auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


class CreateTopicRequest(BaseModel):
	title: Optional[str] = None
	slug: Optional[str] = None
	level: Optional[str] = None
	paper: Optional[int] = Field(default=None, ge=-MAX_ROW_ID, le=MAX_ROW_ID)
	order_index: Optional[int] = Field(default=None, ge=-MAX_ROW_ID, le=MAX_ROW_ID)
	notes_html: Optional[str] = None


class CreateQuestionRequest(BaseModel):
	topic_id: Optional[int] = Field(default=None, ge=1, le=MAX_ROW_ID)
	text: Optional[str] = None
	marking_scheme: Optional[str] = None
	max_marks: Optional[int] = Field(default=None, le=MAX_ROW_ID)
	source_ref: Optional[str] = None


@router.get("/topics")
def list_topics(user: User = Depends(require_admin), db: Session = Depends(get_db)):
	return {"topics": catalog.admin_list_topics(db)}


@router.post("/topics")
def create_topic(req: CreateTopicRequest, user: User = Depends(require_admin), db: Session = Depends(get_db)):
	title = (req.title or "").strip()
	slug = (req.slug or "").strip()
	level = (req.level or "").strip()
	if not title or not slug or not level or not req.paper:
		raise HTTPException(status_code=400, detail="title, slug, level, paper are required.")
	row = catalog.create_topic(
		db,
		title=title,
		slug=slug,
		level=level,
		paper=req.paper,
		order_index=req.order_index or 0,
		notes_html=req.notes_html or "",
	)
	return {"ok": True, "id": row.id}


@router.post("/questions")
def create_question(req: CreateQuestionRequest, user: User = Depends(require_admin), db: Session = Depends(get_db)):
	text = (req.text or "").strip()
	scheme = (req.marking_scheme or "").strip()
	if not req.topic_id or not text or not scheme or not req.max_marks:
		raise HTTPException(status_code=400, detail="topic_id, text, marking_scheme, max_marks are required.")
	if req.max_marks < 1:
		raise HTTPException(status_code=400, detail="max_marks must be a positive integer.")
	if db.get(Topic, req.topic_id) is None:
		raise HTTPException(status_code=404, detail="Topic not found")
	row = catalog.create_question(
		db,
		topic_id=req.topic_id,
		text=text,
		marking_scheme=scheme,
		max_marks=req.max_marks,
		source_ref=(req.source_ref or "").strip() or None,
	)
	return {"ok": True, "id": row.id}
