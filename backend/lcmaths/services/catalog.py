from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import Float, cast, distinct, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import commit
from ..evaluator import round_half_up
from ..models import Attempt, Question, Topic

logger = logging.getLogger(__name__)


SEED_TOPIC = {
	"title": "Algebra & Equations",
	"slug": "algebra-equations",
	"level": "HL",
	"paper": 1,
	"order_index": 1,
	"notes_html": "<p>This topic covers basic quadratic equations, factoring, and roots.</p>",
}
SEED_QUESTIONS = [
	{
		"text": "Solve the quadratic equation 2x^2 - 3x - 5 = 0.",
		"marking_scheme": "Award full marks for correctly finding both roots with clear working. Partial credit for one correct root or correct use of quadratic formula with minor algebra slips.",
		"max_marks": 10,
		"source_ref": "Sample",
	},
	{
		"text": "Sketch the graph of f(x) = 2x^2 - 3x - 5, indicating roots and vertex.",
		"marking_scheme": "Award marks for correct shape, intercepts, and vertex position. Partial credit for correct features but inaccurate scaling.",
		"max_marks": 15,
		"source_ref": "Sample",
	},
]


def ensure_seed_data(db: Session) -> bool:
	"""Insert the starter topic when the catalog is empty. Returns True if it seeded.

	Two first requests racing each other both pass the emptiness check; the
	loser hits the slug unique constraint and backs off.
	"""
	if db.query(Topic.id).first() is not None:
		return False
	try:
		topic = Topic(**SEED_TOPIC)
		db.add(topic)
		db.flush()
		for q in SEED_QUESTIONS:
			db.add(Question(topic_id=topic.id, **q))
		db.commit()
	except IntegrityError:
		db.rollback()
		logger.info("Seed topic already present; skipping")
		return False
	logger.info("Seeded starter topic %r with %d questions", SEED_TOPIC["slug"], len(SEED_QUESTIONS))
	return True


def _ordered_topics(db: Session) -> List[Topic]:
	return db.query(Topic).order_by(Topic.paper, Topic.order_index, Topic.id).all()


def _pct(value: Any) -> int:
	return round_half_up(float(value)) if value is not None else 0


def _mark_pct_expr():
	return cast(Attempt.marks_awarded, Float) * 100 / Question.max_marks


def list_topics(db: Session, user_id: int) -> Dict[str, Any]:
	topics = _ordered_topics(db)
	totals = dict(
		db.query(Question.topic_id, func.count(Question.id))
		.group_by(Question.topic_id)
		.all()
	)
	attempt_rows = (
		db.query(
			Question.topic_id,
			func.count(distinct(Attempt.question_id)),
			func.avg(_mark_pct_expr()),
		)
		.select_from(Attempt)
		.join(Question, Question.id == Attempt.question_id)
		.filter(Attempt.user_id == user_id)
		.group_by(Question.topic_id)
		.all()
	)
	stats_by_topic = {topic_id: (attempted, avg_pct) for topic_id, attempted, avg_pct in attempt_rows}

	out = []
	for t in topics:
		total = totals.get(t.id, 0)
		attempted, avg_pct = stats_by_topic.get(t.id, (0, None))
		out.append({
			"id": t.id,
			"title": t.title,
			"slug": t.slug,
			"level": t.level,
			"paper": t.paper,
			"completedPct": round_half_up(attempted * 100 / total) if total else 0,
			"avgMarkPct": _pct(avg_pct),
		})
	if out:
		summary = f"You have {len(out)} topic{'s' if len(out) > 1 else ''} to explore."
	else:
		summary = "No topics yet."
	return {"topics": out, "summaryText": summary}


def _last_marks(db: Session, user_id: int, question_ids: List[int]) -> Dict[int, int]:
	if not question_ids:
		return {}
	rows = (
		db.query(Attempt.question_id, Attempt.marks_awarded)
		.filter(
			Attempt.user_id == user_id,
			Attempt.question_id.in_(question_ids),
			Attempt.marks_awarded.isnot(None),
		)
		.order_by(Attempt.created_at.desc(), Attempt.id.desc())
		.all()
	)
	last: Dict[int, int] = {}
	for question_id, marks in rows:
		# Newest first, so the first row seen per question wins
		last.setdefault(question_id, marks)
	return last


def topic_detail(db: Session, user_id: int, slug: str) -> Optional[Dict[str, Any]]:
	topic = db.query(Topic).filter(Topic.slug == slug).first()
	if topic is None:
		return None
	questions = db.query(Question).filter(Question.topic_id == topic.id).order_by(Question.id).all()
	last = _last_marks(db, user_id, [q.id for q in questions])

	questions_out = []
	for idx, q in enumerate(questions, start=1):
		mark = last.get(q.id)
		questions_out.append({
			"id": q.id,
			"text": q.text,
			"max_marks": q.max_marks,
			"displayNumber": idx,
			"lastMarkText": f"{mark}/{q.max_marks}" if mark is not None else None,
		})

	attempted, avg_pct = (
		db.query(func.count(distinct(Attempt.question_id)), func.avg(_mark_pct_expr()))
		.select_from(Attempt)
		.join(Question, Question.id == Attempt.question_id)
		.filter(Attempt.user_id == user_id, Question.topic_id == topic.id)
		.one()
	)
	return {
		"topic": {
			"id": topic.id,
			"title": topic.title,
			"slug": topic.slug,
			"level": topic.level,
			"paper": topic.paper,
			"notesHtml": topic.notes_html,
		},
		"questions": questions_out,
		"stats": {
			"total": len(questions),
			"attempted": attempted or 0,
			"avgMarkPct": _pct(avg_pct),
		},
	}


def display_number(db: Session, question: Question) -> int:
	# 1-based position within the topic by id
	earlier = (
		db.query(func.count(Question.id))
		.filter(Question.topic_id == question.topic_id, Question.id < question.id)
		.scalar()
	)
	return (earlier or 0) + 1


def get_question(db: Session, question_id: int) -> Optional[Question]:
	return db.get(Question, question_id)


def question_detail(db: Session, question: Question) -> Dict[str, Any]:
	topic = db.get(Topic, question.topic_id)
	return {
		"question": {
			"id": question.id,
			"text": question.text,
			"max_marks": question.max_marks,
			"displayNumber": display_number(db, question),
		},
		"topic": {
			"id": topic.id,
			"title": topic.title,
			"level": topic.level,
			"paper": topic.paper,
		} if topic is not None else None,
	}


def admin_list_topics(db: Session) -> List[Dict[str, Any]]:
	return [
		{"id": t.id, "title": t.title, "slug": t.slug, "level": t.level, "paper": t.paper}
		for t in _ordered_topics(db)
	]


def create_topic(db: Session, *, title: str, slug: str, level: str, paper: int, order_index: int = 0, notes_html: str = "") -> Topic:
	row = Topic(title=title, slug=slug, level=level, paper=paper, order_index=order_index, notes_html=notes_html)
	db.add(row)
	commit(db, unique_field="slug", message="Slug already exists.")
	return row


def create_question(db: Session, *, topic_id: int, text: str, marking_scheme: str, max_marks: int, source_ref: Optional[str] = None) -> Question:
	row = Question(topic_id=topic_id, text=text, marking_scheme=marking_scheme, max_marks=max_marks, source_ref=source_ref)
	db.add(row)
	commit(db)
	return row
