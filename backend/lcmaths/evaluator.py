"""Answer marking.

Every submission is scored locally first with a length heuristic. When a
Gemini key is configured the model is asked for richer feedback, and any
fields it returns that survive validation replace the local ones one by one.
The Gemini path is best effort: errors, timeouts and unparseable replies are
logged and the local result is returned as is.
"""
from __future__ import annotations
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .gemini_client import GeminiClient
from .settings import Settings

logger = logging.getLogger(__name__)

MODE_MARK = "mark"
MODE_EXPLAIN = "explain"

# Answers this long or longer count as "complete" for the heuristic
COMPLETE_ANSWER_CHARS = 120
MAX_STEPS = 6

DEFAULT_STEPS = [
	"State what the question is asking you to find.",
	"Write down the key formula or relationship you will use.",
	"Substitute in the values and simplify carefully.",
	"Check that your final answer makes sense.",
]
MARK_SUMMARY = "This prototype gives a rough score based on how complete your answer looks."
EXPLAIN_SUMMARY = "Here is a straightforward outline of how to approach the question."
EXPLANATION_ONLY = "Explanation only"


def round_half_up(value: float) -> int:
	# Python's round() is banker's rounding; marks and percentages round .5 up
	return int(math.floor(value + 0.5))


def normalise_mode(mode: Optional[str]) -> str:
	return MODE_EXPLAIN if mode == MODE_EXPLAIN else MODE_MARK


def score_text(marks_awarded: Optional[int], max_marks: int) -> str:
	if marks_awarded is None:
		return EXPLANATION_ONLY
	return f"{marks_awarded}/{max_marks}"


class Feedback(BaseModel):
	model_config = ConfigDict(populate_by_name=True, frozen=True)

	score_text: str = Field(alias="scoreText")
	summary: str
	steps: List[str]


@dataclass(frozen=True)
class Evaluation:
	marks_awarded: Optional[int]
	feedback: Feedback


@dataclass
class ModelFeedback:
	"""Validated fields from a model reply; ``None``/empty means "not supplied"."""
	marks_awarded: Optional[int] = None
	summary: Optional[str] = None
	steps: List[str] = field(default_factory=list)


def heuristic_feedback(mode: str, max_marks: int, answer_text: str) -> Evaluation:
	completeness = min(len(answer_text) / COMPLETE_ANSWER_CHARS, 1.0)
	marks = round_half_up(max_marks * completeness) if mode == MODE_MARK else None
	return Evaluation(
		marks_awarded=marks,
		feedback=Feedback(
			score_text=score_text(marks, max_marks),
			summary=MARK_SUMMARY if mode == MODE_MARK else EXPLAIN_SUMMARY,
			steps=list(DEFAULT_STEPS),
		),
	)


def build_prompt(mode: str, question_text: str, marking_scheme: Optional[str], max_marks: int, answer_text: str) -> str:
	if mode == MODE_MARK:
		instructions = (
			"Score the learner's answer for a Leaving Cert maths question.\n"
			f"Return ONLY a JSON object with keys: marks_awarded (integer 0-{max_marks}), "
			"summary (1-2 calm sentences), and steps (array of 3-6 short bullet points).\n"
			"Keep the tone factual and supportive."
		)
	else:
		instructions = (
			"Give a short walkthrough for a Leaving Cert maths question.\n"
			"Return ONLY a JSON object with keys: summary (1-2 calm sentences) "
			"and steps (array of 3-6 short bullet points)."
		)
	scheme = f"Marking scheme: {marking_scheme}" if marking_scheme else ""
	return (
		f"{instructions}\n\n"
		f"Question (max {max_marks} marks): {question_text}\n"
		f"{scheme}\n\n"
		f"Learner answer:\n{answer_text}"
	)


def extract_json_object(text: str) -> Optional[dict]:
	"""Return the first ``{...}`` in ``text`` that decodes as a JSON object.

	Models tend to wrap the object in prose or code fences, so each opening
	brace is tried in turn with a raw decode, which stops at the matching
	closing brace.
	"""
	if not text:
		return None
	decoder = json.JSONDecoder()
	start = text.find("{")
	while start != -1:
		try:
			obj, _ = decoder.raw_decode(text, start)
		except ValueError:
			obj = None
		if isinstance(obj, dict):
			return obj
		start = text.find("{", start + 1)
	return None


def clamp_marks(value: Any, max_marks: int) -> Optional[int]:
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		return None
	if not math.isfinite(value):
		return None
	return max(0, min(max_marks, round_half_up(value)))


def _clean_steps(value: Any) -> List[str]:
	if not isinstance(value, list):
		return []
	steps = [s.strip() for s in value if isinstance(s, str)]
	return [s for s in steps if s][:MAX_STEPS]


def parse_model_feedback(text: str, mode: str, max_marks: int) -> Optional[ModelFeedback]:
	data = extract_json_object(text)
	if data is None:
		return None
	marks = clamp_marks(data.get("marks_awarded"), max_marks) if mode == MODE_MARK else None
	summary = data.get("summary") or data.get("comment")
	if not isinstance(summary, str) or not summary.strip():
		summary = None
	else:
		summary = summary.strip()
	return ModelFeedback(marks_awarded=marks, summary=summary, steps=_clean_steps(data.get("steps")))


def merge_feedback(base: Evaluation, model: Optional[ModelFeedback], max_marks: int) -> Evaluation:
	if model is None:
		return base
	marks = model.marks_awarded if model.marks_awarded is not None else base.marks_awarded
	return Evaluation(
		marks_awarded=marks,
		feedback=Feedback(
			score_text=score_text(marks, max_marks),
			summary=model.summary or base.feedback.summary,
			steps=list(model.steps) if model.steps else list(base.feedback.steps),
		),
	)


class AnswerEvaluator:
	def __init__(self, settings: Settings, *, client_factory: Optional[Callable[[Settings], GeminiClient]] = None) -> None:
		self.settings = settings
		self._client_factory = client_factory or GeminiClient

	async def evaluate(self, mode: str, question: Any, answer_text: str) -> Evaluation:
		mode = normalise_mode(mode)
		max_marks = int(question.max_marks)
		base = heuristic_feedback(mode, max_marks, answer_text)
		if not self.settings.gemini_enabled:
			return base
		model = await self._ask_model(mode, question, answer_text)
		return merge_feedback(base, model, max_marks)

	async def _ask_model(self, mode: str, question: Any, answer_text: str) -> Optional[ModelFeedback]:
		prompt = build_prompt(mode, question.text, question.marking_scheme, int(question.max_marks), answer_text)
		try:
			client = self._client_factory(self.settings)
		except ValueError:
			logger.warning("Gemini client could not be created; using heuristic marking")
			return None
		try:
			text = await client.generate(
				prompt,
				temperature=self.settings.gemini_temperature,
				max_output_tokens=self.settings.gemini_max_output_tokens,
			)
		except httpx.TimeoutException:
			logger.warning("Gemini request timed out after %ss", self.settings.gemini_timeout_seconds)
			return None
		except Exception:
			logger.warning("Gemini request failed; using heuristic marking", exc_info=True)
			return None
		finally:
			await client.aclose()
		parsed = parse_model_feedback(text, mode, int(question.max_marks))
		if parsed is None:
			logger.warning("Gemini reply had no usable JSON: %r", text[:500])
		return parsed
