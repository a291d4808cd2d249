from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .settings import Settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
	"""The Gemini endpoint answered with a non-success status."""

	def __init__(self, status_code: int, body: str) -> None:
		self.status_code = status_code
		self.body = body
		super().__init__(f"Gemini request failed with status {status_code}")


def extract_text(data: Any) -> str:
	"""Join the text of every part in the first candidate; empty when the shape is off."""
	try:
		parts = data["candidates"][0]["content"]["parts"]
	except (KeyError, IndexError, TypeError):
		return ""
	if not isinstance(parts, list):
		return ""
	texts: List[str] = []
	for p in parts:
		text = p.get("text") if isinstance(p, dict) else None
		texts.append(text if isinstance(text, str) else "")
	return "\n".join(texts).strip()


class GeminiClient:
	def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None, base_url: Optional[str] = None) -> None:
		self.api_key = settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, temperature: Optional[float] = None, max_output_tokens: Optional[int] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		generation_config: Dict[str, Any] = {}
		if temperature is not None:
			generation_config["temperature"] = temperature
		if max_output_tokens is not None:
			generation_config["maxOutputTokens"] = max_output_tokens
		if generation_config:
			payload["generationConfig"] = generation_config
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		if not r.is_success:
			logger.warning("Gemini request failed: %s %s", r.status_code, r.text[:500])
			raise GeminiError(r.status_code, r.text)
		return extract_text(r.json())

	async def aclose(self) -> None:
		await self._client.aclose()
