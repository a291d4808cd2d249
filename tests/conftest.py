import json
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from lcmaths.evaluator import AnswerEvaluator
from lcmaths.gemini_client import GeminiClient
from lcmaths.main import create_app
from lcmaths.settings import Settings

ADMIN_EMAIL = "admin@example.com"


def make_settings(**overrides):
	values = {
		"database_url": "sqlite://",
		"bcrypt_rounds": 4,
		"gemini_api_key": None,
		"admin_emails": ADMIN_EMAIL,
		"app_env": "test",
	}
	values.update(overrides)
	return Settings(_env_file=None, **values)


def gemini_reply(text, status_code=200):
	"""Build a Gemini generateContent JSON body wrapping ``text``."""
	body = {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}
	return httpx.Response(status_code, json=body)


def evaluator_with(settings, handler, calls=None):
	"""An evaluator whose Gemini client talks to ``handler`` instead of the network."""
	def factory(s):
		def recording(request):
			if calls is not None:
				calls.append(request)
			return handler(request)
		return GeminiClient(s, transport=httpx.MockTransport(recording))
	return AnswerEvaluator(settings, client_factory=factory)


@pytest.fixture
def settings():
	return make_settings()


@pytest.fixture
def app(settings):
	return create_app(settings)


@pytest.fixture
def client(app):
	with TestClient(app) as c:
		yield c


@pytest.fixture
def db(app, client):
	session = app.state.session_factory()
	try:
		yield session
	finally:
		session.close()


def register(client, email="learner@example.com", password="secret1"):
	return client.post("/api/register", json={"email": email, "password": password})


@pytest.fixture
def user_client(client):
	r = register(client)
	assert r.status_code == 200, r.text
	return client


@pytest.fixture
def admin_client(app, client):
	admin = TestClient(app)
	r = register(admin, email=ADMIN_EMAIL, password="adminpass")
	assert r.status_code == 200, r.text
	return admin


@pytest.fixture
def question():
	return SimpleNamespace(
		id=1,
		text="Solve 2x + 3 = 7.",
		marking_scheme="Award full marks for x = 2 with working.",
		max_marks=10,
	)


def model_json(**fields):
	return json.dumps(fields)
