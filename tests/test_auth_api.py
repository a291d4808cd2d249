from conftest import ADMIN_EMAIL, register


def test_health(client):
	r = client.get("/api/health")
	assert r.status_code == 200
	body = r.json()
	assert body["ok"] is True
	assert body["env"] == "test"
	assert body["time"]


def test_me_anonymous(client):
	r = client.get("/api/me")
	assert r.status_code == 200
	assert r.json() == {"user": None}


def test_register_sets_session_cookie(client):
	r = register(client, email="  Learner@Example.com ")
	assert r.status_code == 200
	assert r.json()["user"]["email"] == "learner@example.com"
	cookie = r.headers["set-cookie"]
	assert cookie.startswith("session_id=")
	assert "HttpOnly" in cookie
	assert "samesite=lax" in cookie.lower()
	assert "Path=/" in cookie

	me = client.get("/api/me").json()["user"]
	assert me["email"] == "learner@example.com"
	assert me["is_admin"] is False


def test_register_password_length_boundary(client):
	short = register(client, email="a@example.com", password="12345")
	assert short.status_code == 400
	assert "error" in short.json()
	ok = register(client, email="b@example.com", password="123456")
	assert ok.status_code == 200


def test_register_requires_fields(client):
	r = client.post("/api/register", json={"email": "x@example.com"})
	assert r.status_code == 400
	assert r.json() == {"error": "Email and password are required."}


def test_register_malformed_body_is_400(client):
	r = client.post("/api/register", content=b"not json", headers={"content-type": "application/json"})
	assert r.status_code == 400
	assert set(r.json()) == {"error"}


def test_duplicate_email_conflicts(client):
	assert register(client, email="dup@example.com").status_code == 200
	r = register(client, email="DUP@example.com")
	assert r.status_code == 409
	assert r.json() == {"error": "An account with that email already exists."}


def test_login_and_logout(client):
	register(client, email="me@example.com", password="secret1")
	client.post("/api/logout")
	assert client.get("/api/me").json() == {"user": None}

	bad = client.post("/api/login", json={"email": "me@example.com", "password": "wrong!!"})
	assert bad.status_code == 401
	assert bad.json() == {"error": "Incorrect email or password."}

	unknown = client.post("/api/login", json={"email": "nobody@example.com", "password": "secret1"})
	assert unknown.status_code == 401

	good = client.post("/api/login", json={"email": "ME@example.com", "password": "secret1"})
	assert good.status_code == 200
	assert client.get("/api/me").json()["user"]["email"] == "me@example.com"

	out = client.post("/api/logout")
	assert out.status_code == 200
	assert "session_id=" in out.headers["set-cookie"]
	assert client.get("/api/me").json() == {"user": None}


def test_logout_revokes_server_session(client):
	register(client, email="revoke@example.com")
	token = client.cookies.get("session_id")
	client.post("/api/logout")
	# Replaying the old cookie must not log anyone in
	client.cookies.set("session_id", token)
	assert client.get("/api/me").json() == {"user": None}


def test_garbage_cookie_is_anonymous(client):
	client.cookies.set("session_id", "garbage")
	assert client.get("/api/me").json() == {"user": None}
	assert client.get("/api/topics").status_code == 401


def test_admin_email_gets_admin_flag(admin_client):
	assert admin_client.get("/api/me").json()["user"]["email"] == ADMIN_EMAIL
	assert admin_client.get("/api/me").json()["user"]["is_admin"] is True


def test_unknown_route_is_404(client):
	r = client.get("/api/nope")
	assert r.status_code == 404
	assert r.json() == {"error": "Route not implemented"}
	r = client.delete("/api/topics")
	assert r.status_code == 404


def test_register_rejects_nul_in_password(client):
	r = register(client, email="nul@example.com", password="abc\x00defgh")
	assert r.status_code == 400
	assert r.json() == {"error": "Password contains an invalid character."}
	assert client.get("/api/me").json() == {"user": None}


def test_login_with_nul_in_password_is_rejected(client):
	register(client, email="nul-login@example.com", password="secret1")
	client.post("/api/logout")
	r = client.post("/api/login", json={"email": "nul-login@example.com", "password": "secret1\x00"})
	assert r.status_code == 401
	assert r.json() == {"error": "Incorrect email or password."}
