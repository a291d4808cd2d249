from lcmaths.models import Question


TOPIC = {"title": "Trigonometry", "slug": "trigonometry", "level": "OL", "paper": 2}


def test_admin_routes_reject_anonymous(client):
	assert client.get("/api/admin/topics").status_code == 401
	assert client.post("/api/admin/topics", json=TOPIC).status_code == 401


def test_admin_routes_reject_learners(user_client):
	for r in (
		user_client.get("/api/admin/topics"),
		user_client.post("/api/admin/topics", json=TOPIC),
		user_client.post("/api/admin/questions", json={"topic_id": 1, "text": "Q", "marking_scheme": "S", "max_marks": 3}),
	):
		assert r.status_code == 403
		assert r.json() == {"error": "Admin only"}


def test_create_and_list_topics(admin_client):
	r = admin_client.post("/api/admin/topics", json=dict(TOPIC, order_index=3, notes_html="<p>SOH CAH TOA</p>"))
	assert r.status_code == 200
	assert r.json()["ok"] is True

	topics = admin_client.get("/api/admin/topics").json()["topics"]
	# Ordered by paper first
	assert [t["slug"] for t in topics] == ["algebra-equations", "trigonometry"]
	assert set(topics[0]) == {"id", "title", "slug", "level", "paper"}

	detail = admin_client.get("/api/topic/trigonometry").json()
	assert detail["topic"]["notesHtml"] == "<p>SOH CAH TOA</p>"
	assert detail["stats"] == {"total": 0, "attempted": 0, "avgMarkPct": 0}


def test_duplicate_slug_conflicts(admin_client):
	assert admin_client.post("/api/admin/topics", json=TOPIC).status_code == 200
	r = admin_client.post("/api/admin/topics", json=dict(TOPIC, title="Other"))
	assert r.status_code == 409
	assert r.json() == {"error": "Slug already exists."}
	# The failed insert must not poison the next request
	assert admin_client.post("/api/admin/topics", json=dict(TOPIC, slug="trig-2")).status_code == 200


def test_create_topic_validation(admin_client):
	r = admin_client.post("/api/admin/topics", json={"title": "No slug", "level": "HL", "paper": 1})
	assert r.status_code == 400
	assert r.json() == {"error": "title, slug, level, paper are required."}


def test_create_question(admin_client, db):
	topic_id = admin_client.post("/api/admin/topics", json=TOPIC).json()["id"]
	r = admin_client.post(
		"/api/admin/questions",
		json={"topic_id": topic_id, "text": "Find sin 30.", "marking_scheme": "1/2", "max_marks": 5, "source_ref": "2019 P2 Q1"},
	)
	assert r.status_code == 200
	row = db.get(Question, r.json()["id"])
	assert row.topic_id == topic_id
	assert row.max_marks == 5
	assert row.source_ref == "2019 P2 Q1"

	detail = admin_client.get("/api/topic/trigonometry").json()
	assert [q["displayNumber"] for q in detail["questions"]] == [1]


def test_create_question_validation(admin_client):
	base = {"topic_id": 1, "text": "Q", "marking_scheme": "S", "max_marks": 3}
	for missing in ("topic_id", "text", "marking_scheme", "max_marks"):
		body = {k: v for k, v in base.items() if k != missing}
		assert admin_client.post("/api/admin/questions", json=body).status_code == 400
	assert admin_client.post("/api/admin/questions", json=dict(base, max_marks=-2)).status_code == 400
	assert admin_client.post("/api/admin/questions", json=dict(base, max_marks="lots")).status_code == 400
	r = admin_client.post("/api/admin/questions", json=dict(base, topic_id=999))
	assert r.status_code == 404
	assert r.json() == {"error": "Topic not found"}


def test_create_topic_accepts_null_optionals(admin_client):
	r = admin_client.post("/api/admin/topics", json=dict(TOPIC, order_index=None, notes_html=None))
	assert r.status_code == 200
	detail = admin_client.get("/api/topic/trigonometry").json()
	assert detail["topic"]["notesHtml"] == ""


def test_out_of_range_ids_are_400(admin_client):
	r = admin_client.post("/api/admin/questions", json={"topic_id": 2 ** 70, "text": "Q", "marking_scheme": "S", "max_marks": 3})
	assert r.status_code == 400
	assert set(r.json()) == {"error"}
	r = admin_client.post("/api/admin/topics", json=dict(TOPIC, paper=2 ** 70))
	assert r.status_code == 400
