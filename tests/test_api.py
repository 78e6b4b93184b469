"""
HTTP endpoint tests against an in-memory backend.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import (
    answer,
    category,
    legacy_doctor,
    patient_story,
    post,
    post_translation,
    profile_doctor,
    profile_translation,
    question,
)
from revmohelp import main
from revmohelp.main import app, get_services
from revmohelp.services import preload_critical_data


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint_returns_ok_status(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": "up"}


def test_version_endpoint(client):
    assert client.get("/version").json()["version"] == "v1.0.0"


def test_doctors_endpoint_merges_and_localizes(client, add_rows):
    add_rows(
        legacy_doctor("L1", "same@x.com"),
        profile_doctor("P1", "same@x.com"),
        profile_translation("P1", "ru", bio="Русская био"),
    )

    data = client.get("/api/doctors", params={"lang": "ru"}).json()

    assert data["count"] == 1
    assert data["doctors"][0]["id"] == "P1"
    assert data["doctors"][0]["bio"] == "Русская био"


def test_doctors_endpoint_defaults_to_default_language(client, add_rows):
    add_rows(legacy_doctor("L1", "same@x.com"), profile_doctor("P1", "same@x.com"))

    data = client.get("/api/doctors").json()

    assert data["language"] == "uz"
    assert data["doctors"][0]["id"] == "L1"


def test_doctors_endpoint_validates_page_size(client):
    assert client.get("/api/doctors", params={"page_size": 500}).status_code == 422


def test_unknown_doctor_returns_404(client):
    response = client.get("/api/doctors/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "Doctor not found"


def test_create_doctor_and_reject_duplicate_email(client):
    body = {"full_name": "Dr. Aliyev", "email": "aliyev@clinic.uz", "specialization": "Revmatolog"}

    created = client.post("/api/admin/doctors", json=body)
    assert created.status_code == 201
    assert created.json()["verified"] is False

    duplicate = client.post("/api/admin/doctors", json=dict(body, email="ALIYEV@clinic.uz"))
    assert duplicate.status_code == 409


def test_update_and_delete_doctor(client, add_rows):
    add_rows(legacy_doctor("L1", "a@x.com"))

    updated = client.put("/api/admin/doctors/L1", json={"bio": "Yangi bio"})
    assert updated.status_code == 200
    assert client.get("/api/doctors/L1").json()["bio"] == "Yangi bio"

    assert client.delete("/api/admin/doctors/L1").status_code == 200
    assert client.delete("/api/admin/doctors/L1").status_code == 404


def test_submit_review_updates_rating(client):
    assert client.get("/api/doctors/D1/rating").json()["total_reviews"] == 0

    response = client.post("/api/doctors/D1/reviews", json={"rating": 4, "comment": "Rahmat"})
    assert response.status_code == 201

    stats = client.get("/api/doctors/D1/rating").json()
    assert stats["total_reviews"] == 1
    assert stats["average_rating"] == 4.0
    assert client.get("/api/doctors/D1/reviews").json()["count"] == 1


def test_review_rating_out_of_range_is_rejected(client):
    response = client.post("/api/doctors/D1/reviews", json={"rating": 6, "comment": "x"})
    assert response.status_code == 422


def test_patient_stories_endpoints(client, add_rows):
    add_rows(patient_story("S1"))

    data = client.get("/api/patient-stories", params={"lang": "en"}).json()
    assert data["count"] == 1
    assert client.get("/api/patient-stories/S1").json()["patient_name"] == "Malika"
    assert client.get("/api/patient-stories/nope").status_code == 404


def test_backend_outage_returns_503(client, services, monkeypatch):
    monkeypatch.setattr(services.backend, "is_available", lambda: False)
    response = client.get("/api/doctors")
    assert response.status_code == 503
    assert response.json()["detail"] == "Backend not available"


def test_cache_stats_and_clear(client, add_rows):
    add_rows(legacy_doctor("L1", "a@x.com"))
    client.get("/api/doctors")
    client.get("/api/doctors")

    stats = client.get("/cache/stats").json()
    assert stats["hits"] == 1
    assert stats["entries"] == 1

    assert client.post("/cache/clear").json() == {"cleared": 1}


def test_preload_warms_home_page_data(services, add_rows):
    add_rows(legacy_doctor("L1", "a@x.com"), category("C1", "artrit"), post("PO1", "p-1"))

    assert preload_critical_data(services) is True
    assert sorted(services.cache.keys()) == [
        "categories",
        "doctors.uz.active=true&limit=10&page=1&page_size=12&verified=true",
        "posts.uz.limit=20&published=true",
    ]


def test_preload_keeps_going_when_one_load_fails(services, monkeypatch):
    monkeypatch.setattr(services.posts, "get_posts", lambda *a, **kw: 1 / 0)

    assert preload_critical_data(services) is False
    assert sorted(services.cache.keys()) == [
        "categories",
        "doctors.uz.active=true&limit=10&page=1&page_size=12&verified=true",
    ]


def test_preload_never_raises_on_outage(services, monkeypatch):
    monkeypatch.setattr(services.backend, "is_available", lambda: False)
    assert preload_critical_data(services) is False
    assert services.cache.keys() == []


def test_startup_preload_runs_off_the_event_loop(services, monkeypatch):
    calls = []

    def recording_preload(received):
        try:
            asyncio.get_running_loop()
            calls.append("event loop")
        except RuntimeError:
            calls.append("worker thread")
        assert received is services
        return True

    monkeypatch.setattr(main.settings, "preload_on_startup", True)
    monkeypatch.setattr(main, "get_services", lambda: services)
    monkeypatch.setattr(main, "preload_critical_data", recording_preload)

    with TestClient(app):
        pass

    assert calls == ["worker thread"]


# ===== CONTENT ENDPOINTS =====

def test_categories_endpoints(client, add_rows):
    add_rows(category("C1", "artroz"), category("C2", "artrit"))
    assert [c["slug"] for c in client.get("/api/categories").json()] == ["artrit", "artroz"]

    duplicate = client.post("/api/admin/categories", json={"name": "Artrit", "slug": "artrit"})
    assert duplicate.status_code == 409

    created = client.post("/api/admin/categories", json={"name": "Podagra", "slug": "podagra"})
    assert created.status_code == 201
    assert len(client.get("/api/categories").json()) == 3


def test_posts_endpoints(client, add_rows):
    add_rows(
        category("C1", "artrit"),
        post("PO1", "bogim-ogrigi", category_id="C1"),
        post_translation("PO1", "ru", title="Боль в суставах", slug="bol-v-sustavah"),
    )

    listed = client.get("/api/posts", params={"lang": "ru"}).json()
    assert listed["count"] == 1
    assert listed["posts"][0]["slug"] == "bol-v-sustavah"
    assert listed["posts"][0]["category"]["slug"] == "artrit"

    by_slug = client.get("/api/posts/bol-v-sustavah", params={"lang": "ru"}).json()
    assert by_slug["title"] == "Боль в суставах"
    assert client.get("/api/posts/by-id/PO1").json()["slug"] == "bogim-ogrigi"
    assert client.get("/api/posts/search", params={"q": "imlar"}).json()["count"] == 1
    assert client.get("/api/posts/nope").status_code == 404


def test_create_post_rejects_taken_slug(client, add_rows):
    add_rows(post("PO1", "taken"))
    body = {"title": "Yangi", "content": "Matn", "slug": "taken"}
    assert client.post("/api/admin/posts", json=body).status_code == 409
    assert client.post("/api/admin/posts", json=dict(body, slug="free")).status_code == 201


def test_questions_and_answers_endpoints(client, add_rows):
    add_rows(question("Q1", "savol-1"), answer("A1", "Q1"))

    assert client.get("/api/questions", params={"status": "all"}).json()["count"] == 1
    assert client.get("/api/questions", params={"status": "bogus"}).status_code == 422
    assert client.get("/api/questions/savol-1").json()["id"] == "Q1"

    submitted = client.post("/api/questions/Q1/answers", json={"content": "Tahlil topshiring"})
    assert submitted.status_code == 201
    assert client.get("/api/questions/Q1/answers").json()["count"] == 2

    best = client.post("/api/questions/Q1/answers/A1/best")
    assert best.status_code == 200
    assert client.get("/api/questions/Q1/answers").json()["answers"][0]["id"] == "A1"

    stats = client.get("/api/questions/stats").json()
    assert stats["total_questions"] == 1
    assert stats["answered_questions"] == 1
    assert stats["total_answers"] == 2


def test_answer_to_unknown_question_returns_404(client):
    response = client.post("/api/questions/nope/answers", json={"content": "x"})
    assert response.status_code == 404
