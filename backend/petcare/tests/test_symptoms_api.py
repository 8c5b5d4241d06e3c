# tests/test_symptoms_api.py
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from petcare.database import get_db
from petcare.errors import ConfigurationError, ProviderRateLimitError
from petcare.main import app
from petcare.models.triage import SymptomCheck
from petcare.services.model_invoker import get_model_invoker
from petcare.services.usage_gate import get_usage_gate

FORM = {"petType": "dog", "symptoms": "vomiting and lethargy for 2 days"}


@pytest.fixture
def client(db_session, invoker, usage_gate):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_model_invoker] = lambda: invoker
    app.dependency_overrides[get_usage_gate] = lambda: usage_gate
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json() == {"message": "API is running"}


def test_check_returns_normalized_result(client, db_session):
    resp = client.post("/symptoms/check", data=FORM, headers={"X-User-Id": "user_1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["isGuest"] is False
    result = body["data"]["result"]
    assert result["urgencyLevel"] == "high"
    assert result["conditions"][0]["name"] == "Gastroenteritis"
    assert result["conditions"][0]["recommendedActions"]
    assert result["disclaimer"]
    assert result["rawModelText"]
    assert body["data"]["followUpAction"] == "schedule"
    assert body["data"]["careTips"][0] == "Offer small amounts of water"
    assert body["data"]["rawText"] == result["rawModelText"]
    assert body["data"]["disclaimer"] == result["disclaimer"]
    assert body["data"]["timestamp"]
    assert db_session.query(SymptomCheck).count() == 1


def test_check_requires_pet_type_and_symptoms(client, fake_provider):
    resp = client.post("/symptoms/check", data={"petType": "dog"}, headers={"X-User-Id": "user_1"})
    assert resp.status_code == 400
    assert fake_provider.calls == []


def test_guest_session_generated_when_missing(client):
    resp = client.post("/symptoms/check", data=FORM)
    assert resp.status_code == 200
    assert resp.headers["X-Guest-Session"].startswith("guest_")
    assert resp.json()["isGuest"] is True


def test_guest_limit_returns_register_message(client, fake_provider):
    headers = {"X-Guest-Session": "guest_abc"}
    for _ in range(3):
        assert client.post("/symptoms/check", data=FORM, headers=headers).status_code == 200

    resp = client.post("/symptoms/check", data=FORM, headers=headers)

    assert resp.status_code == 429
    detail = resp.json()["detail"]
    assert "Register" in detail["message"]
    assert detail["remaining"] == 0
    assert detail["registerRequired"] is True
    assert len(fake_provider.calls) == 3


def test_unparsable_output_is_generic_failure(client, fake_provider, db_session):
    fake_provider.response = "I think your dog is fine."
    resp = client.post("/symptoms/check", data=FORM, headers={"X-User-Id": "user_1"})

    assert resp.status_code == 502
    assert resp.json()["detail"]["message"].startswith("Symptom analysis failed")
    assert "dog is fine" not in resp.text
    assert db_session.query(SymptomCheck).count() == 0


def test_history_write_failure_is_generic_failure(client, usage_gate):
    db = MagicMock()
    db.commit.side_effect = OperationalError("INSERT INTO symptom_check", {}, Exception("disk I/O error"))
    app.dependency_overrides[get_db] = lambda: db

    resp = client.post("/symptoms/check", data=FORM, headers={"X-Guest-Session": "guest_abc"})

    assert resp.status_code == 502
    assert resp.json()["detail"]["message"].startswith("Symptom analysis failed")
    assert "disk I/O" not in resp.text
    assert usage_gate.status("guest_abc").count == 0


def test_provider_rate_limit_sets_retry_after(client, fake_provider):
    fake_provider.error = ProviderRateLimitError("429 RESOURCE_EXHAUSTED")
    resp = client.post("/symptoms/check", data=FORM, headers={"X-User-Id": "user_1"})
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "300"
    assert "RESOURCE_EXHAUSTED" not in resp.text


def test_configuration_error_is_service_unavailable(client, fake_provider):
    fake_provider.error = ConfigurationError("Gemini rejected the API key")
    resp = client.post("/symptoms/check", data=FORM, headers={"X-User-Id": "user_1"})
    assert resp.status_code == 503
    assert "API key" not in resp.text


def test_image_upload_uses_multimodal_path(client, fake_provider):
    files = {"image": ("pet.png", b"\x89PNG\r\n", "image/png")}
    resp = client.post("/symptoms/check", data=FORM, files=files, headers={"X-User-Id": "user_1"})
    assert resp.status_code == 200
    assert fake_provider.calls[0][0] == "image"
    assert fake_provider.calls[0][2:] == (b"\x89PNG\r\n", "image/png")


def test_image_with_wrong_type_is_rejected(client, fake_provider):
    files = {"image": ("notes.txt", b"hello", "text/plain")}
    resp = client.post("/symptoms/check", data=FORM, files=files, headers={"X-User-Id": "user_1"})
    assert resp.status_code == 400
    assert "Invalid file type" in resp.json()["detail"]["message"]
    assert fake_provider.calls == []


def test_usage_for_guest_and_user(client, usage_gate):
    usage_gate.increment("guest_abc")
    guest = client.get("/symptoms/usage", headers={"X-Guest-Session": "guest_abc"}).json()
    assert guest["usageCount"] == 1
    assert guest["remainingUses"] == 2
    assert guest["hasReachedLimit"] is False

    user = client.get("/symptoms/usage", headers={"X-User-Id": "user_1"}).json()
    assert user == {"success": True, "isGuest": False, "unlimited": True}


def test_history_requires_authentication(client):
    resp = client.get("/symptoms/history", headers={"X-Guest-Session": "guest_abc"})
    assert resp.status_code == 401


def test_history_lists_recent_checks(client):
    headers = {"X-User-Id": "user_1"}
    for symptoms in ("sneezing", "limping"):
        client.post("/symptoms/check", data={"petType": "cat", "symptoms": symptoms}, headers=headers)

    body = client.get("/symptoms/history?limit=1", headers=headers).json()

    assert body["count"] == 1
    assert body["data"][0]["case"]["symptoms"] == "limping"
    assert body["data"][0]["ownerId"] == "user_1"


def test_advice_endpoint(client, fake_provider):
    fake_provider.response = "Keep your dog hydrated."
    resp = client.post("/symptoms/advice", json={"question": "Can dogs eat grapes?", "petType": "dog"})
    assert resp.status_code == 200
    advice = resp.json()["advice"]
    assert advice["advice"] == "Keep your dog hydrated."
    assert advice["disclaimer"]


def test_emergency_endpoint_is_not_gated(client, usage_gate, fake_provider):
    for _ in range(3):
        usage_gate.increment("guest_abc")
    fake_provider.response = "Go to the emergency vet now."
    resp = client.post(
        "/symptoms/emergency",
        json={"petType": "dog", "symptoms": "collapsed", "vitalSigns": {"heartRate": 180}},
        headers={"X-Guest-Session": "guest_abc"},
    )
    assert resp.status_code == 200
    assert resp.json()["assessment"]["assessment"] == "Go to the emergency vet now."
    assert '"heartRate": 180' in fake_provider.calls[0][1]
