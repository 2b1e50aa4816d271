"""HTTP surface: envelopes, error contract, caller identity."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from palmmatch.features.codes.service import CodeBroker, set_code_broker
from palmmatch.features.codes.store import FallbackCodeStore, InMemoryCodeStore
from palmmatch.main import app
from palmmatch.tests.test_code_broker import UnavailableStore


READING = {
    "lines": {
        "heartLine": {"description": "A deep, curved heart line"},
        "headLine": {"description": "Long and clear head line"},
    },
    "mounts": {"venus": {"prominence": "well-developed"}},
    "special_markings": ["writing star"],
}
PROFILE_ALICE = {"name": "Alice", "date_of_birth": "1995-08-01"}
PROFILE_BOB = {"name": "Bob", "date_of_birth": "1994-04-02"}


@pytest.fixture
def client():
    return TestClient(app)


def _issue(client, profile=PROFILE_ALICE):
    resp = client.post("/v1/codes", json={"reading": READING, "profile": profile})
    assert resp.status_code == 200
    return resp.json()["data"]


ADMIN_HEADERS = {"X-Admin-Key": "ops-secret"}
ALICE = {"X-User-Id": "alice"}


@pytest.fixture
def admin_key(monkeypatch):
    from palmmatch.core.config import settings

    monkeypatch.setattr(settings, "ADMIN_KEY", "ops-secret")


def _assert_error(resp, status, code):
    assert resp.status_code == status
    body = resp.json()
    assert body["error"]["code"] == code
    assert body["error"]["request_id"] == resp.headers["x-request-id"]
    assert body["detail"] == body["error"]["message"]
    return body


class TestCodes:
    def test_issue_and_resolve(self, client):
        issued = _issue(client)
        assert len(issued["code"]) == 12
        assert issued["durable"] is True
        assert "warning" not in issued

        resp = client.post("/v1/codes/resolve", json={"code": issued["code"].lower()})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["issuer_name"] == "Alice"
        assert data["uses"] == 1
        assert data["reading_snapshot"]["profile"]["sign"] == "Leo"

    def test_degraded_issue_warns(self, client):
        set_code_broker(CodeBroker(FallbackCodeStore(UnavailableStore(), InMemoryCodeStore(durable=False))))
        issued = _issue(client)
        assert issued["durable"] is False
        assert issued["warning"]

        resp = client.post("/v1/codes/resolve", json={"code": issued["code"]})
        assert resp.status_code == 200
        assert resp.json()["data"]["durable"] is False

    def test_unknown_code_is_404(self, client):
        resp = client.post("/v1/codes/resolve", json={"code": "ZZZ000000AAA"})
        body = _assert_error(resp, 404, "not_found")
        assert body["error"]["user_message"]

    def test_expired_code_is_410(self, client, alice_snapshot):
        broker = CodeBroker(InMemoryCodeStore())
        set_code_broker(broker)
        past = datetime.now(timezone.utc) - timedelta(days=31)
        issued = asyncio.run(broker.issue(alice_snapshot, now=past))

        resp = client.post("/v1/codes/resolve", json={"code": issued.code})
        body = _assert_error(resp, 410, "expired")
        assert body["error"]["user_message"] == "This code is no longer valid."

    def test_empty_code_is_400(self, client):
        resp = client.post("/v1/codes/resolve", json={"code": "   "})
        _assert_error(resp, 400, "validation_error")

    def test_missing_profile_is_422(self, client):
        resp = client.post("/v1/codes", json={"reading": READING})
        body = _assert_error(resp, 422, "validation_error")
        assert any("profile" in err["loc"] for err in body["errors"])

    def test_deactivate(self, client, admin_key):
        issued = _issue(client)
        resp = client.delete(f"/v1/codes/{issued['code']}", headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        resp = client.post("/v1/codes/resolve", json={"code": issued["code"]})
        _assert_error(resp, 410, "expired")

    def test_sweep(self, client, admin_key):
        _issue(client)
        resp = client.post("/v1/codes/sweep", headers=ADMIN_HEADERS)
        assert resp.json() == {"success": True, "data": {"deleted": 0}}

    def test_operator_routes_need_admin_key(self, client, admin_key):
        issued = _issue(client)
        _assert_error(client.post("/v1/codes/sweep"), 403, "forbidden")
        _assert_error(client.post("/v1/codes/sweep", headers={"X-Admin-Key": "guess"}), 403, "forbidden")
        _assert_error(client.delete(f"/v1/codes/{issued['code']}"), 403, "forbidden")

        resp = client.post("/v1/codes/resolve", json={"code": issued["code"]})
        assert resp.status_code == 200

    def test_operator_routes_closed_without_configured_key(self, client):
        resp = client.post("/v1/codes/sweep", headers={"X-Admin-Key": ""})
        _assert_error(resp, 403, "forbidden")

    def test_request_id_is_echoed(self, client):
        resp = client.post("/v1/codes/resolve", json={"code": "ZZZ000000AAA"}, headers={"x-request-id": "req-42"})
        assert resp.headers["x-request-id"] == "req-42"
        assert resp.json()["error"]["request_id"] == "req-42"


class TestCompatibility:
    def test_score(self, client):
        resp = client.post("/v1/compatibility/score", json={"reading1": READING, "reading2": READING})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert set(data) == {"overall", "affinity", "communication", "life_direction", "vitality"}

    def test_astro(self, client):
        resp = client.post("/v1/compatibility/astro", json={"profile1": PROFILE_ALICE, "profile2": PROFILE_BOB})
        data = resp.json()["data"]
        assert data["sign1"] == "Leo"
        assert data["sign2"] == "Aries"
        assert data["elemental_harmony"]["score"] > 0

    def test_compare(self, client):
        resp = client.post(
            "/v1/compatibility/compare",
            json={
                "snapshot1": {"reading": READING, "profile": PROFILE_ALICE},
                "snapshot2": {"reading": READING, "profile": PROFILE_BOB},
                "match_type": "friendship",
            },
        )
        data = resp.json()["data"]
        assert data["names"] == ["Alice", "Bob"]
        assert "friendship_activities" in data["analysis"]

    def test_check_code_needs_caller(self, client):
        issued = _issue(client)
        resp = client.post(
            "/v1/compatibility/check-code",
            json={"code": issued["code"], "snapshot": {"reading": READING, "profile": PROFILE_BOB}},
        )
        _assert_error(resp, 401, "unauthorized")

    def test_check_code_then_publish(self, client):
        issued = _issue(client)
        resp = client.post(
            "/v1/compatibility/check-code",
            json={"code": issued["code"], "snapshot": {"reading": READING, "profile": PROFILE_BOB}},
            headers={"X-User-Id": "bob"},
        )
        assert resp.status_code == 200
        report = resp.json()["data"]
        match_id = report["match_id"]

        resp = client.post(f"/v1/matches/{match_id}/publish", headers={"X-User-Id": "bob"})
        assert resp.status_code == 200
        assert resp.json()["data"]["overall_score"] == report["correlation"]["overall_score"]

        feed = client.get("/v1/matches/public").json()["data"]
        assert [s["match_id"] for s in feed] == [match_id]


class TestInvitations:
    def test_create_and_accept(self, client):
        resp = client.post(
            "/v1/invitations", json={"match_type": "friendship", "message": "hi"}, headers={"X-User-Id": "alice"}
        )
        assert resp.status_code == 200
        code = resp.json()["data"]["invite_code"]

        resp = client.post(f"/v1/invitations/{code}/accept", headers={"X-User-Id": "bob"})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "accepted"
        assert resp.json()["data"]["to_party"] == "bob"

        resp = client.post(f"/v1/invitations/{code}/accept", headers={"X-User-Id": "carol"})
        _assert_error(resp, 409, "already_used")

        sent = client.get("/v1/invitations/sent", headers={"X-User-Id": "alice"}).json()["data"]
        assert [inv["invite_code"] for inv in sent] == [code]

        assert client.get(f"/v1/invitations/{code}").json()["data"]["status"] == "accepted"

    def test_unknown_invitation(self, client):
        resp = client.post("/v1/invitations/NOPE12345678/accept", headers={"X-User-Id": "bob"})
        _assert_error(resp, 404, "invalid_code")

    def test_self_accept(self, client):
        code = client.post(
            "/v1/invitations", json={"match_type": "romantic"}, headers={"X-User-Id": "alice"}
        ).json()["data"]["invite_code"]
        resp = client.post(f"/v1/invitations/{code}/accept", headers={"X-User-Id": "alice"})
        _assert_error(resp, 400, "validation_error")

    def test_message_too_long(self, client):
        resp = client.post(
            "/v1/invitations", json={"match_type": "romantic", "message": "x" * 501}, headers={"X-User-Id": "alice"}
        )
        _assert_error(resp, 422, "validation_error")

    def test_blank_caller_is_unauthorized(self, client):
        resp = client.post("/v1/invitations", json={"match_type": "romantic"}, headers={"X-User-Id": "  "})
        _assert_error(resp, 401, "unauthorized")


class TestMatches:
    PARTIES = {
        "party_a": {"party_id": "alice", "display_name": "Alice"},
        "party_b": {"party_id": "bob", "display_name": "Bob"},
    }

    def _create(self, client):
        resp = client.post("/v1/matches", json=self.PARTIES, headers=ALICE)
        assert resp.status_code == 200
        return resp.json()["data"]["match_id"]

    def test_lifecycle(self, client):
        match_id = self._create(client)

        resp = client.post(f"/v1/matches/{match_id}/publish", headers={"X-User-Id": "alice"})
        _assert_error(resp, 409, "not_ready")

        payload = {
            "scores": {"overall": 77, "affinity": 80, "communication": 70, "life_direction": 75, "vitality": 82},
            "analysis": {"greeting": "hey"},
        }
        assert client.post(f"/v1/matches/{match_id}/complete", json=payload, headers=ALICE).json()["data"]["status"] == "completed"
        assert client.post(f"/v1/matches/{match_id}/complete", json=payload, headers=ALICE).status_code == 200

        payload["scores"]["overall"] = 10
        _assert_error(client.post(f"/v1/matches/{match_id}/complete", json=payload, headers=ALICE), 409, "conflict")

        resp = client.post(f"/v1/matches/{match_id}/publish", headers={"X-User-Id": "mallory"})
        _assert_error(resp, 403, "forbidden")

        resp = client.post(f"/v1/matches/{match_id}/publish", headers={"X-User-Id": "alice"})
        assert resp.json()["data"]["names"] == ["Alice", "Bob"]

        resp = client.post(f"/v1/matches/{match_id}/shares", json={"platform": "tiktok"}, headers={"X-User-Id": "eve"})
        assert resp.json()["data"]["share_count"] == 1

        mine = client.get("/v1/matches/mine", headers={"X-User-Id": "bob"}).json()["data"]
        assert [m["match_id"] for m in mine] == [match_id]
        assert client.get(f"/v1/matches/{match_id}").json()["data"]["status"] == "shared"

    def test_create_and_complete_need_a_party(self, client):
        _assert_error(client.post("/v1/matches", json=self.PARTIES), 401, "unauthorized")
        resp = client.post("/v1/matches", json=self.PARTIES, headers={"X-User-Id": "mallory"})
        _assert_error(resp, 403, "forbidden")

        match_id = self._create(client)
        payload = {
            "scores": {"overall": 100, "affinity": 100, "communication": 100, "life_direction": 100, "vitality": 100},
            "analysis": {},
        }
        _assert_error(client.post(f"/v1/matches/{match_id}/complete", json=payload), 401, "unauthorized")
        resp = client.post(f"/v1/matches/{match_id}/complete", json=payload, headers={"X-User-Id": "mallory"})
        _assert_error(resp, 403, "forbidden")
        assert client.get(f"/v1/matches/{match_id}").json()["data"]["status"] == "pending"

    def test_unknown_match(self, client):
        _assert_error(client.get("/v1/matches/does-not-exist"), 404, "not_found")

    def test_feed_limit_bounds(self, client):
        _assert_error(client.get("/v1/matches/public?limit=0"), 422, "validation_error")

    def test_unknown_route_uses_error_shape(self, client):
        _assert_error(client.get("/v1/nowhere"), 404, "not_found")


class TestDurableOutage:
    def test_lifecycle_outage_is_503_with_retry_after(self, client):
        from palmmatch.core.errors import DurableStoreUnavailable
        from palmmatch.features.matching.store import InMemoryLifecycleStore, set_lifecycle_store

        class DownLifecycleStore(InMemoryLifecycleStore):
            async def insert_invitation(self, invitation):
                raise DurableStoreUnavailable("Lifecycle store timed out after 2.0s")

        set_lifecycle_store(DownLifecycleStore())
        resp = client.post("/v1/invitations", json={"match_type": "romantic"}, headers={"X-User-Id": "alice"})
        body = _assert_error(resp, 503, "durable_store_unavailable")
        assert body["error"]["user_message"] == "We couldn't reach our servers. Please try again."
        assert resp.headers["retry-after"] == "5"
