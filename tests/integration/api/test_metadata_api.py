"""API tests for /api/metadata/* (enrichment, conflicts, settings)."""

import time

import pytest
from fastapi.testclient import TestClient

from echometa.domain.entities import ProviderName

pytestmark = pytest.mark.integration

BASE = "/api/metadata"


def _wait_idle(client: TestClient) -> None:
    for _ in range(200):
        if not client.get(f"{BASE}/enrichment/active").json():
            return
        time.sleep(0.02)
    raise AssertionError("enrichment run did not finish")


def _enrich(client: TestClient, artist_id: str) -> list[dict]:
    response = client.post(f"{BASE}/enrichment/artist/{artist_id}")
    assert response.status_code == 202
    _wait_idle(client)
    return client.get(f"{BASE}/conflicts", params={"entityId": artist_id}).json()["items"]


# Hey future me - trigger answers immediately with the run, the work happens afterwards
def test_trigger_returns_run(client: TestClient, seeded_artist_id: str) -> None:
    response = client.post(f"{BASE}/enrichment/artist/{seeded_artist_id}")

    assert response.status_code == 202
    body = response.json()
    assert body["entityType"] == "artist"
    assert body["entityId"] == seeded_artist_id
    assert body["triggeredBy"] == "manual"
    assert body["runId"]
    _wait_idle(client)


# Hey future me - unknown types go through the domain error handler, not FastAPI's enum check
def test_trigger_unknown_entity_type(client: TestClient) -> None:
    response = client.post(f"{BASE}/enrichment/playlist/123")

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "playlist" in body["detail"]


def test_trigger_missing_entity(client: TestClient) -> None:
    response = client.post(f"{BASE}/enrichment/artist/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "ENTITY_NOT_FOUND"
    assert body["entityId"] == "does-not-exist"


def test_cancel_without_run(client: TestClient, seeded_artist_id: str) -> None:
    response = client.post(f"{BASE}/enrichment/artist/{seeded_artist_id}/cancel")

    assert response.status_code == 200
    assert response.json() == {"cancelled": False}


# Hey future me - Last.fm is untrusted, so its bio and tags land as conflicts, not on the artist
def test_untrusted_results_become_conflicts(client: TestClient, seeded_artist_id: str) -> None:
    conflicts = _enrich(client, seeded_artist_id)

    assert {c["field"] for c in conflicts} == {"bio", "tags"}
    assert all(c["provider"] == "lastfm" and c["status"] == "pending" for c in conflicts)
    # bio (priority 3) sorts before tags (priority 4)
    assert [c["field"] for c in conflicts] == ["bio", "tags"]


def test_history_and_stats_after_run(client: TestClient, seeded_artist_id: str) -> None:
    _enrich(client, seeded_artist_id)

    history = client.get(f"{BASE}/enrichment/history", params={"entityId": seeded_artist_id})
    stats = client.get(f"{BASE}/enrichment/stats", params={"period": "today"})

    assert history.status_code == 200
    items = history.json()["items"]
    assert len(items) == 1
    assert items[0]["provider"] == "lastfm"
    assert items[0]["status"] == "success"
    assert items[0]["metadataType"] == "bio,tags"
    assert stats.status_code == 200
    assert stats.json()["totalEnrichments"] == 1


def test_history_rejects_bad_paging(client: TestClient) -> None:
    response = client.get(f"{BASE}/enrichment/history", params={"take": 0})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_stats_rejects_unknown_period(client: TestClient) -> None:
    response = client.get(f"{BASE}/enrichment/stats", params={"period": "decade"})

    assert response.status_code == 422


def test_get_conflict_and_entity_conflicts(client: TestClient, seeded_artist_id: str) -> None:
    conflicts = _enrich(client, seeded_artist_id)

    single = client.get(f"{BASE}/conflicts/{conflicts[0]['id']}")
    by_entity = client.get(f"{BASE}/conflicts/entity/artist/{seeded_artist_id}")

    assert single.status_code == 200
    assert single.json()["entityName"] == "The Beatles"
    assert len(by_entity.json()) == 2


def test_missing_conflict_is_404(client: TestClient) -> None:
    response = client.get(f"{BASE}/conflicts/nope")

    assert response.status_code == 404
    assert response.json()["code"] == "ENTITY_NOT_FOUND"


# Hey future me - resolution is a compare-and-set, the second click gets a 409 with the status
def test_accept_then_accept_again(client: TestClient, seeded_artist_id: str) -> None:
    bio = next(c for c in _enrich(client, seeded_artist_id) if c["field"] == "bio")

    first = client.post(f"{BASE}/conflicts/{bio['id']}/accept", json={"resolvedBy": "admin"})
    second = client.post(f"{BASE}/conflicts/{bio['id']}/accept")

    assert first.status_code == 200
    assert first.json()["status"] == "accepted"
    assert first.json()["resolvedBy"] == "admin"
    assert second.status_code == 409
    assert second.json()["code"] == "CONFLICT_ALREADY_RESOLVED"
    assert second.json()["status"] == "accepted"


def test_rejected_conflict_leaves_pending_list(client: TestClient, seeded_artist_id: str) -> None:
    tags = next(c for c in _enrich(client, seeded_artist_id) if c["field"] == "tags")

    response = client.post(f"{BASE}/conflicts/{tags['id']}/reject")
    pending = client.get(f"{BASE}/conflicts").json()
    rejected = client.get(f"{BASE}/conflicts", params={"status": "rejected"}).json()

    assert response.status_code == 200
    assert [c["field"] for c in pending["items"]] == ["bio"]
    assert [c["id"] for c in rejected["items"]] == [tags["id"]]


def test_unknown_resolve_action(client: TestClient, seeded_artist_id: str) -> None:
    conflict = _enrich(client, seeded_artist_id)[0]

    response = client.post(f"{BASE}/conflicts/{conflict['id']}/merge")

    assert response.status_code == 422


def test_settings_defaults_are_masked(client: TestClient) -> None:
    response = client.get(f"{BASE}/settings")

    assert response.status_code == 200
    body = response.json()
    assert set(body["providers"]) == {"musicbrainz", "coverartarchive", "lastfm", "fanart"}
    assert body["providers"]["musicbrainz"]["configured"] is True


# Hey future me - a PUT is visible right away in GET and on the live orchestrator
def test_update_api_key(client: TestClient) -> None:
    key = "a" * 28 + "1234"

    response = client.put(
        f"{BASE}/settings", json={"key": "metadata.lastfm.api_key", "value": key}
    )

    assert response.status_code == 200
    lastfm = response.json()["providers"]["lastfm"]
    assert lastfm["apiKey"] == "*" * 28 + "1234"
    assert lastfm["configured"] is True
    assert client.app.state.orchestrator.config.provider(ProviderName.LASTFM).api_key == key


def test_update_rejects_bad_value(client: TestClient) -> None:
    response = client.put(
        f"{BASE}/settings",
        json={"key": "metadata.mbid_auto_search.confidence_threshold", "value": "1.5"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_update_rejects_unknown_key(client: TestClient) -> None:
    response = client.put(f"{BASE}/settings", json={"key": "metadata.nope", "value": "x"})

    assert response.status_code == 422


def test_validate_api_key(client: TestClient) -> None:
    short = client.post(
        f"{BASE}/settings/validate-api-key", json={"service": "fanart", "apiKey": "abc"}
    )
    good = client.post(
        f"{BASE}/settings/validate-api-key",
        json={"service": "fanart", "apiKey": "fanart-key-123"},
    )

    assert short.json()["valid"] is False
    assert "too short" in short.json()["message"]
    assert good.json() == {"valid": True, "message": ""}
