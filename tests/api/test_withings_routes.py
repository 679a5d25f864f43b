"""Contract tests for the /v2/withings endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi import FastAPI

from device_link.platform.config import Settings, get_settings
from device_link.withings.application.errors import WithingsAPIError, WithingsTransportError
from device_link.withings.infrastructure import RedisCredentialRepository
from tests.api.helpers import assert_error_envelope, auth_headers
from tests.builders import blood_pressure_group, make_credential, make_grant, temperature_group
from tests.conftest import RedisFake
from tests.fakes import WithingsAPIFake

pytestmark = pytest.mark.asyncio

TAKEN = datetime(2025, 11, 14, 8, 1, 6, tzinfo=timezone.utc)


async def _link(redis_fake: RedisFake, **overrides: object) -> None:
    await RedisCredentialRepository(redis_fake).save(make_credential(**overrides))


async def test_authorize_returns_consent_url(
    client: httpx.AsyncClient, settings: Settings
) -> None:
    response = await client.post("/v2/withings/authorize", headers=auth_headers(settings))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["tokensDeleted"] is False
    query = parse_qs(urlsplit(body["authUrl"]).query)
    assert query["state"] == [body["state"]]
    assert query["client_id"] == ["withings-client"]


async def test_authorize_force_relink(
    client: httpx.AsyncClient, settings: Settings, redis_fake: RedisFake
) -> None:
    await _link(redis_fake)

    response = await client.post(
        "/v2/withings/authorize",
        json={"forceRelink": True},
        headers=auth_headers(settings),
    )

    assert response.status_code == 200
    assert response.json()["tokensDeleted"] is True
    assert await RedisCredentialRepository(redis_fake).get("user-1") is None


async def test_authorize_without_client_id_is_configuration_error(
    app: FastAPI, client: httpx.AsyncClient, settings: Settings
) -> None:
    unconfigured = settings.model_copy(update={"withings_client_id": None})
    app.dependency_overrides[get_settings] = lambda: unconfigured

    response = await client.post("/v2/withings/authorize", headers=auth_headers(settings))

    assert response.status_code == 500
    assert_error_envelope(response.json(), "configuration_error")


async def test_callback_state_mismatch(
    client: httpx.AsyncClient, settings: Settings, withings_api_fake: WithingsAPIFake
) -> None:
    response = await client.post(
        "/v2/withings/callback",
        json={"code": "c", "state": "forged", "expectedState": "issued"},
        headers=auth_headers(settings),
    )

    assert response.status_code == 400
    assert_error_envelope(response.json(), "state_mismatch")
    withings_api_fake.assert_not_called("exchange")


async def test_callback_non_ascii_state_is_rejected(
    client: httpx.AsyncClient, settings: Settings, withings_api_fake: WithingsAPIFake
) -> None:
    response = await client.post(
        "/v2/withings/callback",
        json={"code": "c", "state": "état-forgé", "expectedState": "issued-state"},
        headers=auth_headers(settings),
    )

    assert response.status_code == 400
    assert_error_envelope(response.json(), "state_mismatch")
    withings_api_fake.assert_not_called("exchange")


async def test_callback_links_account_and_subscribes(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    withings_api_fake.expect_exchange("the-code", returns=make_grant())
    withings_api_fake.subscribe_status(0)

    response = await client.post(
        "/v2/withings/callback",
        json={"code": "the-code", "state": "s", "expectedState": "s"},
        headers=auth_headers(settings),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["connected"] is True
    assert body["data"]["vendorUserId"] == "4242"
    assert body["subscription"]["alreadySubscribed"] is False
    assert body["subscription"]["callbackUrl"] == settings.withings_webhook_url
    assert body.get("warning") is None
    stored = await RedisCredentialRepository(redis_fake).get("user-1")
    assert stored is not None and stored.access_token == "new-access-token"


async def test_callback_vendor_denial(client: httpx.AsyncClient, settings: Settings) -> None:
    response = await client.post(
        "/v2/withings/callback",
        json={"error": "access_denied"},
        headers=auth_headers(settings),
    )

    assert response.status_code == 400
    assert_error_envelope(response.json(), "authorization_denied")


async def test_subscription_already_registered(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.subscribe_status(293)

    response = await client.post("/v2/withings/subscription", headers=auth_headers(settings))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["alreadySubscribed"] is True
    assert body["applis"] == [1, 2, 4]


async def test_subscription_failure_reports_cause(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_subscribe(returns={"status": 342})

    response = await client.post("/v2/withings/subscription", headers=auth_headers(settings))

    assert response.status_code == 502
    assert_error_envelope(
        response.json(), "subscription_failed", cause="invalid_token", vendorStatus=342
    )


async def test_sync_without_connection(client: httpx.AsyncClient, settings: Settings) -> None:
    response = await client.post("/v2/withings/measurements/sync", headers=auth_headers(settings))

    assert response.status_code == 404
    assert_error_envelope(response.json(), "not_connected", needsConnection=True)


async def test_sync_stores_measurements(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    groups = [blood_pressure_group(1, TAKEN), temperature_group(2, TAKEN)]
    withings_api_fake.expect_measure_groups("access-token-1234", returns=groups)
    withings_api_fake.expect_measure_groups("access-token-1234", returns=groups)

    first = await client.post(
        "/v2/withings/measurements/sync", json={"days": 3}, headers=auth_headers(settings)
    )
    second = await client.post("/v2/withings/measurements/sync", headers=auth_headers(settings))

    assert first.status_code == 200
    data = first.json()["data"]
    assert (data["fetched"], data["inserted"]) == (2, 2)
    assert data["measurements"][0]["measurementType"] == "blood_pressure"
    assert data["measurements"][0]["systolic"] == 121
    assert second.json()["data"]["inserted"] == 0

    window = withings_api_fake.calls["measure"][0]["window"]
    assert window.enddate - window.startdate == timedelta(days=3)

    stored = await client.get("/v2/withings/measurements", headers=auth_headers(settings))
    assert [m["groupId"] for m in stored.json()["data"]] == [1, 2]


@pytest.mark.parametrize(
    ("days", "expected_span"), [(None, timedelta(days=7)), (2, timedelta(days=2))]
)
async def test_sync_window_ending_at_enddate(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
    days: int | None,
    expected_span: timedelta,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(returns=[])
    payload = {"enddate": TAKEN.isoformat(), "days": days}

    response = await client.post(
        "/v2/withings/measurements/sync", json=payload, headers=auth_headers(settings)
    )

    assert response.status_code == 200
    window = withings_api_fake.last_call("measure")["window"]
    assert window.enddate == TAKEN
    assert window.startdate == TAKEN - expected_span


async def test_sync_with_revoked_token(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(
        raises=WithingsAPIError("invalid token", vendor_status=401)
    )

    response = await client.post("/v2/withings/measurements/sync", headers=auth_headers(settings))

    assert response.status_code == 401
    assert_error_envelope(response.json(), "needs_reconnect", needsReconnect=True)
    assert await RedisCredentialRepository(redis_fake).get("user-1") is None


async def test_sync_when_refresh_rejected(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake, expires_at=datetime.now(timezone.utc) - timedelta(hours=1))
    withings_api_fake.expect_refresh(raises=WithingsAPIError("invalid", vendor_status=601))

    response = await client.post("/v2/withings/measurements/sync", headers=auth_headers(settings))

    assert response.status_code == 401
    assert_error_envelope(response.json(), "needs_reconnect", needsReconnect=True)
    withings_api_fake.assert_not_called("measure")


async def test_sync_vendor_unavailable(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(raises=WithingsTransportError("timeout"))

    response = await client.post("/v2/withings/measurements/sync", headers=auth_headers(settings))

    assert response.status_code == 502
    assert_error_envelope(response.json(), "vendor_unavailable")


async def test_latest_vitals(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(
        returns=[
            blood_pressure_group(1, TAKEN, systolic=140),
            blood_pressure_group(2, TAKEN + timedelta(minutes=30), systolic=122),
            temperature_group(3, TAKEN),
        ]
    )

    response = await client.get("/v2/withings/vitals/latest", headers=auth_headers(settings))

    assert response.status_code == 200
    body = response.json()
    assert body["connectionStatus"] == "connected"
    vitals = {entry["deviceType"]: entry for entry in body["data"]}
    assert vitals["BPM_CONNECT"]["systolicBp"] == 122
    assert vitals["BPM_CONNECT"]["groupId"] == 2
    assert vitals["THERMO"]["temperatureC"] == 37.12
    assert withings_api_fake.last_call("measure")["meastypes"] == [9, 10, 11, 71, 73]


async def test_latest_vitals_for_one_device(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(returns=[temperature_group(3, TAKEN)])

    response = await client.get(
        "/v2/withings/vitals/latest",
        params={"deviceType": "BPM_CONNECT"},
        headers=auth_headers(settings),
    )

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert withings_api_fake.last_call("measure")["meastypes"] == [9, 10, 11]


async def test_connection_status_and_disconnect(
    client: httpx.AsyncClient, settings: Settings, redis_fake: RedisFake
) -> None:
    await _link(redis_fake, expires_at=datetime.now(timezone.utc) + timedelta(minutes=2))

    status = await client.get("/v2/withings/connection", headers=auth_headers(settings))
    deleted = await client.delete("/v2/withings/connection", headers=auth_headers(settings))
    again = await client.delete("/v2/withings/connection", headers=auth_headers(settings))
    after = await client.get("/v2/withings/connection", headers=auth_headers(settings))

    assert status.json()["data"]["connected"] is True
    assert status.json()["data"]["expiresSoon"] is True
    assert deleted.json() == {"success": True, "tokensDeleted": True}
    assert again.json() == {"success": True, "tokensDeleted": False}
    assert after.json()["data"]["connected"] is False


async def test_users_are_isolated(
    client: httpx.AsyncClient, settings: Settings, redis_fake: RedisFake
) -> None:
    await _link(redis_fake)

    response = await client.get(
        "/v2/withings/connection", headers=auth_headers(settings, "user-2")
    )

    assert response.json()["data"]["connected"] is False


async def test_cached_vitals_survive_vendor_outage(
    client: httpx.AsyncClient,
    settings: Settings,
    withings_api_fake: WithingsAPIFake,
    redis_fake: RedisFake,
) -> None:
    await _link(redis_fake)
    withings_api_fake.expect_measure_groups(returns=[blood_pressure_group(1, TAKEN)])
    await client.get("/v2/withings/vitals/latest", headers=auth_headers(settings))
    withings_api_fake.expect_measure_groups(raises=WithingsTransportError("timeout"))

    synced = await client.get("/v2/withings/vitals/latest", headers=auth_headers(settings))
    cached = await client.get("/v2/withings/vitals", headers=auth_headers(settings))
    one_device = await client.get(
        "/v2/withings/vitals", params={"deviceType": "THERMO"}, headers=auth_headers(settings)
    )

    assert synced.status_code == 502
    assert cached.status_code == 200
    assert cached.json()["connectionStatus"] == "connected"
    assert [entry["groupId"] for entry in cached.json()["data"]] == [1]
    assert one_device.json()["data"] == []
    assert len(withings_api_fake.calls["measure"]) == 2


async def test_cached_vitals_without_connection(
    client: httpx.AsyncClient, settings: Settings, withings_api_fake: WithingsAPIFake
) -> None:
    response = await client.get("/v2/withings/vitals", headers=auth_headers(settings))

    assert response.status_code == 200
    assert response.json() == {"success": True, "connectionStatus": "disconnected", "data": []}
    withings_api_fake.assert_not_called("measure")
