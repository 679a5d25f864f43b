"""HTTP-backed implementation of the Withings API port."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ...models.time import to_unix
from ..application.config import WithingsConfig
from ..application.errors import WithingsAPIError, WithingsTransportError
from ..application.ports import MeasurementWindow, TokenGrant, WithingsAPIPort

logger = logging.getLogger(__name__)


class WithingsAPIClient(WithingsAPIPort):
    """Call the Withings token, measure and notify endpoints."""

    def __init__(self, http_client: httpx.AsyncClient, config: WithingsConfig) -> None:
        self._http_client = http_client
        self._config = config

    async def exchange_authorization_code(
        self, code: str, redirect_uri: str
    ) -> TokenGrant:
        client_id, client_secret = self._config.require_client_credentials()
        payload = {
            "action": "requesttoken",
            "grant_type": "authorization_code",
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
        }
        data = await self._request("POST", "/v2/oauth2", data=payload)
        return self._token_grant(data)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        client_id, client_secret = self._config.require_client_credentials()
        payload = {
            "action": "requesttoken",
            "grant_type": "refresh_token",
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        }
        data = await self._request("POST", "/v2/oauth2", data=payload)
        return self._token_grant(data)

    async def get_measure_groups(
        self,
        access_token: str,
        window: MeasurementWindow,
        meastypes: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"action": "getmeas"}
        if window.lastupdate is not None:
            params["lastupdate"] = to_unix(window.lastupdate)
        else:
            if window.startdate is not None:
                params["startdate"] = to_unix(window.startdate)
            if window.enddate is not None:
                params["enddate"] = to_unix(window.enddate)
        if meastypes:
            params["meastypes"] = ",".join(str(code) for code in meastypes)

        data = await self._request(
            "GET",
            "/measure",
            headers={"Authorization": f"Bearer {access_token}"},
            params=params,
        )
        return list(data.get("body", {}).get("measuregrps", []))

    async def subscribe_notifications(
        self, access_token: str, callback_url: str, appli: int
    ) -> Dict[str, Any]:
        payload = {"action": "subscribe", "callbackurl": callback_url, "appli": appli}
        # 293 (already subscribed) is a valid answer, so the status is not checked here.
        return await self._request(
            "POST",
            "/notify",
            headers={"Authorization": f"Bearer {access_token}"},
            data=payload,
            check_status=False,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        check_status: bool = True,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        url = f"{self._config.api_url}{path}"
        try:
            response = await self._http_client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Withings request to %s failed: %s", path, exc)
            raise WithingsTransportError(f"Withings request failed: {exc}") from exc

        if response.status_code != 200:
            raise WithingsTransportError(
                f"Withings returned HTTP {response.status_code}",
                http_status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise WithingsTransportError(
                "Invalid response from Withings", http_status=response.status_code
            ) from exc
        if not isinstance(data, dict):
            raise WithingsTransportError("Invalid response from Withings")

        status = data.get("status")
        if check_status and status != 0:
            logger.error("Withings API error on %s: status %s", path, status)
            raise WithingsAPIError(
                f"Withings API error: {data.get('error') or status}",
                vendor_status=status if isinstance(status, int) else None,
                payload=data,
            )
        return data

    @staticmethod
    def _token_grant(data: Dict[str, Any]) -> TokenGrant:
        body = data.get("body") or {}
        access_token = body.get("access_token")
        if not access_token:
            raise WithingsAPIError(
                "Withings token response missing access token",
                vendor_status=data.get("status"),
                payload=data,
            )
        expires_in = body.get("expires_in")
        userid = body.get("userid")
        return TokenGrant(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            expires_in=int(expires_in) if expires_in else None,
            vendor_user_id=str(userid) if userid is not None else None,
            scope=body.get("scope") or "",
        )


def create_withings_api_client(
    *, http_client: httpx.AsyncClient, config: WithingsConfig
) -> WithingsAPIPort:
    """Create a Withings API client without FastAPI dependencies."""
    return WithingsAPIClient(http_client=http_client, config=config)


__all__ = ["WithingsAPIClient", "create_withings_api_client"]
