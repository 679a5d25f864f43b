"""OAuth round trip: build the consent URL and exchange the returned code."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional
from urllib.parse import urlencode

from ...models.credential import WithingsCredential
from ...models.time import Clock, utc_now
from .config import WithingsConfig
from .errors import (
    WithingsAPIError,
    WithingsAuthorizationDeniedError,
    WithingsError,
    WithingsMissingParameterError,
    WithingsStateMismatchError,
)
from .ports import CredentialRepository, WithingsAPIPort
from .subscriptions import SubscriptionResult, WebhookSubscriber

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("device_link.security")


def generate_state() -> str:
    """Generate a cryptographically random CSRF state token."""

    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AuthorizationRequest:
    auth_url: str
    state: str
    tokens_deleted: bool = False


@dataclass
class AuthorizationInitiator:
    """Build the Withings consent URL, optionally revoking the current link."""

    config: WithingsConfig
    credentials: CredentialRepository
    state_factory: Callable[[], str] = generate_state

    async def start(self, user_id: str, *, force_relink: bool = False) -> AuthorizationRequest:
        # Validate before touching storage so a misconfiguration deletes nothing.
        client_id = self.config.require_client_id()
        redirect_uri = self.config.require_redirect_uri()

        tokens_deleted = False
        if force_relink:
            tokens_deleted = await self.credentials.delete(user_id)
            logger.info(
                "Force relink for user %s (credential deleted: %s)", user_id, tokens_deleted
            )

        state = self.state_factory()
        query = urlencode(
            {
                "response_type": "code",
                "client_id": client_id,
                "redirect_uri": redirect_uri,
                "scope": self.config.scopes,
                "state": state,
            }
        )
        return AuthorizationRequest(
            auth_url=f"{self.config.authorize_url}?{query}",
            state=state,
            tokens_deleted=tokens_deleted,
        )


@dataclass(frozen=True)
class LinkResult:
    credential: WithingsCredential
    subscription: Optional[SubscriptionResult] = None
    warning: Optional[str] = None


@dataclass
class CallbackExchanger:
    """Validate the OAuth callback and persist the initial token pair."""

    api: WithingsAPIPort
    credentials: CredentialRepository
    subscriber: WebhookSubscriber
    config: WithingsConfig = field(default_factory=WithingsConfig)
    clock: Clock = utc_now

    async def exchange(
        self,
        user_id: str,
        *,
        code: Optional[str],
        state: Optional[str],
        expected_state: Optional[str],
        redirect_uri: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> LinkResult:
        if error:
            logger.warning("Withings authorization error for user %s: %s", user_id, error)
            raise WithingsAuthorizationDeniedError(error, error_description)

        if not code:
            raise WithingsMissingParameterError("code")
        if not state:
            raise WithingsMissingParameterError("state")
        if not expected_state:
            raise WithingsMissingParameterError("expectedState")

        if not secrets.compare_digest(state.encode("utf-8"), expected_state.encode("utf-8")):
            security_logger.warning(
                "OAuth state mismatch on Withings callback for user %s", user_id
            )
            raise WithingsStateMismatchError()

        self.config.require_client_credentials()
        grant = await self.api.exchange_authorization_code(
            code, redirect_uri or self.config.require_redirect_uri()
        )
        if not grant.refresh_token:
            raise WithingsAPIError("Withings token response missing refresh token")
        if not grant.vendor_user_id:
            raise WithingsAPIError("Withings token response missing userid")

        expires_in = grant.expires_in or self.config.default_expires_in
        credential = WithingsCredential(
            user_id=user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            vendor_user_id=grant.vendor_user_id,
            expires_at=self.clock() + timedelta(seconds=expires_in),
            scope=grant.scope,
        )
        await self.credentials.save(credential)
        logger.info(
            "Linked Withings user %s to platform user %s",
            credential.vendor_user_id,
            user_id,
        )

        try:
            subscription = await self.subscriber.subscribe(credential)
        except WithingsError as exc:
            logger.warning(
                "Webhook subscription failed after linking user %s: %s", user_id, exc
            )
            return LinkResult(credential=credential, warning=str(exc))
        return LinkResult(credential=credential, subscription=subscription)


__all__ = [
    "generate_state",
    "AuthorizationRequest",
    "AuthorizationInitiator",
    "LinkResult",
    "CallbackExchanger",
]
