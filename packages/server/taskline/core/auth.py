"""
External identity issuer client.

Verifies opaque bearer credentials issued by the external identity provider
(OIDC-style JWTs) and, when a verified assertion carries no email, looks the
subject up in the issuer's user directory.

Supports:
- Asymmetric verification against the issuer's JWKS endpoint
- Shared-secret (HS256) verification for local development and tests
- Lookup-by-subject over HTTP for email backfill
"""

from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Optional

import httpx
import jwt
import structlog
from pydantic import BaseModel

from taskline.core.config import Settings, get_settings
from taskline.core.errors import Unauthorized

log = structlog.get_logger()


class IdentityAssertion(BaseModel):
    """What the issuer vouches for. Only `subject` is guaranteed."""

    subject: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


def assertion_from_claims(claims: dict) -> IdentityAssertion:
    """Map issuer claims (`sub`, `email`, `name`, `picture`) to an assertion."""
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise Unauthorized("Identity assertion has no subject")
    return IdentityAssertion(
        subject=subject,
        email=claims.get("email") or None,
        display_name=claims.get("name") or None,
        avatar_url=claims.get("picture") or None,
    )


class IdentityIssuer:
    """Client for the external identity issuer."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport
        self._jwks_client: Optional[jwt.PyJWKClient] = None
        if settings.issuer_jwks_url:
            self._jwks_client = jwt.PyJWKClient(settings.issuer_jwks_url)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def _signing_key(self, token: str):
        if self._jwks_client is not None:
            # PyJWKClient fetches over blocking urllib
            signing_key = await asyncio.to_thread(
                self._jwks_client.get_signing_key_from_jwt, token
            )
            return signing_key.key, self.settings.issuer_algorithms
        if self.settings.issuer_secret:
            return self.settings.issuer_secret, ["HS256"]
        raise Unauthorized("Identity issuer is not configured")

    async def verify(self, token: str) -> IdentityAssertion:
        """Verify a bearer credential. Any failure is fatal for the request."""
        try:
            key, algorithms = await self._signing_key(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self.settings.issuer_audience or None,
                issuer=self.settings.issuer_url or None,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": bool(self.settings.issuer_audience),
                },
            )
        except jwt.PyJWTError as exc:
            log.info("auth.token_rejected", reason=type(exc).__name__)
            raise Unauthorized("Invalid or expired credential") from exc
        return assertion_from_claims(claims)

    # ------------------------------------------------------------------
    # Directory lookup
    # ------------------------------------------------------------------

    async def lookup_user(self, subject: str) -> Optional[IdentityAssertion]:
        """Fetch the issuer's user record for a subject. None if unavailable."""
        base_url = self.settings.issuer_user_lookup_url
        if not base_url:
            return None

        headers = {}
        if self.settings.issuer_api_key:
            headers["Authorization"] = f"Bearer {self.settings.issuer_api_key}"

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.issuer_timeout_seconds,
            ) as client:
                resp = await client.get(f"{base_url.rstrip('/')}/{subject}", headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("auth.issuer_lookup_failed", subject=subject, error=type(exc).__name__)
            return None

        if not isinstance(data, dict):
            log.warning("auth.issuer_lookup_unexpected_shape", subject=subject)
            return None

        return IdentityAssertion(
            subject=subject,
            email=data.get("email") or None,
            display_name=data.get("display_name") or data.get("name") or None,
            avatar_url=data.get("avatar_url") or data.get("picture") or None,
        )


@lru_cache
def get_identity_issuer() -> IdentityIssuer:
    return IdentityIssuer(get_settings())
