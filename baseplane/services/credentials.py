from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import secrets
from typing import Any, Callable

import jwt

from baseplane.core.config import MIN_SIGNING_SECRET_BYTES, get_settings
from baseplane.core.errors import InvalidTokenError


TOKEN_ALGORITHM = "HS256"
ROLE_ANON = "anon"
ROLE_SERVICE = "service_role"


@dataclass(frozen=True)
class TokenPair:
    anon_token: str
    service_token: str


@dataclass(frozen=True)
class RotatedCredentials:
    signing_secret: str
    anon_token: str
    service_token: str

    @property
    def tokens(self) -> TokenPair:
        return TokenPair(anon_token=self.anon_token, service_token=self.service_token)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_signing_secret(num_bytes: int = MIN_SIGNING_SECRET_BYTES) -> str:
    """Return ``num_bytes`` of CSPRNG output, base64-encoded for storage."""
    if num_bytes < MIN_SIGNING_SECRET_BYTES:
        raise ValueError(f"signing secrets need at least {MIN_SIGNING_SECRET_BYTES} bytes of entropy")
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


class CredentialIssuer:
    """Mints project signing secrets and the anon/service API tokens derived from them.

    Tokens are HS256 JWTs keyed by the project's signing secret. They are long-lived
    service credentials: there is no expiry-driven rotation, only the explicit
    ``rotate_tokens`` / ``rotate_signing_secret`` operator actions.

    The issuer has no side effects; callers persist results and write audit entries.
    """

    def __init__(
        self,
        *,
        secret_bytes: int | None = None,
        validity: timedelta | None = None,
        issuer: str | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        settings = get_settings()
        self._secret_bytes = secret_bytes or settings.signing_secret_bytes
        self._validity = validity or timedelta(days=settings.token_validity_days)
        self._issuer = issuer if issuer is not None else settings.token_issuer
        # Allow time injection for deterministic claim tests.
        self._time_provider = time_provider or _utc_now

    def issue_signing_secret(self) -> str:
        return generate_signing_secret(self._secret_bytes)

    def issue_token_pair(self, secret: str) -> TokenPair:
        return TokenPair(
            anon_token=self._sign(secret, ROLE_ANON),
            service_token=self._sign(secret, ROLE_SERVICE),
        )

    def rotate_tokens(self, secret: str) -> TokenPair:
        """Reissue both tokens from the existing secret.

        Previously issued tokens still verify against the unchanged secret; they are
        only superseded as the stored canonical value. Hard revocation requires
        ``rotate_signing_secret``.
        """
        return self.issue_token_pair(secret)

    def rotate_signing_secret(self) -> RotatedCredentials:
        secret = self.issue_signing_secret()
        pair = self.issue_token_pair(secret)
        return RotatedCredentials(
            signing_secret=secret,
            anon_token=pair.anon_token,
            service_token=pair.service_token,
        )

    def verify_token(self, token: str, secret: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[TOKEN_ALGORITHM],
                issuer=self._issuer or None,
                options={"require": ["role", "iat", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(f"invalid project token: {exc}") from exc
        if claims.get("role") not in {ROLE_ANON, ROLE_SERVICE}:
            raise InvalidTokenError("invalid project token: unknown role claim")
        return claims

    def _sign(self, secret: str, role: str) -> str:
        issued_at = self._time_provider()
        claims: dict[str, Any] = {
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self._validity,
            # Unique per issuance so a reissue never reproduces the superseded token.
            "jti": secrets.token_hex(8),
        }
        if self._issuer:
            claims["iss"] = self._issuer
        return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM, headers={"typ": "JWT"})
