from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from baseplane.core.errors import ErrorKind, InvalidTokenError
from baseplane.services.credentials import (
    ROLE_ANON,
    ROLE_SERVICE,
    TOKEN_ALGORITHM,
    CredentialIssuer,
    generate_signing_secret,
)


def test_signing_secret_has_32_bytes_of_entropy() -> None:
    secret = generate_signing_secret()
    assert len(base64.b64decode(secret)) == 32
    assert generate_signing_secret() != secret


def test_signing_secret_rejects_short_lengths() -> None:
    with pytest.raises(ValueError):
        generate_signing_secret(16)


def test_issued_tokens_carry_roles_and_ten_year_expiry() -> None:
    issued_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    issuer = CredentialIssuer(time_provider=lambda: issued_at, issuer="")
    secret = issuer.issue_signing_secret()
    pair = issuer.issue_token_pair(secret)

    anon = jwt.decode(
        pair.anon_token, secret, algorithms=[TOKEN_ALGORITHM], options={"verify_exp": False}
    )
    service = jwt.decode(
        pair.service_token, secret, algorithms=[TOKEN_ALGORITHM], options={"verify_exp": False}
    )
    assert anon["role"] == ROLE_ANON
    assert service["role"] == ROLE_SERVICE
    assert anon["exp"] - anon["iat"] == int(timedelta(days=3650).total_seconds())
    assert jwt.get_unverified_header(pair.anon_token)["typ"] == "JWT"


def test_verify_token_round_trip() -> None:
    issuer = CredentialIssuer(issuer="")
    secret = issuer.issue_signing_secret()
    pair = issuer.issue_token_pair(secret)
    assert issuer.verify_token(pair.service_token, secret)["role"] == ROLE_SERVICE


def test_rotate_tokens_keeps_old_tokens_valid() -> None:
    issuer = CredentialIssuer(issuer="")
    secret = issuer.issue_signing_secret()
    original = issuer.issue_token_pair(secret)
    reissued = issuer.rotate_tokens(secret)

    assert reissued.anon_token != original.anon_token
    # Same secret: the superseded token still verifies.
    assert issuer.verify_token(original.anon_token, secret)["role"] == ROLE_ANON


def test_rotate_signing_secret_revokes_old_tokens() -> None:
    issuer = CredentialIssuer(issuer="")
    old_secret = issuer.issue_signing_secret()
    old_pair = issuer.issue_token_pair(old_secret)

    rotated = issuer.rotate_signing_secret()
    assert rotated.signing_secret != old_secret
    with pytest.raises(InvalidTokenError) as exc_info:
        issuer.verify_token(old_pair.anon_token, rotated.signing_secret)
    assert exc_info.value.kind == ErrorKind.FORBIDDEN
    assert issuer.verify_token(rotated.anon_token, rotated.signing_secret)["role"] == ROLE_ANON


def test_verify_token_rejects_expired_tokens() -> None:
    long_ago = datetime.now(timezone.utc) - timedelta(days=30)
    issuer = CredentialIssuer(time_provider=lambda: long_ago, validity=timedelta(days=1), issuer="")
    secret = issuer.issue_signing_secret()
    pair = issuer.issue_token_pair(secret)
    with pytest.raises(InvalidTokenError):
        issuer.verify_token(pair.anon_token, secret)


def test_verify_token_checks_issuer_when_configured() -> None:
    issuer = CredentialIssuer(issuer="baseplane")
    other = CredentialIssuer(issuer="someone-else")
    secret = issuer.issue_signing_secret()
    token = other.issue_token_pair(secret).anon_token
    with pytest.raises(InvalidTokenError):
        issuer.verify_token(token, secret)
