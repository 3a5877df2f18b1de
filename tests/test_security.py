from __future__ import annotations

import jwt
import pytest

from steersolo.core.errors import Unauthorized
from steersolo.core.security import (
    hash_otp,
    hmac_sha512_hex,
    otp_matches,
    resolve_claims,
    resolve_principal,
    verify_hmac_sha512,
)

SECRET = "steersolo-test-secret-0123456789abcdef"


def _token(claims: dict) -> str:
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_resolve_principal_returns_subject() -> None:
    token = _token({"sub": "auth-user-1", "email": "owner@example.com"})

    assert resolve_principal(token, secret=SECRET, algorithms=["HS256"]) == "auth-user-1"


def test_resolve_claims_checks_audience_when_configured() -> None:
    token = _token({"sub": "auth-user-1", "aud": "authenticated"})

    claims = resolve_claims(token, secret=SECRET, algorithms=["HS256"], audience=["authenticated"])
    assert claims["sub"] == "auth-user-1"

    with pytest.raises(Unauthorized):
        resolve_claims(token, secret=SECRET, algorithms=["HS256"], audience=["service_role"])


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "not-a-jwt",
        jwt.encode({"sub": "x"}, "another-secret-0123456789abcdef-xyz", algorithm="HS256"),
        _token({"email": "a@b.c"}),
    ],
)
def test_resolve_claims_rejects_bad_tokens(token: str | None) -> None:
    with pytest.raises(Unauthorized) as exc_info:
        resolve_claims(token, secret=SECRET, algorithms=["HS256"])
    assert exc_info.value.status_code == 401
    assert exc_info.value.to_dict() == {"error": "Unauthorized"}


def test_verify_hmac_sha512() -> None:
    body = b'{"event":"charge.success"}'
    signature = hmac_sha512_hex("sk_test", body)

    assert verify_hmac_sha512("sk_test", body, signature)
    assert verify_hmac_sha512("sk_test", body, f" {signature} ")
    assert not verify_hmac_sha512("sk_test", body + b" ", signature)
    assert not verify_hmac_sha512("sk_test", body, None)
    assert not verify_hmac_sha512("", body, signature)


def test_hash_otp_depends_on_secret() -> None:
    assert hash_otp("123456", "a") == hash_otp("123456", "a")
    assert hash_otp("123456", "a") != hash_otp("123456", "b")
    assert len(hash_otp("123456", "a")) == 64


def test_otp_matches_stored_hash() -> None:
    stored = hash_otp("123456", "otp-secret")

    assert otp_matches("123456", "otp-secret", stored) is True
    assert otp_matches("654321", "otp-secret", stored) is False
    assert otp_matches("123456", "other-secret", stored) is False
    assert otp_matches("123456", "otp-secret", None) is False
