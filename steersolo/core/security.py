from __future__ import annotations

import hashlib
import hmac
from collections.abc import Sequence
from typing import Any

import jwt

from steersolo.core.errors import Unauthorized


def decode_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
    audience: Sequence[str] | None = None,
) -> dict[str, Any]:
    if audience:
        return jwt.decode(
            token,
            secret,
            algorithms=list(algorithms),
            audience=list(audience),
        )
    return jwt.decode(
        token,
        secret,
        algorithms=list(algorithms),
        options={"verify_aud": False},
    )


def resolve_claims(
    token: str | None,
    *,
    secret: str,
    algorithms: Sequence[str],
    audience: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Decode a bearer token, requiring a ``sub`` claim (the auth user id)."""

    if not token:
        raise Unauthorized("Unauthorized")
    try:
        claims = decode_token(token, secret=secret, algorithms=algorithms, audience=audience)
    except jwt.PyJWTError as exc:
        raise Unauthorized("Unauthorized") from exc
    if not claims.get("sub"):
        raise Unauthorized("Unauthorized")
    return claims


def resolve_principal(
    token: str | None,
    *,
    secret: str,
    algorithms: Sequence[str],
    audience: Sequence[str] | None = None,
) -> str:
    claims = resolve_claims(token, secret=secret, algorithms=algorithms, audience=audience)
    return str(claims["sub"])


def hmac_sha512_hex(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_hmac_sha512(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature or not secret:
        return False
    return hmac.compare_digest(hmac_sha512_hex(secret, body), signature.strip())


def hash_otp(code: str, secret: str) -> str:
    return hashlib.sha256(f"{code}{secret}".encode("utf-8")).hexdigest()


def otp_matches(code: str, secret: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_otp(code, secret), stored_hash)
