"""Bearer-token verification for the runnerhub API.

Tokens are HS256 JWTs signed with the shared ``RUNNERHUB_JWT_SECRET``. They are
minted outside this service; runnerhub only checks them.
"""

from __future__ import annotations

import jwt
import structlog

LOGGER = structlog.get_logger("runnerhub.security")

ALGORITHMS = ["HS256"]


class InvalidBearerToken(Exception):
    """Raised when a bearer token cannot be verified."""


def verify_bearer_token(secret: str, token: str) -> dict:
    """Decode ``token`` and return its claims.

    The signature must match ``secret`` and the token must carry an unexpired
    ``exp`` claim.
    """

    try:
        return jwt.decode(token, secret, algorithms=ALGORITHMS, options={"require": ["exp"]})
    except jwt.PyJWTError as exc:
        LOGGER.info("rejected bearer token", reason=str(exc))
        raise InvalidBearerToken(str(exc)) from exc


def bearer_token_from_header(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
