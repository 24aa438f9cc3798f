from __future__ import annotations

import jwt
import pytest

from runnerhub.common.security import InvalidBearerToken, bearer_token_from_header, verify_bearer_token


def test_verify_bearer_token_returns_claims(mint_token, jwt_secret):
    claims = verify_bearer_token(jwt_secret, mint_token(sub="ci-bot"))
    assert claims["sub"] == "ci-bot"


def test_verify_bearer_token_rejects_wrong_secret(mint_token):
    with pytest.raises(InvalidBearerToken):
        verify_bearer_token("another-secret-0123456789abcdefghij", mint_token())


def test_verify_bearer_token_rejects_expired(mint_token, jwt_secret):
    with pytest.raises(InvalidBearerToken):
        verify_bearer_token(jwt_secret, mint_token(expires_in=-10))


def test_verify_bearer_token_requires_expiry(jwt_secret):
    token = jwt.encode({"sub": "operator"}, jwt_secret, algorithm="HS256")
    with pytest.raises(InvalidBearerToken):
        verify_bearer_token(jwt_secret, token)


def test_verify_bearer_token_rejects_other_algorithms(jwt_secret):
    token = jwt.encode({"sub": "operator", "exp": 4_102_444_800}, jwt_secret, algorithm="HS512")
    with pytest.raises(InvalidBearerToken):
        verify_bearer_token(jwt_secret, token)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("Basic dXNlcjpwYXNz", None),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ],
)
def test_bearer_token_from_header(header, expected):
    assert bearer_token_from_header(header) == expected
