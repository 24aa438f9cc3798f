from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from runnerhub.common.schemas import GitLabRunner

JWT_SECRET = "runnerhub-test-secret-0123456789abcdef"


def _mint_token(secret: str = JWT_SECRET, *, expires_in: int = 300, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "operator",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def jwt_secret() -> str:
    return JWT_SECRET


@pytest.fixture
def mint_token():
    return _mint_token


@pytest.fixture
def make_runner():
    counter = iter(range(1, 1_000))

    def _make(**overrides) -> GitLabRunner:
        index = next(counter)
        values = {
            "id": 40 + index,
            "description": f"runner-{index}",
            "url": "https://gitlab.example.com/",
            "token": f"glrt-{index:016d}",
            "token_obtained_at": "2024-01-01T00:00:00Z",
            "docker_image": "alpine:latest",
        }
        values.update(overrides)
        return GitLabRunner.model_validate(values)

    return _make
