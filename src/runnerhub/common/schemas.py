"""Shared data models for the runner registration API."""

from __future__ import annotations

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from ..glconfig import Timestamp, Token, Url, generate_runner_name


class GitLabRunner(BaseModel):
    """A runner registered with GitLab, as stored and served by the API.

    Field names follow the ``gitlab-runner register`` options in snake_case;
    ``description`` is accepted for ``name`` because that is what GitLab calls it.
    """

    model_config = ConfigDict(populate_by_name=True)

    uuid: UUID = Field(default_factory=uuid4)
    id: PositiveInt
    name: str = Field(default_factory=generate_runner_name, validation_alias="description", min_length=1)
    url: Url
    token: Token
    token_obtained_at: Timestamp = Field(default_factory=Timestamp.now)
    docker_image: str = Field(min_length=1)

    def compatible_with(self, other: GitLabRunner) -> bool:
        return self.uuid == other.uuid


class ErrorResponse(BaseModel):
    """Error body returned by the API."""

    error: str
    message: str
