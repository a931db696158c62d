"""Pydantic models for the GitLab REST API responses the bridge reads."""

from typing import Any

from pydantic import BaseModel, Field

from ci_events.gitlab.fields import parse_api_time


class GitLabCommit(BaseModel):
    """A commit from the repository compare API.

    Attributes:
        id: Full commit SHA
        message: Full commit message
        committer_name: Committer display name
        committer_email: Committer email address
        committed_date: ISO 8601 commit timestamp
        timestamp: ISO 8601 timestamp some GitLab versions send instead
    """

    id: str = Field(..., description="Commit SHA")
    message: str | None = Field(None, description="Commit message")
    committer_name: str | None = Field(None, description="Committer name")
    committer_email: str | None = Field(None, description="Committer email")
    committed_date: str | None = Field(None, description="Commit timestamp")
    timestamp: str | None = Field(None, description="Alternate commit timestamp")

    @property
    def time_millis(self) -> int | None:
        """Commit time in epoch milliseconds, if the API sent a parseable one."""
        return parse_api_time(self.timestamp) or parse_api_time(self.committed_date)


class GitLabDiff(BaseModel):
    """One file entry of a commit diff."""

    new_path: str = Field(..., description="Path after the change")
    old_path: str | None = Field(None, description="Path before the change")
    new_file: bool = Field(False, description="File was added")
    deleted_file: bool = Field(False, description="File was deleted")
    renamed_file: bool = Field(False, description="File was renamed")


class GitLabJob(BaseModel):
    """A CI job; only artifact presence matters here."""

    id: int = Field(..., description="Job ID")
    status: str | None = Field(None, description="Job status")
    artifacts_file: dict[str, Any] | None = Field(None, description="Archive metadata")

    @property
    def has_artifacts(self) -> bool:
        return self.artifacts_file is not None
