"""Shared fixtures for event engine tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ci_events.gitlab.models import GitLabCommit, GitLabDiff, GitLabJob


@pytest.fixture
def sample_commits() -> list[GitLabCommit]:
    """Three commits as returned by the compare API."""
    return [
        GitLabCommit(
            id=f"{i}" * 40,
            message=f"Commit {i}",
            committer_name="Test User",
            committer_email="test@example.com",
            committed_date="2016-08-12T15:00:00Z",
        )
        for i in range(1, 4)
    ]


@pytest.fixture
def mock_client(sample_commits: list[GitLabCommit]) -> MagicMock:
    """Create a mock GitLab client returning the sample commits."""
    client = MagicMock()
    client.compare = AsyncMock(return_value=sample_commits)
    client.get_commit_diff = AsyncMock(
        return_value=[
            GitLabDiff(new_path="README.md", new_file=False, deleted_file=False),
            GitLabDiff(new_path="src/app.py", new_file=True, deleted_file=False),
            GitLabDiff(new_path="old.txt", new_file=False, deleted_file=True),
        ]
    )
    client.get_job = AsyncMock(
        return_value=GitLabJob(id=9, status="success", artifacts_file={"filename": "a.zip"})
    )
    return client


@pytest.fixture
def mock_dispatcher() -> MagicMock:
    """Create a mock dispatcher."""
    dispatcher = MagicMock()
    dispatcher.publish = AsyncMock()
    dispatcher.request_test_results = AsyncMock()
    return dispatcher
