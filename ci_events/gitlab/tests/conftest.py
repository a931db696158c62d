"""Shared test fixtures for GitLab integration tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ci_events.gitlab.client import GitLabClient

API_URL = "https://gitlab.example.com/api/v4"


@pytest.fixture
def gitlab_client() -> GitLabClient:
    """Create a GitLab client instance for testing.

    Returns:
        GitLabClient instance with test token
    """
    return GitLabClient(API_URL, "test_token_12345", timeout_seconds=5)


@pytest.fixture
def mock_get() -> Callable[..., MagicMock]:
    """Build a mock ``session.get`` returning one canned response.

    Returns:
        Factory taking a status, JSON body and optional side effect
    """

    def factory(
        status: int = 200,
        body: Any = None,
        side_effect: BaseException | None = None,
    ) -> MagicMock:
        mock_response = AsyncMock()
        mock_response.status = status
        mock_response.headers = {}
        mock_response.json = AsyncMock(return_value=body)

        mock_context = MagicMock()
        mock_context.__aenter__ = AsyncMock(return_value=mock_response, side_effect=side_effect)
        mock_context.__aexit__ = AsyncMock(return_value=None)

        return MagicMock(return_value=mock_context)

    return factory


@pytest.fixture
def sample_compare_response() -> dict[str, Any]:
    """Repository compare API body with two commits.

    Returns:
        Dictionary shaped like GET /projects/:id/repository/compare
    """
    return {
        "commit": {"id": "bcbb5ec396a2c0f828686f14fac9b80b780504f2"},
        "commits": [
            {
                "id": "12d65c8dd2b2676fa3ac47d955accc085a37a9c1",
                "short_id": "12d65c8d",
                "title": "JS fix",
                "message": "JS fix\n",
                "author_name": "Example User",
                "author_email": "user@example.com",
                "committer_name": "Example User",
                "committer_email": "user@example.com",
                "committed_date": "2014-02-27T10:27:00+02:00",
            },
            {
                "id": "bcbb5ec396a2c0f828686f14fac9b80b780504f2",
                "short_id": "bcbb5ec3",
                "title": "Update README",
                "message": "Update README\n",
                "committer_name": "Other User",
                "committer_email": "other@example.com",
            },
        ],
        "diffs": [],
        "compare_timeout": False,
        "compare_same_ref": False,
    }
