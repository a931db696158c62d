"""Shared pytest fixtures for CI events bridge tests."""

import copy
from collections.abc import Iterator
from typing import Any

import pytest

from ci_events.core.config import Settings

BLANK_SHA = "0" * 40

_PIPELINE_PAYLOAD: dict[str, Any] = {
    "object_kind": "pipeline",
    "object_attributes": {
        "id": 42,
        "ref": "main",
        "sha": "bcbb5ec396a2c0f828686f14fac9b80b780504f2",
        "before_sha": BLANK_SHA,
        "status": "success",
        "duration": 120,
        "created_at": "2016-08-12 15:23:28 UTC",
        "started_at": "2016-08-12 15:24:00 UTC",
    },
    "user": {"name": "Administrator", "username": "root"},
    "project": {
        "id": 7,
        "name": "proj",
        "namespace": "ns",
        "git_http_url": "https://x/ns/proj.git",
    },
}

_JOB_PAYLOAD: dict[str, Any] = {
    "object_kind": "build",
    "ref": "main",
    "build_id": 9,
    "build_name": "unit-tests",
    "build_status": "running",
    "build_created_at": "2016-08-12 15:23:28 UTC",
    "build_started_at": "2016-08-12 15:26:29 UTC",
    "build_duration": 61.4,
    "project_id": 7,
    "user": {"name": "Administrator"},
    "commit": {"id": 2366, "sha": "bcbb5ec396a2c0f828686f14fac9b80b780504f2"},
    "repository": {"name": "proj", "homepage": "https://x/ns/proj"},
}


@pytest.fixture
def pipeline_payload() -> dict[str, Any]:
    """Finished pipeline webhook body with no previous revision.

    Returns:
        Dictionary representing a GitLab pipeline hook
    """
    return copy.deepcopy(_PIPELINE_PAYLOAD)


@pytest.fixture
def started_pipeline_payload(pipeline_payload: dict[str, Any]) -> dict[str, Any]:
    """Pending pipeline webhook body with a previous revision to diff against.

    Returns:
        Dictionary representing a GitLab pipeline hook
    """
    attrs = pipeline_payload["object_attributes"]
    attrs["status"] = "pending"
    attrs["before_sha"] = "a91957a858320c0e17f3a0eca7cfacbff50ea29a"
    attrs["duration"] = None
    attrs["started_at"] = None
    return pipeline_payload


@pytest.fixture
def job_payload() -> dict[str, Any]:
    """Running job webhook body.

    Returns:
        Dictionary representing a GitLab job hook
    """
    return copy.deepcopy(_JOB_PAYLOAD)


@pytest.fixture
def mock_settings() -> Settings:
    """Create Settings instance with test values.

    Returns:
        Settings instance configured for testing
    """
    return Settings(
        gitlab_url="https://gitlab.example.com",
        gitlab_token="test_gitlab_token",
        publish_url="https://ci.example.com/hooks",
        log_level="INFO",
        environment="test",
    )


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    """Reset the global settings cache before and after each test.

    This ensures tests don't interfere with each other via cached settings.
    """
    import ci_events.core.config

    ci_events.core.config._settings = None

    yield

    ci_events.core.config._settings = None
