"""Canonical CI event models handed to the downstream integration service.

These are vendor-neutral: nothing here knows about GitLab payload shapes.
Every model is immutable and serializes with camelCase keys.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LifecycleEventKind(str, Enum):
    """Lifecycle stage a webhook payload reports."""

    QUEUED = "queued"
    STARTED = "started"
    FINISHED = "finished"
    SCM = "scm"
    UNDEFINED = "undefined"


class BuildResult(str, Enum):
    """Outcome of a finished run."""

    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"
    UNSTABLE = "unstable"
    UNAVAILABLE = "unavailable"


class CauseKind(str, Enum):
    """What triggered a run."""

    USER = "user"
    TIMER = "timer"
    SCM = "scm"
    UPSTREAM = "upstream"


class PhaseType(str, Enum):
    """Pipelines report in the post phase, their jobs in the internal phase."""

    POST = "post"
    INTERNAL = "internal"


class ScmType(str, Enum):
    """Source control system of a repository."""

    GIT = "git"


class ChangeType(str, Enum):
    """Kind of change a commit made to a file."""

    ADD = "add"
    DELETE = "delete"
    EDIT = "edit"


class CanonicalModel(BaseModel):
    """Base for canonical models: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON document the integration service expects.

        Returns:
            JSON-compatible dictionary with camelCase keys
        """
        return self.model_dump(mode="json", by_alias=True)


class Cause(CanonicalModel):
    """One link in a cause chain.

    Attributes:
        type: What triggered the run
        user: Display name of the triggering user (USER causes only)
        project: Full name of the upstream run (UPSTREAM causes only)
        build_ci_id: Identifier of the upstream run (UPSTREAM causes only)
        causes: Nested causes of an upstream run
    """

    type: CauseKind = Field(..., description="Cause type")
    user: str | None = Field(None, description="Triggering user name")
    project: str | None = Field(None, description="Upstream run full name")
    build_ci_id: str | None = Field(None, description="Upstream run identifier")
    causes: list["Cause"] = Field(default_factory=list, description="Nested causes")


class Change(CanonicalModel):
    """A file touched by a commit."""

    file: str = Field(..., description="Repository-relative file path")
    type: ChangeType = Field(..., description="Change kind")


class ScmCommit(CanonicalModel):
    """A commit between the previous and the built revision.

    Attributes:
        rev_id: Commit SHA
        parent_rev_id: The built SHA (not the git parent)
        user: Committer name
        user_email: Committer email
        time: Commit time in epoch milliseconds
        comment: Commit message
        changes: Files touched; empty when the diff could not be fetched
    """

    rev_id: str = Field(..., description="Commit SHA")
    parent_rev_id: str = Field(..., description="Built revision SHA")
    user: str | None = Field(None, description="Committer name")
    user_email: str | None = Field(None, description="Committer email")
    time: int = Field(..., description="Commit time (epoch ms)")
    comment: str | None = Field(None, description="Commit message")
    changes: list[Change] = Field(default_factory=list, description="Changed files")


class ScmRepository(CanonicalModel):
    """Repository the run was built from."""

    type: ScmType = Field(ScmType.GIT, description="SCM system")
    url: str | None = Field(None, description="Clone URL")
    branch: str | None = Field(None, description="Built branch")


class ScmData(CanonicalModel):
    """Source delta attached to a pipeline start."""

    repository: ScmRepository = Field(..., description="Source repository")
    built_rev_id: str = Field(..., description="Built revision SHA")
    commits: list[ScmCommit] = Field(default_factory=list, description="Commits in the delta")


class CanonicalEvent(CanonicalModel):
    """A normalized CI event.

    Attributes:
        project_display_name: Short name of the run (ref or job name)
        event_type: Lifecycle kind
        build_ci_id: Run identifier
        number: Run number (absent on SCM events)
        project: Full path identifying the job or pipeline
        result: Run outcome (absent while running and on SCM events)
        start_time: Start time in epoch milliseconds
        estimated_duration: Never estimated; always absent
        duration: Run duration in whole seconds
        scm_data: Source delta (SCM events only)
        causes: Cause chain
        phase_type: Pipeline or job phase (absent on SCM events)
    """

    project_display_name: str = Field(..., description="Run display name")
    event_type: LifecycleEventKind = Field(..., description="Lifecycle kind")
    build_ci_id: str = Field(..., description="Run identifier")
    number: str | None = Field(None, description="Run number")
    project: str = Field(..., description="Full path of the job or pipeline")
    result: BuildResult | None = Field(None, description="Run outcome")
    start_time: int | None = Field(None, description="Start time (epoch ms)")
    estimated_duration: int | None = Field(None, description="Estimated duration")
    duration: int | None = Field(None, description="Duration (seconds)")
    scm_data: ScmData | None = Field(None, description="Source delta")
    causes: list[Cause] = Field(default_factory=list, description="Cause chain")
    phase_type: PhaseType | None = Field(None, description="Phase marker")
