"""Typed GitLab webhook payloads.

GitLab sends two payload shapes this bridge cares about: pipeline hooks
(``object_kind == "pipeline"``, fields nested under ``object_attributes`` and
``project``) and job hooks (flat ``build_*`` fields). ``parse_payload``
validates a raw body into one of the two models up front.

Fields that identify the run are required; a payload missing one raises
``PayloadError``. Every other field is lenient: absent or mistyped values
become None so the event is built with degraded data instead of dropped.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ValidationError, ValidatorFunctionWrapHandler, WrapValidator

from ci_events.core.logging import get_logger
from ci_events.gitlab.fields import homepage_path, parse_webhook_time
from ci_events.shared.exceptions import PayloadError

logger = get_logger(__name__)


def _none_on_error(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        logger.debug("payload.field.invalid", value=repr(value)[:100])
        return None


LENIENT = WrapValidator(_none_on_error)

LenientStr = Annotated[str | None, LENIENT]
LenientInt = Annotated[int | None, LENIENT]
LenientFloat = Annotated[float | None, LENIENT]


class PayloadShape(str, Enum):
    """Which of the two webhook shapes a payload has."""

    PIPELINE = "pipeline"
    JOB = "job"


class PayloadUser(BaseModel):
    """User who triggered the pipeline or job."""

    name: LenientStr = None


class PipelineAttributes(BaseModel):
    """The ``object_attributes`` block of a pipeline hook."""

    id: int
    status: str
    ref: str
    sha: LenientStr = None
    before_sha: LenientStr = None
    duration: LenientFloat = None
    started_at: LenientStr = None
    created_at: LenientStr = None
    pipeline_schedule: LenientStr = None


class PipelineProject(BaseModel):
    """The ``project`` block of a pipeline hook."""

    namespace: str
    name: str
    id: LenientInt = None
    git_http_url: LenientStr = None


class PipelinePayload(BaseModel):
    """Webhook payload describing a whole pipeline's status transition."""

    object_kind: Literal["pipeline"]
    object_attributes: PipelineAttributes
    project: PipelineProject
    user: Annotated[PayloadUser | None, LENIENT] = None

    shape: ClassVar[PayloadShape] = PayloadShape.PIPELINE

    @property
    def status(self) -> str:
        return self.object_attributes.status

    @property
    def run_id(self) -> int:
        return self.object_attributes.id

    @property
    def display_name(self) -> str:
        return self.object_attributes.ref

    @property
    def project_id(self) -> int | None:
        return self.project.id

    @property
    def project_full_path(self) -> str:
        return f"{self.project.namespace}/{self.project.name}"

    @property
    def full_name(self) -> str:
        """Full name of the pipeline, e.g. "pipeline:group/project/main"."""
        return f"pipeline:{self.project_full_path}/{self.display_name}"

    @property
    def root_full_name(self) -> str:
        return self.full_name

    @property
    def root_id(self) -> int | None:
        return self.object_attributes.id

    @property
    def start_time(self) -> int | None:
        """Start time in epoch ms, falling back to creation time."""
        started = parse_webhook_time(self.object_attributes.started_at)
        if started is None:
            started = parse_webhook_time(self.object_attributes.created_at)
        return started

    @property
    def duration(self) -> float | None:
        return self.object_attributes.duration

    @property
    def user_name(self) -> str | None:
        return self.user.name if self.user else None


class JobRepository(BaseModel):
    """The ``repository`` block of a job hook."""

    homepage: LenientStr = None


class JobCommit(BaseModel):
    """The ``commit`` block of a job hook."""

    id: LenientInt = None


class JobPayload(BaseModel):
    """Webhook payload describing a single job's status transition."""

    object_kind: LenientStr = None
    build_id: int
    build_status: str
    build_name: str
    build_started_at: LenientStr = None
    build_created_at: LenientStr = None
    build_duration: LenientFloat = None
    project_id: LenientInt = None
    ref: LenientStr = None
    repository: Annotated[JobRepository | None, LENIENT] = None
    commit: Annotated[JobCommit | None, LENIENT] = None
    user: Annotated[PayloadUser | None, LENIENT] = None

    shape: ClassVar[PayloadShape] = PayloadShape.JOB

    @property
    def status(self) -> str:
        return self.build_status

    @property
    def run_id(self) -> int:
        return self.build_id

    @property
    def display_name(self) -> str:
        return self.build_name

    @property
    def project_full_path(self) -> str:
        """Project path parsed from the repository homepage URL."""
        return homepage_path(self.repository.homepage if self.repository else None)

    @property
    def full_name(self) -> str:
        """Full name of the job, e.g. "group/project/unit-tests"."""
        return f"{self.project_full_path}/{self.display_name}"

    @property
    def root_full_name(self) -> str:
        """Full name of the pipeline this job belongs to."""
        return f"pipeline:{self.project_full_path}/{self.ref or ''}"

    @property
    def root_id(self) -> int | None:
        # GitLab job hooks carry the pipeline id in commit.id
        return self.commit.id if self.commit else None

    @property
    def start_time(self) -> int | None:
        """Start time in epoch ms, falling back to creation time."""
        started = parse_webhook_time(self.build_started_at)
        if started is None:
            started = parse_webhook_time(self.build_created_at)
        return started

    @property
    def duration(self) -> float | None:
        return self.build_duration

    @property
    def user_name(self) -> str | None:
        return self.user.name if self.user else None


RawEvent = PipelinePayload | JobPayload


def parse_payload(raw: Any) -> RawEvent:
    """Validate a decoded webhook body into a typed payload.

    Args:
        raw: Decoded JSON body

    Returns:
        PipelinePayload when ``object_kind`` is "pipeline", JobPayload otherwise

    Raises:
        PayloadError: If the body is not an object or lacks identifying fields
    """
    if not isinstance(raw, Mapping):
        raise PayloadError(f"Payload must be a JSON object, got {type(raw).__name__}")

    model: type[PipelinePayload] | type[JobPayload]
    model = PipelinePayload if raw.get("object_kind") == "pipeline" else JobPayload
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise PayloadError(f"Invalid {model.__name__}: {', '.join(fields)}") from e
