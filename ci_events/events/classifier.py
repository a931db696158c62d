"""Map webhook status strings to lifecycle event kinds."""

from typing import NamedTuple

from ci_events.gitlab.payloads import PayloadShape, RawEvent
from ci_events.shared.models import BuildResult, LifecycleEventKind

QUEUED_STATUSES = frozenset({"process", "enqueue", "pending", "created"})
FINISHED_STATUSES = frozenset({"success", "failed", "canceled", "skipped"})
STARTED_STATUSES = frozenset({"running", "manual"})

RESULT_BY_STATUS: dict[str, BuildResult] = {
    "success": BuildResult.SUCCESS,
    "failed": BuildResult.FAILURE,
    "drop": BuildResult.ABORTED,
    "skipped": BuildResult.ABORTED,
    "canceled": BuildResult.ABORTED,
    "unstable": BuildResult.UNSTABLE,
}


class Classification(NamedTuple):
    """Payload shape and the lifecycle kind its status maps to."""

    shape: PayloadShape
    kind: LifecycleEventKind


def event_kind_for_status(status: str, shape: PayloadShape) -> LifecycleEventKind:
    """Map a status string to a lifecycle kind.

    A pending pipeline is reported as started: GitLab sends "pending" once
    the pipeline is created and "running" adds nothing after that, so the
    running transition is suppressed for pipelines.

    Args:
        status: Pipeline or job status
        shape: Which webhook shape the status came from

    Returns:
        The lifecycle kind; UNDEFINED for unknown statuses
    """
    if shape is PayloadShape.PIPELINE:
        if status == "pending":
            return LifecycleEventKind.STARTED
        if status == "running":
            return LifecycleEventKind.UNDEFINED

    if status in QUEUED_STATUSES:
        return LifecycleEventKind.QUEUED
    if status in FINISHED_STATUSES:
        return LifecycleEventKind.FINISHED
    if status in STARTED_STATUSES:
        return LifecycleEventKind.STARTED
    return LifecycleEventKind.UNDEFINED


def classify(payload: RawEvent) -> Classification:
    """Classify a typed payload by shape and lifecycle kind."""
    return Classification(payload.shape, event_kind_for_status(payload.status, payload.shape))


def is_actionable(kind: LifecycleEventKind) -> bool:
    """Whether a payload of this kind produces canonical events at all."""
    return kind not in (LifecycleEventKind.QUEUED, LifecycleEventKind.UNDEFINED)


def build_result_for_status(status: str) -> BuildResult:
    """Map a status string to a build result, UNAVAILABLE when unmapped."""
    return RESULT_BY_STATUS.get(status, BuildResult.UNAVAILABLE)
