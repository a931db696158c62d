"""Infer what triggered a pipeline or job run."""

from ci_events.core.logging import get_logger
from ci_events.gitlab.payloads import JobPayload, PipelinePayload, RawEvent
from ci_events.shared.models import Cause, CauseKind

logger = get_logger(__name__)


def resolve_cause_kind(payload: RawEvent, scm_absent: bool) -> CauseKind:
    """Decide the root cause type of a run.

    Runs with source changes are SCM-triggered. Without them, a pipeline
    flagged as scheduled is timer-triggered and anything else is attributed
    to a user.

    Args:
        payload: Typed webhook payload
        scm_absent: True when no source delta is attached to the run

    Returns:
        USER, TIMER or SCM
    """
    if not scm_absent:
        return CauseKind.SCM
    if isinstance(payload, PipelinePayload):
        schedule = payload.object_attributes.pipeline_schedule
        if schedule is None:
            logger.debug("cause.schedule_flag.missing", default=CauseKind.USER.value)
        elif schedule == "true":
            return CauseKind.TIMER
    return CauseKind.USER


def resolve_causes(payload: RawEvent, scm_absent: bool) -> list[Cause]:
    """Build the cause chain for a run.

    Pipelines get a single root cause. Jobs get an UPSTREAM cause naming
    their pipeline, with the root cause nested inside it.

    Args:
        payload: Typed webhook payload
        scm_absent: True when no source delta is attached to the run

    Returns:
        A one-element cause chain

    Example:
        >>> [c.type for c in resolve_causes(job_payload, True)]
        [<CauseKind.UPSTREAM: 'upstream'>]
    """
    kind = resolve_cause_kind(payload, scm_absent)
    root = Cause(type=kind, user=payload.user_name if kind is CauseKind.USER else None)

    if not isinstance(payload, JobPayload):
        return [root]

    root_id = payload.root_id
    if root_id is None:
        logger.debug(
            "cause.upstream_id.missing", job_id=payload.build_id, upstream=payload.root_full_name
        )
    upstream = Cause(
        type=CauseKind.UPSTREAM,
        project=payload.root_full_name,
        build_ci_id=str(root_id) if root_id is not None else None,
        causes=[root],
    )
    return [upstream]
