"""Assemble canonical events from a classified, enriched payload."""

from collections.abc import Iterable

from ci_events.events.causes import resolve_causes
from ci_events.events.classifier import build_result_for_status
from ci_events.events.scm import ScmResolution
from ci_events.gitlab.fields import round_duration
from ci_events.gitlab.payloads import PayloadShape, RawEvent
from ci_events.shared.models import (
    BuildResult,
    CanonicalEvent,
    LifecycleEventKind,
    PhaseType,
)


def build_events(
    payload: RawEvent, kind: LifecycleEventKind, scm: ScmResolution
) -> list[CanonicalEvent]:
    """Build the lifecycle event for a run, plus an SCM event when a delta exists.

    A started run carries no result or duration. The SCM companion shares
    the run's identity and carries only the delta and an SCM cause chain.

    Args:
        payload: Typed webhook payload
        kind: Lifecycle kind from the classifier (STARTED or FINISHED)
        scm: Source delta and SCM-absent flag for the run

    Returns:
        One or two events, lifecycle event first

    Example:
        >>> events = build_events(payload, LifecycleEventKind.FINISHED, ScmResolution(None, True))
        >>> events[0].result
        <BuildResult.SUCCESS: 'success'>
    """
    started = kind is LifecycleEventKind.STARTED
    build_ci_id = str(payload.run_id)

    events = [
        CanonicalEvent(
            project_display_name=payload.display_name,
            event_type=kind,
            build_ci_id=build_ci_id,
            number=build_ci_id,
            project=payload.full_name,
            result=None if started else build_result_for_status(payload.status),
            start_time=payload.start_time,
            duration=None if started else round_duration(payload.duration),
            causes=resolve_causes(payload, scm.absent),
            phase_type=(
                PhaseType.POST if payload.shape is PayloadShape.PIPELINE else PhaseType.INTERNAL
            ),
        )
    ]

    if scm.data is not None:
        events.append(
            CanonicalEvent(
                project_display_name=payload.display_name,
                event_type=LifecycleEventKind.SCM,
                build_ci_id=build_ci_id,
                project=payload.full_name,
                scm_data=scm.data,
                causes=resolve_causes(payload, scm_absent=False),
            )
        )

    return events


def apply_default_result(events: Iterable[CanonicalEvent]) -> list[CanonicalEvent]:
    """Give every event without a result the UNAVAILABLE result for publication."""
    return [
        e if e.result is not None else e.model_copy(update={"result": BuildResult.UNAVAILABLE})
        for e in events
    ]
