"""GitLab webhook event handler."""

from typing import TYPE_CHECKING, Any

from ci_events.core.logging import get_logger
from ci_events.events.builder import apply_default_result, build_events
from ci_events.events.classifier import classify, is_actionable
from ci_events.events.scm import ScmEnricher
from ci_events.gitlab.payloads import JobPayload, parse_payload
from ci_events.shared.exceptions import GitLabAPIError, PayloadError, PublishError
from ci_events.shared.models import CanonicalEvent, LifecycleEventKind

if TYPE_CHECKING:
    from ci_events.gitlab.client import GitLabClient
    from ci_events.publishing.dispatcher import Dispatcher

logger = get_logger(__name__)


class GitLabEventHandler:
    """Turn one webhook delivery into published canonical events.

    Processing steps:
    - Parse the body into a pipeline or job payload
    - Classify its status; queued and unknown statuses are dropped
    - Enrich pipeline starts with their source delta
    - Build the lifecycle (and SCM) events and publish them
    - For finished jobs with artifacts, request test-result collection

    The handler never raises: every failure is logged and the delivery is
    treated as handled.

    Attributes:
        client: GitLab API client
        dispatcher: Sink for canonical events
        enricher: Source delta resolver
    """

    def __init__(
        self,
        client: "GitLabClient",
        dispatcher: "Dispatcher",
        enricher: ScmEnricher | None = None,
    ) -> None:
        """Initialize event handler.

        Args:
            client: GitLab API client
            dispatcher: Sink for canonical events
            enricher: Source delta resolver; built from the client when omitted
        """
        self.client = client
        self.dispatcher = dispatcher
        self.enricher = enricher or ScmEnricher(client)

    async def handle_event(self, raw: Any) -> list[CanonicalEvent]:
        """Handle a decoded webhook body.

        Args:
            raw: Decoded JSON body

        Returns:
            The events handed to the dispatcher (empty if the body was dropped)
        """
        try:
            return await self._process(raw)
        except Exception as e:
            logger.error("handler.event.failed", error=str(e), exc_info=True)
            return []

    async def _process(self, raw: Any) -> list[CanonicalEvent]:
        try:
            payload = parse_payload(raw)
        except PayloadError as e:
            logger.info("handler.event.discarded", reason=str(e))
            return []

        shape, kind = classify(payload)
        if not is_actionable(kind):
            logger.debug(
                "handler.event.ignored",
                shape=shape.value,
                status=payload.status,
                kind=kind.value,
            )
            return []

        logger.info(
            "handler.event.received",
            shape=shape.value,
            kind=kind.value,
            run_id=payload.run_id,
        )

        scm = await self.enricher.resolve(payload, kind)
        events = apply_default_result(build_events(payload, kind, scm))

        for event in events:
            logger.debug("handler.event.built", canonical_event=event.to_wire())
            try:
                await self.dispatcher.publish(event)
            except PublishError as e:
                logger.warning(
                    "handler.publish.failed",
                    event_type=event.event_type.value,
                    project=event.project,
                    error=str(e),
                )

        if kind is LifecycleEventKind.FINISHED and isinstance(payload, JobPayload):
            await self._request_test_results(payload)

        return events

    async def _request_test_results(self, payload: JobPayload) -> None:
        """Request test-result collection if the finished job kept artifacts."""
        project_id = payload.project_id
        job_id = payload.build_id
        if project_id is None:
            logger.debug("handler.test_results.no_project", job_id=job_id)
            return

        try:
            job = await self.client.get_job(project_id, job_id)
        except GitLabAPIError as e:
            logger.warning(
                "handler.job.fetch_failed", project_id=project_id, job_id=job_id, error=str(e)
            )
            return

        if not job.has_artifacts:
            logger.debug("handler.test_results.no_artifacts", project_id=project_id, job_id=job_id)
            return

        try:
            await self.dispatcher.request_test_results(project_id, job_id)
        except PublishError as e:
            logger.warning(
                "handler.test_results.failed", project_id=project_id, job_id=job_id, error=str(e)
            )
