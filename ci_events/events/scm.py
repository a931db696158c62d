"""Attach source-control deltas to pipeline start events."""

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, NamedTuple

from ci_events.core.logging import get_logger
from ci_events.gitlab.fields import to_epoch_millis
from ci_events.gitlab.models import GitLabCommit, GitLabDiff
from ci_events.gitlab.payloads import PipelinePayload, RawEvent
from ci_events.shared.exceptions import GitLabAPIError
from ci_events.shared.models import (
    Change,
    ChangeType,
    LifecycleEventKind,
    ScmCommit,
    ScmData,
    ScmRepository,
    ScmType,
)

if TYPE_CHECKING:
    from ci_events.gitlab.client import GitLabClient

logger = get_logger(__name__)

# GitLab reports this before_sha when there is no previous revision
BLANK_SHA = "0" * 40


def is_scm_absent(payload: PipelinePayload) -> bool:
    """Whether a pipeline has no previous revision to diff against.

    Used for pipeline events that are not enriched remotely.
    """
    before_sha = payload.object_attributes.before_sha
    return before_sha is None or before_sha == BLANK_SHA


class ScmResolution(NamedTuple):
    """Source delta of a run and whether the run counts as SCM-less."""

    data: ScmData | None
    absent: bool


def change_from_diff(diff: GitLabDiff) -> Change:
    """Convert a diff entry to a canonical change."""
    if diff.new_file:
        change_type = ChangeType.ADD
    elif diff.deleted_file:
        change_type = ChangeType.DELETE
    else:
        change_type = ChangeType.EDIT
    return Change(file=diff.new_path, type=change_type)


class ScmEnricher:
    """Fetch the commits and file changes a pipeline builds.

    Diffs are fetched concurrently, one request per commit. A commit whose
    diff cannot be fetched keeps its place in the list with no changes.

    Attributes:
        client: GitLab API client
    """

    def __init__(self, client: "GitLabClient") -> None:
        """Initialize enricher.

        Args:
            client: GitLab API client used for compare and diff calls
        """
        self.client = client

    async def resolve(self, payload: RawEvent, kind: LifecycleEventKind) -> ScmResolution:
        """Decide a run's source delta and whether it counts as absent.

        Only pipeline start events are enriched remotely. Other pipeline
        events are judged by their before_sha alone, and job events never
        carry a delta.

        Args:
            payload: Typed webhook payload
            kind: Lifecycle kind of the payload

        Returns:
            The delta (if any) and the SCM-absent flag used for causes
        """
        if not isinstance(payload, PipelinePayload):
            return ScmResolution(None, True)
        if kind is LifecycleEventKind.STARTED:
            data = await self.enrich(payload)
            return ScmResolution(data, data is None)
        return ScmResolution(None, is_scm_absent(payload))

    async def enrich(self, payload: PipelinePayload) -> ScmData | None:
        """Build the source delta between a pipeline's before and built SHA.

        Args:
            payload: Pipeline payload (expected to be a start event)

        Returns:
            ScmData, or None if the inputs are missing or the compare call fails
        """
        attrs = payload.object_attributes
        project_id = payload.project_id
        if project_id is None or not attrs.sha or not attrs.before_sha:
            logger.debug(
                "scm.inputs.missing",
                project_id=project_id,
                has_sha=bool(attrs.sha),
                has_before_sha=bool(attrs.before_sha),
            )
            return None

        try:
            gitlab_commits = await self.client.compare(project_id, attrs.before_sha, attrs.sha)
        except GitLabAPIError as e:
            logger.warning(
                "scm.compare.failed",
                project_id=project_id,
                before=attrs.before_sha[:7],
                sha=attrs.sha[:7],
                error=str(e),
            )
            return None

        change_lists = await asyncio.gather(
            *(self._fetch_changes(project_id, c.id) for c in gitlab_commits)
        )
        commits = [
            self._to_scm_commit(c, attrs.sha, changes)
            for c, changes in zip(gitlab_commits, change_lists, strict=True)
        ]

        logger.info(
            "scm.enriched",
            project_id=project_id,
            sha=attrs.sha[:7],
            commits_count=len(commits),
        )

        return ScmData(
            repository=ScmRepository(
                type=ScmType.GIT,
                url=payload.project.git_http_url,
                branch=attrs.ref,
            ),
            built_rev_id=attrs.sha,
            commits=commits,
        )

    async def _fetch_changes(self, project_id: int, sha: str) -> list[Change]:
        """Fetch one commit's changes, or an empty list if the diff call fails."""
        try:
            diffs = await self.client.get_commit_diff(project_id, sha)
        except GitLabAPIError as e:
            logger.warning("scm.diff.failed", project_id=project_id, sha=sha[:7], error=str(e))
            return []
        return [change_from_diff(d) for d in diffs]

    @staticmethod
    def _to_scm_commit(commit: GitLabCommit, built_sha: str, changes: list[Change]) -> ScmCommit:
        time = commit.time_millis
        if time is None:
            time = to_epoch_millis(datetime.now(UTC))
        return ScmCommit(
            rev_id=commit.id,
            parent_rev_id=built_sha,
            user=commit.committer_name,
            user_email=commit.committer_email,
            time=time,
            comment=commit.message,
            changes=changes,
        )
