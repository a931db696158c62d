"""GitLab API client for the compare, commit diff and job endpoints."""

from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from ci_events.core.logging import get_logger
from ci_events.gitlab.models import GitLabCommit, GitLabDiff, GitLabJob
from ci_events.shared.exceptions import GitLabAPIError

logger = get_logger(__name__)


class GitLabClient:
    """Async GitLab REST API v4 client.

    Every call is bounded by the session timeout and made once: a failed or
    timed-out request raises GitLabAPIError and is not retried, so callers
    can degrade immediately.

    Attributes:
        api_url: GitLab API root (e.g., 'https://gitlab.com/api/v4')
        DIFF_PAGE_SIZE: Diff entries requested per page
        MAX_DIFF_PAGES: Diff pages fetched per commit before truncating
    """

    DIFF_PAGE_SIZE = 100
    MAX_DIFF_PAGES = 10

    def __init__(self, api_url: str, token: str, timeout_seconds: float = 10.0) -> None:
        """Initialize GitLab client with authentication token.

        Args:
            api_url: GitLab API root URL
            token: GitLab personal or project access token
            timeout_seconds: Upper bound for each request
        """
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "GitLabClient":
        """Context manager entry: create aiohttp session.

        Returns:
            Self for use in async with statement
        """
        self.session = aiohttp.ClientSession(
            headers={
                "PRIVATE-TOKEN": self.token,
                "Accept": "application/json",
                "User-Agent": "ci-events",
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit: close aiohttp session."""
        if self.session:
            await self.session.close()

    async def _get_page(
        self, path: str, operation: str, params: dict[str, Any] | None = None
    ) -> tuple[Any, str | None]:
        """Issue a GET request and decode the JSON body.

        Args:
            path: Path below the API root
            operation: Short name used in log events and errors
            params: Query parameters

        Returns:
            Decoded JSON body and the X-Next-Page header ("" or None on the last page)

        Raises:
            GitLabAPIError: On a non-200 status, network error or timeout
        """
        if not self.session:
            raise GitLabAPIError("Session not initialized")

        url = f"{self.api_url}{path}"
        try:
            async with self.session.get(url, params=params) as response:
                if response.status == 200:
                    return await response.json(), response.headers.get("X-Next-Page")
                if response.status in (401, 403):
                    logger.warning(f"gitlab.{operation}.unauthorized", status=response.status)
                elif response.status == 429:
                    logger.warning(
                        "gitlab.ratelimit",
                        operation=operation,
                        reset=response.headers.get("RateLimit-Reset"),
                    )
                raise GitLabAPIError(f"{operation} failed: HTTP {response.status}")
        except (aiohttp.ClientError, ValueError) as e:
            raise GitLabAPIError(f"{operation} failed: {e}") from e
        except TimeoutError as e:
            raise GitLabAPIError(
                f"{operation} timed out after {self.timeout_seconds}s"
            ) from e

    async def _get_json(
        self, path: str, operation: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Issue a GET request for a single-page resource and decode the JSON body."""
        data, _ = await self._get_page(path, operation, params)
        return data

    async def compare(self, project_id: int, from_sha: str, to_sha: str) -> list[GitLabCommit]:
        """Fetch the commits between two revisions.

        Args:
            project_id: GitLab project ID
            from_sha: Older revision
            to_sha: Newer revision

        Returns:
            Commits in the order GitLab lists them

        Raises:
            GitLabAPIError: If the request fails or the response is malformed

        Example:
            >>> commits = await client.compare(7, "abc123", "def456")
        """
        data = await self._get_json(
            f"/projects/{project_id}/repository/compare",
            "compare",
            params={"from": from_sha, "to": to_sha},
        )
        try:
            return [GitLabCommit.model_validate(c) for c in data.get("commits", [])]
        except (AttributeError, TypeError, ValidationError) as e:
            raise GitLabAPIError(f"compare returned an unexpected body: {e}") from e

    async def get_commit_diff(self, project_id: int, sha: str) -> list[GitLabDiff]:
        """Fetch the file changes of a single commit.

        Follows ``X-Next-Page`` for up to ``MAX_DIFF_PAGES`` pages; a larger
        diff is cut off there and logged as truncated.

        Args:
            project_id: GitLab project ID
            sha: Commit SHA

        Returns:
            One entry per changed file

        Raises:
            GitLabAPIError: If any page request fails or a response is malformed
        """
        path = f"/projects/{project_id}/repository/commits/{quote(sha, safe='')}/diff"
        diffs: list[GitLabDiff] = []
        page = 1
        while True:
            data, next_page = await self._get_page(
                path, "diff", params={"per_page": self.DIFF_PAGE_SIZE, "page": page}
            )
            try:
                diffs.extend(GitLabDiff.model_validate(d) for d in data)
            except (TypeError, ValidationError) as e:
                raise GitLabAPIError(f"diff returned an unexpected body: {e}") from e

            if not next_page:
                return diffs
            if page >= self.MAX_DIFF_PAGES:
                logger.warning(
                    "gitlab.diff.truncated",
                    project_id=project_id,
                    sha=sha[:7],
                    files_count=len(diffs),
                )
                return diffs
            try:
                page = int(next_page)
            except ValueError as e:
                raise GitLabAPIError(f"diff returned a bad next page: {next_page!r}") from e

    async def get_job(self, project_id: int, job_id: int) -> GitLabJob:
        """Fetch a single CI job.

        Args:
            project_id: GitLab project ID
            job_id: Job (build) ID

        Returns:
            The job, including its artifact archive metadata

        Raises:
            GitLabAPIError: If the request fails or the response is malformed
        """
        data = await self._get_json(f"/projects/{project_id}/jobs/{job_id}", "job")
        try:
            return GitLabJob.model_validate(data)
        except ValidationError as e:
            raise GitLabAPIError(f"job returned an unexpected body: {e}") from e
