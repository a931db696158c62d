"""Hand canonical events to the downstream integration service."""

from abc import ABC, abstractmethod
from typing import Any

import aiohttp

from ci_events.core.logging import get_logger
from ci_events.shared.exceptions import PublishError
from ci_events.shared.models import CanonicalEvent

logger = get_logger(__name__)


class Dispatcher(ABC):
    """Abstract sink for canonical events.

    Implementations decide how events reach the integration service; the
    event handler only needs these two operations.
    """

    @abstractmethod
    async def publish(self, event: CanonicalEvent) -> None:
        """Publish a single canonical event.

        Args:
            event: Finished canonical event

        Raises:
            PublishError: If the event could not be delivered
        """
        pass

    @abstractmethod
    async def request_test_results(self, project_id: int, job_id: int) -> None:
        """Ask the integration service to collect a job's test results.

        Args:
            project_id: GitLab project ID
            job_id: Job (build) ID whose artifacts hold the results

        Raises:
            PublishError: If the request could not be delivered
        """
        pass


class HttpDispatcher(Dispatcher):
    """Dispatcher that POSTs JSON to the integration service.

    Events go to ``{base_url}/events`` and test-result requests to
    ``{base_url}/test-results``.

    Attributes:
        base_url: Integration service base URL
        token: Optional bearer token
    """

    def __init__(self, base_url: str, token: str = "", timeout_seconds: float = 10.0) -> None:
        """Initialize dispatcher.

        Args:
            base_url: Integration service base URL
            token: Bearer token; no Authorization header when empty
            timeout_seconds: Upper bound for each request
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpDispatcher":
        """Context manager entry: create aiohttp session."""
        headers = {"User-Agent": "ci-events"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self.session = aiohttp.ClientSession(
            headers=headers,
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

    async def _post(self, path: str, body: dict[str, Any]) -> None:
        if not self.session:
            raise PublishError("Session not initialized")

        try:
            async with self.session.post(f"{self.base_url}{path}", json=body) as response:
                if not 200 <= response.status < 300:
                    raise PublishError(f"POST {path} rejected: HTTP {response.status}")
        except aiohttp.ClientError as e:
            raise PublishError(f"POST {path} failed: {e}") from e
        except TimeoutError as e:
            raise PublishError(f"POST {path} timed out after {self.timeout_seconds}s") from e

    async def publish(self, event: CanonicalEvent) -> None:
        await self._post("/events", event.to_wire())
        logger.info(
            "dispatcher.event.published",
            event_type=event.event_type.value,
            project=event.project,
            build_ci_id=event.build_ci_id,
        )

    async def request_test_results(self, project_id: int, job_id: int) -> None:
        await self._post("/test-results", {"projectId": str(project_id), "jobId": str(job_id)})
        logger.info("dispatcher.test_results.requested", project_id=project_id, job_id=job_id)
