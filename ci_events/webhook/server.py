"""Webhook server for receiving GitLab pipeline and job events."""

import asyncio
from typing import TYPE_CHECKING, Any

from aiohttp import web

from ci_events.core.logging import get_logger, set_correlation_id

if TYPE_CHECKING:
    from ci_events.events.handler import GitLabEventHandler

logger = get_logger(__name__)

# GitLab sets this header to a unique ID per delivery
EVENT_UUID_HEADER = "X-Gitlab-Event-UUID"


class WebhookServer:
    """Async HTTP server for receiving webhook events.

    Provides endpoints for:
    - POST {path}: GitLab pipeline and job webhook events
    - GET /health: Health check endpoint

    Every delivery is acknowledged with 200, whatever happens while it is
    processed; processing runs in a background task.

    Attributes:
        host: Server host address
        port: Server port
        path: Path GitLab posts events to
    """

    def __init__(
        self,
        host: str,
        port: int,
        event_handler: "GitLabEventHandler",
        path: str = "/events",
    ) -> None:
        """Initialize webhook server.

        Args:
            host: Host address to bind to
            port: Port to listen on
            event_handler: Handler for processing webhook events
            path: Path GitLab posts events to
        """
        self.host = host
        self.port = port
        self.path = path
        self.event_handler = event_handler
        self.app: web.Application | None = None
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._running = False

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes.

        Returns:
            Configured application
        """
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_post(self.path, self._handle_gitlab_webhook)
        return app

    async def start(self) -> None:
        """Start the webhook server."""
        self.app = self.build_app()

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        self._running = True
        logger.info("webhook.server.started", host=self.host, port=self.port, path=self.path)

    async def stop(self) -> None:
        """Stop the webhook server, letting in-flight deliveries finish."""
        self._running = False

        if self.site:
            await self.site.stop()

        if self._tasks:
            logger.info("webhook.server.draining", pending=len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self.runner:
            await self.runner.cleanup()

        logger.info("webhook.server.stopped")

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle health check requests.

        Args:
            request: Incoming HTTP request

        Returns:
            JSON response with health status
        """
        return web.json_response({"status": "healthy", "service": "ci-events"})

    async def _handle_gitlab_webhook(self, request: web.Request) -> web.Response:
        """Handle GitLab webhook events.

        Parses the payload and dispatches it to the handler in the
        background. Unreadable bodies are logged and still acknowledged.

        Args:
            request: Incoming HTTP request

        Returns:
            JSON response acknowledging receipt
        """
        correlation_id = set_correlation_id(request.headers.get(EVENT_UUID_HEADER))

        try:
            payload: Any = await request.json()
        except Exception as e:
            logger.warning("webhook.parse.failed", error=str(e))
            return web.json_response({"status": "ignored"})

        if not isinstance(payload, dict):
            logger.warning("webhook.payload.not_object", payload_type=type(payload).__name__)
            return web.json_response({"status": "ignored"})

        logger.info(
            "webhook.payload.received",
            object_kind=payload.get("object_kind"),
            gitlab_event=request.headers.get("X-Gitlab-Event"),
        )

        task = asyncio.create_task(self._process_webhook(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return web.json_response({"status": "received", "correlation_id": correlation_id})

    async def _process_webhook(self, payload: dict[str, Any]) -> None:
        """Process webhook payload asynchronously.

        Args:
            payload: Parsed webhook JSON payload
        """
        try:
            await self.event_handler.handle_event(payload)
        except Exception as e:
            logger.error("webhook.process.failed", error=str(e), exc_info=True)
