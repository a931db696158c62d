"""CI events bridge main entry point."""

import asyncio
import signal
import sys

from ci_events.core.config import get_settings
from ci_events.core.logging import get_logger, setup_logging
from ci_events.events.handler import GitLabEventHandler
from ci_events.gitlab.client import GitLabClient
from ci_events.publishing.dispatcher import HttpDispatcher
from ci_events.shared.exceptions import ConfigError
from ci_events.webhook.server import WebhookServer

logger = get_logger(__name__)

# Module-level variables for lifecycle management
gitlab_client: GitLabClient | None = None
dispatcher: HttpDispatcher | None = None
webhook_server: WebhookServer | None = None


async def startup() -> None:
    """Initialize application on startup."""
    global gitlab_client, dispatcher, webhook_server

    settings = get_settings()

    logger.info(
        "application.lifecycle.started",
        version=settings.app_version,
        environment=settings.environment,
    )

    logger.info(
        "application.config.loaded",
        log_level=settings.log_level,
        gitlab_url=settings.gitlab_url,
        publish_url=settings.publish_url,
        timeout_seconds=settings.gitlab_timeout_seconds,
    )

    # Initialize GitLab client
    gitlab_client = GitLabClient(
        settings.gitlab_api_url,
        settings.gitlab_token,
        timeout_seconds=settings.gitlab_timeout_seconds,
    )
    await gitlab_client.__aenter__()
    logger.info("gitlab.client.initialized")

    # Initialize downstream dispatcher
    dispatcher = HttpDispatcher(
        settings.publish_url,
        token=settings.publish_token,
        timeout_seconds=settings.gitlab_timeout_seconds,
    )
    await dispatcher.__aenter__()
    logger.info("dispatcher.initialized")

    # Start receiving webhooks
    handler = GitLabEventHandler(client=gitlab_client, dispatcher=dispatcher)
    webhook_server = WebhookServer(
        host=settings.webhook_host,
        port=settings.webhook_port,
        event_handler=handler,
        path=settings.webhook_path,
    )
    await webhook_server.start()


async def shutdown() -> None:
    """Cleanup on application shutdown."""
    global gitlab_client, dispatcher, webhook_server

    logger.info("application.shutdown.started")

    # Stop accepting webhooks first so in-flight deliveries can drain
    if webhook_server:
        await webhook_server.stop()
        webhook_server = None

    if dispatcher:
        await dispatcher.__aexit__(None, None, None)
        dispatcher = None

    if gitlab_client:
        await gitlab_client.__aexit__(None, None, None)
        gitlab_client = None

    logger.info("application.shutdown.completed")


async def main() -> None:
    """Main application loop."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        logger.info("application.signal.received", signal=signal.Signals(sig).name)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):

        def make_handler(s: int = sig) -> None:
            signal_handler(s)

        loop.add_signal_handler(sig, make_handler)

    try:
        await startup()
        await stop_event.wait()
    except Exception as e:
        logger.error("application.error.fatal", error=str(e), exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Entry point for running the bridge."""
    try:
        # Load settings first to validate configuration
        settings = get_settings()

        # Setup logging with configured level
        setup_logging(log_level=settings.log_level)

        asyncio.run(main())

    except ConfigError as e:
        # Configuration errors should exit immediately with clear message
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        # Graceful exit on Ctrl+C
        pass
    except Exception as e:
        # Unexpected errors should be logged and exit with error code
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
