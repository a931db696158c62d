"""Custom exception hierarchy for the CI events bridge."""


class CIEventsError(Exception):
    """Base exception for all bridge errors."""

    pass


class ConfigError(CIEventsError):
    """Raised when configuration validation fails."""

    pass


class GitLabAPIError(CIEventsError):
    """Raised when GitLab API requests fail or time out."""

    pass


class PayloadError(CIEventsError):
    """Raised when a webhook payload lacks the fields identifying the run."""

    pass


class PublishError(CIEventsError):
    """Raised when the downstream integration service rejects a request."""

    pass
