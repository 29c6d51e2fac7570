from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from forgehook.models import Webhook


class ScmError(Exception):
    pass


class UnknownWebhookError(ScmError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown webhook event: {name!r}")


class MalformedPayloadError(ScmError):
    pass


class PayloadTooLargeError(ScmError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Webhook payload exceeds {limit} bytes")


class SignatureInvalidError(ScmError):
    """Authentication failed.

    The parsed event is attached for diagnostics only and must be treated
    as untrusted.
    """

    def __init__(self, webhook: "Webhook") -> None:
        self.webhook = webhook
        super().__init__("Invalid webhook signature")


class SecretResolutionError(ScmError):
    """The caller's secret lookup failed; the underlying error is the cause."""

    def __init__(self, webhook: "Webhook", message: str) -> None:
        self.webhook = webhook
        super().__init__(f"Secret resolution failed: {message}")


class UnsupportedError(ScmError):
    def __init__(self, message: str = "Operation not supported") -> None:
        super().__init__(message)


class NotFoundError(ScmError):
    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(message)


class MissingServerURLError(ScmError):
    def __init__(self, driver: str) -> None:
        self.driver = driver
        super().__init__(f"No git server URL was specified for driver {driver!r}")
