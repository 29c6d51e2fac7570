import hmac
from abc import ABC
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel, ValidationError

from forgehook.errors import (
    MalformedPayloadError,
    PayloadTooLargeError,
    SecretResolutionError,
    SignatureInvalidError,
    UnknownWebhookError,
)
from forgehook.models import Webhook
from forgehook.webhooks.signature import Algorithm, verify

logger = structlog.get_logger(__name__)

MAX_BODY_SIZE = 10_000_000

SecretFunc = Callable[[Webhook], str]


def _lower_keys(values: Mapping[str, str]) -> dict[str, str]:
    return {key.lower(): value for key, value in values.items()}


@dataclass(frozen=True)
class WebhookRequest:
    headers: Mapping[str, str]
    body: bytes
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _lower_keys(self.headers))
        if len(self.body) > MAX_BODY_SIZE:
            raise PayloadTooLargeError(MAX_BODY_SIZE)

    def header(self, name: str) -> str:
        return self.headers.get(name.lower(), "")

    @classmethod
    def from_stream(
        cls,
        headers: Mapping[str, str],
        chunks: Iterable[bytes],
        params: Mapping[str, str] | None = None,
    ) -> "WebhookRequest":
        """Read a body stream, stopping as soon as it exceeds the cap."""
        body = bytearray()
        for chunk in chunks:
            body.extend(chunk)
            if len(body) > MAX_BODY_SIZE:
                raise PayloadTooLargeError(MAX_BODY_SIZE)
        return cls(headers=headers, body=bytes(body), params=params or {})


class NativeHook(BaseModel):
    """Provider-native payload, holding only the fields converters read."""

    def embedded_secret(self) -> str:
        return ""


@dataclass(frozen=True)
class Route:
    model: type[NativeHook]
    convert: Callable[[Any], Webhook]

    def decode(self, body: bytes) -> NativeHook:
        try:
            return self.model.model_validate_json(body)
        except ValidationError as e:
            raise MalformedPayloadError(
                f"Invalid {self.model.__name__} payload: {e}"
            ) from e


class WebhookService(ABC):
    driver: ClassVar[str]
    event_header: ClassVar[str]
    # Checked in order; the first header present is the one verified.
    signature_headers: ClassVar[tuple[tuple[str, Algorithm], ...]]
    routes: ClassVar[Mapping[str, Route]]

    def parse(self, request: WebhookRequest, secret_fn: SecretFunc) -> Webhook:
        event = request.header(self.event_header)
        route = self.routes.get(event)
        if route is None:
            logger.warning(
                "Unknown webhook event", driver=self.driver, event_name=event
            )
            raise UnknownWebhookError(event)

        native = route.decode(request.body)
        hook = route.convert(native)

        secret = native.embedded_secret() or request.params.get("secret", "")

        try:
            key = secret_fn(hook)
        except Exception as e:
            raise SecretResolutionError(hook, str(e)) from e

        if not key:
            logger.debug(
                "Webhook accepted without verification",
                driver=self.driver,
                event_name=event,
                kind=hook.kind,
                verified=False,
            )
            return hook

        signature, algorithm = self._signature(request)

        if signature:
            verified = verify(request.body, key, signature, algorithm)
        elif secret:
            verified = hmac.compare_digest(secret.encode(), key.encode())
        else:
            verified = False

        if not verified:
            logger.warning(
                "Webhook signature invalid",
                driver=self.driver,
                event_name=event,
                kind=hook.kind,
                verified=False,
                repository=hook.repo.full_name,
            )
            raise SignatureInvalidError(hook)

        logger.info(
            "Webhook verified",
            driver=self.driver,
            event_name=event,
            kind=hook.kind,
            verified=True,
            repository=hook.repo.full_name,
        )
        return hook

    def _signature(self, request: WebhookRequest) -> tuple[str, Algorithm]:
        for header, algorithm in self.signature_headers:
            value = request.header(header)
            if value:
                return value, algorithm
        return "", Algorithm.SHA256
