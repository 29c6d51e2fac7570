from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from forgehook.config import settings
from forgehook.errors import (
    MalformedPayloadError,
    PayloadTooLargeError,
    SecretResolutionError,
    SignatureInvalidError,
    UnknownWebhookError,
    UnsupportedError,
)
from forgehook.models import Webhook
from forgehook.providers.factory import new_webhook_service, resolve_driver
from forgehook.webhooks import MAX_BODY_SIZE, WebhookRequest

logger = structlog.get_logger(__name__)

webhooks_router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def read_body(request: Request) -> bytes:
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > MAX_BODY_SIZE:
            raise PayloadTooLargeError(MAX_BODY_SIZE)
    return bytes(body)


@webhooks_router.post(
    "/{driver}",
    status_code=status.HTTP_202_ACCEPTED,
)
async def receive_webhook(driver: str, request: Request) -> dict[str, Any]:
    try:
        kind = resolve_driver(driver)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown driver: {driver}",
        )

    try:
        service = new_webhook_service(kind.value)
    except UnsupportedError as e:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e))

    def secret_fn(hook: Webhook) -> str:
        return settings.webhook_secret(kind.value)

    try:
        webhook_request = WebhookRequest(
            headers=dict(request.headers),
            body=await read_body(request),
            params=dict(request.query_params),
        )
        hook = await run_in_threadpool(service.parse, webhook_request, secret_fn)
    except PayloadTooLargeError as e:
        logger.warning("Webhook payload too large", driver=kind.value)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)
        )
    except UnknownWebhookError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MalformedPayloadError as e:
        logger.warning("Malformed webhook payload", driver=kind.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload."
        )
    except SignatureInvalidError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature."
        )
    except SecretResolutionError as e:
        logger.error("Webhook secret lookup failed", driver=kind.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not resolve webhook secret.",
        )

    return hook.model_dump(mode="json")
