import json

import pytest
from fastapi.testclient import TestClient

from forgehook.main import app
from forgehook.webhooks import WebhookRequest


def make_request(
    payload: dict | bytes,
    headers: dict[str, str],
    params: dict[str, str] | None = None,
) -> WebhookRequest:
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return WebhookRequest(headers=headers, body=body, params=params or {})


def no_secret(hook) -> str:
    return ""


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)
