import json
import logging

import pytest
import structlog
from starlette.requests import Request
from structlog.testing import capture_logs

from forgehook.errors import SignatureInvalidError, UnknownWebhookError
from forgehook.logger import redact_credentials, setup_logging
from forgehook.middleware import delivery_id
from forgehook.webhooks import Algorithm, GiteaWebhookService, WebhookRequest, sign
from tests.test_gitea_webhooks import SAMPLE_PUSH_PAYLOAD as GITEA_PUSH

SECRET = "s3cr3t-value"

QUIETED_LOGGERS = ("_granian", "granian.access", "fastapi", "httpx", "httpcore")


@pytest.fixture
def configured_logging(capsys):
    """Configure logging like the app does and restore the defaults after."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level

    setup_logging()
    structlog.configure(cache_logger_on_first_use=False)
    yield

    structlog.reset_defaults()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    for name in QUIETED_LOGGERS:
        quieted = logging.getLogger(name)
        quieted.handlers = []
        quieted.propagate = True


def gitea_request(payload=GITEA_PUSH, headers=None) -> WebhookRequest:
    return WebhookRequest(
        headers={"X-Gitea-Event": "push", **(headers or {})},
        body=json.dumps(payload).encode(),
    )


def signed_gitea_request() -> WebhookRequest:
    body = json.dumps(GITEA_PUSH).encode()
    return WebhookRequest(
        headers={
            "X-Gitea-Event": "push",
            "X-Gitea-Signature": sign(body, SECRET, Algorithm.SHA256),
        },
        body=body,
    )


def make_request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/webhooks/github",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


def test_redact_credentials():
    event = redact_credentials(
        None,
        "info",
        {
            "event": "Webhook verified",
            "webhook_secret": "s3cr3t",
            "X-Gitlab-Token": "glpat",
            "signature": "sha256=abc",
            "driver": "github",
        },
    )

    assert event["webhook_secret"] == "***"
    assert event["X-Gitlab-Token"] == "***"
    assert event["signature"] == "***"
    assert event["driver"] == "github"
    assert event["event"] == "Webhook verified"


def test_delivery_id():
    request = make_request({"X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958"})

    assert delivery_id(request) == "72d3162e-cc78-11e3-81ab-4c9367dc0958"


def test_delivery_id_gitlab():
    assert delivery_id(make_request({"X-Gitlab-Event-UUID": "abc"})) == "abc"


def test_delivery_id_missing():
    assert delivery_id(make_request({})) is None


def test_parse_logs_verified_delivery():
    with capture_logs() as logs:
        GiteaWebhookService().parse(signed_gitea_request(), lambda hook: SECRET)

    entry = logs[-1]
    assert entry["event"] == "Webhook verified"
    assert entry["log_level"] == "info"
    assert entry["driver"] == "gitea"
    assert entry["event_name"] == "push"
    assert entry["kind"] == "push"
    assert entry["verified"] is True
    assert entry["repository"] == "gordon/hello-world"
    assert SECRET not in repr(logs)


def test_parse_logs_unverified_delivery():
    with capture_logs() as logs:
        GiteaWebhookService().parse(gitea_request(), lambda hook: "")

    entry = logs[-1]
    assert entry["event"] == "Webhook accepted without verification"
    assert entry["kind"] == "push"
    assert entry["verified"] is False


def test_parse_logs_rejected_embedded_secret():
    payload = {**GITEA_PUSH, "secret": "wrong-secret"}

    with capture_logs() as logs:
        with pytest.raises(SignatureInvalidError):
            GiteaWebhookService().parse(gitea_request(payload), lambda hook: SECRET)

    entry = logs[-1]
    assert entry["event"] == "Webhook signature invalid"
    assert entry["log_level"] == "warning"
    assert entry["verified"] is False
    assert SECRET not in repr(logs)
    assert "wrong-secret" not in repr(logs)


def test_parse_logs_unknown_event():
    request = gitea_request(headers={"X-Gitea-Event": "fork"})

    with capture_logs() as logs:
        with pytest.raises(UnknownWebhookError):
            GiteaWebhookService().parse(request, lambda hook: SECRET)

    assert logs == [
        {
            "event": "Unknown webhook event",
            "log_level": "warning",
            "driver": "gitea",
            "event_name": "fork",
        }
    ]


def test_parse_with_configured_logging(capsys, configured_logging):
    hook = GiteaWebhookService().parse(signed_gitea_request(), lambda hook: SECRET)

    assert hook.repo.full_name == "gordon/hello-world"
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    verified = [line for line in lines if line["event"] == "Webhook verified"]
    assert len(verified) == 1
    assert verified[0]["driver"] == "gitea"
    assert verified[0]["kind"] == "push"
    assert verified[0]["verified"] is True
    assert verified[0]["level"] == "info"
    assert "timestamp" in verified[0]
    assert all(SECRET not in json.dumps(line) for line in lines)


def test_unknown_event_with_configured_logging(configured_logging):
    request = gitea_request(headers={"X-Gitea-Event": "fork"})

    with pytest.raises(UnknownWebhookError):
        GiteaWebhookService().parse(request, lambda hook: SECRET)
