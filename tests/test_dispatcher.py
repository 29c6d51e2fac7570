import json
from unittest.mock import MagicMock

import pytest

from forgehook.errors import (
    MalformedPayloadError,
    PayloadTooLargeError,
    SecretResolutionError,
    SignatureInvalidError,
    UnknownWebhookError,
)
from forgehook.models import PushHook
from forgehook.webhooks import (
    MAX_BODY_SIZE,
    Algorithm,
    GiteaWebhookService,
    GitHubWebhookService,
    GitLabWebhookService,
    WebhookRequest,
    sign,
)
from tests.conftest import make_request, no_secret
from tests.test_gitea_webhooks import SAMPLE_PUSH_PAYLOAD as GITEA_PUSH
from tests.test_github_webhooks import SAMPLE_PUSH_PAYLOAD as GITHUB_PUSH
from tests.test_gitlab_webhooks import SAMPLE_PUSH_PAYLOAD as GITLAB_PUSH

SECRET = "s3cr3t"


def gitea_request(payload=GITEA_PUSH, headers=None, params=None):
    body = json.dumps(payload).encode()
    return WebhookRequest(
        headers={"X-Gitea-Event": "push", **(headers or {})},
        body=body,
        params=params or {},
    )


def test_unknown_event_header():
    request = make_request(GITEA_PUSH, {"X-Gitea-Event": "fork"})

    with pytest.raises(UnknownWebhookError) as exc_info:
        GiteaWebhookService().parse(request, no_secret)

    assert exc_info.value.name == "fork"


def test_missing_event_header():
    request = make_request(GITEA_PUSH, {})

    with pytest.raises(UnknownWebhookError):
        GiteaWebhookService().parse(request, no_secret)


def test_invalid_json_is_malformed():
    request = make_request(b"not-json", {"X-Gitea-Event": "push"})

    with pytest.raises(MalformedPayloadError):
        GiteaWebhookService().parse(request, no_secret)


def test_header_lookup_is_case_insensitive():
    request = make_request(GITEA_PUSH, {"x-gitea-event": "push"})

    hook = GiteaWebhookService().parse(request, no_secret)

    assert isinstance(hook, PushHook)


def test_body_over_limit():
    with pytest.raises(PayloadTooLargeError):
        WebhookRequest(headers={}, body=b"x" * (MAX_BODY_SIZE + 1))


def test_body_at_limit():
    request = WebhookRequest(headers={}, body=b"x" * MAX_BODY_SIZE)

    assert len(request.body) == MAX_BODY_SIZE


def test_from_stream_stops_at_limit():
    consumed = []

    def chunks():
        for _ in range(20):
            consumed.append(1)
            yield b"x" * 1_000_000

    with pytest.raises(PayloadTooLargeError):
        WebhookRequest.from_stream({}, chunks())

    assert len(consumed) == 11


def test_from_stream_joins_chunks():
    request = WebhookRequest.from_stream(
        {"X-Gitea-Event": "push"}, [b'{"a":', b"1}"], {"secret": "x"}
    )

    assert request.body == b'{"a":1}'
    assert request.params == {"secret": "x"}


def test_empty_key_skips_verification():
    request = gitea_request(headers={"X-Gitea-Signature": "deadbeef"})

    hook = GiteaWebhookService().parse(request, no_secret)

    assert isinstance(hook, PushHook)


def test_resolver_receives_parsed_hook():
    secret_fn = MagicMock(return_value="")

    hook = GiteaWebhookService().parse(gitea_request(), secret_fn)

    secret_fn.assert_called_once_with(hook)


def test_valid_signature():
    request = gitea_request()
    signature = sign(request.body, SECRET, Algorithm.SHA256)
    request = gitea_request(headers={"X-Gitea-Signature": signature})

    hook = GiteaWebhookService().parse(request, lambda hook: SECRET)

    assert hook.repo.full_name == "gordon/hello-world"


def test_invalid_signature_carries_hook():
    request = gitea_request(headers={"X-Gitea-Signature": "00" * 32})

    with pytest.raises(SignatureInvalidError) as exc_info:
        GiteaWebhookService().parse(request, lambda hook: SECRET)

    assert isinstance(exc_info.value.webhook, PushHook)
    assert exc_info.value.webhook.sender.login == "gordon"


def test_missing_signature_with_key():
    with pytest.raises(SignatureInvalidError):
        GiteaWebhookService().parse(gitea_request(), lambda hook: SECRET)


def test_embedded_secret_match():
    payload = {**GITEA_PUSH, "secret": SECRET}

    hook = GiteaWebhookService().parse(gitea_request(payload), lambda hook: SECRET)

    assert isinstance(hook, PushHook)


def test_embedded_secret_mismatch():
    payload = {**GITEA_PUSH, "secret": "wrong"}

    with pytest.raises(SignatureInvalidError):
        GiteaWebhookService().parse(gitea_request(payload), lambda hook: SECRET)


def test_embedded_secret_is_case_sensitive():
    payload = {**GITEA_PUSH, "secret": SECRET.upper()}

    with pytest.raises(SignatureInvalidError):
        GiteaWebhookService().parse(gitea_request(payload), lambda hook: SECRET)


def test_query_secret_match():
    request = gitea_request(params={"secret": SECRET})

    hook = GiteaWebhookService().parse(request, lambda hook: SECRET)

    assert isinstance(hook, PushHook)


def test_header_signature_wins_over_embedded_secret():
    payload = {**GITEA_PUSH, "secret": SECRET}
    headers = {"X-Gitea-Signature": "00" * 32}

    with pytest.raises(SignatureInvalidError):
        GiteaWebhookService().parse(
            gitea_request(payload, headers=headers), lambda hook: SECRET
        )


def test_resolver_error_is_chained():
    cause = RuntimeError("vault unavailable")

    def secret_fn(hook):
        raise cause

    with pytest.raises(SecretResolutionError) as exc_info:
        GiteaWebhookService().parse(gitea_request(), secret_fn)

    assert exc_info.value.__cause__ is cause
    assert "vault unavailable" in str(exc_info.value)
    assert isinstance(exc_info.value.webhook, PushHook)


def test_github_prefers_sha256_header():
    body = json.dumps(GITHUB_PUSH).encode()
    headers = {
        "X-GitHub-Event": "push",
        "X-Hub-Signature-256": "sha256=" + sign(body, SECRET, Algorithm.SHA256),
        "X-Hub-Signature": "sha1=" + "00" * 20,
    }

    hook = GitHubWebhookService().parse(
        WebhookRequest(headers=headers, body=body), lambda hook: SECRET
    )

    assert isinstance(hook, PushHook)


def test_github_sha1_fallback():
    body = json.dumps(GITHUB_PUSH).encode()
    headers = {
        "X-GitHub-Event": "push",
        "X-Hub-Signature": "sha1=" + sign(body, SECRET, Algorithm.SHA1),
    }

    hook = GitHubWebhookService().parse(
        WebhookRequest(headers=headers, body=body), lambda hook: SECRET
    )

    assert isinstance(hook, PushHook)


def test_gitlab_token():
    headers = {"X-Gitlab-Event": "Push Hook", "X-Gitlab-Token": SECRET}

    hook = GitLabWebhookService().parse(
        make_request(GITLAB_PUSH, headers), lambda hook: SECRET
    )

    assert isinstance(hook, PushHook)


def test_gitlab_wrong_token():
    headers = {"X-Gitlab-Event": "Push Hook", "X-Gitlab-Token": "nope"}

    with pytest.raises(SignatureInvalidError):
        GitLabWebhookService().parse(
            make_request(GITLAB_PUSH, headers), lambda hook: SECRET
        )


def test_resolver_can_pick_secret_per_repository():
    secrets = {"gordon/hello-world": SECRET}
    payload = {**GITEA_PUSH, "secret": SECRET}

    hook = GiteaWebhookService().parse(
        gitea_request(payload), lambda hook: secrets.get(hook.repo.full_name, "")
    )

    assert hook.repo.full_name == "gordon/hello-world"
