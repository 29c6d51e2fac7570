from forgehook.webhooks.actions import ACTIONS, map_action
from forgehook.webhooks.base import (
    MAX_BODY_SIZE,
    SecretFunc,
    WebhookRequest,
    WebhookService,
)
from forgehook.webhooks.bitbucket import BitbucketWebhookService
from forgehook.webhooks.gitea import GiteaWebhookService, GogsWebhookService
from forgehook.webhooks.github import GitHubWebhookService
from forgehook.webhooks.gitlab import GitLabWebhookService
from forgehook.webhooks.signature import Algorithm, sign, verify

__all__ = [
    "ACTIONS",
    "Algorithm",
    "BitbucketWebhookService",
    "GitHubWebhookService",
    "GitLabWebhookService",
    "GiteaWebhookService",
    "GogsWebhookService",
    "MAX_BODY_SIZE",
    "SecretFunc",
    "WebhookRequest",
    "WebhookService",
    "map_action",
    "sign",
    "verify",
]
