from collections.abc import Mapping
from types import MappingProxyType
from urllib.parse import urlparse

import structlog

from forgehook.config import settings
from forgehook.errors import MissingServerURLError, UnsupportedError
from forgehook.providers.base import Driver, ScmProvider
from forgehook.providers.bitbucket import BitbucketProvider
from forgehook.providers.fake import FakeProvider
from forgehook.providers.gitea import GiteaProvider, GogsProvider
from forgehook.providers.github import GitHubProvider
from forgehook.providers.gitlab import GitLabProvider
from forgehook.webhooks import (
    BitbucketWebhookService,
    GitHubWebhookService,
    GitLabWebhookService,
    GiteaWebhookService,
    GogsWebhookService,
    WebhookService,
)

logger = structlog.get_logger(__name__)

DRIVER_NAMES: Mapping[str, Driver] = MappingProxyType(
    {
        "": Driver.GITHUB,
        "github": Driver.GITHUB,
        "gitlab": Driver.GITLAB,
        "gitea": Driver.GITEA,
        "gogs": Driver.GOGS,
        "bitbucket": Driver.BITBUCKET,
        "bitbucketcloud": Driver.BITBUCKET,
        "fake": Driver.FAKE,
        "fakegit": Driver.FAKE,
    }
)

WEBHOOK_SERVICES: Mapping[Driver, type[WebhookService]] = MappingProxyType(
    {
        Driver.GITHUB: GitHubWebhookService,
        Driver.GITLAB: GitLabWebhookService,
        Driver.GITEA: GiteaWebhookService,
        Driver.GOGS: GogsWebhookService,
        Driver.BITBUCKET: BitbucketWebhookService,
    }
)

# Drivers without a public SaaS endpoint.
SELF_HOSTED = frozenset({Driver.GITEA, Driver.GOGS})


def resolve_driver(name: str) -> Driver:
    try:
        return DRIVER_NAMES[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported GIT_KIND value: {name}")


def new_webhook_service(driver: str) -> WebhookService:
    kind = resolve_driver(driver)
    try:
        service_class = WEBHOOK_SERVICES[kind]
    except KeyError:
        raise UnsupportedError(f"The {kind.value} driver has no webhook service")
    return service_class()


def ensure_ghe_endpoint(url: str) -> str:
    """Map a GitHub host URL onto its REST API root."""
    if not url or url.rstrip("/") in ("https://github.com", "http://github.com"):
        return "https://api.github.com"
    if url.rstrip("/").endswith("/api/v3"):
        return url.rstrip("/")
    return url.rstrip("/") + "/api/v3"


def ensure_bbc_endpoint(url: str) -> str:
    if not url or url.rstrip("/") in ("https://bitbucket.org", "http://bitbucket.org"):
        return "https://api.bitbucket.org"
    return url.rstrip("/")


class ProviderFactory:
    _providers: dict[Driver, type[ScmProvider]] = {
        Driver.GITHUB: GitHubProvider,
        Driver.GITLAB: GitLabProvider,
        Driver.GITEA: GiteaProvider,
        Driver.GOGS: GogsProvider,
        Driver.BITBUCKET: BitbucketProvider,
        Driver.FAKE: FakeProvider,
    }

    @classmethod
    def build(cls, driver: str, server_url: str = "", token: str = "") -> ScmProvider:
        kind = resolve_driver(driver)
        if kind in SELF_HOSTED and not server_url:
            raise MissingServerURLError(kind.value)
        if kind is Driver.GITHUB:
            server_url = ensure_ghe_endpoint(server_url)
        elif kind is Driver.BITBUCKET:
            server_url = ensure_bbc_endpoint(server_url)
        elif server_url:
            server_url = server_url.rstrip("/")

        return cls._providers[kind](server_url=server_url, token=token)

    @classmethod
    async def create_provider(
        cls, driver: str, server_url: str = "", token: str = ""
    ) -> ScmProvider:
        provider = cls.build(driver, server_url=server_url, token=token)
        await provider.initialize()
        return provider


async def new_client(driver: str, server_url: str = "", token: str = "") -> ScmProvider:
    return await ProviderFactory.create_provider(driver, server_url, token)


async def new_client_with_basic_auth(
    driver: str, server_url: str, username: str, password: str
) -> ScmProvider:
    kind = resolve_driver(driver)
    if kind is not Driver.GITEA:
        raise ValueError(f"Basic auth is not supported for driver {kind.value}")
    if not server_url:
        raise MissingServerURLError(kind.value)

    provider = GiteaProvider(
        server_url=server_url.rstrip("/"), username=username, password=password
    )
    await provider.initialize()
    return provider


class DriverIdentifier:
    """Guess a driver from a git host name."""

    KNOWN_HOSTS: Mapping[str, str] = MappingProxyType(
        {
            "github.com": "github",
            "gitlab.com": "gitlab",
            "gitea.com": "gitea",
            "bitbucket.org": "bitbucketcloud",
        }
    )

    def __init__(self, hosts: Mapping[str, str] | None = None) -> None:
        self.hosts = dict(self.KNOWN_HOSTS)
        if hosts:
            self.hosts.update(hosts)

    def identify(self, host: str) -> str:
        driver = self.hosts.get(host.lower())
        if driver:
            return driver
        for name in ("github", "gitlab", "gitea", "gogs"):
            if name in host.lower():
                return name
        raise ValueError(f"Unknown git driver for host {host}")


async def from_repo_url(
    repo_url: str, identifier: DriverIdentifier | None = None
) -> ScmProvider:
    parsed = urlparse(repo_url)
    if not parsed.hostname:
        raise ValueError(f"Invalid repository URL: {repo_url}")

    token = parsed.password or ""
    host = parsed.hostname
    if parsed.port:
        host = f"{host}:{parsed.port}"

    driver = (identifier or DriverIdentifier()).identify(parsed.hostname)
    server_url = f"{parsed.scheme}://{host}/"
    logger.info("Resolved driver from repository URL", driver=driver, server=server_url)
    return await new_client(driver, server_url, token)


async def new_client_from_environment() -> ScmProvider:
    if settings.git_repo_url:
        return await from_repo_url(settings.git_repo_url)

    if not settings.git_token:
        raise ValueError("No Git OAuth token specified for $GIT_TOKEN")

    logger.info(
        "Creating SCM client from environment",
        driver=settings.git_kind or "github",
        server=settings.git_server,
    )
    return await new_client(settings.git_kind, settings.git_server, settings.git_token)
