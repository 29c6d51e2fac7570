from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import httpx
import structlog

from forgehook.errors import NotFoundError, UnsupportedError
from forgehook.models import User, UserToken

logger = structlog.get_logger(__name__)


class Driver(Enum):
    GITHUB = "github"
    GITLAB = "gitlab"
    GITEA = "gitea"
    GOGS = "gogs"
    BITBUCKET = "bitbucket"
    FAKE = "fake"


class ScmProvider(ABC):
    driver: Driver
    default_url: str = ""

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, server_url: str = "", token: str = "") -> None:
        self.base_url = server_url or self.default_url
        self.token = token
        self.client: httpx.AsyncClient | None = None

    def auth_headers(self) -> dict[str, str]:
        return {}

    def auth(self) -> httpx.Auth | None:
        return None

    async def initialize(self) -> None:
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json", **self.auth_headers()},
            auth=self.auth(),
            timeout=self.DEFAULT_TIMEOUT,
        )

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def request(self, method: str, path: str, **kwargs) -> Any:
        if self.client is None:
            raise RuntimeError("Client not initialized. Call initialize() first.")

        response = await getattr(self.client, method)(path, **kwargs)
        if response.status_code == 404:
            logger.debug("Resource not found", driver=self.driver.value, path=path)
            raise NotFoundError(f"{self.driver.value}: {path} not found")

        response.raise_for_status()
        return response.json()

    @abstractmethod
    async def find_user(self) -> User:
        pass

    @abstractmethod
    async def find_user_login(self, login: str) -> User:
        pass

    async def find_email(self) -> str | None:
        user = await self.find_user()
        return user.email

    async def create_token(self, user: str, name: str) -> UserToken:
        raise UnsupportedError(f"{self.driver.value} does not support token creation")

    async def delete_token(self, token_id: int) -> None:
        raise UnsupportedError(f"{self.driver.value} does not support token deletion")
