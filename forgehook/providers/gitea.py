import httpx

from forgehook.models import User, UserToken
from forgehook.providers.base import Driver, ScmProvider
from forgehook.webhooks.gitea import GiteaUser, convert_user


class GiteaProvider(ScmProvider):
    driver = Driver.GITEA

    def __init__(
        self,
        server_url: str = "",
        token: str = "",
        username: str = "",
        password: str = "",
    ) -> None:
        super().__init__(server_url=server_url, token=token)
        self.username = username
        self.password = password

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"token {self.token}"}

    def auth(self) -> httpx.Auth | None:
        if not self.username:
            return None
        return httpx.BasicAuth(self.username, self.password)

    async def find_user(self) -> User:
        data = await self.request("get", "/api/v1/user")
        return convert_user(GiteaUser.model_validate(data))

    async def find_user_login(self, login: str) -> User:
        data = await self.request("get", f"/api/v1/users/{login}")
        return convert_user(GiteaUser.model_validate(data))

    async def create_token(self, user: str, name: str) -> UserToken:
        """Create an access token; Gitea only accepts this with basic auth."""
        data = await self.request(
            "post", f"/api/v1/users/{user}/tokens", json={"name": name}
        )
        return UserToken(id=data["id"], name=data.get("name", name), token=data["sha1"])


class GogsProvider(GiteaProvider):
    driver = Driver.GOGS
