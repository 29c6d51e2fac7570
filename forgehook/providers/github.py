from forgehook.models import User
from forgehook.providers.base import Driver, ScmProvider
from forgehook.webhooks.github import GitHubUser, convert_user


class GitHubProvider(ScmProvider):
    driver = Driver.GITHUB
    default_url = "https://api.github.com"

    def auth_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def find_user(self) -> User:
        data = await self.request("get", "/user")
        return convert_user(GitHubUser.model_validate(data))

    async def find_user_login(self, login: str) -> User:
        data = await self.request("get", f"/users/{login}")
        return convert_user(GitHubUser.model_validate(data))
