from forgehook.errors import NotFoundError
from forgehook.models import User
from forgehook.providers.base import Driver, ScmProvider
from forgehook.webhooks.gitlab import GitLabUser, convert_user


class GitLabProvider(ScmProvider):
    driver = Driver.GITLAB
    default_url = "https://gitlab.com"

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"PRIVATE-TOKEN": self.token}

    async def find_user(self) -> User:
        data = await self.request("get", "/api/v4/user")
        return convert_user(GitLabUser.model_validate(data))

    async def find_user_login(self, login: str) -> User:
        data = await self.request("get", "/api/v4/users", params={"username": login})
        for item in data:
            user = GitLabUser.model_validate(item)
            if user.username.lower() == login.lower():
                return convert_user(user)
        raise NotFoundError(f"gitlab: user {login} not found")
