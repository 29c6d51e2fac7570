from forgehook.models import User
from forgehook.providers.base import Driver, ScmProvider
from forgehook.webhooks.bitbucket import Account, convert_user


class BitbucketProvider(ScmProvider):
    driver = Driver.BITBUCKET
    default_url = "https://api.bitbucket.org"

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def find_user(self) -> User:
        data = await self.request("get", "/2.0/user")
        return convert_user(Account.model_validate(data))

    async def find_user_login(self, login: str) -> User:
        data = await self.request("get", f"/2.0/users/{login}")
        return convert_user(Account.model_validate(data))
