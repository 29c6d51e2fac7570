from dataclasses import dataclass, field

from forgehook.errors import NotFoundError
from forgehook.models import User
from forgehook.providers.base import Driver, ScmProvider


@dataclass
class Data:
    """In-memory state backing the fake driver.

    Tests pre-load users here and inspect it after exercising code that
    talks to a provider.
    """

    current_user: User = field(default_factory=lambda: User(login="dummy", name="dummy"))
    users: dict[str, User] = field(default_factory=dict)


class FakeProvider(ScmProvider):
    driver = Driver.FAKE
    default_url = "https://fake.com/"

    def __init__(self, server_url: str = "", token: str = "", data: Data | None = None):
        super().__init__(server_url=server_url, token=token)
        self.data = data or Data()

    async def initialize(self) -> None:
        pass

    async def find_user(self) -> User:
        return self.data.current_user

    async def find_user_login(self, login: str) -> User:
        if login == self.data.current_user.login:
            return self.data.current_user
        try:
            return self.data.users[login]
        except KeyError:
            raise NotFoundError(f"fake: user {login} not found")


def new_default() -> tuple[FakeProvider, Data]:
    data = Data()
    return FakeProvider(data=data), data
