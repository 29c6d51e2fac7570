from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class User(Snapshot):
    id: int = 0
    login: str
    name: str = ""
    email: str | None = None
    avatar: str = ""


class Signature(Snapshot):
    login: str = ""
    name: str = ""
    email: str | None = None
    avatar: str = ""
    date: datetime | None = None


class Repository(Snapshot):
    id: str = ""
    namespace: str
    name: str
    branch: str = ""
    private: bool = False
    clone: str = ""
    clone_ssh: str = ""
    link: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"


class Reference(Snapshot):
    name: str
    path: str = ""
    sha: str | None = None


class Commit(Snapshot):
    sha: str = ""
    message: str = ""
    author: Signature
    committer: Signature
    link: str = ""


class Issue(Snapshot):
    number: int
    title: str
    body: str = ""
    link: str = ""
    labels: tuple[str, ...] = ()
    closed: bool = False
    locked: bool = False
    author: User
    pull_request: bool = False
    created: datetime | None = None
    updated: datetime | None = None


class PullRequest(Snapshot):
    number: int
    title: str
    body: str = ""
    sha: str = ""
    ref: str = ""
    source: str = ""
    target: str = ""
    fork: str = ""
    link: str = ""
    closed: bool = False
    merged: bool = False
    draft: bool = False
    labels: tuple[str, ...] = ()
    author: User
    head: Reference | None = None
    base: Reference | None = None
    created: datetime | None = None
    updated: datetime | None = None


class Comment(Snapshot):
    id: int = 0
    body: str = ""
    link: str = ""
    author: User
    created: datetime | None = None
    updated: datetime | None = None


class Review(Snapshot):
    id: int = 0
    body: str = ""
    state: str = ""
    sha: str = ""
    link: str = ""
    author: User
    created: datetime | None = None


class UserToken(Snapshot):
    id: int
    name: str = ""
    token: str
