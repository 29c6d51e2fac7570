from collections.abc import Mapping
from datetime import datetime
from functools import partial
from types import MappingProxyType

from pydantic import AliasChoices, BaseModel, Field

from forgehook.errors import UnknownWebhookError
from forgehook.models import (
    Action,
    BranchHook,
    Comment,
    Commit,
    Issue,
    IssueCommentHook,
    IssueHook,
    PullRequest,
    PullRequestCommentHook,
    PullRequestHook,
    PushHook,
    Reference,
    Repository,
    Review,
    ReviewHook,
    Signature,
    TagHook,
    User,
)
from forgehook.webhooks.actions import map_action
from forgehook.webhooks.base import NativeHook, Route, WebhookService
from forgehook.webhooks.signature import Algorithm

REVIEW_ACTIONS: Mapping[str, Action] = MappingProxyType(
    {
        "pull_request_review_approved": Action.SUBMITTED,
        "pull_request_review_comment": Action.EDITED,
        "pull_request_review_rejected": Action.DISMISSED,
    }
)


class GiteaUser(BaseModel):
    id: int = 0
    login: str = Field(validation_alias=AliasChoices("login", "username"))
    full_name: str = ""
    email: str | None = None
    avatar_url: str = ""


class GiteaRepository(BaseModel):
    id: int = 0
    owner: GiteaUser
    name: str
    full_name: str = ""
    private: bool = False
    default_branch: str = ""
    html_url: str = ""
    clone_url: str = ""
    ssh_url: str = ""


class GiteaLabel(BaseModel):
    name: str


class GiteaCommitUser(BaseModel):
    name: str = ""
    email: str | None = None
    username: str = ""


class GiteaCommit(BaseModel):
    id: str
    message: str = ""
    url: str = ""
    author: GiteaCommitUser
    committer: GiteaCommitUser
    timestamp: datetime | None = None


class GiteaPullRequestMeta(BaseModel):
    merged: bool = False
    merged_at: datetime | None = None


class GiteaIssue(BaseModel):
    id: int = 0
    number: int
    user: GiteaUser
    title: str
    body: str | None = None
    labels: list[GiteaLabel] | None = None
    state: str = "open"
    is_locked: bool = False
    html_url: str = ""
    pull_request: GiteaPullRequestMeta | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GiteaComment(BaseModel):
    id: int
    html_url: str = ""
    user: GiteaUser
    body: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GiteaBranch(BaseModel):
    label: str = ""
    ref: str
    sha: str = ""
    repo: GiteaRepository | None = None


class GiteaPullRequest(BaseModel):
    id: int = 0
    number: int
    user: GiteaUser
    title: str
    body: str | None = None
    labels: list[GiteaLabel] | None = None
    state: str = "open"
    html_url: str = ""
    merged: bool = False
    head: GiteaBranch
    base: GiteaBranch
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GiteaReview(BaseModel):
    type: str = ""
    content: str = ""


class PushPayload(NativeHook):
    secret: str = ""
    ref: str
    before: str = ""
    after: str = ""
    compare_url: str = ""
    commits: list[GiteaCommit] | None = None
    repository: GiteaRepository
    pusher: GiteaUser
    sender: GiteaUser

    def embedded_secret(self) -> str:
        return self.secret


class CreatePayload(NativeHook):
    ref: str
    ref_type: str
    sha: str = ""
    repository: GiteaRepository
    sender: GiteaUser


class IssuePayload(NativeHook):
    action: str = ""
    issue: GiteaIssue
    repository: GiteaRepository
    sender: GiteaUser


class IssueCommentPayload(IssuePayload):
    comment: GiteaComment


class PullRequestPayload(NativeHook):
    action: str = ""
    number: int = 0
    pull_request: GiteaPullRequest
    repository: GiteaRepository
    sender: GiteaUser


class ReviewPayload(PullRequestPayload):
    review: GiteaReview


def convert_user(src: GiteaUser) -> User:
    return User(
        id=src.id,
        login=src.login,
        name=src.full_name,
        email=src.email or None,
        avatar=src.avatar_url,
    )


def convert_repository(src: GiteaRepository) -> Repository:
    return Repository(
        id=str(src.id),
        namespace=src.owner.login,
        name=src.name,
        branch=src.default_branch,
        private=src.private,
        clone=src.clone_url,
        clone_ssh=src.ssh_url,
        link=src.html_url,
    )


def convert_labels(src: list[GiteaLabel] | None) -> tuple[str, ...]:
    return tuple(label.name for label in src or ())


def convert_issue(src: GiteaIssue) -> Issue:
    return Issue(
        number=src.number,
        title=src.title,
        body=src.body or "",
        link=src.html_url,
        labels=convert_labels(src.labels),
        closed=src.state == "closed",
        locked=src.is_locked,
        author=convert_user(src.user),
        pull_request=src.pull_request is not None,
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_comment(src: GiteaComment) -> Comment:
    return Comment(
        id=src.id,
        body=src.body,
        link=src.html_url,
        author=convert_user(src.user),
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_branch(src: GiteaBranch) -> Reference:
    return Reference(name=src.ref, path=f"refs/heads/{src.ref}", sha=src.sha or None)


def convert_pull_request(src: GiteaPullRequest) -> PullRequest:
    fork = ""
    if src.head.repo is not None:
        fork = src.head.repo.full_name
    return PullRequest(
        number=src.number,
        title=src.title,
        body=src.body or "",
        sha=src.head.sha,
        ref=f"refs/pull/{src.number}/head",
        source=src.head.ref,
        target=src.base.ref,
        fork=fork,
        link=src.html_url,
        closed=src.state == "closed",
        merged=src.merged,
        labels=convert_labels(src.labels),
        author=convert_user(src.user),
        head=convert_branch(src.head),
        base=convert_branch(src.base),
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_pull_request_from_issue(src: GiteaIssue) -> PullRequest:
    merged = src.pull_request.merged if src.pull_request is not None else False
    return PullRequest(
        number=src.number,
        title=src.title,
        body=src.body or "",
        link=src.html_url,
        closed=src.state == "closed",
        merged=merged,
        labels=convert_labels(src.labels),
        author=convert_user(src.user),
        created=src.created_at,
        updated=src.updated_at,
    )


def _commit_signature(src: GiteaCommitUser, date: datetime | None) -> Signature:
    return Signature(
        login=src.username, name=src.name, email=src.email or None, date=date
    )


def _pusher_signature(src: GiteaUser) -> Signature:
    return Signature(
        login=src.login,
        name=src.full_name,
        email=src.email or None,
        avatar=src.avatar_url,
    )


def convert_push_hook(src: PushPayload) -> PushHook:
    if src.commits:
        first = src.commits[0]
        commit = Commit(
            sha=src.after,
            message=first.message,
            link=src.compare_url,
            author=_commit_signature(first.author, first.timestamp),
            committer=_commit_signature(first.committer, first.timestamp),
        )
    else:
        pusher = _pusher_signature(src.pusher)
        commit = Commit(
            sha=src.after,
            link=src.compare_url,
            author=pusher,
            committer=pusher,
        )
    return PushHook(
        ref=src.ref,
        before=src.before,
        after=src.after,
        commit=commit,
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_ref_hook(src: CreatePayload, action: Action) -> TagHook | BranchHook:
    repo = convert_repository(src.repository)
    sender = convert_user(src.sender)
    if src.ref_type == "tag":
        return TagHook(
            action=action,
            ref=Reference(
                name=src.ref, path=f"refs/tags/{src.ref}", sha=src.sha or None
            ),
            repo=repo,
            sender=sender,
        )
    if src.ref_type == "branch":
        return BranchHook(
            action=action,
            ref=Reference(
                name=src.ref, path=f"refs/heads/{src.ref}", sha=src.sha or None
            ),
            repo=repo,
            sender=sender,
        )
    raise UnknownWebhookError(src.ref_type)


def convert_issue_hook(src: IssuePayload) -> IssueHook:
    return IssueHook(
        action=map_action(src.action),
        issue=convert_issue(src.issue),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_issue_comment_hook(
    src: IssueCommentPayload,
) -> IssueCommentHook | PullRequestCommentHook:
    # Comments on pull requests arrive as issue comments whose issue carries
    # a pull_request back-reference.
    if src.issue.pull_request is not None:
        return PullRequestCommentHook(
            action=map_action(src.action),
            pull_request=convert_pull_request_from_issue(src.issue),
            comment=convert_comment(src.comment),
            repo=convert_repository(src.repository),
            sender=convert_user(src.sender),
        )
    return IssueCommentHook(
        action=map_action(src.action),
        issue=convert_issue(src.issue),
        comment=convert_comment(src.comment),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_pull_request_hook(src: PullRequestPayload) -> PullRequestHook:
    return PullRequestHook(
        action=map_action(src.action),
        pull_request=convert_pull_request(src.pull_request),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_review_hook(src: ReviewPayload) -> ReviewHook:
    sender = convert_user(src.sender)
    return ReviewHook(
        action=map_action(src.review.type, REVIEW_ACTIONS),
        pull_request=convert_pull_request(src.pull_request),
        review=Review(
            body=src.review.content,
            state=src.review.type,
            sha=src.pull_request.head.sha,
            author=sender,
        ),
        repo=convert_repository(src.repository),
        sender=sender,
    )


GOGS_ROUTES: Mapping[str, Route] = MappingProxyType(
    {
        "push": Route(PushPayload, convert_push_hook),
        "create": Route(
            CreatePayload, partial(convert_ref_hook, action=Action.CREATE)
        ),
        "delete": Route(
            CreatePayload, partial(convert_ref_hook, action=Action.DELETE)
        ),
        "issues": Route(IssuePayload, convert_issue_hook),
        "issue_comment": Route(IssueCommentPayload, convert_issue_comment_hook),
        "pull_request": Route(PullRequestPayload, convert_pull_request_hook),
    }
)

GITEA_ROUTES: Mapping[str, Route] = MappingProxyType(
    {
        **GOGS_ROUTES,
        "reviewed": Route(ReviewPayload, convert_review_hook),
    }
)


class GiteaWebhookService(WebhookService):
    driver = "gitea"
    event_header = "X-Gitea-Event"
    signature_headers = (("X-Gitea-Signature", Algorithm.SHA256),)
    routes = GITEA_ROUTES


class GogsWebhookService(WebhookService):
    driver = "gogs"
    event_header = "X-Gogs-Event"
    signature_headers = (("X-Gogs-Signature", Algorithm.SHA256),)
    routes = GOGS_ROUTES
