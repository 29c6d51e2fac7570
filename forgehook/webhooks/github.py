from collections.abc import Mapping
from datetime import datetime
from functools import partial
from types import MappingProxyType

from pydantic import BaseModel

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
        "submitted": Action.SUBMITTED,
        "edited": Action.EDITED,
        "dismissed": Action.DISMISSED,
    }
)


class GitHubUser(BaseModel):
    id: int = 0
    login: str
    name: str | None = None
    email: str | None = None
    avatar_url: str = ""


class GitHubOwner(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    id: int = 0
    owner: GitHubOwner
    name: str
    full_name: str = ""
    private: bool = False
    default_branch: str = ""
    html_url: str = ""
    clone_url: str = ""
    ssh_url: str = ""


class GitHubLabel(BaseModel):
    name: str


class GitHubCommitUser(BaseModel):
    name: str = ""
    email: str | None = None
    username: str = ""


class GitHubCommit(BaseModel):
    id: str
    message: str = ""
    url: str = ""
    timestamp: datetime | None = None
    author: GitHubCommitUser
    committer: GitHubCommitUser


class GitHubPusher(BaseModel):
    name: str
    email: str | None = None


class GitHubPullRequestLink(BaseModel):
    html_url: str = ""


class GitHubIssue(BaseModel):
    number: int
    title: str
    body: str | None = None
    user: GitHubUser
    labels: list[GitHubLabel] = []
    state: str = "open"
    locked: bool = False
    html_url: str = ""
    pull_request: GitHubPullRequestLink | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitHubComment(BaseModel):
    id: int
    body: str = ""
    user: GitHubUser
    html_url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitHubHeadRepository(BaseModel):
    full_name: str = ""


class GitHubBranch(BaseModel):
    ref: str
    sha: str = ""
    label: str = ""
    repo: GitHubHeadRepository | None = None


class GitHubPullRequest(BaseModel):
    number: int
    title: str
    body: str | None = None
    user: GitHubUser
    state: str = "open"
    merged: bool = False
    draft: bool = False
    labels: list[GitHubLabel] = []
    head: GitHubBranch
    base: GitHubBranch
    html_url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitHubReview(BaseModel):
    id: int
    body: str | None = None
    state: str = ""
    commit_id: str = ""
    html_url: str = ""
    user: GitHubUser
    submitted_at: datetime | None = None


class PushPayload(NativeHook):
    ref: str
    before: str = ""
    after: str = ""
    compare: str = ""
    commits: list[GitHubCommit] = []
    head_commit: GitHubCommit | None = None
    repository: GitHubRepository
    pusher: GitHubPusher
    sender: GitHubUser


class CreatePayload(NativeHook):
    ref: str
    ref_type: str
    repository: GitHubRepository
    sender: GitHubUser


class IssuePayload(NativeHook):
    action: str
    issue: GitHubIssue
    repository: GitHubRepository
    sender: GitHubUser


class IssueCommentPayload(IssuePayload):
    comment: GitHubComment


class PullRequestPayload(NativeHook):
    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository
    sender: GitHubUser


class ReviewCommentPayload(PullRequestPayload):
    comment: GitHubComment


class ReviewPayload(PullRequestPayload):
    review: GitHubReview


def convert_user(src: GitHubUser) -> User:
    return User(
        id=src.id,
        login=src.login,
        name=src.name or "",
        email=src.email or None,
        avatar=src.avatar_url,
    )


def convert_repository(src: GitHubRepository) -> Repository:
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


def convert_issue(src: GitHubIssue) -> Issue:
    return Issue(
        number=src.number,
        title=src.title,
        body=src.body or "",
        link=src.html_url,
        labels=tuple(label.name for label in src.labels),
        closed=src.state == "closed",
        locked=src.locked,
        author=convert_user(src.user),
        pull_request=src.pull_request is not None,
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_comment(src: GitHubComment) -> Comment:
    return Comment(
        id=src.id,
        body=src.body,
        link=src.html_url,
        author=convert_user(src.user),
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_branch(src: GitHubBranch) -> Reference:
    return Reference(name=src.ref, path=f"refs/heads/{src.ref}", sha=src.sha or None)


def convert_pull_request(src: GitHubPullRequest) -> PullRequest:
    return PullRequest(
        number=src.number,
        title=src.title,
        body=src.body or "",
        sha=src.head.sha,
        ref=f"refs/pull/{src.number}/head",
        source=src.head.ref,
        target=src.base.ref,
        fork=src.head.repo.full_name if src.head.repo else "",
        link=src.html_url,
        closed=src.state == "closed",
        merged=src.merged,
        draft=src.draft,
        labels=tuple(label.name for label in src.labels),
        author=convert_user(src.user),
        head=convert_branch(src.head),
        base=convert_branch(src.base),
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_pull_request_from_issue(src: GitHubIssue) -> PullRequest:
    return PullRequest(
        number=src.number,
        title=src.title,
        body=src.body or "",
        ref=f"refs/pull/{src.number}/head",
        link=src.html_url,
        closed=src.state == "closed",
        labels=tuple(label.name for label in src.labels),
        author=convert_user(src.user),
        created=src.created_at,
        updated=src.updated_at,
    )


def _commit_signature(src: GitHubCommitUser, date: datetime | None) -> Signature:
    return Signature(
        login=src.username, name=src.name, email=src.email or None, date=date
    )


def convert_push_hook(src: PushPayload) -> PushHook:
    # A push of existing commits lists none but still names head_commit.
    if src.commits:
        head = src.head_commit or src.commits[-1]
        commit = Commit(
            sha=src.after,
            message=head.message,
            link=src.compare,
            author=_commit_signature(head.author, head.timestamp),
            committer=_commit_signature(head.committer, head.timestamp),
        )
    else:
        pusher = Signature(
            login=src.pusher.name,
            name=src.pusher.name,
            email=src.pusher.email or None,
        )
        commit = Commit(
            sha=src.after, link=src.compare, author=pusher, committer=pusher
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
    # Create and delete payloads carry no commit pointer.
    if src.ref_type == "tag":
        return TagHook(
            action=action,
            ref=Reference(name=src.ref, path=f"refs/tags/{src.ref}"),
            repo=repo,
            sender=sender,
        )
    if src.ref_type == "branch":
        return BranchHook(
            action=action,
            ref=Reference(name=src.ref, path=f"refs/heads/{src.ref}"),
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
    action = map_action(src.action)
    if action is Action.CLOSE and src.pull_request.merged:
        action = Action.MERGE
    return PullRequestHook(
        action=action,
        pull_request=convert_pull_request(src.pull_request),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_review_comment_hook(src: ReviewCommentPayload) -> PullRequestCommentHook:
    return PullRequestCommentHook(
        action=map_action(src.action),
        pull_request=convert_pull_request(src.pull_request),
        comment=convert_comment(src.comment),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


def convert_review_hook(src: ReviewPayload) -> ReviewHook:
    return ReviewHook(
        action=map_action(src.action, REVIEW_ACTIONS),
        pull_request=convert_pull_request(src.pull_request),
        review=Review(
            id=src.review.id,
            body=src.review.body or "",
            state=src.review.state,
            sha=src.review.commit_id,
            link=src.review.html_url,
            author=convert_user(src.review.user),
            created=src.review.submitted_at,
        ),
        repo=convert_repository(src.repository),
        sender=convert_user(src.sender),
    )


ROUTES: Mapping[str, Route] = MappingProxyType(
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
        "pull_request_review": Route(ReviewPayload, convert_review_hook),
        "pull_request_review_comment": Route(
            ReviewCommentPayload, convert_review_comment_hook
        ),
    }
)


class GitHubWebhookService(WebhookService):
    driver = "github"
    event_header = "X-GitHub-Event"
    signature_headers = (
        ("X-Hub-Signature-256", Algorithm.SHA256),
        ("X-Hub-Signature", Algorithm.SHA1),
    )
    routes = ROUTES
