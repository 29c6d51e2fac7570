from collections.abc import Callable, Mapping
from datetime import datetime
from email.utils import parseaddr
from functools import partial
from types import MappingProxyType
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, Field

from forgehook.errors import MalformedPayloadError, UnknownWebhookError
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
    Webhook,
)
from forgehook.webhooks.actions import map_action
from forgehook.webhooks.base import NativeHook, Route, WebhookService
from forgehook.webhooks.signature import Algorithm


class Link(BaseModel):
    href: str = ""


class Links(BaseModel):
    html: Link = Link()
    avatar: Link = Link()


class Account(BaseModel):
    uuid: str = ""
    display_name: str = ""
    # Team accounts still expose "username"; users only have "nickname".
    login: str = Field(
        default="", validation_alias=AliasChoices("nickname", "username")
    )
    links: Links = Links()


class MainBranch(BaseModel):
    name: str


class BitbucketRepository(BaseModel):
    uuid: str = ""
    full_name: str
    name: str = ""
    is_private: bool = False
    mainbranch: MainBranch | None = None
    links: Links = Links()


class CommitAuthor(BaseModel):
    raw: str = ""
    user: Account | None = None


class BitbucketCommit(BaseModel):
    hash: str
    message: str = ""
    date: datetime | None = None
    author: CommitAuthor = CommitAuthor()
    links: Links = Links()


class RefState(BaseModel):
    type: str
    name: str
    target: BitbucketCommit | None = None


class Change(BaseModel):
    new: RefState | None = None
    old: RefState | None = None
    created: bool = False
    closed: bool = False
    commits: list[BitbucketCommit] = []
    links: Links = Links()


class Push(BaseModel):
    changes: list[Change] = Field(min_length=1)


class Content(BaseModel):
    raw: str | None = None


class PullRequestBranch(BaseModel):
    name: str


class PullRequestCommit(BaseModel):
    hash: str = ""


class PullRequestRepository(BaseModel):
    full_name: str = ""


class PullRequestEndpoint(BaseModel):
    branch: PullRequestBranch
    commit: PullRequestCommit | None = None
    repository: PullRequestRepository | None = None


class BitbucketPullRequest(BaseModel):
    id: int
    title: str
    description: str = ""
    state: str = "OPEN"
    author: Account
    source: PullRequestEndpoint
    destination: PullRequestEndpoint
    links: Links = Links()
    created_on: datetime | None = None
    updated_on: datetime | None = None


class BitbucketComment(BaseModel):
    id: int
    content: Content = Content()
    user: Account
    links: Links = Links()
    created_on: datetime | None = None
    updated_on: datetime | None = None


class Approval(BaseModel):
    date: datetime | None = None
    user: Account


class BitbucketIssue(BaseModel):
    id: int
    title: str
    content: Content = Content()
    state: str = "new"
    reporter: Account | None = None
    links: Links = Links()
    created_on: datetime | None = None
    updated_on: datetime | None = None


class PushPayload(NativeHook):
    actor: Account
    repository: BitbucketRepository
    push: Push


class PullRequestPayload(NativeHook):
    actor: Account
    repository: BitbucketRepository
    pullrequest: BitbucketPullRequest


class PullRequestCommentPayload(PullRequestPayload):
    comment: BitbucketComment


class ApprovalPayload(PullRequestPayload):
    approval: Approval


class IssuePayload(NativeHook):
    actor: Account
    repository: BitbucketRepository
    issue: BitbucketIssue


class IssueCommentPayload(IssuePayload):
    comment: BitbucketComment


CLOSED_ISSUE_STATES = frozenset(
    {"resolved", "closed", "invalid", "duplicate", "wontfix"}
)


def convert_user(src: Account) -> User:
    # Bitbucket never discloses e-mail addresses in webhook payloads.
    return User(
        login=src.login or src.display_name,
        name=src.display_name,
        email=None,
        avatar=src.links.avatar.href,
    )


def convert_repository(src: BitbucketRepository) -> Repository:
    namespace, _, name = src.full_name.partition("/")
    link = src.links.html.href or f"https://bitbucket.org/{src.full_name}"
    host = urlparse(link).hostname or "bitbucket.org"
    return Repository(
        id=src.uuid,
        namespace=namespace,
        name=name or src.name,
        branch=src.mainbranch.name if src.mainbranch else "",
        private=src.is_private,
        clone=f"{link}.git",
        clone_ssh=f"git@{host}:{src.full_name}.git",
        link=link,
    )


def convert_signature(src: BitbucketCommit) -> Signature:
    name, email = parseaddr(src.author.raw)
    user = src.author.user
    return Signature(
        login=user.login if user else "",
        name=name or (user.display_name if user else ""),
        email=email or None,
        avatar=user.links.avatar.href if user else "",
        date=src.date,
    )


def convert_push_hook(src: PushPayload) -> PushHook | BranchHook | TagHook:
    change = src.push.changes[0]
    repo = convert_repository(src.repository)
    sender = convert_user(src.actor)

    if change.new is None:
        old = change.old
        if old is None:
            raise MalformedPayloadError("Push change without old or new ref")
        if old.type == "branch":
            return BranchHook(
                action=Action.DELETE,
                ref=Reference(name=old.name, path=f"refs/heads/{old.name}"),
                repo=repo,
                sender=sender,
            )
        if old.type == "tag":
            return TagHook(
                action=Action.DELETE,
                ref=Reference(name=old.name, path=f"refs/tags/{old.name}"),
                repo=repo,
                sender=sender,
            )
        raise UnknownWebhookError(old.type)

    new = change.new
    sha = new.target.hash if new.target else None

    if new.type == "tag":
        return TagHook(
            action=Action.CREATE,
            ref=Reference(name=new.name, path=f"refs/tags/{new.name}", sha=sha),
            repo=repo,
            sender=sender,
        )
    if new.type != "branch":
        raise UnknownWebhookError(new.type)

    # Commits are listed newest first.
    if change.commits:
        head = change.commits[0]
        signature = convert_signature(head)
        commit = Commit(
            sha=sha or head.hash,
            message=head.message,
            link=head.links.html.href,
            author=signature,
            committer=signature,
        )
    else:
        pusher = Signature(
            login=sender.login, name=sender.name, avatar=sender.avatar
        )
        commit = Commit(sha=sha or "", author=pusher, committer=pusher)

    return PushHook(
        ref=f"refs/heads/{new.name}",
        before=change.old.target.hash if change.old and change.old.target else "",
        after=sha or "",
        commit=commit,
        repo=repo,
        sender=sender,
    )


def convert_pull_request(src: BitbucketPullRequest) -> PullRequest:
    sha = src.source.commit.hash if src.source.commit else ""
    fork = src.source.repository.full_name if src.source.repository else ""
    source = src.source.branch.name
    target = src.destination.branch.name
    return PullRequest(
        number=src.id,
        title=src.title,
        body=src.description,
        sha=sha,
        ref=f"refs/pull-requests/{src.id}/from",
        source=source,
        target=target,
        fork=fork,
        link=src.links.html.href,
        closed=src.state != "OPEN",
        merged=src.state == "MERGED",
        author=convert_user(src.author),
        head=Reference(name=source, path=f"refs/heads/{source}", sha=sha or None),
        base=Reference(name=target, path=f"refs/heads/{target}"),
        created=src.created_on,
        updated=src.updated_on,
    )


def convert_comment(src: BitbucketComment) -> Comment:
    return Comment(
        id=src.id,
        body=src.content.raw or "",
        link=src.links.html.href,
        author=convert_user(src.user),
        created=src.created_on,
        updated=src.updated_on,
    )


def convert_issue(src: BitbucketIssue, sender: User) -> Issue:
    return Issue(
        number=src.id,
        title=src.title,
        body=src.content.raw or "",
        link=src.links.html.href,
        closed=src.state in CLOSED_ISSUE_STATES,
        author=convert_user(src.reporter) if src.reporter else sender,
        created=src.created_on,
        updated=src.updated_on,
    )


def convert_pull_request_hook(
    src: PullRequestPayload, action: Action
) -> PullRequestHook:
    return PullRequestHook(
        action=action,
        pull_request=convert_pull_request(src.pullrequest),
        repo=convert_repository(src.repository),
        sender=convert_user(src.actor),
    )


def convert_pull_request_comment_hook(
    src: PullRequestCommentPayload, action: Action
) -> PullRequestCommentHook:
    return PullRequestCommentHook(
        action=action,
        pull_request=convert_pull_request(src.pullrequest),
        comment=convert_comment(src.comment),
        repo=convert_repository(src.repository),
        sender=convert_user(src.actor),
    )


def convert_approval_hook(src: ApprovalPayload, action: Action) -> ReviewHook:
    pull_request = convert_pull_request(src.pullrequest)
    return ReviewHook(
        action=action,
        pull_request=pull_request,
        review=Review(
            state="approved" if action is Action.SUBMITTED else "unapproved",
            sha=pull_request.sha,
            author=convert_user(src.approval.user),
            created=src.approval.date,
        ),
        repo=convert_repository(src.repository),
        sender=convert_user(src.actor),
    )


def convert_issue_hook(src: IssuePayload, action: Action) -> IssueHook:
    sender = convert_user(src.actor)
    return IssueHook(
        action=action,
        issue=convert_issue(src.issue, sender),
        repo=convert_repository(src.repository),
        sender=sender,
    )


def convert_issue_comment_hook(
    src: IssueCommentPayload, action: Action
) -> IssueCommentHook:
    sender = convert_user(src.actor)
    return IssueCommentHook(
        action=action,
        issue=convert_issue(src.issue, sender),
        comment=convert_comment(src.comment),
        repo=convert_repository(src.repository),
        sender=sender,
    )


# The verb lives in the event key rather than in the payload.
EVENT_ACTIONS: Mapping[str, Action] = MappingProxyType(
    {
        "pullrequest:created": Action.OPEN,
        "pullrequest:updated": Action.SYNC,
        "pullrequest:fulfilled": Action.MERGE,
        "pullrequest:rejected": Action.CLOSE,
        "pullrequest:comment_created": Action.CREATE,
        "pullrequest:comment_updated": Action.UPDATE,
        "pullrequest:comment_deleted": Action.DELETE,
        "pullrequest:approved": Action.SUBMITTED,
        "pullrequest:unapproved": Action.DISMISSED,
        "issue:created": Action.OPEN,
        "issue:updated": Action.UPDATE,
        "issue:comment_created": Action.CREATE,
    }
)

Handler = tuple[type[NativeHook], Callable[..., Webhook], tuple[str, ...]]

_HANDLERS: tuple[Handler, ...] = (
    (
        PullRequestPayload,
        convert_pull_request_hook,
        (
            "pullrequest:created",
            "pullrequest:updated",
            "pullrequest:fulfilled",
            "pullrequest:rejected",
        ),
    ),
    (
        PullRequestCommentPayload,
        convert_pull_request_comment_hook,
        (
            "pullrequest:comment_created",
            "pullrequest:comment_updated",
            "pullrequest:comment_deleted",
        ),
    ),
    (
        ApprovalPayload,
        convert_approval_hook,
        ("pullrequest:approved", "pullrequest:unapproved"),
    ),
    (IssuePayload, convert_issue_hook, ("issue:created", "issue:updated")),
    (IssueCommentPayload, convert_issue_comment_hook, ("issue:comment_created",)),
)

ROUTES: Mapping[str, Route] = MappingProxyType(
    {
        "repo:push": Route(PushPayload, convert_push_hook),
        **{
            event: Route(
                model, partial(convert, action=map_action(event, EVENT_ACTIONS))
            )
            for model, convert, events in _HANDLERS
            for event in events
        },
    }
)


class BitbucketWebhookService(WebhookService):
    driver = "bitbucket"
    event_header = "X-Event-Key"
    signature_headers = (("X-Hub-Signature", Algorithm.SHA256),)
    routes = ROUTES
