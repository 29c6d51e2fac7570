from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, field_validator

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
    Signature,
    TagHook,
    User,
)
from forgehook.webhooks.actions import map_action
from forgehook.webhooks.base import NativeHook, Route, WebhookService
from forgehook.webhooks.signature import Algorithm

ZERO_SHA = "0" * 40

REDACTED = "[REDACTED]"

# Older GitLab releases send "2013-12-03 17:15:43 UTC" instead of ISO 8601.
LEGACY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def parse_time(value: Any) -> Any:
    if isinstance(value, str) and value.endswith(" UTC"):
        return datetime.strptime(value, LEGACY_TIME_FORMAT).isoformat() + "Z"
    return value


def clean_email(value: str | None) -> str | None:
    if not value or value == REDACTED:
        return None
    return value


class GitLabModel(BaseModel):
    @field_validator(
        "created_at", "updated_at", "timestamp", mode="before", check_fields=False
    )
    @classmethod
    def legacy_timestamps(cls, v: Any) -> Any:
        return parse_time(v)


class GitLabUser(BaseModel):
    id: int = 0
    name: str = ""
    username: str
    email: str | None = None
    avatar_url: str | None = None


class GitLabProject(BaseModel):
    id: int = 0
    name: str
    path_with_namespace: str
    default_branch: str = ""
    web_url: str = ""
    git_http_url: str = ""
    git_ssh_url: str = ""
    visibility_level: int = 0


class GitLabLabel(BaseModel):
    title: str


class GitLabCommitAuthor(BaseModel):
    name: str = ""
    email: str | None = None


class GitLabCommit(GitLabModel):
    id: str
    message: str = ""
    url: str = ""
    timestamp: datetime | None = None
    author: GitLabCommitAuthor


class GitLabIssue(GitLabModel):
    iid: int
    title: str
    description: str | None = None
    state: str = "opened"
    url: str = ""
    action: str = ""
    discussion_locked: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitLabLastCommit(BaseModel):
    id: str


class GitLabMergeRequest(GitLabModel):
    iid: int
    title: str
    description: str | None = None
    state: str = "opened"
    url: str = ""
    action: str = ""
    oldrev: str | None = None
    source_branch: str
    target_branch: str
    source: GitLabProject | None = None
    target: GitLabProject | None = None
    last_commit: GitLabLastCommit | None = None
    work_in_progress: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitLabNote(GitLabModel):
    id: int
    note: str = ""
    noteable_type: str
    url: str = ""
    action: str = "create"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PushPayload(NativeHook):
    object_kind: str = "push"
    ref: str
    before: str = ""
    after: str = ""
    checkout_sha: str | None = None
    user_id: int = 0
    user_name: str = ""
    user_username: str
    user_email: str | None = None
    user_avatar: str | None = None
    project: GitLabProject
    commits: list[GitLabCommit] = []


class IssuePayload(NativeHook):
    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabIssue
    labels: list[GitLabLabel] = []


class MergeRequestPayload(NativeHook):
    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabMergeRequest
    labels: list[GitLabLabel] = []


class NotePayload(NativeHook):
    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabNote
    issue: GitLabIssue | None = None
    merge_request: GitLabMergeRequest | None = None


def convert_user(src: GitLabUser) -> User:
    return User(
        id=src.id,
        login=src.username,
        name=src.name,
        email=clean_email(src.email),
        avatar=src.avatar_url or "",
    )


def convert_repository(src: GitLabProject) -> Repository:
    # Subgroups nest, so the name is only the last path segment.
    namespace, _, name = src.path_with_namespace.rpartition("/")
    return Repository(
        id=str(src.id),
        namespace=namespace,
        name=name or src.name,
        branch=src.default_branch,
        private=src.visibility_level < 20,
        clone=src.git_http_url,
        clone_ssh=src.git_ssh_url,
        link=src.web_url,
    )


def _pusher(src: PushPayload) -> User:
    return User(
        id=src.user_id,
        login=src.user_username,
        name=src.user_name,
        email=clean_email(src.user_email),
        avatar=src.user_avatar or "",
    )


def _short_ref(ref: str) -> str:
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def convert_push_hook(src: PushPayload) -> PushHook | BranchHook:
    repo = convert_repository(src.project)
    sender = _pusher(src)

    if src.after == ZERO_SHA:
        return BranchHook(
            action=Action.DELETE,
            ref=Reference(name=_short_ref(src.ref), path=src.ref),
            repo=repo,
            sender=sender,
        )

    head = next((c for c in src.commits if c.id == src.after), None)
    if head is None and src.commits:
        head = src.commits[-1]

    if head is not None:
        # GitLab commit authors carry no account, only name and e-mail.
        signature = Signature(
            name=head.author.name,
            email=clean_email(head.author.email),
            date=head.timestamp,
        )
        commit = Commit(
            sha=src.after,
            message=head.message,
            link=head.url,
            author=signature,
            committer=signature,
        )
    else:
        signature = Signature(
            login=sender.login,
            name=sender.name,
            email=sender.email,
            avatar=sender.avatar,
        )
        commit = Commit(sha=src.after, author=signature, committer=signature)

    return PushHook(
        ref=src.ref,
        before=src.before,
        after=src.after,
        commit=commit,
        repo=repo,
        sender=sender,
    )


def convert_tag_hook(src: PushPayload) -> TagHook:
    deleted = src.after == ZERO_SHA
    return TagHook(
        action=Action.DELETE if deleted else Action.CREATE,
        ref=Reference(
            name=_short_ref(src.ref),
            path=src.ref,
            sha=None if deleted else (src.checkout_sha or src.after),
        ),
        repo=convert_repository(src.project),
        sender=_pusher(src),
    )


def convert_issue(
    src: GitLabIssue, author: User, project: GitLabProject, labels: list[GitLabLabel]
) -> Issue:
    return Issue(
        number=src.iid,
        title=src.title,
        body=src.description or "",
        link=src.url or f"{project.web_url}/-/issues/{src.iid}",
        labels=tuple(label.title for label in labels),
        closed=src.state == "closed",
        locked=bool(src.discussion_locked),
        author=author,
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_merge_request(
    src: GitLabMergeRequest,
    author: User,
    project: GitLabProject,
    labels: list[GitLabLabel],
) -> PullRequest:
    sha = src.last_commit.id if src.last_commit else ""
    fork = ""
    if src.source is not None:
        fork = src.source.path_with_namespace
    return PullRequest(
        number=src.iid,
        title=src.title,
        body=src.description or "",
        sha=sha,
        ref=f"refs/merge-requests/{src.iid}/head",
        source=src.source_branch,
        target=src.target_branch,
        fork=fork,
        link=src.url or f"{project.web_url}/-/merge_requests/{src.iid}",
        closed=src.state in ("closed", "merged"),
        merged=src.state == "merged",
        draft=src.work_in_progress,
        labels=tuple(label.title for label in labels),
        author=author,
        head=Reference(
            name=src.source_branch,
            path=f"refs/heads/{src.source_branch}",
            sha=sha or None,
        ),
        base=Reference(
            name=src.target_branch, path=f"refs/heads/{src.target_branch}"
        ),
        created=src.created_at,
        updated=src.updated_at,
    )


def convert_merge_request_action(src: GitLabMergeRequest) -> Action:
    # An update that moves the source branch reports the previous head.
    if src.action == "update" and src.oldrev:
        return Action.SYNC
    return map_action(src.action)


def convert_issue_hook(src: IssuePayload) -> IssueHook:
    sender = convert_user(src.user)
    return IssueHook(
        action=map_action(src.object_attributes.action),
        issue=convert_issue(src.object_attributes, sender, src.project, src.labels),
        repo=convert_repository(src.project),
        sender=sender,
    )


def convert_merge_request_hook(src: MergeRequestPayload) -> PullRequestHook:
    sender = convert_user(src.user)
    return PullRequestHook(
        action=convert_merge_request_action(src.object_attributes),
        pull_request=convert_merge_request(
            src.object_attributes, sender, src.project, src.labels
        ),
        repo=convert_repository(src.project),
        sender=sender,
    )


def convert_note_hook(src: NotePayload) -> IssueCommentHook | PullRequestCommentHook:
    note = src.object_attributes
    sender = convert_user(src.user)
    repo = convert_repository(src.project)
    comment = Comment(
        id=note.id,
        body=note.note,
        link=note.url,
        author=sender,
        created=note.created_at,
        updated=note.updated_at,
    )

    if note.noteable_type == "Issue":
        if src.issue is None:
            raise MalformedPayloadError("Issue note without issue attributes")
        return IssueCommentHook(
            action=map_action(note.action),
            issue=convert_issue(src.issue, sender, src.project, []),
            comment=comment,
            repo=repo,
            sender=sender,
        )
    if note.noteable_type == "MergeRequest":
        if src.merge_request is None:
            raise MalformedPayloadError(
                "Merge request note without merge request attributes"
            )
        return PullRequestCommentHook(
            action=map_action(note.action),
            pull_request=convert_merge_request(
                src.merge_request, sender, src.project, []
            ),
            comment=comment,
            repo=repo,
            sender=sender,
        )
    raise UnknownWebhookError(note.noteable_type)


ROUTES: Mapping[str, Route] = MappingProxyType(
    {
        "Push Hook": Route(PushPayload, convert_push_hook),
        "Tag Push Hook": Route(PushPayload, convert_tag_hook),
        "Issue Hook": Route(IssuePayload, convert_issue_hook),
        "Merge Request Hook": Route(MergeRequestPayload, convert_merge_request_hook),
        "Note Hook": Route(NotePayload, convert_note_hook),
    }
)


class GitLabWebhookService(WebhookService):
    driver = "gitlab"
    event_header = "X-Gitlab-Event"
    signature_headers = (("X-Gitlab-Token", Algorithm.TOKEN),)
    routes = ROUTES
