from typing import Literal

from pydantic import BaseModel, ConfigDict

from forgehook.models.action import Action
from forgehook.models.scm import (
    Comment,
    Commit,
    Issue,
    PullRequest,
    Reference,
    Repository,
    Review,
    User,
)


class BaseHook(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Action = Action.UNKNOWN
    repo: Repository
    sender: User


class PushHook(BaseHook):
    kind: Literal["push"] = "push"
    ref: str
    before: str = ""
    after: str = ""
    commit: Commit


class BranchHook(BaseHook):
    kind: Literal["branch"] = "branch"
    ref: Reference


class TagHook(BaseHook):
    kind: Literal["tag"] = "tag"
    ref: Reference


class IssueHook(BaseHook):
    kind: Literal["issue"] = "issue"
    issue: Issue


class IssueCommentHook(BaseHook):
    kind: Literal["issue_comment"] = "issue_comment"
    issue: Issue
    comment: Comment


class PullRequestHook(BaseHook):
    kind: Literal["pull_request"] = "pull_request"
    pull_request: PullRequest


class PullRequestCommentHook(BaseHook):
    kind: Literal["pull_request_comment"] = "pull_request_comment"
    pull_request: PullRequest
    comment: Comment


class ReviewHook(BaseHook):
    kind: Literal["review"] = "review"
    pull_request: PullRequest
    review: Review


Webhook = (
    PushHook
    | BranchHook
    | TagHook
    | IssueHook
    | IssueCommentHook
    | PullRequestHook
    | PullRequestCommentHook
    | ReviewHook
)
