from forgehook.models.action import Action
from forgehook.models.scm import (
    Comment,
    Commit,
    Issue,
    PullRequest,
    Reference,
    Repository,
    Review,
    Signature,
    User,
    UserToken,
)
from forgehook.models.webhook import (
    BaseHook,
    BranchHook,
    IssueCommentHook,
    IssueHook,
    PullRequestCommentHook,
    PullRequestHook,
    PushHook,
    ReviewHook,
    TagHook,
    Webhook,
)

__all__ = [
    "Action",
    "BaseHook",
    "BranchHook",
    "Comment",
    "Commit",
    "Issue",
    "IssueCommentHook",
    "IssueHook",
    "PullRequest",
    "PullRequestCommentHook",
    "PullRequestHook",
    "PushHook",
    "Reference",
    "Repository",
    "Review",
    "ReviewHook",
    "Signature",
    "TagHook",
    "User",
    "UserToken",
    "Webhook",
]
