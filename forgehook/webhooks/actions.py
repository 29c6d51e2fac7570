from collections.abc import Mapping
from types import MappingProxyType

from forgehook.models import Action

ACTIONS: Mapping[str, Action] = MappingProxyType(
    {
        "create": Action.CREATE,
        "created": Action.CREATE,
        "delete": Action.DELETE,
        "deleted": Action.DELETE,
        "update": Action.UPDATE,
        "updated": Action.UPDATE,
        "edit": Action.UPDATE,
        "edited": Action.UPDATE,
        "open": Action.OPEN,
        "opened": Action.OPEN,
        "reopen": Action.REOPEN,
        "reopened": Action.REOPEN,
        "close": Action.CLOSE,
        "closed": Action.CLOSE,
        "label": Action.LABEL,
        "labeled": Action.LABEL,
        "label_updated": Action.LABEL,
        "unlabel": Action.UNLABEL,
        "unlabeled": Action.UNLABEL,
        "label_cleared": Action.UNLABEL,
        "merge": Action.MERGE,
        "merged": Action.MERGE,
        "synchronize": Action.SYNC,
        "synchronized": Action.SYNC,
        "assigned": Action.ASSIGNED,
        "unassigned": Action.UNASSIGNED,
        "reviewed": Action.SUBMITTED,
    }
)


def map_action(verb: str | None, table: Mapping[str, Action] = ACTIONS) -> Action:
    """Map a provider verb onto the canonical taxonomy.

    Lookups are case-sensitive; anything not in ``table`` is
    ``Action.UNKNOWN`` rather than an error.
    """
    if not verb:
        return Action.UNKNOWN
    return table.get(verb, Action.UNKNOWN)
