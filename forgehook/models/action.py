from enum import Enum


class Action(str, Enum):
    UNKNOWN = "unknown"
    CREATE = "create"
    DELETE = "delete"
    UPDATE = "update"
    OPEN = "open"
    REOPEN = "reopen"
    CLOSE = "close"
    LABEL = "label"
    UNLABEL = "unlabel"
    MERGE = "merge"
    SYNC = "sync"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    SUBMITTED = "submitted"
    DISMISSED = "dismissed"
    EDITED = "edited"
