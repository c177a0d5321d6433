from enum import Enum


class SessionState(str, Enum):
    """
    Lifecycle of the acting identity.

    UNKNOWN: Provider has not reported yet (app start)
    ANONYMOUS: No identity
    RESOLVING: Identity present, completeness checks in flight
    RESOLVED: Identity present, both completeness checks settled
    """
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
