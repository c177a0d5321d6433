from enum import Enum


class GuardOutcome(str, Enum):
    ALLOWED = "allowed"
    REDIRECT = "redirect"
    PENDING = "pending"  # Session still resolving, caller should wait instead of redirecting
