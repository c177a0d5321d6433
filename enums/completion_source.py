from enum import Enum


class CompletionSource(str, Enum):
    SERVER = "server"      # Reported by the commerce service
    FALLBACK = "fallback"  # Last persisted marker (degraded mode)
    DEFAULT = "default"    # No identity or no marker available
