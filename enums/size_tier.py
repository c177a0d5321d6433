from enum import Enum


class SizeTier(str, Enum):
    """Paper sizes offered for custom artwork."""
    A1 = "A1"
    A2 = "A2"
    A4 = "A4"
