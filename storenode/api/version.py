from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class APIVersion:
    """
    Semantic API version as reported by a node's ``Version`` call.

    On the wire the version is a single integer packed as
    ``major<<16 | minor<<8 | patch``.
    """

    major: int
    minor: int
    patch: int = 0

    @staticmethod
    def from_int(value: int) -> "APIVersion":
        value = int(value)
        return APIVersion(
            major=(value >> 16) & 0xFF,
            minor=(value >> 8) & 0xFF,
            patch=value & 0xFF,
        )

    def to_int(self) -> int:
        return (self.major << 16) | (self.minor << 8) | self.patch

    def eq_major_minor(self, other: "APIVersion") -> bool:
        return self.major == other.major and self.minor == other.minor

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# Versions this tool was built against
MINER_API_VERSION = APIVersion(1, 0, 1)
FULL_API_VERSION = APIVersion(1, 0, 0)
