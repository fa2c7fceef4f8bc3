from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Verdict:
    """Outcome of a policy check: allow, or deny with a reason and status code."""

    allowed: bool
    reason: str = ""
    status: int = 200

    @classmethod
    def allow(cls) -> Verdict:
        return cls(allowed=True, reason="", status=200)

    @classmethod
    def deny(cls, reason: str, status: int = 403) -> Verdict:
        return cls(allowed=False, reason=reason, status=status)

    @property
    def rejected(self) -> bool:
        return not self.allowed

    def as_hook_tuple(self) -> tuple[bool, str, int]:
        """(reject, reason, status), the shape blob protocol hooks return."""
        return (self.rejected, self.reason, self.status)

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason, "status": self.status}
