"""
Ordered gate chains (rules as data, gates as code).

A gate is a plain function that returns a deny Verdict to reject, or None
to let the next gate look at the request. The chain evaluates gates in
order and stops at the first rejection; if no gate objects, the request is
allowed.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from .verdict import Verdict

logger = logging.getLogger(__name__)

GateFn = Callable[..., "Verdict | None"]


class PolicyChain:
    """Short-circuit, first-reject-wins sequence of gates for one operation."""

    def __init__(self, operation: str, gates: Iterable[GateFn] = ()):
        self.operation = operation
        self._gates: tuple[GateFn, ...] = tuple(gates)

    @property
    def gates(self) -> tuple[GateFn, ...]:
        return self._gates

    def extended(self, gates: Iterable[GateFn]) -> PolicyChain:
        """Return a new chain with `gates` appended after the existing ones."""
        return PolicyChain(self.operation, (*self._gates, *gates))

    def evaluate(self, *args: Any, **kwargs: Any) -> Verdict:
        for gate in self._gates:
            verdict = gate(*args, **kwargs)
            if verdict is not None and verdict.rejected:
                logger.info(
                    "%s denied by %s: %s (%d)",
                    self.operation,
                    getattr(gate, "__name__", repr(gate)),
                    verdict.reason,
                    verdict.status,
                )
                return verdict
        return Verdict.allow()

    def __len__(self) -> int:
        return len(self._gates)
