"""
Activation result — output of the activation resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from apogee.core.models.module import Module


@dataclass
class ActivationStatus:
    """Final state of one module."""

    eligible: bool = False
    active: bool = False
    reason: str = ""

    def to_dict(self) -> dict:
        return {"eligible": self.eligible, "active": self.active, "reason": self.reason}


@dataclass
class ActivationResult:
    """Per-module statuses plus the ordered active sequence.

    ``order`` is the emission order: dependencies before dependents,
    ties broken by declaration order.
    """

    statuses: dict[str, ActivationStatus] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def is_active(self, module_id: str) -> bool:
        status = self.statuses.get(module_id)
        return bool(status and status.active)

    def active_modules(self, modules: list[Module]) -> list[Module]:
        """Return the active Module objects in emission order."""
        by_id = {m.id: m for m in modules}
        return [by_id[mid] for mid in self.order]

    def to_dict(self) -> dict:
        return {
            "order": list(self.order),
            "modules": {mid: s.to_dict() for mid, s in self.statuses.items()},
        }
