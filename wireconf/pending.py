"""
wireconf.pending
----------------

Placeholders for named objects which are still being built.

When a named object is referenced while it is under construction (a circular
reference), the reference resolves to the ``PendingNamed`` of the object's
slot instead. The configurer records on it where the real value must go; the
container replays those assignments once the named object is complete.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List

from .identity import ObjectKey


@dataclass
class PendingAssignment:
    """A deferred property assignment waiting for a named object."""

    target: ObjectKey
    property_name: str
    assign: Callable[[Any], Any]


@dataclass
class PendingNamed:
    """Placeholder for the named object being built in a container slot."""

    name: str
    assignments: List[PendingAssignment] = field(default_factory=list)

    def record(self, target: Any, property_name: str, assign: Callable[[Any], Any]) -> PendingAssignment:
        """Queue an assignment of the resolved value into ``target.property_name``."""
        assignment = PendingAssignment(ObjectKey(target), property_name, assign)
        self.assignments.append(assignment)
        return assignment

    def take_assignments(self) -> List[PendingAssignment]:
        """Remove and return all queued assignments."""
        assignments, self.assignments = self.assignments, []
        return assignments
