"""
wireconf.identity
-----------------

Identity-based dictionary keys.

Objects with value equality (dicts, dataclasses, ...) can compare equal while
being distinct instances, and some are not hashable at all. The container's
pending-reference bookkeeping needs to track individual instances, so it keys
its maps with ``ObjectKey`` which hashes and compares on object identity.
"""

from typing import Any


class ObjectKey:
    """Wraps an object so it can be used as an identity-compared dict key."""

    __slots__ = ("obj",)

    def __init__(self, obj: Any):
        self.obj = obj

    def __hash__(self) -> int:
        return id(self.obj)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ObjectKey) and other.obj is self.obj

    def __repr__(self) -> str:
        return f"ObjectKey({type(self.obj).__name__}@{id(self.obj):#x})"
