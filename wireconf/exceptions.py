"""
wireconf.exceptions
-------------------

Custom exceptions for wireconf.
"""


class ConstructionError(Exception):
    """
    Raised when an object in the graph cannot be instantiated.
    """

    def __init__(self, identifier, reason):
        super().__init__(f"Unable to construct object '{identifier}': {reason}")
        self.identifier = identifier
        self.reason = reason


class TypeResolutionError(ConstructionError):
    """
    Raised when a type registry entry cannot be resolved to a class or factory.
    """

    def __init__(self, tag, reference, reason):
        super().__init__(tag, f"cannot resolve type reference '{reference}' ({reason})")
        self.reference = reference
