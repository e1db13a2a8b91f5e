"""Exceptions raised while resolving a quiz graph."""

from __future__ import annotations


class ResolutionError(Exception):
    """Error during quiz configuration resolution."""

    pass


class MissingFieldError(ResolutionError):
    """A node's settings lack a field required by its authored mode.

    Attributes:
        field: Name (or dotted path) of the missing field.
        filter_id: Definition id of the filter whose settings are incomplete.
    """

    def __init__(self, field: str, filter_id: str, detail: str = "") -> None:
        self.field = field
        self.filter_id = filter_id
        message = f"{field} is required for {filter_id} resolution"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class AmbiguousModifierError(ResolutionError):
    """More than one selection modifier targets the same node group."""

    pass


class UnknownFilterError(ResolutionError):
    """A filter node references a definition id missing from the registry."""

    pass
