"""Filter kinds and the registry that maps definition ids to them."""

from quizgraph.filters.base import FilterIssues, FilterKind, ResolutionContext
from quizgraph.filters.registry import FilterRegistry, default_registry

__all__ = [
    "FilterIssues",
    "FilterKind",
    "FilterRegistry",
    "ResolutionContext",
    "default_registry",
]
