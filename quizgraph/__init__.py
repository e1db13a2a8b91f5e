"""quizgraph - seeded resolution of quiz configuration graphs."""

__version__ = "0.1.0"

from quizgraph.allocation import (
    AllocationEntry,
    allocate_to_total,
    analyze_allocation_ranges,
    apportion,
    check_allocation,
)
from quizgraph.analysis import RouteStats, report_distribution, route_distribution
from quizgraph.config import (
    Config,
    PathsConfig,
    ResolutionConfig,
    RunConfig,
    load_config,
)
from quizgraph.engine import ResolvedConfiguration, simulate_quiz_configuration
from quizgraph.errors import (
    AmbiguousModifierError,
    MissingFieldError,
    ResolutionError,
    UnknownFilterError,
)
from quizgraph.filters import (
    FilterKind,
    FilterRegistry,
    ResolutionContext,
    default_registry,
)
from quizgraph.graph import Edge, Node, QuizGraph
from quizgraph.merging import ResolvedFilter
from quizgraph.output import (
    GraphFormatError,
    configuration_to_dict,
    export_json,
    export_summary,
    load_graph,
)
from quizgraph.rng import fresh_seed, make_rng
from quizgraph.routing import Route
from quizgraph.sources import ResolvedSourceList
from quizgraph.validator import ValidationResult, validate_graph

__all__ = [
    # Config
    "Config",
    "PathsConfig",
    "ResolutionConfig",
    "RunConfig",
    "load_config",
    # Graph
    "Edge",
    "Node",
    "QuizGraph",
    "Route",
    # Randomness
    "fresh_seed",
    "make_rng",
    # Allocation
    "AllocationEntry",
    "allocate_to_total",
    "analyze_allocation_ranges",
    "apportion",
    "check_allocation",
    # Filters
    "FilterKind",
    "FilterRegistry",
    "ResolutionContext",
    "default_registry",
    # Engine
    "AmbiguousModifierError",
    "MissingFieldError",
    "ResolutionError",
    "ResolvedConfiguration",
    "ResolvedFilter",
    "ResolvedSourceList",
    "UnknownFilterError",
    "simulate_quiz_configuration",
    # Analysis
    "RouteStats",
    "report_distribution",
    "route_distribution",
    # Validator
    "ValidationResult",
    "validate_graph",
    # Output
    "GraphFormatError",
    "configuration_to_dict",
    "export_json",
    "export_summary",
    "load_graph",
]
