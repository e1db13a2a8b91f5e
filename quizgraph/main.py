"""quizgraph CLI entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from quizgraph.analysis import report_distribution, route_distribution
from quizgraph.config import Config, load_config
from quizgraph.engine import simulate_quiz_configuration
from quizgraph.errors import ResolutionError
from quizgraph.filters.registry import default_registry
from quizgraph.output import GraphFormatError, export_json, export_summary, load_graph
from quizgraph.validator import validate_graph


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the quizgraph command."""
    parser = argparse.ArgumentParser(
        description="quizgraph - Resolve quiz configuration graphs",
    )
    parser.add_argument(
        "graph",
        type=Path,
        help="Path to the graph file (.json, .yaml or .yml)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.toml (optional, uses defaults if not provided)",
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="Seed to replay (overrides config, empty = fresh seed)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output directory (default: config's output_dir). "
        "Files are written to <output>/<seed>/",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the graph before resolving and stop on errors",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Also write a human-readable summary.txt",
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=0,
        help="Replay the router over N seeds and print the route distribution",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    # Load or create config
    if args.config:
        try:
            config = load_config(args.config)
            if args.verbose:
                print(f"Loaded config from {args.config}")
        except FileNotFoundError:
            print(f"Error: Config file not found: {args.config}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(f"Error: Invalid config: {e}", file=sys.stderr)
            return 1
    else:
        config = Config()

    if args.seed is not None:
        config.seed = args.seed

    output_dir = args.output if args.output is not None else Path(config.paths.output_dir)

    try:
        graph = load_graph(args.graph)
    except FileNotFoundError:
        print(f"Error: Graph file not found: {args.graph}", file=sys.stderr)
        return 1
    except GraphFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.verbose:
        print(f"Loaded {len(graph.nodes)} nodes and {len(graph.edges)} edges")

    registry = default_registry()

    if args.runs > 0:
        prefix = config.seed or "run"
        stats = route_distribution(graph, (f"{prefix}-{i}" for i in range(args.runs)))
        print(report_distribution(stats))
        return 0

    if args.validate or config.resolution.validate_first:
        validation = validate_graph(graph, registry)
        for warning in validation.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
        if not validation.is_valid:
            print("Error: Graph validation failed:", file=sys.stderr)
            for error in validation.errors:
                print(f"  - {error}", file=sys.stderr)
            return 1

    try:
        result = simulate_quiz_configuration(
            graph,
            registry,
            config.seed or None,
            fallback_song_count=config.resolution.fallback_song_count,
        )
    except ResolutionError as e:
        print(f"Error: Resolution failed: {e}", file=sys.stderr)
        return 1

    if args.verbose or not config.seed:
        print(f"Resolved configuration with seed {result.seed}")
        if result.route is not None:
            print(f"  Route: {result.route.name or result.route.id}")
        print(f"  Songs: {result.inherited_song_count}")
        print(f"  Filters: {len(result.filters)}")
        print(f"  Sources: {len(result.source_lists)}")

    # Create output directory: <output>/<seed>/
    seed_dir = output_dir / result.seed
    seed_dir.mkdir(parents=True, exist_ok=True)

    json_path = seed_dir / "configuration.json"
    export_json(result, json_path)
    print(f"Written: {json_path}")

    if args.summary:
        summary_path = seed_dir / "summary.txt"
        export_summary(result, summary_path, registry)
        print(f"Written: {summary_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
