"""Configuration parsing for quizgraph."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Use tomllib (Python 3.11+) with fallback to tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError as e:
        raise ImportError(
            "tomli is required for Python < 3.11. Install with: pip install tomli"
        ) from e

from quizgraph.lobby import DEFAULT_SONG_COUNT, MAX_SONGS, MIN_SONGS


@dataclass
class RunConfig:
    """Run configuration."""

    seed: str = ""  # empty = fresh seed every run


@dataclass
class ResolutionConfig:
    """Resolution behaviour configuration."""

    fallback_song_count: int = DEFAULT_SONG_COUNT
    validate_first: bool = False

    def __post_init__(self) -> None:
        """Validate resolution configuration."""
        if not MIN_SONGS <= self.fallback_song_count <= MAX_SONGS:
            raise ValueError(
                f"fallback_song_count must be {MIN_SONGS}-{MAX_SONGS}, "
                f"got {self.fallback_song_count}"
            )


@dataclass
class PathsConfig:
    """File paths configuration."""

    output_dir: str = "./output"


@dataclass
class Config:
    """Main configuration container."""

    run: RunConfig = field(default_factory=RunConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)

    @property
    def seed(self) -> str:
        return self.run.seed

    @seed.setter
    def seed(self, value: str) -> None:
        self.run.seed = value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create Config from a dictionary (e.g., parsed TOML)."""
        run_section = data.get("run", {})
        resolution_section = data.get("resolution", {})
        paths_section = data.get("paths", {})

        return cls(
            run=RunConfig(seed=str(run_section.get("seed", ""))),
            resolution=ResolutionConfig(
                fallback_song_count=resolution_section.get(
                    "fallback_song_count", DEFAULT_SONG_COUNT
                ),
                validate_first=resolution_section.get("validate_first", False),
            ),
            paths=PathsConfig(
                output_dir=paths_section.get("output_dir", "./output"),
            ),
        )

    @classmethod
    def from_toml(cls, path: str | Path) -> Config:
        """Load configuration from a TOML file."""
        path = Path(path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        return cls.from_dict(data)


def load_config(path: str | Path) -> Config:
    """Load configuration from a TOML file.

    This is a convenience function that wraps Config.from_toml().

    Args:
        path: Path to the TOML configuration file.

    Returns:
        Parsed Config object.
    """
    return Config.from_toml(path)
