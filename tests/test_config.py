"""Tests for config parsing."""

import pytest

from quizgraph.config import (
    Config,
    ResolutionConfig,
    load_config,
)


def test_config_defaults():
    """Config.from_dict with empty dict uses all defaults."""
    config = Config.from_dict({})
    assert config.seed == ""
    assert config.resolution.fallback_song_count == 20
    assert config.resolution.validate_first is False
    assert config.paths.output_dir == "./output"


def test_config_from_toml(tmp_path):
    """Config.from_toml parses TOML file correctly."""
    config_file = tmp_path / "config.toml"
    config_file.write_text("""
[run]
seed = "abc"

[resolution]
fallback_song_count = 40
validate_first = true

[paths]
output_dir = "./custom_output"
""")
    config = Config.from_toml(config_file)
    assert config.seed == "abc"
    assert config.resolution.fallback_song_count == 40
    assert config.resolution.validate_first is True
    assert config.paths.output_dir == "./custom_output"


def test_numeric_seed_becomes_string(tmp_path):
    """Numeric seeds in TOML are kept as their string form."""
    config_file = tmp_path / "config.toml"
    config_file.write_text("[run]\nseed = 42\n")
    assert load_config(config_file).seed == "42"


def test_seed_setter():
    """Overriding the seed updates the run section."""
    config = Config()
    config.seed = "override"
    assert config.run.seed == "override"


@pytest.mark.parametrize("count", [0, 201, -3])
def test_fallback_song_count_bounds(count):
    """fallback_song_count must be within 1-200."""
    with pytest.raises(ValueError, match="fallback_song_count"):
        ResolutionConfig(fallback_song_count=count)


def test_load_config_missing_file(tmp_path):
    """load_config raises for a missing file."""
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.toml")
