"""Tests for configuration loading."""

import json

import pytest
import yaml

from contextkit.compression import CompressionStrategy
from contextkit.config import ContextConfig, FragmentConfig, Settings, find_config_file


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run from an empty directory with an empty home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in (
        "CONTEXTKIT_MAX_TOKENS",
        "CONTEXTKIT_COMPRESSION_THRESHOLD",
        "CONTEXTKIT_STRATEGY",
        "CONTEXTKIT_KEEP_RECENT",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_context_config_defaults():
    """Test context config with defaults."""
    config = ContextConfig()
    assert config.max_tokens == 200000
    assert config.default_target_tokens == 120000
    assert config.default_compression_strategy == CompressionStrategy.SMART


def test_context_config_strategy_from_string():
    """Test that strategies can be given by name."""
    config = ContextConfig(default_compression_strategy="truncate")
    assert config.default_compression_strategy == CompressionStrategy.TRUNCATE


def test_context_config_invalid_strategy():
    """Test that unknown strategies raise an error."""
    with pytest.raises(ValueError):
        ContextConfig(default_compression_strategy="shrink")


@pytest.mark.parametrize(
    "field,value,message",
    [
        ("max_tokens", 0, "must be positive"),
        ("tool_output_reserve_ratio", -0.1, "between 0 and 1"),
        ("compression_threshold", 1.2, "between 0 and 1"),
        ("keep_recent_messages", -1, "cannot be negative"),
        ("tokens_per_char", 0, "must be positive"),
    ],
)
def test_context_config_validation(field, value, message):
    """Test range validation."""
    with pytest.raises(ValueError, match=message):
        ContextConfig(**{field: value})


def test_fragment_config_validation():
    """Test that fragment limits must be positive."""
    assert FragmentConfig().max_fragments == 3
    with pytest.raises(ValueError, match="must be positive"):
        FragmentConfig(max_lines_per_fragment=0)


def test_load_defaults_without_file(isolated):
    """Test loading when no config file exists."""
    assert find_config_file() is None
    settings = Settings.load()
    assert settings.context.max_tokens == 200000
    assert settings.fragments.max_lines_per_fragment == 50


def test_load_config_from_yaml(isolated):
    """Test loading config from a YAML file."""
    config_dir = isolated / ".contextkit"
    config_dir.mkdir()
    with open(config_dir / "config.yaml", "w") as f:
        yaml.dump(
            {
                "context": {"max_tokens": 32000, "default_compression_strategy": "summarize"},
                "fragments": {"max_fragments": 5},
            },
            f,
        )

    settings = Settings.load()
    assert settings.context.max_tokens == 32000
    assert settings.context.default_compression_strategy == CompressionStrategy.SUMMARIZE
    assert settings.fragments.max_fragments == 5


def test_json_preferred_over_yaml(isolated):
    """Test resolution order between JSON and YAML."""
    config_dir = isolated / ".contextkit"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("context:\n  max_tokens: 1000\n")
    (config_dir / "config.json").write_text(json.dumps({"context": {"max_tokens": 2000}}))

    assert find_config_file().name == "config.json"
    assert Settings.load().context.max_tokens == 2000


def test_user_config_file(isolated):
    """Test fallback to the user config directory."""
    user_dir = isolated / "home" / ".config" / "contextkit"
    user_dir.mkdir(parents=True)
    (user_dir / "config.yml").write_text("context:\n  keep_recent_messages: 4\n")

    assert Settings.load().context.keep_recent_messages == 4


def test_explicit_path(isolated):
    """Test loading an explicit path given as a string."""
    path = isolated / "custom.yaml"
    path.write_text("context:\n  tokens_per_char: 0.5\n")
    assert Settings.load(str(path)).context.tokens_per_char == 0.5


def test_config_env_override(isolated, monkeypatch):
    """Test that environment variables override the config file."""
    config_dir = isolated / ".contextkit"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("context:\n  max_tokens: 1000\n  keep_recent_messages: 4\n")
    monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", "5000")
    monkeypatch.setenv("CONTEXTKIT_STRATEGY", "remove_old")

    settings = Settings.load()
    assert settings.context.max_tokens == 5000
    assert settings.context.keep_recent_messages == 4
    assert settings.context.default_compression_strategy == CompressionStrategy.REMOVE_OLD


def test_invalid_file_values(isolated):
    """Test that invalid values in a file are rejected."""
    path = isolated / "bad.yaml"
    path.write_text("context:\n  compression_threshold: 3\n")
    with pytest.raises(ValueError, match="between 0 and 1"):
        Settings.load(path)
