"""Configuration loading and validation."""

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from contextkit.compression import CompressionStrategy


class ContextConfig(BaseModel):
    """Context window configuration."""

    max_tokens: int = Field(default=200000, description="Context window size in tokens")
    tool_output_reserve_ratio: float = Field(
        default=0.2, description="Share of the window reserved for tool output"
    )
    compression_threshold: float = Field(
        default=0.8, description="Usage ratio at which compression kicks in"
    )
    default_compression_strategy: CompressionStrategy = Field(
        default=CompressionStrategy.SMART, description="Strategy used by auto management"
    )
    keep_recent_messages: int = Field(default=10, description="Recent messages always kept")
    tokens_per_char: float = Field(default=0.25, description="Estimated tokens per non-CJK char")
    compression_target_ratio: float = Field(
        default=0.6, description="Default compression target as a share of max_tokens"
    )

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        """Validate window size."""
        if v <= 0:
            raise ValueError(f"max_tokens must be positive, got {v}")
        return v

    @field_validator("tool_output_reserve_ratio", "compression_threshold", "compression_target_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        """Validate a ratio lies in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Ratio must be between 0 and 1, got {v}")
        return v

    @field_validator("keep_recent_messages")
    @classmethod
    def validate_keep_recent(cls, v: int) -> int:
        """Validate recent message count."""
        if v < 0:
            raise ValueError(f"keep_recent_messages cannot be negative, got {v}")
        return v

    @field_validator("tokens_per_char")
    @classmethod
    def validate_tokens_per_char(cls, v: float) -> float:
        """Validate per-character token cost."""
        if v <= 0:
            raise ValueError(f"tokens_per_char must be positive, got {v}")
        return v

    @property
    def default_target_tokens(self) -> int:
        """Default compression target."""
        return int(self.max_tokens * self.compression_target_ratio)


class FragmentConfig(BaseModel):
    """File fragment extraction defaults."""

    max_fragments: int = Field(default=3, description="Fragments returned per file")
    max_lines_per_fragment: int = Field(default=50, description="Base window size in lines")

    @field_validator("max_fragments", "max_lines_per_fragment")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate positive counts."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v


class Settings(BaseSettings):
    """Top-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="CONTEXTKIT_",
        case_sensitive=False,
        extra="ignore",
    )

    context: ContextConfig = Field(default_factory=ContextConfig)
    fragments: FragmentConfig = Field(default_factory=FragmentConfig)

    @classmethod
    def load(cls, config_path: Optional[Path | str] = None) -> "Settings":
        """Load settings from file and environment."""
        if config_path is None:
            config_path = find_config_file()
        elif isinstance(config_path, str):
            config_path = Path(config_path)

        config_dict: dict[str, Any] = {}
        if config_path and config_path.exists():
            if config_path.suffix.lower() == ".json":
                with open(config_path, "r") as f:
                    config_dict = json.load(f) or {}
            else:
                # YAML for .yaml, .yml, or no extension
                with open(config_path, "r") as f:
                    config_dict = yaml.safe_load(f) or {}

        env_overrides: dict[str, dict[str, Any]] = {}
        if max_tokens := os.getenv("CONTEXTKIT_MAX_TOKENS"):
            env_overrides.setdefault("context", {})["max_tokens"] = max_tokens
        if threshold := os.getenv("CONTEXTKIT_COMPRESSION_THRESHOLD"):
            env_overrides.setdefault("context", {})["compression_threshold"] = threshold
        if strategy := os.getenv("CONTEXTKIT_STRATEGY"):
            env_overrides.setdefault("context", {})["default_compression_strategy"] = strategy
        if keep_recent := os.getenv("CONTEXTKIT_KEEP_RECENT"):
            env_overrides.setdefault("context", {})["keep_recent_messages"] = keep_recent

        for key, value in env_overrides.items():
            if isinstance(config_dict.get(key), dict):
                config_dict[key].update(value)
            else:
                config_dict[key] = value

        return cls(**config_dict)


def find_config_file() -> Optional[Path]:
    """Find config file in resolution order. Prefers JSON over YAML if both exist."""
    candidates = [
        Path(".contextkit"),
        Path.home() / ".config" / "contextkit",
    ]
    for base in candidates:
        for name in ("config.json", "config.yaml", "config.yml"):
            path = base / name
            if path.exists():
                return path
    return None
