"""
Configuration for the diffgate command line.

Supports:
- YAML file configuration (diffgate.yaml / .diffgate.yaml)
- Environment variable overrides
- Command-line overrides applied by the CLI
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from diffgate.severity import Severity

CONFIG_FILE_NAMES = ("diffgate.yaml", ".diffgate.yaml")
OUTPUT_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GateConfig:
    """
    Settings for a diffgate run.

    Defaults:
    - policies: empty (use the built-in default policy)
    - fail_on: WARN (exit non-zero on warn and block)
    - output_format: text
    - log_level: WARNING
    """

    # Built-in policy names or policy file paths, merged in order
    policies: list[str] = field(default_factory=list)

    # Lowest decision that produces a non-zero exit code
    fail_on: Severity = Severity.WARN

    output_format: str = "text"
    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.fail_on is Severity.ALLOW:
            raise ValueError("fail_on must be 'warn' or 'block', got 'allow'")

        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}")

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def from_env(cls, base: GateConfig | None = None) -> GateConfig:
        """
        Apply environment variables on top of ``base`` (or the defaults).

        Environment variables:
            DIFFGATE_POLICY: Policy names/paths, separated by os.pathsep
            DIFFGATE_FAIL_ON: warn or block
            DIFFGATE_FORMAT: text or json
            DIFFGATE_LOG_LEVEL: Logging level name
        """
        config = base or cls()
        overrides: dict[str, Any] = {}

        policy = os.getenv("DIFFGATE_POLICY")
        if policy:
            overrides["policies"] = [p for p in policy.split(os.pathsep) if p]

        fail_on = os.getenv("DIFFGATE_FAIL_ON")
        if fail_on:
            overrides["fail_on"] = Severity.from_string(fail_on)

        output_format = os.getenv("DIFFGATE_FORMAT")
        if output_format:
            overrides["output_format"] = output_format.lower()

        log_level = os.getenv("DIFFGATE_LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level

        return replace(config, **overrides) if overrides else config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GateConfig:
        """Create configuration from dictionary (e.g., YAML)."""
        policies = data.get("policies", data.get("policy", []))
        if isinstance(policies, str):
            policies = [policies]

        return cls(
            policies=[str(p) for p in policies],
            fail_on=Severity.from_string(data.get("fail_on", "warn")),
            output_format=data.get("output_format", "text"),
            log_level=data.get("log_level", "WARNING"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> GateConfig:
        """Load configuration from a YAML file.

        Relative policy paths are resolved against the file's directory.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid config format in {path}")

        config = cls.from_dict(data)
        config.policies = [_resolve_policy(p, path.parent) for p in config.policies]
        return config

    @classmethod
    def discover(cls, start: Path | None = None) -> Path | None:
        """Find a config file in ``start`` (default cwd), then the home directory."""
        directory = start or Path.cwd()
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
        home_config = Path.home() / ".diffgate.yaml"
        if home_config.is_file():
            return home_config
        return None

    @classmethod
    def load(cls, path: Path | None = None) -> GateConfig:
        """Load file configuration (explicit or discovered) plus env overrides."""
        path = path or cls.discover()
        config = cls.from_yaml(path) if path else cls()
        return cls.from_env(config)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "policies": list(self.policies),
            "fail_on": self.fail_on.value,
            "output_format": self.output_format,
            "log_level": self.log_level,
        }


def _resolve_policy(name_or_path: str, base_dir: Path) -> str:
    # Built-in names have no path separator or suffix
    if "/" not in name_or_path and "." not in name_or_path:
        return name_or_path
    path = Path(name_or_path).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)

