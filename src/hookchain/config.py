"""Configuration management for hookchain."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .chain.base import ExecutionStrategy


@dataclass
class SchedulerConfig:
    """
    Defaults applied to chains created by the command line.

    A manifest's own strategy and arity take precedence.
    """

    strategy: ExecutionStrategy = ExecutionStrategy.BATCH
    arity: int | None = None
    enable_metrics: bool = False

    def __post_init__(self) -> None:
        self.strategy = ExecutionStrategy(self.strategy)
        if self.arity is not None and self.arity < 0:
            raise ValueError(f"arity must be non-negative, got {self.arity}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"  # "console" or "json"
    file: Path | None = None
    filter: str | None = None


@dataclass
class HookchainConfig:
    """
    Complete configuration for hookchain.

    This combines all configuration sections.
    """

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "HookchainConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            HookchainConfig instance

        Raises:
            ValueError: If the file is not valid YAML or not a mapping
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        scheduler = SchedulerConfig(**(data.get("scheduler") or {}))

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(scheduler=scheduler, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "scheduler": {
                k: v.value if isinstance(v, Enum) else v
                for k, v in self.scheduler.__dict__.items()
            },
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "HookchainConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            HOOKCHAIN_STRATEGY: Default strategy (default: batch)
            HOOKCHAIN_ARITY: Default callback arity (default: unchecked)
            HOOKCHAIN_METRICS: Enable metrics collection (default: false)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: "console" or "json" (default: console)
            LOG_FILE: Optional log file path

        Returns:
            HookchainConfig instance

        Raises:
            ValueError: If HOOKCHAIN_STRATEGY or HOOKCHAIN_ARITY is invalid
        """
        arity_str = os.environ.get("HOOKCHAIN_ARITY", "").strip()
        try:
            arity = int(arity_str) if arity_str else None
        except ValueError as e:
            raise ValueError(f"HOOKCHAIN_ARITY must be an integer, got {arity_str!r}") from e

        metrics_str = os.environ.get("HOOKCHAIN_METRICS", "false").lower()

        scheduler = SchedulerConfig(
            strategy=ExecutionStrategy(os.environ.get("HOOKCHAIN_STRATEGY", "batch").lower()),
            arity=arity,
            enable_metrics=metrics_str in ("true", "1", "yes", "on"),
        )

        log_file = os.environ.get("LOG_FILE")
        logging = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
            file=Path(log_file) if log_file else None,
        )

        return cls(scheduler=scheduler, logging=logging)


def load_config(config_file: Path | None = None) -> HookchainConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        HookchainConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return HookchainConfig.from_file(config_file)
    return HookchainConfig.from_env()
