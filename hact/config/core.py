"""Top-level configuration combining model, solver and logging settings."""

import logging
from pathlib import Path
import sys
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
import yaml

from .models import HuggettConfig, TwoAssetConfig
from .reporting import LoggingConfig
from .solver import HJBSolverConfig, StationaryConfig
from .utils import deep_merge

ModelConfig = Union[HuggettConfig, TwoAssetConfig]


class Config(BaseModel):
    """Complete configuration of one stationary solve.

    The ``model`` section is a tagged union selected by its ``model_type``
    key, so a YAML file reads::

        model:
          model_type: huggett
          risk_aversion: 2.0
          interest_rate: 0.03
        solver:
          time_step: 1000.0

    Attributes:
        model: Household model parameters.
        solver: HJB solver settings.
        stationary: Stationary-distribution settings.
        logging: Logging settings.
    """

    model_config = ConfigDict(frozen=True)

    model: ModelConfig = Field(default_factory=HuggettConfig, discriminator="model_type")
    solver: HJBSolverConfig = Field(default_factory=HJBSolverConfig)
    stationary: StationaryConfig = Field(default_factory=StationaryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Config object with validated parameters.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            InvalidModelError: If the model is malformed.
            ValidationError: If a field has the wrong type or range.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    @classmethod
    def from_dict(cls, data: dict, base_config: Optional["Config"] = None) -> "Config":
        """Create config from dictionary, optionally overriding base config.

        Args:
            data: Dictionary with configuration parameters.
            base_config: Optional base configuration to override.

        Returns:
            Config object with validated parameters.
        """
        if base_config is None:
            return cls(**data)

        merged = deep_merge(base_config.model_dump(mode="json"), data)
        return cls(**merged)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path where to save the configuration.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)

    def setup_logging(self) -> None:
        """Configure the ``hact`` logger from the logging settings.

        Replaces any handlers previously attached to the package logger with
        a console handler and/or a file handler.
        """
        if not self.logging.enabled:
            return

        logger = logging.getLogger("hact")
        logger.setLevel(getattr(logging, self.logging.level))
        logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
