"""
Unified configuration for valuation runs.

Single JSON config file defines:
- Price data provider (Yahoo Finance or a local CSV/Parquet export)
- Return aggregation policy
- Monte Carlo defaults (paths, shards, workers)
- Logging

Example usage:
    config = ModusConfig.from_json('configs/local.json')
    config.setup_logging()
    fetcher = config.create_price_fetcher()
    mc_engine = config.create_monte_carlo_engine()
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from pathlib import Path
from typing import Dict, Any, Optional

from src.data.base import IPriceFetcher
from src.options.monte_carlo import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_N_SHARDS,
    DEFAULT_PATH_COUNT,
    MonteCarloEngine,
)
from src.returns.aggregator import PortfolioAggregator

logger = logging.getLogger(__name__)


# Default configuration values
DEFAULT_CONFIG = {
    "config_version": "1.0",
    "data_provider": {
        "type": "Yahoo",
        "params": {
            "rate_limit_delay": 0.2
        }
    },
    "returns": {
        "strict_calendar": True
    },
    "monte_carlo": {
        "path_count": DEFAULT_PATH_COUNT,
        "n_shards": DEFAULT_N_SHARDS,
        "max_workers": 1,
        "chunk_size": DEFAULT_CHUNK_SIZE
    },
    "logging": {
        "level": "INFO",
        "log_file": None,
        "console_output": True
    }
}

VALID_PROVIDERS = ['Yahoo', 'File']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_HANDLER_NAME = 'modus.console'
FILE_HANDLER_NAME = 'modus.file'


@dataclass
class ModusConfig:
    """
    Configuration for a valuation run.

    Every section is optional; missing keys are filled from DEFAULT_CONFIG.

    Example:
        >>> config = ModusConfig(data_provider={"type": "File", "params": {"path": "closes.csv"}})
        >>> config.monte_carlo['path_count']
        10000
    """

    # Meta
    config_version: str = "1.0"
    config_name: str = "default"
    description: str = ""

    data_provider: Dict[str, Any] = field(default_factory=dict)
    returns: Dict[str, Any] = field(default_factory=dict)
    monte_carlo: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Apply defaults and validate configuration"""
        self._apply_defaults()
        self._validate()

    def _apply_defaults(self):
        """Merge user config with defaults"""
        for section, defaults in DEFAULT_CONFIG.items():
            if isinstance(defaults, dict):
                current = getattr(self, section) or {}
                setattr(self, section, self._deep_merge(defaults, current))

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries"""
        result = dict(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ModusConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _validate(self):
        """Validate configuration"""
        errors = []

        provider = self.data_provider.get('type')
        if provider not in VALID_PROVIDERS:
            errors.append(f"data_provider.type must be one of {VALID_PROVIDERS}")
        if provider == 'File' and 'path' not in self.data_provider.get('params', {}):
            errors.append("data_provider.params.path is required for File provider")

        if not isinstance(self.returns.get('strict_calendar'), bool):
            errors.append("returns.strict_calendar must be true or false")

        for key in ('path_count', 'n_shards', 'max_workers', 'chunk_size'):
            value = self.monte_carlo.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                errors.append(f"monte_carlo.{key} must be a positive integer")

        if self.logging.get('level') not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {VALID_LOG_LEVELS}")

        if errors:
            raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    @classmethod
    def from_json(cls, json_path: str) -> 'ModusConfig':
        """
        Load config from JSON file.

        Args:
            json_path: Path to JSON config file

        Returns:
            ModusConfig instance with defaults applied
        """
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"Config file not found: {json_path}")

        logger.info(f"Loading config from {json_path}")

        with open(json_path) as f:
            data = json.load(f)

        return cls(**data)

    def to_json(self, json_path: str):
        """Save config to JSON file."""
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        with open(json_path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

        logger.info(f"Saved config to {json_path}")

    def create_price_fetcher(self) -> IPriceFetcher:
        """Create the configured price source"""
        provider_type = self.data_provider['type']
        params = self.data_provider['params']

        if provider_type == 'File':
            from src.data.price_db import PriceDB
            return PriceDB.load(params['path'])

        # yfinance is only imported when the network provider is used
        from src.data.yahoo_fetcher import YahooPriceFetcher
        return YahooPriceFetcher(rate_limit_delay=params.get('rate_limit_delay', 0.2))

    def create_aggregator(self) -> PortfolioAggregator:
        """Create portfolio aggregator from config"""
        return PortfolioAggregator(strict_calendar=self.returns['strict_calendar'])

    def create_monte_carlo_engine(self) -> MonteCarloEngine:
        """Create Monte Carlo engine from config"""
        params = self.monte_carlo
        return MonteCarloEngine(
            path_count=params['path_count'],
            n_shards=params['n_shards'],
            max_workers=params['max_workers'],
            chunk_size=params['chunk_size']
        )

    def setup_logging(self):
        """
        Setup logging based on config.

        Safe to call repeatedly: handlers installed by an earlier call are
        replaced, not stacked.
        """
        level = getattr(logging, self.logging['level'])

        # Configure root logger
        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[])
        root = logging.getLogger()
        root.setLevel(level)
        for handler in root.handlers[:]:
            if handler.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME):
                root.removeHandler(handler)
                handler.close()

        formatter = logging.Formatter(LOG_FORMAT)

        if self.logging['console_output']:
            console = logging.StreamHandler()
            console.set_name(CONSOLE_HANDLER_NAME)
            console.setLevel(level)
            console.setFormatter(formatter)
            root.addHandler(console)

        if self.logging['log_file']:
            log_path = Path(self.logging['log_file'].format(
                config_name=self.config_name,
                timestamp=date.today().isoformat()
            ))
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
            file_handler.set_name(FILE_HANDLER_NAME)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            logger.info(f"Logging to file: {log_path}")
