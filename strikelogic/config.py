"""
Engine configuration system.

Single JSON config file defines an analytics run:
- Pricing parameters (risk-free rate, IV solver settings)
- Payoff scan settings for the metrics analyzer
- Profit-matrix axes
- Output and logging options

Missing sections and keys fall back to DEFAULT_CONFIG.

Example usage:
    config = EngineConfig.from_json('configs/default.json')
    config.setup_logging()
    grid = calculate_profit_matrix(trade, 100.0, 0.30, **config.matrix_kwargs())
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    "config_version": "1.0",
    "pricing": {
        "risk_free_rate": 0.05,
        "min_time_to_expiry": 0.001,
        "iv_initial_guess": 0.5,
        "iv_tolerance": 1e-5,
        "iv_max_iterations": 100
    },
    "analysis": {
        "scan_multiplier": 3.0,
        "scan_steps": 1000
    },
    "matrix": {
        "time_slices": 8,
        "price_points": 21,
        "price_range": 0.20,
        "fallback_days": 30
    },
    "output": {
        "results_dir": "results",
        "trades_filename": "trades.json",
        "matrix_filename": "profit_matrix.csv"
    },
    "logging": {
        "level": "INFO",
        "log_file": None,
        "console_output": True
    }
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class EngineConfig:
    """
    Configuration for strategy generation and matrix simulation runs.

    Example:
        >>> config = EngineConfig.from_json('configs/default.json')
        >>> config.matrix['time_slices']
        8
    """

    # Meta
    config_version: str = "1.0"
    config_name: str = "default"
    description: str = ""

    pricing: Dict[str, Any] = field(default_factory=dict)
    analysis: Dict[str, Any] = field(default_factory=dict)
    matrix: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Apply defaults and validate configuration"""
        self._apply_defaults()
        self._validate()

    def _apply_defaults(self):
        """Merge user config with defaults"""
        for section, defaults in DEFAULT_CONFIG.items():
            if not isinstance(defaults, dict):
                continue
            current = getattr(self, section, {})
            if isinstance(current, dict):
                setattr(self, section, self._deep_merge(defaults.copy(), current))

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = EngineConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _validate(self):
        """Validate configuration"""
        errors = []

        # Pricing
        if not isinstance(self.pricing['risk_free_rate'], (int, float)):
            errors.append("pricing.risk_free_rate must be a number")
        for key in ['min_time_to_expiry', 'iv_initial_guess', 'iv_tolerance']:
            if not self.pricing[key] > 0:
                errors.append(f"pricing.{key} must be positive")
        if int(self.pricing['iv_max_iterations']) < 1:
            errors.append("pricing.iv_max_iterations must be at least 1")

        # Analysis
        if not self.analysis['scan_multiplier'] > 1:
            errors.append("analysis.scan_multiplier must be greater than 1")
        if int(self.analysis['scan_steps']) < 10:
            errors.append("analysis.scan_steps must be at least 10")

        # Matrix
        if int(self.matrix['time_slices']) < 1:
            errors.append("matrix.time_slices must be at least 1")
        if int(self.matrix['price_points']) < 2:
            errors.append("matrix.price_points must be at least 2")
        if not 0 < self.matrix['price_range'] < 1:
            errors.append("matrix.price_range must be between 0 and 1")
        if int(self.matrix['fallback_days']) < 1:
            errors.append("matrix.fallback_days must be at least 1")

        # Logging
        if str(self.logging['level']).upper() not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {VALID_LOG_LEVELS}")

        if errors:
            raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    @classmethod
    def from_json(cls, json_path: str) -> 'EngineConfig':
        """
        Load config from JSON file.

        Args:
            json_path: Path to JSON config file

        Returns:
            EngineConfig instance with defaults applied
        """
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"Config file not found: {json_path}")

        logger.info(f"Loading config from {json_path}")

        with open(json_path) as f:
            data = json.load(f)

        return cls(**data)

    def to_json(self, json_path: str):
        """Save config to JSON file"""
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        with open(json_path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

        logger.info(f"Saved config to {json_path}")

    def iv_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for the implied volatility solver"""
        return {
            'initial_guess': float(self.pricing['iv_initial_guess']),
            'tolerance': float(self.pricing['iv_tolerance']),
            'max_iterations': int(self.pricing['iv_max_iterations']),
        }

    def analysis_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for analyze_trade / compute_metrics"""
        return {
            'scan_multiplier': float(self.analysis['scan_multiplier']),
            'scan_steps': int(self.analysis['scan_steps']),
        }

    def matrix_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for calculate_profit_matrix"""
        return {
            'risk_free_rate': float(self.pricing['risk_free_rate']),
            'time_slices': int(self.matrix['time_slices']),
            'price_points': int(self.matrix['price_points']),
            'price_range': float(self.matrix['price_range']),
            'fallback_days': int(self.matrix['fallback_days']),
        }

    @property
    def output_dir(self) -> Path:
        """Get output directory for this config"""
        return Path(self.output['results_dir']) / self.config_name

    def setup_output_dir(self):
        """Create output directory structure"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Output directory: {self.output_dir}")

    def setup_logging(self, level: Optional[str] = None):
        """Setup logging based on config (``level`` overrides the configured one)"""
        level = getattr(logging, (level or self.logging['level']).upper())
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        root = logging.getLogger()
        root.setLevel(level)

        # Console handler
        if self.logging['console_output']:
            console = logging.StreamHandler()
            console.setLevel(level)
            console.setFormatter(formatter)
            root.addHandler(console)

        # File handler
        if self.logging['log_file']:
            log_path = Path(self.logging['log_file'].format(
                config_name=self.config_name,
                timestamp=date.today().isoformat()
            ))
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            logger.info(f"Logging to file: {log_path}")
