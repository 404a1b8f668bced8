# File: src/smartpark/config.py
"""
Application configuration and logging setup

Configuration sources, lowest precedence first:
1. Defaults declared on AppConfig
2. A JSON file (AppConfig.from_file)
3. SMARTPARK_* environment variables (AppConfig.from_env)
4. Command-line flags (applied by smartpark.main)
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import json
import logging
import os
import sys


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for the SmartPark application"""
    APP_NAME = "SmartPark - Parking Management System"

    layout_path: Optional[str] = None
    audit_file: Optional[str] = "tokens.txt"
    audit_db_url: Optional[str] = None
    redis_url: Optional[str] = None
    redis_channel: str = "smartpark.events"
    log_level: str = "INFO"
    log_dir: str = "logs"

    ENV_PREFIX = "SMARTPARK_"
    OPTIONAL_BACKENDS = ("layout_path", "audit_file", "audit_db_url", "redis_url")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional['AppConfig'] = None) -> 'AppConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return replace(base or cls(), **dict(data))

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional['AppConfig'] = None) -> 'AppConfig':
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return cls.from_dict(data, base)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional['AppConfig'] = None) -> 'AppConfig':
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            value = environ.get(cls.ENV_PREFIX + f.name.upper())
            if value is None:
                continue
            if value:
                overrides[f.name] = value
            elif f.name in cls.OPTIONAL_BACKENDS:
                # an empty variable switches an optional backend off
                overrides[f.name] = None
            else:
                raise ValueError(f"{cls.ENV_PREFIX}{f.name.upper()} cannot be empty")
        return replace(base or cls(), **overrides)

    def with_overrides(self, **overrides: Any) -> 'AppConfig':
        """Apply non-None overrides (e.g. parsed command-line flags)"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def setup_logging(config: AppConfig) -> logging.Logger:
    """Setup application logging configuration"""
    log_dir = config.log_dir
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'smartpark.log')),
            logging.StreamHandler(sys.stderr)
        ]
    )
    return logging.getLogger("smartpark")
