# journal/config.py - Configuration and constants for the trade journal
"""
Configuration module for the trade journal.
Handles environment variables, the optional RiskRules.yaml file, storage paths
and logging setup.
"""

import os
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# .env lives in the project root (one level up from journal/)
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

VALID_DB_PROVIDERS = ('sqlite', 'supabase', 'none')

DEFAULT_TRAINING_PREFIX = 'TR'
DEFAULT_RECONCILIATION_TOLERANCE = Decimal('0.50')
RULES_FILE_NAME = 'RiskRules.yaml'


class JournalConfig:
    """
    [CLASS SUMMARY]
    Purpose: Centralized configuration for ingest, storage and analytics
    Responsibilities:
        - Resolve data and Trade_Review paths
        - Load the training account prefix and reconciliation tolerance
        - Select the persistence provider
        - Provide configured loggers
    Precedence: config_override > environment > RiskRules.yaml > defaults
    Usage:
        config = JournalConfig()
        prefix = config.training_account_prefix
    """

    def __init__(self, config_override: Optional[Dict[str, Any]] = None):
        """
        [FUNCTION SUMMARY]
        Purpose: Initialize configuration with environment variables and optional overrides
        Parameters:
            - config_override (dict, optional): Override settings, mainly for testing
        Example: JournalConfig({'db_provider': 'none'}) -> config without a database
        """
        self.config_override = config_override or {}

        self._load_paths()
        self.rules = self._load_rules_file()
        self._load_trading_config()
        self._load_database_config()
        self._setup_logging()

    def _setting(self, key: str, env_var: Optional[str], rules_value: Any, default: Any) -> Any:
        if key in self.config_override:
            return self.config_override[key]
        if env_var and os.getenv(env_var):
            return os.getenv(env_var)
        if rules_value not in (None, ''):
            return rules_value
        return default

    def _load_paths(self):
        data_dir = self.config_override.get('data_dir', os.getenv('JOURNAL_DATA_DIR'))
        self.data_dir = Path(data_dir) if data_dir else Path(__file__).parent.parent / 'data'
        self.trade_log_dir = self.data_dir / 'TradeLog'
        self.rules_path = Path(self.config_override.get('rules_path', self.data_dir / RULES_FILE_NAME))

    def _load_rules_file(self) -> Dict[str, Any]:
        """
        [FUNCTION SUMMARY]
        Purpose: Read RiskRules.yaml if present
        Returns: dict - Parsed rules, empty when the file does not exist
        Raises: ConfigurationError if the file is not valid YAML
        """
        if not self.rules_path.exists():
            return {}

        try:
            with open(self.rules_path, 'r', encoding='utf-8') as f:
                rules = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid rules file: {e}", setting=str(self.rules_path))

        if not isinstance(rules, dict):
            raise ConfigurationError("Rules file must contain a mapping", setting=str(self.rules_path))
        return rules

    def _load_trading_config(self):
        section = self.rules.get('config') or {}

        review_path = self._setting('trade_review_path', 'TRADE_REVIEW_PATH',
                                    section.get('trade_review_path'), Path.home() / 'Trade_Review')
        self.trade_review_path = Path(review_path)

        self.training_account_prefix = str(self._setting(
            'training_account_prefix', 'TRAINING_ACCOUNT_PREFIX',
            section.get('training_account_prefix'), DEFAULT_TRAINING_PREFIX))
        if not self.training_account_prefix:
            raise ConfigurationError("Training account prefix cannot be empty",
                                     setting='training_account_prefix')

        tolerance = self._setting('reconciliation_tolerance', None,
                                  section.get('reconciliation_tolerance'),
                                  DEFAULT_RECONCILIATION_TOLERANCE)
        self.reconciliation_tolerance = Decimal(str(tolerance))

    def _load_database_config(self):
        section = self.rules.get('database') or {}

        self.db_provider = str(self._setting('db_provider', 'JOURNAL_DB_PROVIDER',
                                             section.get('provider'), 'sqlite')).lower()
        if self.db_provider not in VALID_DB_PROVIDERS:
            raise ConfigurationError(
                f"Unknown database provider '{self.db_provider}'. "
                f"Expected one of: {', '.join(VALID_DB_PROVIDERS)}",
                setting='db_provider'
            )

        sqlite_path = self._setting('sqlite_path', 'JOURNAL_SQLITE_PATH',
                                    section.get('sqlite_path'), None)
        if sqlite_path is None:
            self.sqlite_path = self.data_dir / 'trades.db'
        else:
            # Relative paths in the rules file are relative to the project root
            sqlite_path = Path(sqlite_path)
            self.sqlite_path = sqlite_path if sqlite_path.is_absolute() else self.data_dir.parent / sqlite_path

        self.supabase_url = self.config_override.get('supabase_url', os.getenv('SUPABASE_URL'))
        self.supabase_key = self.config_override.get('supabase_key', os.getenv('SUPABASE_KEY'))

    def _setup_logging(self):
        section = self.rules.get('logging') or {}

        log_level = self._setting('log_level', 'JOURNAL_LOG_LEVEL', section.get('level'), 'INFO')
        level = getattr(logging, str(log_level).upper(), None)
        if not isinstance(level, int):
            raise ConfigurationError(f"Invalid log level '{log_level}'", setting='log_level')

        self.logger_config = {
            'level': level,
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        }

        # Naming a log file switches the rotating file handler on
        log_file = self._setting('log_file', 'JOURNAL_LOG_FILE', section.get('file'), None)
        self.enable_file_logging = bool(self.config_override.get('enable_file_logging', log_file is not None))
        self.log_file = Path(log_file) if log_file else self.data_dir / 'logs' / 'journal.log'
        self.log_dir = self.log_file.parent
        self.max_log_size = 10 * 1024 * 1024  # 10 MB
        self.log_backup_count = 5

    def get_logger(self, name: str, level: Optional[int] = None) -> logging.Logger:
        """
        [FUNCTION SUMMARY]
        Purpose: Configure a logger with console and optional rotating file output
        Parameters:
            - name (str): Logger name; the CLI configures the 'journal' package logger
            - level (int, optional): Overrides the configured level (e.g. --verbose)
        Returns: logging.Logger - Configured logger instance
        Example: logger = config.get_logger('journal', level=logging.DEBUG)
        """
        level = level if level is not None else self.logger_config['level']
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(self.logger_config['format'],
                                      datefmt=self.logger_config['datefmt'])

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if self.enable_file_logging:
            from logging.handlers import RotatingFileHandler
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=self.max_log_size,
                backupCount=self.log_backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    def to_dict(self) -> Dict[str, Any]:
        """
        [FUNCTION SUMMARY]
        Purpose: Export configuration as dictionary for debugging/inspection
        Returns: dict - All configuration values except credentials
        """
        return {
            'paths': {
                'data_dir': str(self.data_dir),
                'trade_log_dir': str(self.trade_log_dir),
                'trade_review_path': str(self.trade_review_path),
                'rules_path': str(self.rules_path),
            },
            'trading': {
                'training_account_prefix': self.training_account_prefix,
                'reconciliation_tolerance': str(self.reconciliation_tolerance),
            },
            'database': {
                'provider': self.db_provider,
                'sqlite_path': str(self.sqlite_path),
                'supabase_configured': bool(self.supabase_url and self.supabase_key),
            },
            'logging': {
                'level': logging.getLevelName(self.logger_config['level']),
                'log_file': str(self.log_file) if self.enable_file_logging else None,
            },
        }


_config_instance = None


def get_config(reset: bool = False, **overrides) -> JournalConfig:
    """
    [FUNCTION SUMMARY]
    Purpose: Get or create singleton configuration instance
    Parameters:
        - reset (bool): Force create new instance
        - **overrides: Configuration overrides
    Returns: JournalConfig - Configuration instance
    Example: config = get_config(db_provider='none')
    """
    global _config_instance

    if _config_instance is None or reset or overrides:
        _config_instance = JournalConfig(overrides)

    return _config_instance
