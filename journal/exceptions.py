# journal/exceptions.py - Custom exceptions for the trade journal
"""
Custom exception classes for the trade journal.
Row-level parse problems never raise; they are skipped by the parser.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


class JournalError(Exception):
    """
    [CLASS SUMMARY]
    Purpose: Base exception class for all journal errors
    Attributes:
        - message: Error description
        - details: Additional context dictionary
        - timestamp: When the error occurred (UTC)
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        """Format error message with details if available"""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(JournalError):
    """Raised when a setting is missing or has an invalid value"""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        details = kwargs
        if setting:
            details['setting'] = setting
        super().__init__(message, details)
        self.setting = setting


class SourceNotFoundError(JournalError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when a day's Trade_Review folder or trades CSV is missing
    Attributes:
        - path: The path that was expected to exist
    """

    def __init__(self, path: Union[str, Path], message: Optional[str] = None, **kwargs):
        if message is None:
            message = f"Source not found: {path}"
        details = kwargs
        details['path'] = str(path)
        super().__init__(message, details)
        self.path = Path(path)


class StorageError(JournalError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when the persistence backend cannot be reached or rejects a write
    Usage: Caught by the ingest pipeline so reconstruction output stays usable
    Attributes:
        - provider: Storage backend name ('sqlite', 'supabase')
        - operation: What was being attempted
    """

    def __init__(self, message: str, provider: Optional[str] = None,
                 operation: Optional[str] = None, **kwargs):
        details = kwargs
        if provider:
            details['provider'] = provider
        if operation:
            details['operation'] = operation
        super().__init__(message, details)
        self.provider = provider
        self.operation = operation


class TradeLogError(JournalError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when a YAML daily log exists but cannot be read
    Attributes:
        - path: The unreadable log file
    """

    def __init__(self, path: Union[str, Path], reason: str, **kwargs):
        details = kwargs
        details['path'] = str(path)
        super().__init__(f"Unreadable daily log {Path(path).name}: {reason}", details)
        self.path = Path(path)
        self.reason = reason
