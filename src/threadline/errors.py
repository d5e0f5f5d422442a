"""Exceptions raised by threadline"""

from typing import Optional


class ThreadlineError(Exception):
    """Base class for threadline errors"""

    pass


class OutOfRangeError(ThreadlineError, ValueError):
    """Raised when a line/column span falls outside the document"""

    pass


class RequestFailedError(ThreadlineError):
    """Raised when the review endpoint fails or returns a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(ThreadlineError):
    """Base class for config file errors"""

    pass


class ConfigNotFoundError(ConfigError):
    """Raised when there is no config file"""

    pass


class ConfigInvalidError(ConfigError):
    """Raised when the config file cannot be parsed or validated"""

    pass
