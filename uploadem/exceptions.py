"""
Exceptions raised by the uploader.
"""


class UploademError(Exception):
    """Base exception for all uploader errors."""
    pass


class DependencyMissing(UploademError):
    """Raised when a required module or external tool is not available."""
    pass


class ConfigError(UploademError):
    """Raised when the configuration file cannot be read."""
    pass


class ServiceError(UploademError):
    """Raised when a remote API answers without an ok status."""
    pass


class TransferCancelled(UploademError):
    """Raised from a request body when its transfer has been cancelled."""
    pass
