"""Custom Exceptions for the LyricSync library."""

class LyricSyncError(Exception):
    """Base class for exceptions in this package."""
    pass

class ConfigurationError(LyricSyncError):
    """Exception raised for errors in configuration loading or validation."""
    pass

class ParseOptionsError(LyricSyncError):
    """Exception raised when parse options carry values of the wrong type."""
    pass

class CacheError(LyricSyncError):
    """Exception raised when a cache is constructed with invalid settings."""
    pass

class FileSystemError(LyricSyncError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
