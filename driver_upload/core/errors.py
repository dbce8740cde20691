"""Custom exceptions used across driver-upload."""


class DriverUploadError(Exception):
    """Base error for the application."""


class ConfigError(DriverUploadError):
    """Configuration related error."""


class PublishError(DriverUploadError):
    """Raised when an artifact upload fails."""


class InspectionError(DriverUploadError):
    """Raised when kernel module inspection fails."""
