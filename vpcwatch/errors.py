"""
Exception types raised by vpcwatch.
"""


class VpcWatchError(Exception):
    """Base class for vpcwatch errors."""


class InvalidNetworkIdError(VpcWatchError, ValueError):
    """Raised when a VPC ID is missing or blank."""


class FetchError(VpcWatchError):
    """Raised when an upstream AWS listing call fails."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
