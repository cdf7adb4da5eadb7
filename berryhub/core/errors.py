"""Domain-specific errors for berryhub."""

class BerryhubError(Exception):
    """Base error for berryhub."""

class NotFoundError(BerryhubError):
    """Raised when a driver, device, pairing, or command id is unknown."""

class InvalidRequestError(BerryhubError):
    """Raised when the caller's request or context is malformed."""

class PairingExpiredError(InvalidRequestError):
    """Raised when a tracked pairing session is finalized after its TTL."""

class UnacceptableError(BerryhubError):
    """Raised when the caller cannot accept the representation berryhub produces."""

class DriverFailureError(BerryhubError):
    """Raised when a driver plugin fails during enumeration, pairing, instantiation, or execution."""

class DriverTimeoutError(DriverFailureError):
    """Raised when a driver call does not finish before its deadline."""

class PluginValidationError(BerryhubError):
    """Raised when a plugin manifest does not conform to schema or semantics."""

class PluginLoadError(BerryhubError):
    """Raised when importing or instantiating a plugin package fails."""

class ConfigError(BerryhubError):
    """Raised when the hub configuration file is unreadable or invalid."""

class StorageError(BerryhubError):
    """Raised when the paired-device store cannot be read or written."""

class DeviceDriverError(Exception):
    """Failure signal raised by driver plugins.

    The hub translates it to `DriverFailureError` at every call site.
    """
