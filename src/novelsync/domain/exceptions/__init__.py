"""Domain exceptions and error classification."""

from typing import Any


class AppError(Exception):
    """Base exception for all application errors.

    Also used directly for errors that could not be classified any further.
    """

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Notifications and search slots show .message to the user.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class NetworkError(AppError):
    """Connectivity problem or timeout while talking to a remote source."""

    pass


class ParseError(AppError):
    """A remote source returned a payload we could not parse."""

    pass


class PluginError(AppError):
    """Failure attributable to a specific content source.

    Example:
        raise PluginError("Novel page has no chapter list", plugin_id="royalroad")
    """

    def __init__(self, message: str, plugin_id: str | None = None) -> None:
        super().__init__(message)
        self.plugin_id = plugin_id

    def __str__(self) -> str:
        if self.plugin_id:
            return f"[{self.plugin_id}] {self.message}"
        return self.message


class EntityNotFoundError(AppError):
    """Raised when a stored entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(AppError):
    """Application misconfiguration.

    Example:
        raise ConfigurationError("No handler registered for task kind DRIVE_BACKUP")
    """

    pass


# Lowercase substrings, matched against the lowercased message.
_NETWORK_MARKERS = (
    "network",
    "fetch",
    "timeout",
    "econnrefused",
    "enotfound",
    "unable to resolve host",
    "network request failed",
)
_PARSE_MARKERS = (
    "parse",
    "json",
    "unexpected token",
    "invalid html",
)


def get_error_message(error: object) -> str:
    """Return a human readable message for any raised value."""
    if isinstance(error, AppError):
        return error.message
    return str(error)


# Hey future me - classification is MESSAGE based on purpose! Plugins raise whatever their
# parser library raises, so the text is the only thing we can rely on. Order matters:
# network markers win over parse markers ("failed to fetch json" is a network problem).
def classify_error(error: object, plugin_id: str | None = None) -> AppError:
    """Map an arbitrary error onto the AppError taxonomy.

    Args:
        error: Exception (or any raised value) to classify
        plugin_id: Content source the error came from, if known

    Returns:
        The error itself when it already is an AppError, otherwise a new
        NetworkError/ParseError/PluginError/AppError carrying the same message.
    """
    if isinstance(error, AppError):
        return error

    message = get_error_message(error)
    lower_msg = message.lower()

    if any(marker in lower_msg for marker in _NETWORK_MARKERS):
        return NetworkError(message)

    if any(marker in lower_msg for marker in _PARSE_MARKERS):
        return ParseError(message)

    if plugin_id:
        return PluginError(message, plugin_id)

    return AppError(message)


__all__ = [
    "AppError",
    "ConfigurationError",
    "EntityNotFoundError",
    "NetworkError",
    "ParseError",
    "PluginError",
    "classify_error",
    "get_error_message",
]
