"""Error taxonomy shared by every backend and subsystem."""

from __future__ import annotations

from typing import Any, Self

# Exit Codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_TRANSIENT_ERROR = 3


class CoreError(Exception):
    """Base exception class with context propagation.

    Every I/O, parsing and serialization failure in updatekit is mapped
    into one of the subclasses below, so callers have a single error
    surface regardless of which backend failed.

    Example:
        raise ParseError("Package foo not found", context={"backend": "dnf"})

        # Or with context propagation
        try:
            ...
        except CoreError as e:
            raise e.with_context(operation="list_updates")
    """
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def with_context(self, **new_context: Any) -> Self:
        """Returns the exception with updated context.

        Args:
            **new_context: Additional context to add to the exception.

        Returns:
            The same instance with merged context.
        """
        self.context.update(new_context)
        return self

    def __str__(self) -> str:
        """String representation of the exception including context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class CommandError(CoreError):
    """A process could not be spawned, timed out, or failed at the I/O level.

    Typically indicates:
        - Executable missing from PATH or a bad custom path
        - Permission denied
        - Process killed after a timeout
    """
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        """Initialise CommandError with detailed context.

        Args:
            message: Optional custom error message.
            command: The command line that was executed.
            error: The underlying OS error text.
            context: Additional context information.
        """
        ctx = context or {}
        if command:
            ctx["command"] = command
        if error:
            ctx["error"] = error

        if message is None:
            message = f"Failed to execute command: {error or 'unknown error'}"

        super().__init__(message, context=ctx)


class Utf8Error(CoreError):
    """Subprocess output was not valid UTF-8 text."""
    pass


class ParseError(CoreError):
    """Tool output did not match the expected grammar.

    Also raised by the system backend when a queried package is not
    installed, since the package database answers with no parseable record.
    """
    pass


class SerializationError(CoreError):
    """JSON encoding or decoding failed."""
    pass


class RequestError(CoreError):
    """HTTP transport failure while talking to a remote registry.

    Typically indicates:
        - Network unreachable or DNS failure
        - Connection reset or TLS error
        - Request timeout
    """
    def __init__(
        self,
        message: str | None = None,
        url: str | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        """Initialise RequestError with detailed context.

        Args:
            message: Optional custom error message.
            url: The URL that was requested.
            error: The transport error text.
            context: Additional context information.
        """
        ctx = context or {}
        if url:
            ctx["url"] = url
        if error:
            ctx["error"] = error

        if message is None:
            message = f"Request error: {error or 'unknown error'}"

        super().__init__(message, context=ctx)


class UnknownError(CoreError):
    """Catch-all for domain failures.

    Used for non-zero exit statuses, packages that are not installed,
    and operations a backend does not implement.
    """

    @classmethod
    def from_exit(cls, action: str, returncode: int, stderr: str, command: str | None = None) -> Self:
        """Build an error for a process that exited non-zero.

        Args:
            action: Short description of what was attempted, e.g. "flatpak update".
            returncode: The process exit status.
            stderr: Captured standard error, embedded in the message.
            command: The full command line, kept in context.

        Returns:
            A new UnknownError.
        """
        ctx: dict[str, Any] = {"returncode": returncode}
        if command:
            ctx["command"] = command
        return cls(f"{action} failed: {stderr.strip()}", context=ctx)

    @classmethod
    def not_implemented(cls, operation: str, backend: str) -> Self:
        """Build the error returned by an operation a backend lacks."""
        return cls(f"{operation} not implemented", context={"backend": backend})


# CLI Error Message Templates

ERROR_TEMPLATES = {
    CommandError: (
        "⚠️ Failed to execute command: {command}\n"
        "   Error: {error}\n"
        "   Check that the tool is installed or fix its custom path with 'updatekit config set-path'"
    ),
    Utf8Error: (
        "⚠️ Command produced output that is not valid UTF-8: {command}"
    ),
    ParseError: (
        "❌ {message}"
    ),
    SerializationError: (
        "⚠️ Serialization error: {message}\n"
        "   Check the configuration file or registry response"
    ),
    RequestError: (
        "⚠️ Request failed: {url}\n"
        "   Error: {error}\n"
        "   This may resolve itself - try again in a moment"
    ),
    UnknownError: (
        "❌ {message}"
    ),
    CoreError: (
        "❌ {message}"
    ),
}


def format_error_message(error: CoreError) -> str:
    """Formats an error message for CLI display based on the error type.

    Args:
        error: The CoreError instance to format.

    Returns:
        A formatted string message for CLI display.
    """
    template = ERROR_TEMPLATES.get(type(error), ERROR_TEMPLATES[CoreError])
    try:
        return template.format(message=error.message, **error.context)
    except KeyError:
        return f"❌ {error.message}"


def exit_code_for(error: CoreError) -> int:
    """Map an error kind to the process exit code used by the CLI."""
    if isinstance(error, RequestError):
        return EXIT_TRANSIENT_ERROR
    if isinstance(error, (ParseError, UnknownError)):
        return EXIT_USER_ERROR
    return EXIT_SYSTEM_ERROR
