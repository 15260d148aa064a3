"""
Exception types raised and reported by the notifier.

Failures are handler-scoped. An AdaptationError describes one parameter that
could not be converted, a BindingFailure groups every AdaptationError for one
handler, and an InvocationError wraps an exception raised by the handler
itself. None of these abort a notify() call; they are collected into the
NotificationReport it returns.
"""

from typing import Any
from typing import Optional
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notifier.binding import HandlerBinding


def type_name(type_: Any) -> str:
    """Readable name for a declared type, including typing constructs."""
    if isinstance(type_, type):
        return type_.__qualname__
    return str(type_).replace("typing.", "")


class NotifierError(Exception):
    """Base class for all notifier errors."""


class AdaptationError(NotifierError):
    """Raised when a bundle value cannot be converted to a parameter's type."""

    def __init__(
        self, value: Any, target_type: Any, parameter: Optional[str] = None
    ) -> None:
        self.value = value
        self.target_type = target_type
        self.parameter = parameter
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = f" for parameter '{self.parameter}'" if self.parameter else ""
        return (
            f"Cannot adapt {type(self.value).__name__} value {self.value!r} "
            f"to {type_name(self.target_type)}{where}"
        )

    def for_parameter(self, parameter: str) -> "AdaptationError":
        """Return a copy of this error attributed to the named parameter."""
        error = AdaptationError(self.value, self.target_type, parameter)
        error.__cause__ = self.__cause__
        return error


class FieldLookupError(AdaptationError):
    """Reading a field from the bundle raised, so it has no value to adapt."""

    def __init__(self, target_type: Any, parameter: str, cause: Exception) -> None:
        self.cause = cause
        self.__cause__ = cause
        super().__init__(None, target_type, parameter)

    def _describe(self) -> str:
        return (
            f"Cannot read field '{self.parameter}' from bundle: "
            f"{self.cause.__class__.__name__}: {self.cause}"
        )

    def for_parameter(self, parameter: str) -> "FieldLookupError":
        return FieldLookupError(self.target_type, parameter, self.cause)


class BindingFailure(NotifierError):
    """
    One or more parameters of a handler could not be bound.
    The handler is not invoked.
    """

    def __init__(
        self, tag: str, binding: "HandlerBinding", errors: list[AdaptationError]
    ) -> None:
        self.tag = tag
        self.binding = binding
        self.errors = tuple(errors)
        super().__init__(
            f"Could not bind arguments for '{binding.name}' on notification "
            f"'{tag}': parameters {self.parameters}"
        )

    @property
    def parameters(self) -> list[str]:
        """Names of the parameters that failed to bind."""
        return [error.parameter for error in self.errors if error.parameter]


class InvocationError(NotifierError):
    """A handler raised while handling a notification."""

    def __init__(self, tag: str, binding: "HandlerBinding", cause: Exception) -> None:
        self.tag = tag
        self.binding = binding
        self.cause = cause
        self.__cause__ = cause
        super().__init__(
            f"Handler '{binding.name}' failed on notification '{tag}': "
            f"{cause.__class__.__name__}: {cause}"
        )


class NotificationFailed(NotifierError):
    """Raised by NotificationReport.raise_for_failures() when handlers failed."""

    def __init__(self, tag: str, failures: tuple) -> None:
        self.tag = tag
        self.failures = failures
        names = ", ".join(failure.binding.name for failure in failures)
        super().__init__(
            f"{len(failures)} handler(s) failed on notification '{tag}': {names}"
        )
