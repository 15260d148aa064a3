"""
Per-notification outcome reporting.

notify() never raises for handler failures. Instead it returns a
NotificationReport listing each failure in handler order, so callers that
want fire-and-forget semantics can ignore it and callers that want
diagnostics can inspect it or call raise_for_failures().
"""

from dataclasses import dataclass
from dataclasses import field
from typing import Union

from notifier.errors import BindingFailure
from notifier.errors import InvocationError
from notifier.errors import NotificationFailed


HANDLER_FAILURE = Union[BindingFailure, InvocationError]


@dataclass
class NotificationReport(object):
    """The outcome of dispatching one notification."""

    tag: str
    """The notification that was sent."""

    invoked: int = 0
    """Handlers that ran to completion."""

    skipped: int = 0
    """Async handlers skipped by a synchronous notify()."""

    failures: list[HANDLER_FAILURE] = field(default_factory=list)
    """Binding and invocation failures, in handler order."""

    stopped: bool = False
    """True if a failure handler stopped delivery to the remaining handlers."""

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def binding_failures(self) -> list[BindingFailure]:
        return [f for f in self.failures if isinstance(f, BindingFailure)]

    @property
    def invocation_errors(self) -> list[InvocationError]:
        return [f for f in self.failures if isinstance(f, InvocationError)]

    def raise_for_failures(self) -> None:
        """Raise NotificationFailed if any handler failed."""
        if self.failures:
            raise NotificationFailed(self.tag, tuple(self.failures))

    def to_dict(self) -> dict[str, object]:
        return {
            "tag": self.tag,
            "invoked": self.invoked,
            "skipped": self.skipped,
            "stopped": self.stopped,
            "failures": [
                {
                    "handler": failure.binding.name,
                    "type": failure.__class__.__name__,
                    "message": str(failure),
                }
                for failure in self.failures
            ],
        }
