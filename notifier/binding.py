"""
Handler binding data structures for the notifier.

Defines the HandlerBinding dataclass which pairs an enlisted target with one
of its tagged methods and the method's parameter signature. Bindings hold a
strong reference to the target so it stays alive for as long as the notifier
can dispatch to it. Also defines the HANDLER type alias used for type hints
throughout the notifier.
"""

import inspect
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Coroutine
from typing import Union

HANDLER = Union[Callable[..., Any], Callable[..., Coroutine[Any, Any, Any]]]
"""
A tagged method bound to its target. These are the end points that run when
a matching notification is sent. Can be sync or async.

Return values are discarded. If a handler needs to answer, it should send a
notification of its own.
"""


@dataclass(frozen=True)
class ParameterSpec(object):
    """A single declared parameter of a handler."""

    name: str
    """Field name looked up in the parameter bundle."""

    annotation: Any = inspect.Parameter.empty
    """The resolved declared type, or inspect.Parameter.empty if undeclared."""

    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD
    """Positional parameters are passed by position, keyword-only by name."""

    default: Any = inspect.Parameter.empty
    """The declared default, used when the bundle has no usable value."""

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def is_keyword_only(self) -> bool:
        return self.kind == inspect.Parameter.KEYWORD_ONLY


@dataclass(frozen=True)
class HandlerBinding(object):
    """An enlisted handler: a target, one of its tagged methods, and its signature."""

    tag: str
    """The notification name the handler was enlisted under."""

    target: Any
    """
    The enlisted object. Held strongly so it cannot be collected while the
    binding exists.
    """

    callback: HANDLER
    """The tagged method, bound to the target."""

    signature: tuple[ParameterSpec, ...]
    """Parameters bound from the bundle, in declaration order."""

    is_async: bool = False
    """If the handler is a coroutine function and must be awaited."""

    @property
    def name(self) -> str:
        """Qualified display name, e.g. 'OrderAudit.on_created'."""
        name = getattr(self.callback, "__name__", None)
        if name is None:
            return str(self.callback)
        return f"{self.target.__class__.__name__}.{name}"
