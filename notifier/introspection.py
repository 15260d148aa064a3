"""
Handler discovery for the notifier.

Handlers announce the notification they answer to with the
@notification_name decorator. An Introspector turns a target object into the
(tag, callable, signature) triples the notifier enlists. The default
DeclaredMethodIntrospector only looks at members defined directly on the
target's own class, so handlers declared on a shared base class are not
enlisted again for every subclass instance.
"""

import inspect
import logging
import typing
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Protocol
from typing import TypeVar

from notifier.binding import ParameterSpec


logger = logging.getLogger(__name__)

NOTIFICATION_NAMES_ATTR = "__notification_names__"

INTROSPECTED = tuple[str, Callable[..., Any], tuple[ParameterSpec, ...]]
"""One tagged method found on a target: (tag, bound callable, signature)."""

F = TypeVar("F")


def notification_name(name: str) -> Callable[[F], F]:
    """
    Decorator tagging a method as the handler for a notification.

    The decorator can be stacked to handle several notifications with the same
    method, and can be applied to plain, static or class methods on either
    side of @staticmethod/@classmethod.

    Args:
        name (str): The notification name. Matching is exact and
            case-sensitive.
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"Notification name must be a non-empty string, got {name!r}")

    def decorator(func: F) -> F:
        inner = getattr(func, "__func__", func)
        names = getattr(inner, NOTIFICATION_NAMES_ATTR, ())
        # Decorators apply bottom-up; prepend to keep source order.
        setattr(inner, NOTIFICATION_NAMES_ATTR, (name,) + tuple(names))
        return func

    return decorator


def get_notification_names(member: Any) -> tuple[str, ...]:
    """Returns the notification names a class member is tagged with."""
    inner = getattr(member, "__func__", member)
    return tuple(getattr(inner, NOTIFICATION_NAMES_ATTR, ()))


def get_parameter_specs(callback: Callable[..., Any]) -> tuple[ParameterSpec, ...]:
    """
    Extract the bindable parameters of a callable.

    Annotations are resolved with typing.get_type_hints so string annotations
    (including those produced by `from __future__ import annotations`) come
    back as real types. Annotations that cannot be resolved are treated as
    undeclared. *args and **kwargs are not bindable from a bundle and are
    left out.
    """
    sig = inspect.signature(callback)
    try:
        hints = typing.get_type_hints(callback)
    except Exception:
        logger.debug(
            f"Could not resolve type hints for {callback!r}; "
            f"using raw annotations",
            exc_info=True,
        )
        hints = {}

    specs = []
    for name, param in sig.parameters.items():
        if param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue

        annotation = hints.get(name, param.annotation)
        if isinstance(annotation, str):
            # Unresolvable forward reference; bind the value as-is.
            annotation = inspect.Parameter.empty

        specs.append(
            ParameterSpec(
                name=name,
                annotation=annotation,
                kind=param.kind,
                default=param.default,
            )
        )

    return tuple(specs)


class Introspector(Protocol):
    """Finds the tagged handler methods present on a target object."""

    def introspect(self, target: Any) -> Iterable[INTROSPECTED]: ...


class DeclaredMethodIntrospector(object):
    """
    Introspector for methods tagged with @notification_name.

    Only members found in the target class's own __dict__ are considered;
    inherited members are ignored. Methods are yielded in definition order.
    """

    def introspect(self, target: Any) -> list[INTROSPECTED]:
        found: list[INTROSPECTED] = []

        for attr_name, member in vars(type(target)).items():
            names = get_notification_names(member)
            if not names:
                continue

            callback = getattr(target, attr_name)
            if not callable(callback):
                logger.warning(
                    f"Ignoring non-callable member '{attr_name}' tagged with "
                    f"{list(names)} on {type(target).__name__}"
                )
                continue

            signature = get_parameter_specs(callback)
            for name in names:
                found.append((name, callback, signature))

        return found
