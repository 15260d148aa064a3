"""
Argument binding for the notifier.

Reshapes a loosely-typed parameter bundle into the argument list a handler
declares. Fields are matched to parameters by exact name. A value that is
already an instance of the declared type is passed through untouched,
anything else goes through the parameter adapter. Missing fields and None
values leave the parameter at its default.
"""

import inspect
import types
import typing
from collections.abc import Mapping
from typing import Any

from notifier.adapter import ParameterAdapter
from notifier.binding import HandlerBinding
from notifier.binding import ParameterSpec
from notifier.errors import AdaptationError
from notifier.errors import BindingFailure
from notifier.errors import FieldLookupError


MISSING = object()
"""Sentinel for a field that is absent from the bundle."""

_UNION_TYPE = getattr(types, "UnionType", None)


class OverlayBundle(object):
    """Keyword fields layered over another bundle; the fields win."""

    def __init__(self, fields: dict[str, Any], base: Any) -> None:
        self.fields = fields
        self.base = base


def merge_bundle(bundle: Any, fields: dict[str, Any]) -> Any:
    """Combine a bundle with keyword fields passed alongside it."""
    if not fields:
        return bundle
    if bundle is None:
        return fields
    if isinstance(bundle, Mapping):
        return {**bundle, **fields}
    return OverlayBundle(fields, bundle)


def get_field(bundle: Any, name: str) -> Any:
    """
    Look up a field on a bundle by exact name.

    Mappings are looked up by key. Named tuples expose only their declared
    fields. Any other object exposes its instance attributes, properties and
    slots, but never methods, plain class attributes or names starting with an
    underscore. Returns MISSING if the bundle has no such field.
    """
    if bundle is None:
        return MISSING

    if isinstance(bundle, OverlayBundle):
        if name in bundle.fields:
            return bundle.fields[name]
        return get_field(bundle.base, name)

    if isinstance(bundle, Mapping):
        return bundle.get(name, MISSING)

    if name.startswith("_"):
        return MISSING

    if isinstance(bundle, tuple) and hasattr(type(bundle), "_fields"):
        if name not in type(bundle)._fields:
            return MISSING
        return getattr(bundle, name)

    try:
        instance_fields = object.__getattribute__(bundle, "__dict__")
    except AttributeError:
        instance_fields = {}
    if name in instance_fields:
        return instance_fields[name]

    declared = inspect.getattr_static(type(bundle), name, MISSING)
    if declared is not MISSING:
        if not inspect.isdatadescriptor(declared):
            return MISSING
        return getattr(bundle, name, MISSING)

    # Dynamic attributes served by __getattr__.
    value = getattr(bundle, name, MISSING)
    if inspect.isroutine(value):
        return MISSING
    return value


def is_assignable(value: Any, declared: Any) -> bool:
    """
    Check if a value can be passed as-is to a parameter of the declared type.

    Undeclared annotations and Any accept everything. Unions accept a value
    compatible with any member, and parameterised generics are checked
    against their origin (list[int] accepts any list).
    """
    if declared is inspect.Parameter.empty or declared is Any or declared is object:
        return True

    origin = typing.get_origin(declared)
    if origin is typing.Union or origin is _UNION_TYPE:
        return any(is_assignable(value, arg) for arg in typing.get_args(declared))

    if origin is typing.Annotated:
        return is_assignable(value, typing.get_args(declared)[0])

    if origin is typing.Literal:
        return value in typing.get_args(declared)

    supertype = getattr(declared, "__supertype__", None)
    if supertype is not None:
        # NewType
        return is_assignable(value, supertype)

    if origin is not None:
        declared = origin

    if isinstance(declared, typing.TypeVar):
        return True

    if not isinstance(declared, type):
        return False

    try:
        return isinstance(value, declared)
    except TypeError:
        # Protocols without runtime_checkable and similar typing constructs.
        return False


def default_for(spec: ParameterSpec) -> Any:
    """The value a parameter takes when the bundle has nothing usable for it."""
    if spec.has_default:
        return spec.default
    return None


def bind_arguments(
    binding: HandlerBinding, bundle: Any, adapter: ParameterAdapter
) -> tuple[list[Any], dict[str, Any]]:
    """
    Produce the arguments to invoke a handler with.

    Args:
        binding (HandlerBinding): The handler to bind for.
        bundle (Any): Mapping or object carrying the notification fields.
        adapter (ParameterAdapter): Converts values whose type does not match.
    Returns:
        tuple[list[Any], dict[str, Any]]: Positional arguments in declaration
            order, and keyword-only arguments by name.
    Raises:
        BindingFailure: If any parameter could not be adapted. Every
            parameter is attempted before raising so the failure lists all of
            them.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    errors: list[AdaptationError] = []

    for spec in binding.signature:
        try:
            value = get_field(bundle, spec.name)
        except Exception as e:
            errors.append(FieldLookupError(spec.annotation, spec.name, e))
            continue

        if value is MISSING or value is None:
            argument = default_for(spec)
        elif is_assignable(value, spec.annotation):
            argument = value
        else:
            try:
                argument = adapter.adapt(value, spec.annotation)
            except AdaptationError as e:
                errors.append(e.for_parameter(spec.name))
                argument = None
            except Exception as e:
                error = AdaptationError(value, spec.annotation, spec.name)
                error.__cause__ = e
                errors.append(error)
                argument = None

        if spec.is_keyword_only:
            kwargs[spec.name] = argument
        else:
            args.append(argument)

    if errors:
        raise BindingFailure(binding.tag, binding, errors)

    return args, kwargs
