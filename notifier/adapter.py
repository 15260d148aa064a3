"""
Parameter adapters for the notifier.

An adapter is asked to convert a bundle value whenever the value is not
already an instance of the parameter's declared type. Adapters are pluggable;
the notifier treats them as opaque and only relies on them returning the
converted value or raising AdaptationError.
"""

import dataclasses
import enum
import types
import typing
from collections.abc import Mapping
from decimal import Decimal
from decimal import InvalidOperation
from typing import Any
from typing import Protocol

from notifier.errors import AdaptationError


class ParameterAdapter(Protocol):
    """Converts a value into a target type or raises AdaptationError."""

    def adapt(self, value: Any, target_type: Any) -> Any: ...


_SCALARS = (int, float, str, bytes, Decimal)
_CONTAINERS = (list, tuple, set, frozenset)
_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})
_UNION_TYPE = getattr(types, "UnionType", None)


class RejectingParameterAdapter(object):
    """Adapter that supports no conversions. Every mismatch becomes a failure."""

    def adapt(self, value: Any, target_type: Any) -> Any:
        raise AdaptationError(value, target_type)


class DefaultParameterAdapter(object):
    """
    Adapter for the conversions most bundles need.

    Supports:
    - builtin scalars: int, float, str, bytes, bool and Decimal,
    - Enum members, looked up by value then by name,
    - list, tuple, set, frozenset and dict from any compatible iterable,
    - dataclasses built from a mapping of their field names,
    - Optional[X] and Union[...] by trying each member in order,
    - NewType annotations by converting to their supertype.
    """

    def adapt(self, value: Any, target_type: Any) -> Any:
        supertype = getattr(target_type, "__supertype__", None)
        if supertype is not None:
            # NewType values are plain instances of the supertype at runtime.
            return self.adapt(value, supertype)

        origin = typing.get_origin(target_type)

        if origin is typing.Union or origin is _UNION_TYPE:
            return self._adapt_union(value, target_type)

        if origin is not None:
            # Parameterised generics convert on their origin (list[int] -> list).
            target_type = origin

        if not isinstance(target_type, type):
            raise AdaptationError(value, target_type)

        if target_type is bool:
            return self._adapt_bool(value)

        if issubclass(target_type, enum.Enum):
            return self._adapt_enum(value, target_type)

        if dataclasses.is_dataclass(target_type):
            return self._adapt_dataclass(value, target_type)

        try:
            if target_type is bytes and isinstance(value, str):
                return value.encode("utf-8")

            if target_type is str and isinstance(value, bytes):
                return value.decode("utf-8")

            if target_type is int and isinstance(value, float):
                if not value.is_integer():
                    raise AdaptationError(value, target_type)
                return int(value)

            if issubclass(target_type, _SCALARS + _CONTAINERS + (dict,)):
                return target_type(value)

        except (TypeError, ValueError, InvalidOperation, UnicodeError) as e:
            raise AdaptationError(value, target_type) from e

        raise AdaptationError(value, target_type)

    def _adapt_union(self, value: Any, target_type: Any) -> Any:
        members = [arg for arg in typing.get_args(target_type) if arg is not type(None)]
        for member in members:
            try:
                return self.adapt(value, member)
            except AdaptationError:
                continue

        raise AdaptationError(value, target_type)

    @staticmethod
    def _adapt_bool(value: Any) -> bool:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        elif isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)

        raise AdaptationError(value, bool)

    @staticmethod
    def _adapt_enum(value: Any, target_type: type[enum.Enum]) -> enum.Enum:
        try:
            return target_type(value)
        except ValueError:
            pass

        if isinstance(value, str) and value in target_type.__members__:
            return target_type.__members__[value]

        raise AdaptationError(value, target_type)

    @staticmethod
    def _adapt_dataclass(value: Any, target_type: type) -> Any:
        if not isinstance(value, Mapping):
            raise AdaptationError(value, target_type)

        names = {field.name for field in dataclasses.fields(target_type)}
        try:
            return target_type(**{k: v for k, v in value.items() if k in names})
        except TypeError as e:
            raise AdaptationError(value, target_type) from e
