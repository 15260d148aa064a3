"""
Unit tests for binding bundle fields to handler parameters.

Tests cover field lookup by exact name on mapping and object bundles,
default values for missing and None fields, pass-through of compatible
values, adapter use for mismatched types, and keyword-only parameters.
"""

import dataclasses
from collections import namedtuple
from types import SimpleNamespace
from typing import Any
from typing import NewType
from typing import Optional

import pytest

from notifier import Notifier
from notifier import binder
from notifier import notification_name
from notifier.binding import HandlerBinding
from notifier.binding import ParameterSpec
from notifier.errors import AdaptationError
from notifier.errors import BindingFailure
from notifier.errors import FieldLookupError
from notifier.introspection import get_parameter_specs


UserId = NewType("UserId", int)


class RecordingAdapter(object):
    """Adapter that records each call and converts by calling the type."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []

    def adapt(self, value: Any, target_type: Any) -> Any:
        self.calls.append((value, target_type))
        return target_type(value)


class UserHandler(object):
    def __init__(self) -> None:
        self.received: list[tuple] = []

    @notification_name("user.created")
    def on_created(self, name: str, age: int) -> None:
        self.received.append((name, age))


class QuotedHandler(object):
    @notification_name("user.quoted")
    def on_created(self, name: "str", age: "Optional[int]") -> None:
        pass


def test_fields_bind_by_name_positionally() -> None:
    """Test that bundle fields reach the matching parameters in order."""
    notifier_ = Notifier()
    handler = UserHandler()
    notifier_.enlist_target(handler)

    notifier_.notify("user.created", {"age": 30, "name": "Alice"})

    assert handler.received == [("Alice", 30)]


def test_object_bundle_binds_attributes() -> None:
    """Test that any object with attributes can be a bundle."""
    notifier_ = Notifier()
    handler = UserHandler()
    notifier_.enlist_target(handler)

    @dataclasses.dataclass
    class UserCreated:
        name: str
        age: int

    Point = namedtuple("Point", ["name", "age"])

    notifier_.notify("user.created", SimpleNamespace(name="Bob", age=41))
    notifier_.notify("user.created", UserCreated(name="Cy", age=7))
    notifier_.notify("user.created", Point("Di", 12))

    assert handler.received == [("Bob", 41), ("Cy", 7), ("Di", 12)]


def test_missing_field_uses_none() -> None:
    """Test that a missing field leaves the parameter unset and still invokes."""
    notifier_ = Notifier()
    handler = UserHandler()
    notifier_.enlist_target(handler)

    report = notifier_.notify("user.created", {"name": "Alice"})

    assert handler.received == [("Alice", None)]
    assert report.invoked == 1
    assert report.ok


def test_missing_field_uses_declared_default() -> None:
    """Test that a declared default is used when the field is missing."""
    notifier_ = Notifier()
    received: list[tuple] = []

    class Defaults(object):
        @notification_name("defaults")
        def on_defaults(self, name: str = "anonymous", retries: int = 3) -> None:
            received.append((name, retries))

    notifier_.enlist_target(Defaults())
    notifier_.notify("defaults", {"retries": 5})

    assert received == [("anonymous", 5)]


def test_none_value_uses_default() -> None:
    """Test that a None field is treated like a missing one."""
    notifier_ = Notifier(parameter_adapter=RecordingAdapter())
    received: list[Any] = []

    class Handler(object):
        @notification_name("none")
        def on_none(self, count: int = 10) -> None:
            received.append(count)

    notifier_.enlist_target(Handler())
    notifier_.notify("none", {"count": None})

    assert received == [10]
    assert notifier_.parameter_adapter.calls == []


def test_field_names_are_case_sensitive() -> None:
    """Test that a field only matches a parameter with exactly its name."""
    notifier_ = Notifier()
    handler = UserHandler()
    notifier_.enlist_target(handler)

    notifier_.notify("user.created", {"Name": "Alice", "AGE": 30})

    assert handler.received == [(None, None)]


def test_compatible_value_passes_through_unchanged() -> None:
    """Test that a value of the declared type is passed as-is, not copied."""
    adapter = RecordingAdapter()
    notifier_ = Notifier(parameter_adapter=adapter)
    received: list[Any] = []

    class Handler(object):
        @notification_name("items")
        def on_items(self, items: list, total: float) -> None:
            received.append((items, total))

    payload = [1, 2, 3]
    notifier_.enlist_target(Handler())
    notifier_.notify("items", {"items": payload, "total": 1.5})

    assert received[0][0] is payload
    assert received[0][1] == 1.5
    assert adapter.calls == []


def test_subclass_value_is_compatible() -> None:
    """Test that a subclass instance satisfies a base class parameter."""
    adapter = RecordingAdapter()
    notifier_ = Notifier(parameter_adapter=adapter)
    received: list[Any] = []

    class Animal(object):
        pass

    class Dog(Animal):
        pass

    class Handler(object):
        @notification_name("pet")
        def on_pet(self, pet: Animal) -> None:
            received.append(pet)

    dog = Dog()
    notifier_.enlist_target(Handler())
    notifier_.notify("pet", {"pet": dog})

    assert received == [dog]
    assert adapter.calls == []


def test_mismatch_calls_adapter_once_per_parameter() -> None:
    """Test that each mismatched parameter is adapted exactly once."""
    adapter = RecordingAdapter()
    notifier_ = Notifier(parameter_adapter=adapter)
    handler = UserHandler()
    notifier_.enlist_target(handler)

    notifier_.notify("user.created", {"name": 99, "age": "41"})

    assert adapter.calls == [(99, str), ("41", int)]
    assert handler.received == [("99", 41)]


def test_adapter_result_is_used_as_argument() -> None:
    """Test that whatever the adapter returns is what the handler receives."""
    sentinel = object()

    class ConstantAdapter(object):
        def adapt(self, value: Any, target_type: Any) -> Any:
            return sentinel

    notifier_ = Notifier(parameter_adapter=ConstantAdapter())
    handler = UserHandler()
    notifier_.enlist_target(handler)

    notifier_.notify("user.created", {"name": "Alice", "age": "old"})

    assert handler.received == [("Alice", sentinel)]


def test_undeclared_and_any_annotations_accept_anything() -> None:
    """Test that parameters without a concrete type never need adapting."""
    adapter = RecordingAdapter()
    notifier_ = Notifier(parameter_adapter=adapter)
    received: list[Any] = []

    class Handler(object):
        @notification_name("loose")
        def on_loose(self, first, second: Any, third: object) -> None:
            received.append((first, second, third))

    notifier_.enlist_target(Handler())
    notifier_.notify("loose", {"first": 1, "second": "two", "third": 3.0})

    assert received == [(1, "two", 3.0)]
    assert adapter.calls == []


def test_optional_annotation_accepts_inner_type() -> None:
    """Test that Optional[int] accepts an int without adapting."""
    adapter = RecordingAdapter()
    notifier_ = Notifier(parameter_adapter=adapter)
    received: list[Any] = []

    class Handler(object):
        @notification_name("optional")
        def on_optional(self, count: Optional[int]) -> None:
            received.append(count)

    notifier_.enlist_target(Handler())
    notifier_.notify("optional", {"count": 4})

    assert received == [4]
    assert adapter.calls == []


def test_keyword_only_parameters_bind_by_keyword() -> None:
    """Test that keyword-only parameters are passed by name."""
    notifier_ = Notifier()
    received: list[Any] = []

    class Handler(object):
        @notification_name("kw")
        def on_kw(self, name: str, *, urgent: bool = False) -> None:
            received.append((name, urgent))

    notifier_.enlist_target(Handler())
    notifier_.notify("kw", {"name": "disk", "urgent": True})
    notifier_.notify("kw", {"name": "cpu"})

    assert received == [("disk", True), ("cpu", False)]


def test_var_args_are_not_bound() -> None:
    """Test that *args and **kwargs receive nothing from the bundle."""
    notifier_ = Notifier()
    received: list[Any] = []

    class Handler(object):
        @notification_name("var")
        def on_var(self, name: str, *args: Any, **kwargs: Any) -> None:
            received.append((name, args, kwargs))

    notifier_.enlist_target(Handler())
    notifier_.notify("var", {"name": "x", "args": (1,), "extra": 2})

    assert received == [("x", (), {})]


def test_keyword_fields_merge_over_bundle() -> None:
    """Test that notify() keyword fields take precedence over the bundle."""
    notifier_ = Notifier()
    handler = UserHandler()
    notifier_.enlist_target(handler)

    notifier_.notify("user.created", {"name": "Alice", "age": 30}, age=31)
    notifier_.notify("user.created", SimpleNamespace(name="Bob", age=40), name="Rob")
    notifier_.notify("user.created", name="Kw", age=1)

    assert handler.received == [("Alice", 31), ("Rob", 40), ("Kw", 1)]


def test_handler_without_parameters_ignores_bundle() -> None:
    """Test that a parameterless handler runs regardless of the bundle."""
    notifier_ = Notifier()
    calls: list[bool] = []

    class Handler(object):
        @notification_name("ping")
        def on_ping(self) -> None:
            calls.append(True)

    notifier_.enlist_target(Handler())
    notifier_.notify("ping", {"unrelated": 1})
    notifier_.notify("ping", None)

    assert calls == [True, True]


def test_string_annotations_are_resolved() -> None:
    """Test that quoted annotations are resolved to real types."""
    specs = get_parameter_specs(QuotedHandler().on_created)

    assert [(spec.name, spec.annotation) for spec in specs] == [
        ("name", str),
        ("age", Optional[int]),
    ]


def test_get_field_ignores_dunder_attributes() -> None:
    """Test that object bundles never expose dunder attributes as fields."""
    bundle = SimpleNamespace(value=1)

    assert binder.get_field(bundle, "value") == 1
    assert binder.get_field(bundle, "__class__") is binder.MISSING
    assert binder.get_field(bundle, "absent") is binder.MISSING
    assert binder.get_field(None, "value") is binder.MISSING


def test_bind_arguments_collects_every_failing_parameter() -> None:
    """Test that a binding failure lists all parameters that failed."""

    class Failing(object):
        def adapt(self, value: Any, target_type: Any) -> Any:
            raise AdaptationError(value, target_type)

    def handler(first: int, second: str, third: int) -> None:
        pass

    binding = HandlerBinding(
        tag="tag",
        target=object(),
        callback=handler,
        signature=(
            ParameterSpec("first", int),
            ParameterSpec("second", str),
            ParameterSpec("third", int),
        ),
    )

    with pytest.raises(BindingFailure) as excinfo:
        binder.bind_arguments(
            binding, {"first": "x", "second": "ok", "third": "y"}, Failing()
        )

    assert excinfo.value.parameters == ["first", "third"]
    assert excinfo.value.tag == "tag"
    assert all(isinstance(e, AdaptationError) for e in excinfo.value.errors)


def test_adapter_unexpected_exception_becomes_adaptation_error() -> None:
    """Test that any adapter exception is reported as an AdaptationError."""

    class Broken(object):
        def adapt(self, value: Any, target_type: Any) -> Any:
            raise KeyError("boom")

    binding = HandlerBinding(
        tag="tag",
        target=object(),
        callback=lambda count: None,
        signature=(ParameterSpec("count", int),),
    )

    with pytest.raises(BindingFailure) as excinfo:
        binder.bind_arguments(binding, {"count": "1"}, Broken())

    error = excinfo.value.errors[0]
    assert error.parameter == "count"
    assert isinstance(error.__cause__, KeyError)


@pytest.mark.parametrize(
    "value, declared, expected",
    [
        (1, int, True),
        (True, int, True),
        (1, float, False),
        ("a", Optional[str], True),
        (1, Optional[str], False),
        ([1], list[int], True),
        ((1,), list[int], False),
        ({"a": 1}, dict[str, int], True),
        (3, Any, True),
    ],
)
def test_is_assignable(value: Any, declared: Any, expected: bool) -> None:
    """Test the compatibility check used to skip adaptation."""
    assert binder.is_assignable(value, declared) is expected


def test_bundle_methods_are_not_fields() -> None:
    """Test that methods on a bundle never bind to same-named parameters."""
    notifier_ = Notifier()
    received: list[tuple] = []

    class Counted(object):
        @notification_name("event")
        def on_event(self, name: str, count: int = 0) -> None:
            received.append((name, count))

    class Indexed(object):
        @notification_name("event")
        def on_event(self, name: str, index=None) -> None:
            received.append((name, index))

    @dataclasses.dataclass
    class Renamed:
        name: str

        def count(self) -> int:
            return 1

    Event = namedtuple("Event", ["name"])

    notifier_.enlist_target(Counted())
    notifier_.enlist_target(Indexed())
    first = notifier_.notify("event", Event("x"))
    second = notifier_.notify("event", Renamed("y"))

    assert received == [("x", 0), ("x", None), ("y", 0), ("y", None)]
    assert first.ok and second.ok


def test_get_field_reads_data_fields_only() -> None:
    """Test which attributes of an object bundle count as fields."""

    class Bundle(object):
        __slots__ = ("slot", "__dict__")
        kind = "class attribute"

        def __init__(self) -> None:
            self.slot = "slotted"
            self.name = "instance"
            self._cache = {}

        @property
        def size(self) -> int:
            return 3

        def describe(self) -> str:
            return "method"

    bundle = Bundle()

    assert binder.get_field(bundle, "slot") == "slotted"
    assert binder.get_field(bundle, "name") == "instance"
    assert binder.get_field(bundle, "size") == 3
    assert binder.get_field(bundle, "describe") is binder.MISSING
    assert binder.get_field(bundle, "kind") is binder.MISSING
    assert binder.get_field(bundle, "_cache") is binder.MISSING


def test_get_field_named_tuple_exposes_declared_fields() -> None:
    """Test that named tuple lookups are limited to its declared fields."""
    Event = namedtuple("Event", ["name", "size"])
    bundle = Event("x", 2)

    assert binder.get_field(bundle, "size") == 2
    assert binder.get_field(bundle, "count") is binder.MISSING
    assert binder.get_field(bundle, "index") is binder.MISSING
    assert binder.get_field(bundle, "_fields") is binder.MISSING


def test_field_lookup_error_fails_only_that_handler() -> None:
    """Test that a raising field getter becomes a binding failure."""
    notifier_ = Notifier()
    calls: list[str] = []

    class Lazy(object):
        other = None

        @property
        def name(self) -> str:
            raise RuntimeError("lazy field failed")

    class First(object):
        @notification_name("lazy")
        def on_lazy(self, other) -> None:
            calls.append("first")

    class Second(object):
        @notification_name("lazy")
        def on_lazy(self, name: str) -> None:
            calls.append("second")

    class Third(object):
        @notification_name("lazy")
        def on_lazy(self) -> None:
            calls.append("third")

    for target in (First(), Second(), Third()):
        notifier_.enlist_target(target)

    report = notifier_.notify("lazy", Lazy())

    assert calls == ["first", "third"]
    assert report.invoked == 2
    assert len(report.failures) == 1

    failure = report.failures[0]
    assert isinstance(failure, BindingFailure)
    assert failure.parameters == ["name"]

    error = failure.errors[0]
    assert isinstance(error, FieldLookupError)
    assert isinstance(error.__cause__, RuntimeError)
    assert "lazy field failed" in str(error)


def test_new_type_annotation_binds_supertype_value() -> None:
    """Test that a NewType parameter accepts and adapts to its supertype."""
    notifier_ = Notifier()
    received: list[Any] = []

    class Handler(object):
        @notification_name("user")
        def on_user(self, user_id: UserId) -> None:
            received.append(user_id)

    notifier_.enlist_target(Handler())
    notifier_.notify("user", {"user_id": 7})
    notifier_.notify("user", {"user_id": "8"})

    assert received == [7, 8]
    assert binder.is_assignable(7, UserId) is True
    assert binder.is_assignable("7", UserId) is False
