"""
# Notification Dispatcher

Herein is the Notifier itself: a registry of tagged handler methods that
broadcasts named notifications with a loosely-typed parameter bundle.

Targets are enlisted with enlist_target(). Every method declared on the
target's class and tagged with @notification_name becomes a handler. A call to
notify() finds every handler for the name, reshapes the bundle's fields into
each handler's parameters (adapting values whose types don't match), and
invokes them in registration order. One handler failing never stops the
others; failures come back in the NotificationReport.

For a complete breakdown of the binding rules, read notifier.binder.
"""

import asyncio
import inspect
import json
import logging
import os
from typing import Any
from typing import Optional
from typing import Union

from notifier import adapter
from notifier import binder
from notifier import handlers
from notifier import introspection
from notifier.adapter import DefaultParameterAdapter
from notifier.adapter import ParameterAdapter
from notifier.adapter import RejectingParameterAdapter
from notifier.binding import HandlerBinding
from notifier.binding import ParameterSpec
from notifier.errors import AdaptationError
from notifier.errors import BindingFailure
from notifier.errors import FieldLookupError
from notifier.errors import InvocationError
from notifier.errors import NotificationFailed
from notifier.errors import NotifierError
from notifier.index import RegistrationIndex
from notifier.introspection import DeclaredMethodIntrospector
from notifier.introspection import Introspector
from notifier.introspection import notification_name
from notifier.report import HANDLER_FAILURE
from notifier.report import NotificationReport


version_major = 1
version_minor = 0
version_patch = 0
__version__ = f"{version_major}.{version_minor}.{version_patch}"

logger = logging.getLogger(__name__)

# -----Notifies----------------------------------------------------------------
_NOTIFY_NAMESPACE_ROOT = "notifier.notify."

NOTIFIER_ON_TARGET_ENLISTED = f"{_NOTIFY_NAMESPACE_ROOT}target.enlisted"
NOTIFIER_ON_TAG_CREATED = f"{_NOTIFY_NAMESPACE_ROOT}tag.created"
NOTIFIER_ON_NOTIFY = f"{_NOTIFY_NAMESPACE_ROOT}notify"
NOTIFIER_ON_FAILURE = f"{_NOTIFY_NAMESPACE_ROOT}failure"


def is_reserved(tag: str) -> bool:
    """True for the notifier's own activity notifications."""
    return tag.startswith(_NOTIFY_NAMESPACE_ROOT)


class Notifier(object):
    """
    Primary notification dispatcher.

    To enlist handlers, decorate methods with @notification_name and pass an
    instance to enlist_target().

    Use notify() to call synchronous handlers; async handlers are skipped.
    Use notify_async() to call and await every handler.
    Use should_notify() to skip building an expensive bundle when nobody is
    listening.
    """

    def __init__(
        self,
        parameter_adapter: Optional[ParameterAdapter] = None,
        introspector: Optional[Introspector] = None,
        failure_handler: Optional[
            handlers.FAILURE_HANDLER
        ] = handlers.log_and_continue,
    ) -> None:
        self._index = RegistrationIndex()
        self._parameter_adapter: ParameterAdapter = (
            parameter_adapter
            if parameter_adapter is not None
            else DefaultParameterAdapter()
        )
        self._introspector: Introspector = (
            introspector if introspector is not None else DeclaredMethodIntrospector()
        )

        # -----Failure Handler-----
        self._failure_handler: Optional[handlers.FAILURE_HANDLER] = failure_handler

        # -----Notifies-----
        self.notify_on_enlist: bool = False
        self.notify_on_new_tag: bool = False
        self.notify_on_notify: bool = False
        self.notify_on_failure: bool = False

    @property
    def parameter_adapter(self) -> ParameterAdapter:
        return self._parameter_adapter

    def clear(self) -> None:
        """Drop every binding, releasing the enlisted targets."""
        self._index.clear()

    # -----Enlistment----------------------------------------------------------

    def enlist_target(self, target: Any) -> list[HandlerBinding]:
        """
        Enlist every tagged handler method declared on a target's class.

        Only methods defined directly on type(target) are considered,
        inherited handlers are not. Enlisting the same target twice enlists
        its handlers twice.

        Args:
            target (Any): The object whose tagged methods should be enlisted.
        Returns:
            list[HandlerBinding]: The bindings created, in the order they
                were registered. Empty if the target has no tagged methods.
        Notes:
            Sends a notify when a tag is created and when a binding is
            enlisted, if enabled with set_flag_states().
        """
        created: list[HandlerBinding] = []

        for tag, callback, signature in self._introspector.introspect(target):
            binding = HandlerBinding(
                tag=tag,
                target=target,
                callback=callback,
                signature=tuple(signature),
                is_async=inspect.iscoroutinefunction(callback),
            )
            is_new_tag = self._index.register(tag, binding)
            created.append(binding)

            logger.debug(f"Enlisted {binding.name} for notification '{tag}'")

            if is_reserved(tag):
                continue

            if is_new_tag and self.notify_on_new_tag:
                self.notify(NOTIFIER_ON_TAG_CREATED, tag=tag)

            if self.notify_on_enlist:
                self.notify(NOTIFIER_ON_TARGET_ENLISTED, tag=tag, target=target)

        if not created:
            logger.debug(f"No tagged handlers found on {type(target).__name__}")

        return created

    def should_notify(self, tag: str) -> bool:
        """
        Check if any handler is enlisted for a notification.

        Lets producers skip building a bundle nobody will receive. Never
        raises; unknown tags return False.
        """
        return self._index.contains(tag)

    # -----Dispatch------------------------------------------------------------

    def set_failure_handler(
        self, handler: Optional[handlers.FAILURE_HANDLER]
    ) -> None:
        """
        Set the failure handler for handler errors.
        The handler is called when a handler cannot be bound or raises.

        Args:
            Optional[handlers.FAILURE_HANDLER]:
                Callable with signature (HandlerBinding, str, failure) -> bool.
                Returns True to stop delivery, False to continue.
                Pass None to continue silently. Failures are recorded in the
                NotificationReport either way.
        """
        self._failure_handler = handler

    def _on_failure(
        self,
        report: NotificationReport,
        binding: HandlerBinding,
        failure: HANDLER_FAILURE,
    ) -> bool:
        """Record a failure and return True if delivery should stop."""
        report.failures.append(failure)

        stop = False
        if self._failure_handler is not None:
            stop = bool(self._failure_handler(binding, report.tag, failure))

        if not is_reserved(report.tag) and self.notify_on_failure:
            self.notify(NOTIFIER_ON_FAILURE, tag=report.tag, failure=failure)

        return stop

    def notify(
        self, tag: str, bundle: Any = None, /, **fields: Any
    ) -> NotificationReport:
        """
        Send a notification to every synchronous handler enlisted for it.

        Handlers are called in registration order. Async handlers are NOT
        called, they are skipped and counted in the report. Use
        notify_async() to call them.

        Args:
            tag (str): The notification name.
            bundle (Any): Mapping or object whose fields are bound to handler
                parameters by name.
            **fields (Any): Extra fields, taking precedence over the bundle.
        Returns:
            NotificationReport: What ran and what failed. Handler failures
                are reported here, never raised.
        Notes:
            Sends a notify after all handlers ran, if enabled with
            set_flag_states().
        """
        report = NotificationReport(tag=tag)
        bindings = self._index.lookup(tag)
        if not bindings:
            return report

        bundle = binder.merge_bundle(bundle, fields)
        logger.debug(f"Notifying '{tag}' to {len(bindings)} handler(s)")

        for binding in bindings:
            if binding.is_async:
                report.skipped += 1
                continue

            try:
                args, kwargs = binder.bind_arguments(
                    binding, bundle, self._parameter_adapter
                )
            except BindingFailure as failure:
                if self._on_failure(report, binding, failure):
                    report.stopped = True
                    break
                continue

            try:
                binding.callback(*args, **kwargs)
            except Exception as e:
                failure = InvocationError(tag, binding, e)
                if self._on_failure(report, binding, failure):
                    report.stopped = True
                    break
                continue

            report.invoked += 1

        if not is_reserved(tag) and self.notify_on_notify:
            self.notify(NOTIFIER_ON_NOTIFY, tag=tag, report=report)

        return report

    async def notify_async(
        self, tag: str, bundle: Any = None, /, **fields: Any
    ) -> NotificationReport:
        """
        Send a notification to every handler enlisted for it, awaiting async
        handlers.

        Both synchronous and asynchronous handlers are called in registration
        order. Synchronous handlers run immediately, asynchronous handlers
        are awaited one after another.

        Args:
            tag (str): The notification name.
            bundle (Any): Mapping or object whose fields are bound to handler
                parameters by name.
            **fields (Any): Extra fields, taking precedence over the bundle.
        Returns:
            NotificationReport: What ran and what failed.
        """
        report = NotificationReport(tag=tag)
        bindings = self._index.lookup(tag)
        if not bindings:
            return report

        bundle = binder.merge_bundle(bundle, fields)
        logger.debug(f"Notifying '{tag}' (async) to {len(bindings)} handler(s)")

        for binding in bindings:
            try:
                args, kwargs = binder.bind_arguments(
                    binding, bundle, self._parameter_adapter
                )
            except BindingFailure as failure:
                if self._on_failure(report, binding, failure):
                    report.stopped = True
                    break
                continue

            try:
                if binding.is_async:
                    await binding.callback(*args, **kwargs)
                else:
                    binding.callback(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                failure = InvocationError(tag, binding, e)
                if self._on_failure(report, binding, failure):
                    report.stopped = True
                    break
                continue

            report.invoked += 1

        if not is_reserved(tag) and self.notify_on_notify:
            self.notify(NOTIFIER_ON_NOTIFY, tag=tag, report=report)

        return report

    # -----Notifies + Helpers--------------------------------------------------

    def set_flag_states(
        self,
        on_enlist: bool = False,
        on_new_tag: bool = False,
        on_notify: bool = False,
        on_failure: bool = False,
    ) -> None:
        """
        Set the notification flags on or off for each type of notifier
        activity. Activity notifications are sent through this notifier, so
        enlist a target with handlers for the NOTIFIER_ON_* names to receive
        them.

        Args:
            on_enlist:   if True, get notified for each binding enlist_target() creates;
            on_new_tag:  if True, get notified whenever a tag gets its first binding;
            on_notify:   if True, get notified after every notify() or notify_async();
            on_failure:  if True, get notified whenever a handler fails.
        """
        self.notify_on_enlist = on_enlist
        self.notify_on_new_tag = on_new_tag
        self.notify_on_notify = on_notify
        self.notify_on_failure = on_failure

    # -----Introspection API---------------------------------------------------

    def get_tags(self) -> list[str]:
        """Get all tags with at least one binding."""
        return self._index.tags()

    def get_binding_count(self, tag: str) -> int:
        """
        Get the number of bindings for a tag.

        Args:
            tag (str): Tag to count bindings for.
        Returns:
            int: Number of bindings, duplicates included.
        """
        return self._index.count(tag)

    def get_bindings(self, tag: str) -> list[HandlerBinding]:
        """Get all bindings for a tag in registration order."""
        return list(self._index.lookup(tag))

    def get_enlisted_targets(self, tag: str) -> list[Any]:
        """
        Get the distinct targets with a handler for a tag, in the order they
        were first enlisted.
        """
        seen: set[int] = set()
        targets = []
        for binding in self._index.lookup(tag):
            if id(binding.target) not in seen:
                seen.add(id(binding.target))
                targets.append(binding.target)

        return targets

    def is_enlisted(self, target: Any, tag: Optional[str] = None) -> bool:
        """
        Check if a target has any binding, optionally for a specific tag.

        Args:
            target (Any): The object to look for.
            tag (Optional[str]): Restrict the check to one tag.
        Returns:
            bool: True if at least one binding refers to the target.
        """
        snapshot = self._index.snapshot()
        tags = [tag] if tag is not None else list(snapshot)
        return any(
            binding.target is target
            for t in tags
            for binding in snapshot.get(t, ())
        )

    def get_statistics(self) -> dict[str, object]:
        """
        Get overall notifier statistics.

        Returns:
            dict[str, object]: Dictionary with notifier-wide statistics.

        Example:
            {
                "total_tags": 4,
                "total_bindings": 9,
                "total_targets": 3,
                "async_bindings": 2,
                "sync_bindings": 7,
                "average_bindings_per_tag": 2.25,
            }
        """
        snapshot = self._index.snapshot()
        bindings = [b for entries in snapshot.values() for b in entries]
        async_bindings = sum(1 for b in bindings if b.is_async)
        tag_count = len(snapshot)

        return {
            "total_tags": tag_count,
            "total_bindings": len(bindings),
            "total_targets": len({id(b.target) for b in bindings}),
            "async_bindings": async_bindings,
            "sync_bindings": len(bindings) - async_bindings,
            "average_bindings_per_tag": (
                len(bindings) / tag_count if tag_count > 0 else 0
            ),
        }

    def to_dict(self) -> dict:
        """Convert the notifier's bindings to a dictionary."""
        snapshot = self._index.snapshot()
        data = {}

        for tag in sorted(snapshot):
            handlers_info = []
            for binding in snapshot[tag]:
                params = ", ".join(spec.name for spec in binding.signature)
                async_str = " [async]" if binding.is_async else ""
                handlers_info.append(f"{binding.name}({params}){async_str}")

            data[tag] = handlers_info

        return data

    def to_string(self) -> str:
        """Returns a string representation of the notifier."""
        return json.dumps(self.to_dict(), indent=4)

    def export(self, filepath: Union[str, os.PathLike]) -> None:
        """Export the notifier's bindings to filepath as JSON."""
        with open(filepath, "w") as outfile:
            json.dump(self.to_dict(), outfile, indent=4)


__all__ = [
    "AdaptationError",
    "BindingFailure",
    "FieldLookupError",
    "DefaultParameterAdapter",
    "DeclaredMethodIntrospector",
    "HandlerBinding",
    "Introspector",
    "InvocationError",
    "NOTIFIER_ON_FAILURE",
    "NOTIFIER_ON_NOTIFY",
    "NOTIFIER_ON_TAG_CREATED",
    "NOTIFIER_ON_TARGET_ENLISTED",
    "NotificationFailed",
    "NotificationReport",
    "Notifier",
    "NotifierError",
    "ParameterAdapter",
    "ParameterSpec",
    "RejectingParameterAdapter",
    "adapter",
    "binder",
    "handlers",
    "introspection",
    "is_reserved",
    "notification_name",
]
