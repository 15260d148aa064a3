"""
Failure handling utilities for the notifier.

Provides failure handler functions and type definitions for reacting to
handlers that could not be bound or raised while running. Every failure is
recorded in the NotificationReport regardless of the handler in use; the
failure handler decides what gets logged and whether delivery continues.
Built-in handlers cover the common patterns: logging and continuing
(log_and_continue, the default), stopping on the first failure with logging
(stop_and_log), silently continuing (silent), and collecting failures for
batch processing (collect).
"""

import logging
import sys
from typing import Callable

from notifier.binding import HandlerBinding
from notifier.report import HANDLER_FAILURE


logger = logging.getLogger(__name__)


FAILURE_HANDLER = Callable[[HandlerBinding, str, HANDLER_FAILURE], bool]
"""
Signature for failure handlers.

Failure handlers receive the failing binding, the notification tag, and the
failure, then return True to stop delivery or False to continue to the
remaining handlers.
"""

STOP = True
CONTINUE = False


def log_and_continue(
    binding: HandlerBinding, tag: str, failure: HANDLER_FAILURE
) -> bool:
    """Log handler failures but continue delivery."""
    logger.warning(f"Handler failure (continuing): {binding.name} in {tag}: {failure}")
    return CONTINUE


def stop_and_log(binding: HandlerBinding, tag: str, failure: HANDLER_FAILURE) -> bool:
    """
    Handler that stops delivery to the remaining handlers and logs the failure
    with its traceback.
    """
    logger.error(
        f"Handler failure in notifier:\n"
        f"  Notification: {tag}\n"
        f"  Handler:      {binding.name}\n"
        f"  Failure:      {failure.__class__.__name__}: {failure}",
        exc_info=(type(failure), failure, failure.__traceback__),
    )
    return STOP


def silent(_: HandlerBinding, __: str, ___: HANDLER_FAILURE) -> bool:
    """Silently ignore all failures."""
    return CONTINUE


failures_caught = []


def collect(binding: HandlerBinding, tag: str, failure: HANDLER_FAILURE) -> bool:
    """
    Collect failures for batch processing.
    This appends failures to notifier.handlers.failures_caught which is a list.
    Either manage the list manually or use this function as an example to
    create a more robust collector.
    """
    failures_caught.append(
        {
            "handler": binding.name,
            "tag": tag,
            "failure": f"{failure.__class__.__name__}: {failure}",
            "exc_info": sys.exc_info(),
        }
    )
    return CONTINUE
