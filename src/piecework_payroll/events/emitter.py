"""Event emitter for payroll domain events.

Write paths publish one event per change; subscribers such as the payroll
record cache filter by event type, category, or whether the event changes
a payroll record's inputs. A failing subscriber is logged and skipped so
the write that produced the event is never undone by a listener.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from piecework_payroll.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


@dataclass
class Subscription:
    """A handler and the events it wants."""

    handler: EventHandler
    event_types: frozenset[str] | None = None  # None = any type
    categories: frozenset[EventCategory] | None = None  # None = any category
    invalidating_only: bool = False

    def matches(self, event: DomainEvent) -> bool:
        if self.event_types is not None and event.event_type not in self.event_types:
            return False
        if self.categories is not None and event.category not in self.categories:
            return False
        return event.invalidates_payroll or not self.invalidating_only


class EventEmitter:
    """Synchronous in-process emitter.

    Usage:
        emitter = EventEmitter()
        emitter.on(QualityReviewed, notify_employee)
        emitter.on_category(EventCategory.PAYROLL, audit_log.append)
        emitter.on_invalidation(cache.handle_event)

        with emitter.batch() as batch:
            batch.add(superseded_event)
            batch.add(recorded_event)
        # delivered together once the block exits without error
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Subscribe to one or more event classes."""
        types = event_type if isinstance(event_type, list) else [event_type]
        self._subscribe(
            Subscription(handler, event_types=frozenset(t.__name__ for t in types))
        )

    def on_category(
        self, category: EventCategory | list[EventCategory], handler: EventHandler
    ) -> None:
        categories = category if isinstance(category, list) else [category]
        self._subscribe(Subscription(handler, categories=frozenset(categories)))

    def on_all(self, handler: EventHandler) -> None:
        self._subscribe(Subscription(handler))

    def on_invalidation(self, handler: EventHandler) -> None:
        """Subscribe to every event that changes a payroll record's inputs."""
        self._subscribe(Subscription(handler, invalidating_only=True))

    def off(self, handler: EventHandler) -> None:
        """Drop every subscription of ``handler``."""
        self._subscriptions = [s for s in self._subscriptions if s.handler != handler]

    def _subscribe(self, subscription: Subscription) -> None:
        self._subscriptions.append(subscription)

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver an event now; returns the errors raised by handlers."""
        errors: list[Exception] = []
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                logger.exception(
                    "Handler %r failed on %s for %s/%s",
                    subscription.handler,
                    event.event_type,
                    event.employee_id,
                    event.period,
                )
                errors.append(e)
        return errors

    def batch(self) -> EventBatch:
        """Collect events and deliver them only if the block succeeds."""
        return EventBatch(self)


class EventBatch:
    """Events of one unit of work, held until it completes."""

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self._pending: list[DomainEvent] = []
        self.errors: list[Exception] = []

    def __enter__(self) -> EventBatch:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        pending, self._pending = self._pending, []
        if exc_type is not None:
            logger.debug("Discarding %d events from failed unit of work", len(pending))
            return
        for event in pending:
            self.errors.extend(self._emitter.emit(event))

    def add(self, event: DomainEvent) -> None:
        self._pending.append(event)
