"""Base classes for domain layer.

Value objects compare by attributes, entities by id. The cart aggregate
records domain events for every mutation so the application layer can
log them once the mutation is applied.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """Base class for immutable, attribute-compared catalog and key types."""

    pass


@dataclass(eq=False)
class Entity(ABC):
    """Base class for entities.

    Two entities are equal if they have the same id, whatever their
    other attributes. Subclasses are declared with eq=False so the
    dataclass machinery keeps these semantics.

    Attributes:
        id: Identity of the entity.
    """

    id: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False, kw_only=True)
class AggregateRoot(Entity):
    """Entity that records a domain event per mutation."""

    _events: list["DomainEvent"] = field(default_factory=list, init=False, repr=False)

    def _record_event(self, event: "DomainEvent") -> None:
        self._events.append(event)

    def collect_events(self) -> list["DomainEvent"]:
        """Collect and clear recorded events.

        Returns:
            Events recorded since the last collection, oldest first.
        """
        events = self._events.copy()
        self._events.clear()
        return events


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for cart domain events.

    Attributes:
        event_id: Unique identifier for this event instance.
        event_type: Dotted event name (set by subclass).
        occurred_at: Timestamp when the event occurred.
        aggregate_id: Actor key of the cart that emitted the event.
        aggregate_type: Type name of the aggregate.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: str = ""
    aggregate_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Flatten the event for structured logging."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "payload": self._payload(),
        }

    @abstractmethod
    def _payload(self) -> dict[str, Any]:
        pass
