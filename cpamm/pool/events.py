"""Observable pool events.

Events are appended only after an operation fully succeeds. The pool never
reads them back; they exist for observers (tests, the HTTP service, logs).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from cpamm.types import AssetKind


class PoolEvent(BaseModel):
    """Base class for pool events."""

    model_config = ConfigDict(frozen=True)


class LiquidityAdded(PoolEvent):
    """A provider deposited both assets and received shares."""

    kind: Literal["liquidity_added"] = "liquidity_added"
    provider: str
    amount_a: int = Field(gt=0)
    amount_b: int = Field(gt=0)
    total_shares_after: int = Field(ge=0)


class LiquidityRemoved(PoolEvent):
    """A provider burned shares and received both assets."""

    kind: Literal["liquidity_removed"] = "liquidity_removed"
    provider: str
    amount_a_out: int = Field(ge=0)
    amount_b_out: int = Field(ge=0)
    total_shares_after: int = Field(ge=0)


class Swap(PoolEvent):
    """A trader exchanged one asset for the other."""

    kind: Literal["swap"] = "swap"
    trader: str
    asset_in: AssetKind
    amount_in: int = Field(gt=0)
    amount_out: int = Field(gt=0)


AnyPoolEvent = Annotated[
    LiquidityAdded | LiquidityRemoved | Swap,
    Field(discriminator="kind"),
]

E = TypeVar("E", bound=PoolEvent)


class EventLog:
    """Append-only sequence of pool events."""

    def __init__(self) -> None:
        self._events: list[PoolEvent] = []

    def append(self, event: PoolEvent) -> None:
        self._events.append(event)

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def of_type(self, event_type: type[E]) -> list[E]:
        """Return all events of the given class, oldest first."""
        return [e for e in self._events if isinstance(e, event_type)]

    def last(self) -> PoolEvent | None:
        return self._events[-1] if self._events else None
