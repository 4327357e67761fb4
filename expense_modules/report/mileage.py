"""
Mileage Calculator (``expense_modules.report.mileage``).

Responsibility
--------------
Derives the one-way driving distance of a mileage line item from its two
resolved endpoints through the ``Geocoder`` collaborator, and applies the
result back onto the line item.

Lifecycle of one lookup
-----------------------
1. ``request(item)`` checks that both endpoints are resolved and issues a
   ``MileageLookup`` ticket stamped with the payload's current generation.
   A generation is issued at most once.
2. ``lookup(ticket)`` (blocking) or ``submit(ticket)`` (on the executor)
   calls the provider and returns a ``MileageOutcome``.
3. ``apply(item, outcome, session)`` writes the distance onto the item,
   but only if the item's generation still equals the ticket's. Older
   outcomes are discarded whatever order they arrive in.

Invariants enforced
-------------------
* The provider is never called while an endpoint is unresolved.
* The calculator returns one-way miles; round trips are doubled by the
  line-item cost derivation.
* A provider failure leaves the item's mileage unchanged and is returned
  to the caller as a failure value.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID

from expense_kernel.domain.results import Failure, FailureKind, Result
from expense_kernel.exceptions import (
    EndpointUnresolvedError,
    ProviderError,
    RouteNotFoundError,
)
from expense_kernel.logging_config import get_logger
from expense_modules.report.config import EditingSession
from expense_modules.report.helpers import meters_to_miles
from expense_modules.report.line_items import recompute_cost
from expense_modules.report.models import (
    ComputedMileage,
    Endpoint,
    LineItem,
    MileageEntryMode,
    MileagePayload,
)
from expense_modules.report.ports import Geocoder

logger = get_logger("modules.report.mileage")


@dataclass(frozen=True)
class MileageLookup:
    """Ticket for one distance request."""
    line_item_id: UUID
    generation: int
    origin: str
    destination: str


@dataclass(frozen=True)
class MileageOutcome:
    """Provider answer for a ticket: miles or a failure."""
    lookup: MileageLookup
    miles: Decimal | None = None
    failure: Failure | None = None

    @property
    def is_success(self) -> bool:
        return self.failure is None


class MileageCalculator:
    """
    Issues, runs and applies distance lookups.

    Contract
    --------
    * ``distance`` raises; ``request``/``lookup``/``apply`` return values.
    * ``submit`` runs on the injected executor. Without one it runs inline
      and returns an already completed future.
    """

    def __init__(self, geocoder: Geocoder, executor: Executor | None = None):
        self._geocoder = geocoder
        self._executor = executor
        self._issued: dict[UUID, int] = {}

    def resolve_place(self, query: str) -> str | None:
        """Autocomplete step. Blank queries never reach the provider."""
        if not query.strip():
            return None
        return self._geocoder.resolve_place(query)

    def distance(self, origin: str, destination: str) -> Decimal:
        """
        One-way distance in miles between two resolved places.

        Raises:
            EndpointUnresolvedError: if either place is empty.
            RouteNotFoundError: if the provider returns no distance.
            ProviderError: if the provider call fails.
        """
        missing = tuple(
            endpoint.value
            for endpoint, place in ((Endpoint.FROM, origin), (Endpoint.TO, destination))
            if not place
        )
        if missing:
            raise EndpointUnresolvedError(missing)
        meters = self._geocoder.distance_meters(origin, destination)
        if meters is None or meters < 0:
            raise RouteNotFoundError(origin, destination)
        return meters_to_miles(Decimal(meters))

    def request(self, item: LineItem, *, retry: bool = False) -> Result[MileageLookup]:
        """
        Issue a lookup ticket for ``item``'s current endpoints.

        ``retry`` re-issues a generation that was already requested, e.g.
        after a provider failure.
        """
        payload = item.payload
        if not isinstance(payload, MileagePayload):
            return Result.fail(Failure.validation(
                "NOT_MILEAGE_TRIP", "Line item is not a mileage trip",
                field="category", line_item_id=str(item.id),
            ))
        if payload.entry_mode is MileageEntryMode.MANUAL:
            return Result.fail(Failure.validation(
                "MANUAL_MILEAGE", "Mileage is entered manually",
                field="payload.entry_mode", line_item_id=str(item.id),
            ))

        missing = tuple(e.value for e in Endpoint if not payload.location(e).resolved)
        if missing:
            return Result.fail(Failure.from_exception(EndpointUnresolvedError(missing)))

        if not retry and self._issued.get(item.id) == payload.generation:
            return Result.fail(Failure.validation(
                "LOOKUP_ALREADY_ISSUED",
                f"Distance already requested for generation {payload.generation}",
                field="payload.mileage", line_item_id=str(item.id),
            ))

        self._issued[item.id] = payload.generation
        lookup = MileageLookup(
            line_item_id=item.id,
            generation=payload.generation,
            origin=payload.from_location.place or "",
            destination=payload.to_location.place or "",
        )
        logger.info(
            "mileage_lookup_issued",
            extra={
                "line_item_id": str(item.id),
                "generation": lookup.generation,
                "origin": lookup.origin,
                "destination": lookup.destination,
            },
        )
        return Result.ok(lookup)

    def lookup(self, lookup: MileageLookup) -> MileageOutcome:
        """Run one ticket against the provider (blocking)."""
        try:
            miles = self.distance(lookup.origin, lookup.destination)
        except ProviderError as exc:
            logger.warning(
                "mileage_lookup_failed",
                extra={
                    "line_item_id": str(lookup.line_item_id),
                    "generation": lookup.generation,
                    "error_code": exc.code,
                    "reason": str(exc),
                },
            )
            return MileageOutcome(lookup=lookup, failure=Failure.from_exception(exc))
        return MileageOutcome(lookup=lookup, miles=miles)

    def submit(self, lookup: MileageLookup) -> Future[MileageOutcome]:
        """Run ``lookup`` on the executor."""
        if self._executor is not None:
            return self._executor.submit(self.lookup, lookup)
        future: Future[MileageOutcome] = Future()
        future.set_result(self.lookup(lookup))
        return future

    def apply(
        self,
        item: LineItem,
        outcome: MileageOutcome,
        session: EditingSession,
    ) -> Result[LineItem]:
        """
        Apply ``outcome`` to ``item`` if it is still current.

        Returns:
            - ok(updated item) on a current success,
            - the outcome's failure on a current provider failure
              (item unchanged),
            - a SUPERSEDED failure when a newer edit replaced the ticket.
        """
        payload = item.payload
        ticket = outcome.lookup
        if (
            item.id != ticket.line_item_id
            or not isinstance(payload, MileagePayload)
            or payload.entry_mode is not MileageEntryMode.CALCULATED
            or payload.generation != ticket.generation
        ):
            logger.info(
                "mileage_result_discarded",
                extra={
                    "line_item_id": str(ticket.line_item_id),
                    "ticket_generation": ticket.generation,
                    "current_generation": getattr(payload, "generation", None),
                },
            )
            return Result.fail(Failure(
                kind=FailureKind.SUPERSEDED,
                code="STALE_LOOKUP",
                message="Distance result arrived after the trip was edited",
                field="payload.mileage",
                details={"generation": ticket.generation},
            ))

        if outcome.failure is not None:
            return Result.fail(outcome.failure)

        assert outcome.miles is not None
        updated = replace(item, payload=replace(payload, mileage=ComputedMileage(outcome.miles)))
        logger.info(
            "mileage_applied",
            extra={
                "line_item_id": str(item.id),
                "generation": ticket.generation,
                "miles": str(outcome.miles),
                "round_trip": payload.round_trip,
            },
        )
        return Result.ok(recompute_cost(updated, session))

    def forget(self, line_item_id: UUID) -> None:
        """Drop issuance bookkeeping for a removed line item."""
        self._issued.pop(line_item_id, None)
