"""
Distribution engine.

Splits a source amount across a list of entities using one of the allocation
methods. Pure computation: no database, no network.

Rounding works on integer cents with exact fractions. Each entity first gets
the floor of its exact share; the cents left over are handed out one at a
time to the entities with the largest fractional remainder, earliest entity
first on ties. The amounts therefore always add up to the distributed total
to the cent, and the same input always yields the same output.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction
import math
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from allocation_engine.core.exceptions import (
    InvalidMethodError,
    NoEntitiesError,
    ValidationError,
    WeightSumZeroError,
)
from allocation_engine.core.logging import logger
from allocation_engine.models.allocation import AllocationDimension, AllocationMethod

CENT = Decimal("0.01")
PCT_QUANTUM = Decimal("0.1")
HUNDRED = Decimal("100")
# Amount columns are Numeric(15, 2).
MAX_AMOUNT = Decimal("1E13")

Number = Union[Decimal, int, float, str]


def to_money(value: Optional[Number]) -> Decimal:
    """Round a value half-up to cents. ``None`` becomes zero."""
    if value is None:
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("Not a valid monetary amount", {"value": str(value)}) from None


def bounded_money(value: Optional[Number], field: str = "amount") -> Decimal:
    """Like :func:`to_money` but rejects amounts the amount columns cannot hold."""
    amount = to_money(value)
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(
            f"Amount must be below {MAX_AMOUNT:,.0f}", {"field": field, "value": str(value)}
        )
    return amount


def to_cents(value: Decimal) -> int:
    return int(to_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def percent_of(part: Decimal, whole: Decimal, quantum: Decimal = PCT_QUANTUM) -> Decimal:
    """``part / whole * 100`` rounded to ``quantum``; zero when ``whole`` is zero."""
    if whole == 0:
        return Decimal("0").quantize(quantum)
    return (part / whole * HUNDRED).quantize(quantum, rounding=ROUND_HALF_UP)


def largest_remainder(total_cents: int, weights: Sequence[Fraction]) -> List[int]:
    """
    Split ``total_cents`` in proportion to ``weights``.

    Args:
        total_cents: Non-negative amount to split, in cents
        weights: Non-negative weights with a positive sum

    Returns:
        Cent amounts, one per weight, summing exactly to ``total_cents``
    """
    weight_sum = sum(weights, Fraction(0))
    if weight_sum <= 0:
        raise WeightSumZeroError("Weights must have a positive sum")

    exact = [Fraction(total_cents) * w / weight_sum for w in weights]
    shares = [math.floor(x) for x in exact]
    residual = total_cents - sum(shares)

    # Ties keep input order because sorted() is stable.
    order = sorted(range(len(exact)), key=lambda i: exact[i] - shares[i], reverse=True)
    for i in order[:residual]:
        shares[i] += 1
    return shares


@dataclass(frozen=True)
class DistributionEntity:
    """Snapshot of one distribution target taken from the reference data."""

    dimension_name: str
    dimension_type: AllocationDimension
    dimension_id: Optional[str] = None
    prior_year_amount: Optional[Decimal] = None

    @property
    def key(self) -> str:
        return self.dimension_id or self.dimension_name


@dataclass(frozen=True)
class LineDraft:
    """A computed allocation line, not yet persisted."""

    line_number: int
    dimension_name: str
    dimension_type: AllocationDimension
    dimension_id: Optional[str]
    allocated_amount: Decimal
    allocated_pct: Decimal
    prior_year_amount: Optional[Decimal] = None
    prior_year_growth_pct: Optional[Decimal] = None


@dataclass(frozen=True)
class DistributionResult:
    method: AllocationMethod
    source_amount: Decimal
    lines: Tuple[LineDraft, ...]

    @property
    def allocated_amount(self) -> Decimal:
        return sum((line.allocated_amount for line in self.lines), Decimal("0.00"))

    @property
    def unallocated_amount(self) -> Decimal:
        return self.source_amount - self.allocated_amount


class DistributionEngine:
    """
    Compute allocation lines for a source amount.

    Methods:
        equal_split   every entity weighs the same
        proportional  weights are prior-year amounts, equal split when they are all zero
        weighted      weights come from the overrides
        top_down      weighted when overrides are given, proportional otherwise;
                      only valid for allocations drawn from a parent budget
        bottom_up     overrides are requested amounts (prior-year amount when an
                      entity has no request); scaled down proportionally when
                      they exceed the source, passed through otherwise
    """

    def distribute(
        self,
        source_amount: Number,
        entities: Sequence[DistributionEntity],
        method: Union[AllocationMethod, str],
        overrides: Optional[Mapping[str, Number]] = None,
        budget_id: Optional[str] = None,
    ) -> DistributionResult:
        """
        Distribute ``source_amount`` across ``entities``.

        Args:
            source_amount: Pool to distribute, non-negative
            entities: Targets in the order lines should be numbered
            method: Allocation method
            overrides: Per-entity weights or requested amounts, keyed by
                entity id or name
            budget_id: Parent budget, required for top_down

        Returns:
            DistributionResult with lines numbered 1..N in entity order

        Raises:
            InvalidMethodError, NoEntitiesError, WeightSumZeroError, ValidationError
        """
        method = self._resolve_method(method)
        source = bounded_money(source_amount, "source_amount")
        if source < 0:
            raise ValidationError("Source amount cannot be negative", {"source_amount": str(source)})
        if not entities:
            raise NoEntitiesError("No entities to distribute across")

        logger.debug(
            f"Distributing {source} across {len(entities)} entities using {method.value}"
        )

        source_cents = to_cents(source)
        if method == AllocationMethod.EQUAL_SPLIT:
            cents = self._equal_split(source_cents, entities)
        elif method == AllocationMethod.PROPORTIONAL:
            cents = self._proportional(source_cents, entities)
        elif method == AllocationMethod.WEIGHTED:
            cents = self._weighted(source_cents, entities, overrides)
        elif method == AllocationMethod.TOP_DOWN:
            cents = self._top_down(source_cents, entities, overrides, budget_id)
        else:
            cents = self._bottom_up(source_cents, entities, overrides)

        lines = tuple(
            self._build_line(index, entity, from_cents(amount), source)
            for index, (entity, amount) in enumerate(zip(entities, cents), start=1)
        )
        result = DistributionResult(method=method, source_amount=source, lines=lines)

        logger.debug(
            f"Distribution computed: allocated={result.allocated_amount}, "
            f"unallocated={result.unallocated_amount}"
        )
        return result

    @staticmethod
    def _resolve_method(method: Union[AllocationMethod, str]) -> AllocationMethod:
        try:
            return AllocationMethod(method)
        except ValueError:
            raise InvalidMethodError(
                f"Unknown allocation method: {method}",
                {"allowed": [m.value for m in AllocationMethod]},
            ) from None

    @staticmethod
    def _equal_split(source_cents: int, entities: Sequence[DistributionEntity]) -> List[int]:
        return largest_remainder(source_cents, [Fraction(1)] * len(entities))

    def _proportional(self, source_cents: int, entities: Sequence[DistributionEntity]) -> List[int]:
        weights = [self._prior_weight(entity) for entity in entities]
        if sum(weights) == 0:
            logger.info("No prior-year amounts to weigh by, falling back to equal split")
            return self._equal_split(source_cents, entities)
        return largest_remainder(source_cents, weights)

    def _weighted(
        self,
        source_cents: int,
        entities: Sequence[DistributionEntity],
        overrides: Optional[Mapping[str, Number]],
    ) -> List[int]:
        if not overrides:
            raise WeightSumZeroError("Weighted distribution requires weights in the overrides")

        weights = [self._lookup(overrides, entity) for entity in entities]
        negative = [e.key for e, w in zip(entities, weights) if w is not None and w < 0]
        if negative:
            raise WeightSumZeroError("Weights cannot be negative", {"entities": negative})

        fractions = [Fraction(w) if w is not None else Fraction(0) for w in weights]
        if sum(fractions) == 0:
            raise WeightSumZeroError("Weights must have a positive sum")
        return largest_remainder(source_cents, fractions)

    def _top_down(
        self,
        source_cents: int,
        entities: Sequence[DistributionEntity],
        overrides: Optional[Mapping[str, Number]],
        budget_id: Optional[str],
    ) -> List[int]:
        if not budget_id:
            raise ValidationError("Top-down distribution requires a parent budget")
        if overrides:
            return self._weighted(source_cents, entities, overrides)
        return self._proportional(source_cents, entities)

    def _bottom_up(
        self,
        source_cents: int,
        entities: Sequence[DistributionEntity],
        overrides: Optional[Mapping[str, Number]],
    ) -> List[int]:
        requested: List[int] = []
        for entity in entities:
            value = self._lookup(overrides or {}, entity)
            if value is None:
                value = entity.prior_year_amount or Decimal("0")
            if Decimal(value) < 0:
                raise ValidationError(
                    "Requested amounts cannot be negative",
                    {"entity": entity.key, "requested": str(value)},
                )
            requested.append(to_cents(bounded_money(value, entity.key)))

        total_requested = sum(requested)
        if total_requested > source_cents:
            logger.info(
                f"Requests {from_cents(total_requested)} exceed source "
                f"{from_cents(source_cents)}, scaling down"
            )
            return largest_remainder(source_cents, [Fraction(r) for r in requested])
        return requested

    @staticmethod
    def _prior_weight(entity: DistributionEntity) -> Fraction:
        prior = entity.prior_year_amount
        if prior is None or prior <= 0:
            return Fraction(0)
        return Fraction(Decimal(str(prior)))

    @staticmethod
    def _lookup(overrides: Mapping[str, Number], entity: DistributionEntity) -> Optional[Decimal]:
        for key in (entity.dimension_id, entity.dimension_name):
            if key is not None and key in overrides:
                raw = overrides[key]
                try:
                    value = Decimal(str(raw))
                except InvalidOperation:
                    value = None
                if value is None or not value.is_finite() or abs(value) >= MAX_AMOUNT:
                    raise ValidationError(
                        "Override values must be finite numbers below the amount limit",
                        {"entity": entity.key, "value": str(raw)},
                    )
                return value
        return None

    @staticmethod
    def _build_line(
        line_number: int,
        entity: DistributionEntity,
        amount: Decimal,
        source: Decimal,
    ) -> LineDraft:
        prior = to_money(entity.prior_year_amount) if entity.prior_year_amount is not None else None
        growth = None
        if prior is not None and prior != 0:
            growth = percent_of(amount - prior, prior)
        return LineDraft(
            line_number=line_number,
            dimension_name=entity.dimension_name,
            dimension_type=entity.dimension_type,
            dimension_id=entity.dimension_id,
            allocated_amount=amount,
            allocated_pct=percent_of(amount, source),
            prior_year_amount=prior,
            prior_year_growth_pct=growth,
        )
