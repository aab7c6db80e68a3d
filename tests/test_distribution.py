"""
Tests for the distribution engine.
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from allocation_engine.core.exceptions import (
    InvalidMethodError,
    NoEntitiesError,
    ValidationError,
    WeightSumZeroError,
)
from allocation_engine.engines.distribution import (
    DistributionEngine,
    DistributionEntity,
    largest_remainder,
    percent_of,
    to_money,
)
from allocation_engine.models.allocation import AllocationDimension, AllocationMethod


def customers(*priors):
    return [
        DistributionEntity(
            dimension_name=f"Customer {i}",
            dimension_type=AllocationDimension.CUSTOMER,
            dimension_id=f"C{i}",
            prior_year_amount=Decimal(p) if p is not None else None,
        )
        for i, p in enumerate(priors, start=1)
    ]


def amounts(result):
    return [line.allocated_amount for line in result.lines]


@pytest.fixture
def engine():
    return DistributionEngine()


def test_largest_remainder_hands_leftover_cents_to_earliest_on_ties():
    assert largest_remainder(100000, [Fraction(1)] * 3) == [33334, 33333, 33333]
    assert largest_remainder(2, [Fraction(1)] * 3) == [1, 1, 0]


def test_largest_remainder_rejects_zero_weights():
    with pytest.raises(WeightSumZeroError):
        largest_remainder(100, [Fraction(0), Fraction(0)])


def test_equal_split_of_a_thousand_across_three(engine):
    result = engine.distribute(Decimal("1000.00"), customers(None, None, None), AllocationMethod.EQUAL_SPLIT)

    assert amounts(result) == [Decimal("333.34"), Decimal("333.33"), Decimal("333.33")]
    assert [line.allocated_pct for line in result.lines] == [Decimal("33.3")] * 3
    assert result.allocated_amount == Decimal("1000.00")
    assert result.unallocated_amount == Decimal("0.00")


def test_lines_are_numbered_in_entity_order(engine):
    result = engine.distribute("90", customers(None, None, None), "equal_split")

    assert [line.line_number for line in result.lines] == [1, 2, 3]
    assert [line.dimension_id for line in result.lines] == ["C1", "C2", "C3"]
    assert all(line.dimension_type == AllocationDimension.CUSTOMER for line in result.lines)


def test_proportional_uses_prior_year_amounts(engine):
    result = engine.distribute(
        Decimal("1000.00"), customers("200", "600", "1200"), AllocationMethod.PROPORTIONAL
    )

    assert amounts(result) == [Decimal("100.00"), Decimal("300.00"), Decimal("600.00")]
    assert [line.allocated_pct for line in result.lines] == [
        Decimal("10.0"), Decimal("30.0"), Decimal("60.0")
    ]
    assert [line.prior_year_growth_pct for line in result.lines] == [Decimal("-50.0")] * 3


def test_proportional_scales_up_from_prior_year(engine):
    result = engine.distribute(
        Decimal("2000"), customers("100", "300", "600"), AllocationMethod.PROPORTIONAL
    )

    assert amounts(result) == [Decimal("200.00"), Decimal("600.00"), Decimal("1200.00")]
    assert [line.prior_year_growth_pct for line in result.lines] == [Decimal("100.0")] * 3


def test_proportional_without_history_falls_back_to_equal_split(engine):
    result = engine.distribute(Decimal("10.00"), customers(None, "0", None), AllocationMethod.PROPORTIONAL)

    assert amounts(result) == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]
    assert result.lines[0].prior_year_growth_pct is None


def test_weighted_uses_overrides_by_id_or_name(engine):
    entities = customers(None, None, None)
    result = engine.distribute(
        Decimal("1000.00"),
        entities,
        AllocationMethod.WEIGHTED,
        overrides={"C1": Decimal("1"), "Customer 3": Decimal("3")},
    )

    assert amounts(result) == [Decimal("250.00"), Decimal("0.00"), Decimal("750.00")]


def test_weighted_with_all_zero_weights_fails(engine):
    with pytest.raises(WeightSumZeroError):
        engine.distribute(
            Decimal("1000.00"),
            customers(None, None),
            AllocationMethod.WEIGHTED,
            overrides={"C1": 0, "C2": 0},
        )


def test_weighted_without_overrides_fails(engine):
    with pytest.raises(WeightSumZeroError):
        engine.distribute(Decimal("1000.00"), customers(None, None), AllocationMethod.WEIGHTED)


def test_weighted_rejects_negative_weights(engine):
    with pytest.raises(WeightSumZeroError):
        engine.distribute(
            Decimal("100.00"),
            customers(None, None),
            AllocationMethod.WEIGHTED,
            overrides={"C1": -1, "C2": 2},
        )


def test_top_down_requires_a_parent_budget(engine):
    with pytest.raises(ValidationError):
        engine.distribute(Decimal("1000.00"), customers("1", "1"), AllocationMethod.TOP_DOWN)


def test_top_down_is_proportional_without_overrides(engine):
    result = engine.distribute(
        Decimal("1000.00"),
        customers("200", "600", "1200"),
        AllocationMethod.TOP_DOWN,
        budget_id="B-100",
    )

    assert amounts(result) == [Decimal("100.00"), Decimal("300.00"), Decimal("600.00")]


def test_top_down_is_weighted_with_overrides(engine):
    result = engine.distribute(
        Decimal("1000.00"),
        customers("200", "600"),
        AllocationMethod.TOP_DOWN,
        overrides={"C1": 1, "C2": 1},
        budget_id="B-100",
    )

    assert amounts(result) == [Decimal("500.00"), Decimal("500.00")]


def test_bottom_up_passes_requests_through_when_they_fit(engine):
    result = engine.distribute(
        Decimal("1000.00"),
        customers(None, None, None),
        AllocationMethod.BOTTOM_UP,
        overrides={"C1": 100, "C2": 200, "C3": 300},
    )

    assert amounts(result) == [Decimal("100.00"), Decimal("200.00"), Decimal("300.00")]
    assert result.allocated_amount == Decimal("600.00")
    assert result.unallocated_amount == Decimal("400.00")


def test_bottom_up_scales_down_when_requests_exceed_source(engine):
    result = engine.distribute(
        Decimal("1000.00"),
        customers(None, None, "1200"),
        AllocationMethod.BOTTOM_UP,
        overrides={"C1": 100, "C2": 200},
    )

    assert amounts(result) == [Decimal("66.67"), Decimal("133.33"), Decimal("800.00")]
    assert result.allocated_amount == Decimal("1000.00")


def test_bottom_up_rejects_negative_requests(engine):
    with pytest.raises(ValidationError):
        engine.distribute(
            Decimal("1000.00"),
            customers(None),
            AllocationMethod.BOTTOM_UP,
            overrides={"C1": -5},
        )


def test_zero_source_yields_zero_lines(engine):
    result = engine.distribute(Decimal("0"), customers(None, None), AllocationMethod.EQUAL_SPLIT)

    assert amounts(result) == [Decimal("0.00"), Decimal("0.00")]
    assert [line.allocated_pct for line in result.lines] == [Decimal("0.0")] * 2


def test_single_cent_goes_to_first_entity(engine):
    result = engine.distribute(Decimal("0.01"), customers(None, None, None), AllocationMethod.EQUAL_SPLIT)

    assert amounts(result) == [Decimal("0.01"), Decimal("0.00"), Decimal("0.00")]


def test_distribution_is_deterministic(engine):
    entities = customers("13.37", "42.00", "7.77", "0.01")
    first = engine.distribute(Decimal("9999.99"), entities, AllocationMethod.PROPORTIONAL)
    second = engine.distribute(Decimal("9999.99"), entities, AllocationMethod.PROPORTIONAL)

    assert first == second
    assert first.allocated_amount == Decimal("9999.99")


@pytest.mark.parametrize("method", ["equal_split", "proportional"])
def test_lines_always_sum_to_source(engine, method):
    result = engine.distribute(Decimal("12345.67"), customers("3", "5", "7", "11", "13", "17", "19"), method)

    assert sum(amounts(result)) == Decimal("12345.67")


def test_unknown_method_is_rejected(engine):
    with pytest.raises(InvalidMethodError):
        engine.distribute(Decimal("10"), customers(None), "random")


def test_empty_entity_list_is_rejected(engine):
    with pytest.raises(NoEntitiesError):
        engine.distribute(Decimal("10"), [], AllocationMethod.EQUAL_SPLIT)


def test_negative_source_is_rejected(engine):
    with pytest.raises(ValidationError):
        engine.distribute(Decimal("-1"), customers(None), AllocationMethod.EQUAL_SPLIT)


def test_percent_of_zero_whole_is_zero():
    assert percent_of(Decimal("5"), Decimal("0")) == Decimal("0.0")


def test_unparseable_amount_is_a_validation_error():
    with pytest.raises(ValidationError):
        to_money("twelve")
    with pytest.raises(ValidationError):
        to_money(Decimal("1e30"))


def test_source_beyond_column_range_is_rejected(engine):
    with pytest.raises(ValidationError):
        engine.distribute(Decimal("1e14"), customers(None), AllocationMethod.EQUAL_SPLIT)
    with pytest.raises(ValidationError):
        engine.distribute(Decimal("1e30"), customers(None), AllocationMethod.EQUAL_SPLIT)


def test_bottom_up_rejects_oversized_requests(engine):
    with pytest.raises(ValidationError):
        engine.distribute(
            Decimal("100.00"),
            customers(None),
            AllocationMethod.BOTTOM_UP,
            overrides={"C1": Decimal("1e30")},
        )


@pytest.mark.parametrize("weight", [Decimal("1e30"), Decimal("NaN"), Decimal("Infinity"), "heavy"])
def test_weighted_rejects_non_finite_or_oversized_weights(engine, weight):
    with pytest.raises(ValidationError):
        engine.distribute(
            Decimal("100.00"),
            customers(None, None),
            AllocationMethod.WEIGHTED,
            overrides={"C1": weight, "C2": 1},
        )
