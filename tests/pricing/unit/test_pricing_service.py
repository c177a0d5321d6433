"""
PricingService Unit Tests

Tests the custom order price calculation. The engine is pure, so no
fixtures beyond a seller price table are needed.

Run with:
    pytest tests/pricing/unit/test_pricing_service.py -v
"""

import pytest
from pydantic import ValidationError

from enums.size_tier import SizeTier
from models.price_tier import (
    PriceTableDTO,
    PriceTierDTO,
    MaterialOptionDTO,
    CustomOrderDraftDTO,
)
from services.pricing import PricingService


@pytest.fixture
def table():
    """A1/A2/A4 price table with two materials."""
    return PriceTableDTO(
        tiers={
            "A1": PriceTierDTO(base_price=500, per_extra_unit_price=100),
            "A2": PriceTierDTO(base_price=300, per_extra_unit_price=60),
            "A4": PriceTierDTO(base_price=150, per_extra_unit_price=25),
        },
        material_options=[
            MaterialOptionDTO(name="Canvas", cost_by_size={"A1": 50, "A2": 30, "A4": 10}),
            MaterialOptionDTO(name="Paper", cost_by_size={"A1": 20}),
        ],
    )


class TestComputeTotal:
    """Test PricingService.compute_total()"""

    def test_single_unit_with_material(self, table):
        draft = CustomOrderDraftDTO(size="A1", material_name="Canvas", unit_count=1)
        assert PricingService.compute_total(table, draft) == 550

    def test_extra_units_scale_per_unit_price(self, table):
        draft = CustomOrderDraftDTO(size="A1", material_name="Canvas", unit_count=3)
        assert PricingService.compute_total(table, draft) == 500 + 2 * 100 + 50

    def test_unknown_material_adds_nothing(self, table):
        draft = CustomOrderDraftDTO(size="A1", material_name="Marble", unit_count=1)
        assert PricingService.compute_total(table, draft) == 500

    def test_unknown_size_yields_zero(self, table):
        draft = CustomOrderDraftDTO(size="A0", material_name="Canvas", unit_count=1)
        assert PricingService.compute_total(table, draft) == 0

    def test_material_without_cost_for_size(self, table):
        draft = CustomOrderDraftDTO(size="A4", material_name="Paper", unit_count=2)
        assert PricingService.compute_total(table, draft) == 150 + 25

    def test_partially_filled_draft(self, table):
        """No size and no material selected yet: defined result, not an error."""
        assert PricingService.compute_total(table, CustomOrderDraftDTO()) == 0
        assert PricingService.compute_total(table, CustomOrderDraftDTO(size="A2")) == 300

    def test_empty_table(self):
        draft = CustomOrderDraftDTO(size="A1", material_name="Canvas", unit_count=4)
        assert PricingService.compute_total(PriceTableDTO(), draft) == 0

    def test_same_inputs_same_output(self, table):
        draft = CustomOrderDraftDTO(size="A2", material_name="Canvas", unit_count=5)
        results = {PricingService.compute_total(table, draft) for _ in range(10)}
        assert results == {300 + 4 * 60 + 30}

    def test_extra_term_never_negative(self, table):
        """A draft built without validation must not produce a discount."""
        draft = CustomOrderDraftDTO.model_construct(size="A1", material_name=None, unit_count=0)
        assert PricingService.compute_total(table, draft) == 500

    def test_draft_rejects_unit_count_below_one(self):
        with pytest.raises(ValidationError):
            CustomOrderDraftDTO(size="A1", unit_count=0)


class TestCalculateBreakdown:
    """Test PricingService.calculate_breakdown()"""

    def test_breakdown_terms(self, table):
        breakdown = PricingService.calculate_breakdown(
            table, CustomOrderDraftDTO(size="A1", material_name="Canvas", unit_count=3)
        )

        assert breakdown.base == 500
        assert breakdown.extra == 200
        assert breakdown.material == 50
        assert breakdown.total == 750

    def test_first_material_with_name_wins(self):
        table = PriceTableDTO(
            tiers={"A1": PriceTierDTO(base_price=100)},
            material_options=[
                MaterialOptionDTO(name="Canvas", cost_by_size={"A1": 5}),
                MaterialOptionDTO(name="Canvas", cost_by_size={"A1": 99}),
            ],
        )
        assert PricingService.material_cost(table, "Canvas", "A1") == 5


class TestPriceTableFromSellerPayload:
    """Test PriceTableDTO.from_seller_payload()"""

    def test_parses_seller_profile_json(self):
        table = PriceTableDTO.from_seller_payload(
            {
                "A1": {"basePrice": 500, "perPersonPrice": 100},
                "A2": {"basePrice": 300, "perPersonPrice": 60},
                "A4": {"basePrice": 150, "perPersonPrice": 25},
            },
            [{"name": "Canvas", "costs": {"A1": 50, "A2": 30, "A4": 10}}],
        )

        draft = CustomOrderDraftDTO(size="A1", material_name="Canvas", unit_count=3)
        assert PricingService.compute_total(table, draft) == 750

    def test_null_and_malformed_amounts_become_zero(self):
        table = PriceTableDTO.from_seller_payload(
            {
                "A1": {"basePrice": None, "perPersonPrice": "40"},
                "A2": {"basePrice": -10, "perPersonPrice": "abc"},
                "A4": "not-a-tier",
            },
            [
                {"name": "Canvas", "costs": {"A1": None, "A2": 12.7}},
                {"costs": {"A1": 5}},
                "garbage",
            ],
        )

        assert table.tiers["A1"] == PriceTierDTO(base_price=0, per_extra_unit_price=40)
        assert table.tiers["A2"] == PriceTierDTO(base_price=0, per_extra_unit_price=0)
        assert "A4" not in table.tiers
        assert [m.name for m in table.material_options] == ["Canvas"]
        assert table.material_options[0].cost_by_size == {"A1": 0, "A2": 12}

    def test_seller_without_custom_orders(self):
        table = PriceTableDTO.from_seller_payload(None, None)

        assert table.tiers == {}
        assert table.material_options == []

    def test_offered_sizes_in_tier_order(self):
        table = PriceTableDTO.from_seller_payload(
            {"A4": {"basePrice": 150}, "A1": {"basePrice": 500}, "B2": {"basePrice": 90}},
            [],
        )

        assert table.offered_sizes() == [SizeTier.A1, SizeTier.A4]
        assert "B2" in table.tiers
