from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from enums.size_tier import SizeTier


def _to_amount(value: Any) -> int:
    """Coerce a seller-entered amount to a non-negative integer, 0 when unusable."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        amount = int(value)
    elif isinstance(value, str):
        try:
            amount = int(float(value.strip()))
        except ValueError:
            return 0
    else:
        return 0
    return max(amount, 0)


class PriceTierDTO(BaseModel):
    """Pricing of one size tier: first unit at base_price, each further unit adds per_extra_unit_price."""
    model_config = ConfigDict(frozen=True)

    base_price: int = 0
    per_extra_unit_price: int = 0


class MaterialOptionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    cost_by_size: dict[str, int] = {}


class PriceTableDTO(BaseModel):
    """Seller-supplied custom order price table, keyed by size tier."""
    model_config = ConfigDict(frozen=True)

    tiers: dict[str, PriceTierDTO] = {}
    material_options: list[MaterialOptionDTO] = []

    @classmethod
    def from_seller_payload(cls, custom_art_pricing: Any, material_options: Any = None) -> "PriceTableDTO":
        """
        Build a price table from the seller profile JSON.

        The seller form stores empty inputs as null, so every amount is coerced
        instead of validated. Entries that cannot be interpreted are skipped.

        Args:
            custom_art_pricing: {"A1": {"basePrice": 500, "perPersonPrice": 100}, ...} or None
            material_options: [{"name": "Canvas", "costs": {"A1": 50, ...}}, ...] or None

        Returns:
            PriceTableDTO (empty when the seller does not offer custom orders)
        """
        tiers = {}
        if isinstance(custom_art_pricing, dict):
            for size, entry in custom_art_pricing.items():
                if not isinstance(entry, dict):
                    continue
                tiers[str(size)] = PriceTierDTO(
                    base_price=_to_amount(entry.get("basePrice")),
                    per_extra_unit_price=_to_amount(entry.get("perPersonPrice", entry.get("perExtraUnitPrice"))),
                )

        options = []
        if isinstance(material_options, list):
            for entry in material_options:
                if not isinstance(entry, dict) or not entry.get("name"):
                    continue
                costs = entry.get("costs", entry.get("costBySize"))
                cost_by_size = {}
                if isinstance(costs, dict):
                    cost_by_size = {str(size): _to_amount(cost) for size, cost in costs.items()}
                options.append(MaterialOptionDTO(name=str(entry["name"]), cost_by_size=cost_by_size))

        return cls(tiers=tiers, material_options=options)

    def offered_sizes(self) -> list[SizeTier]:
        """Standard size tiers this seller has priced, in A1, A2, A4 order."""
        return [size for size in SizeTier if size.value in self.tiers]


class CustomOrderDraftDTO(BaseModel):
    """Order form state; size and material may still be unset while the user fills it in."""
    size: str | None = None
    material_name: str | None = None
    unit_count: int = Field(default=1, ge=1)


class PriceBreakdownDTO(BaseModel):
    """Terms of a custom order price (e.g. "500 + 2 × 100 + 50 = 750")."""
    model_config = ConfigDict(frozen=True)

    base: int
    extra: int
    material: int
    total: int
