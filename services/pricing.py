from models.price_tier import PriceTableDTO, CustomOrderDraftDTO, PriceBreakdownDTO


class PricingService:
    """Service for custom order price calculations."""

    @staticmethod
    def material_cost(table: PriceTableDTO, material_name: str | None, size: str | None) -> int:
        """
        Surcharge of a material for a size.

        Returns 0 when the material is unknown or has no cost for the size.
        The first option with a matching name wins.
        """
        if material_name is None or size is None:
            return 0
        option = next((m for m in table.material_options if m.name == material_name), None)
        if option is None:
            return 0
        return option.cost_by_size.get(size, 0)

    @staticmethod
    def calculate_breakdown(table: PriceTableDTO, draft: CustomOrderDraftDTO) -> PriceBreakdownDTO:
        """
        Calculate a custom order price term by term.

        Algorithm:
        1. base = tier base price (0 if the size is not in the table)
        2. extra = (unit_count - 1) × tier per-extra-unit price, never negative
        3. material = material surcharge for the size (0 if unknown)
        4. total = base + extra + material

        Example with A1 = {base 500, per extra 100} and Canvas A1 = 50:
            - 1 unit: 500 + 0 + 50 = 550
            - 3 units: 500 + 2 × 100 + 50 = 750

        A partially filled draft (no size yet, unknown material) is a normal
        UI state, so missing terms count as 0 instead of raising.

        Args:
            table: Seller price table
            draft: Custom order draft

        Returns:
            PriceBreakdownDTO with every term and the total
        """
        tier = table.tiers.get(draft.size) if draft.size is not None else None
        base = tier.base_price if tier else 0
        extra = max(draft.unit_count - 1, 0) * tier.per_extra_unit_price if tier else 0
        material = PricingService.material_cost(table, draft.material_name, draft.size)

        return PriceBreakdownDTO(
            base=base,
            extra=extra,
            material=material,
            total=base + extra + material,
        )

    @staticmethod
    def compute_total(table: PriceTableDTO, draft: CustomOrderDraftDTO) -> int:
        return PricingService.calculate_breakdown(table, draft).total
