"""
Price Validator: compares a stored unit price against a fresh recalculation.

A price can be stored from an earlier state of the quotation (catalog costs
changed, a manual override, a different project type). This only reports the
drift so a person can review it. It never corrects the stored value.
"""

import logging

from .calculators.cost_lookup import to_decimal
from .config import settings
from .pricing_engine import PricingEngine
from .schemas import DiscrepancyReport

logger = logging.getLogger(__name__)


class PriceValidator:
    """
    Flags has_discrepancy=True when |calculated - stored| > tolerance.
    """

    def __init__(self, tolerance=None, engine: PricingEngine = None):
        self.tolerance = to_decimal(tolerance if tolerance is not None else settings.PRICE_TOLERANCE)
        self.engine = engine or PricingEngine()

    def check(self, stored, bom, selections, accessory_table, project_type) -> DiscrepancyReport:
        stored = to_decimal(stored)
        breakdown = self.engine.price_breakdown(bom, selections, accessory_table, project_type)
        calculated = breakdown.total
        difference = calculated - stored
        has_discrepancy = abs(difference) > self.tolerance

        if has_discrepancy:
            logger.warning(
                "Price discrepancy: stored %s vs. calculated %s (diff %s)",
                stored, calculated, difference,
            )

        return DiscrepancyReport(
            stored=stored,
            calculated=calculated,
            difference=difference,
            has_discrepancy=has_discrepancy,
            components=breakdown.components,
        )


def check_discrepancy(stored, bom, selections, accessory_table, project_type) -> DiscrepancyReport:
    return PriceValidator().check(stored, bom, selections, accessory_table, project_type)
