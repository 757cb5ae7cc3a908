"""
Furniture Pricing Engine.

Unit price of one furniture item from its BOM, the materials picked for the
quotation, the shared accessory table and the project-type multiplier.
Pure math: no DB, no caching, no state between calls.

    price = round_half_up( Σ quantity × unit_cost × multiplier , 2 )

Explicit-slot components without a picked material, and components with a
0/None quantity, contribute exactly 0.

line_subtotal() and quotation_totals() roll unit prices up into the
quotation subtotal, IVA and total.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from .calculators.cost_lookup import AccessoryCostIndex, to_decimal
from .config import settings
from .errors import InvalidInputError
from .models import (
    AUTO_INCLUDED_KEYS,
    EXPLICIT_SLOT_KEYS,
    LEGACY_PROJECT_TYPE_IDS,
    PROJECT_TYPE_ALIASES,
    PROJECT_TYPE_MULTIPLIERS,
    ProjectType,
)
from .schemas import FurnitureBOM, PriceBreakdown, PriceComponent, QuotationTotals

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def parse_project_type(value) -> ProjectType:
    """
    Accepts a ProjectType, its name in any case ("residencial"), an alias
    ("Other", "interno") or the legacy form ids ("1", "2", "3").
    Anything else is an error.
    """
    if isinstance(value, ProjectType):
        return value
    if value is None or str(value).strip() == "":
        raise InvalidInputError("Project type is required", field="project_type")
    text = str(value).strip()
    if text in LEGACY_PROJECT_TYPE_IDS:
        return LEGACY_PROJECT_TYPE_IDS[text]
    if text.lower() in PROJECT_TYPE_ALIASES:
        return PROJECT_TYPE_ALIASES[text.lower()]
    for project_type in ProjectType:
        if text.lower() in (project_type.value.lower(), project_type.name.lower()):
            return project_type
    raise InvalidInputError(f"Unknown project type: {value!r}", field="project_type")


def multiplier_for(project_type) -> Decimal:
    return PROJECT_TYPE_MULTIPLIERS[parse_project_type(project_type)]


def round_money(amount: Decimal) -> Decimal:
    """Two decimals, ties away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _as_bom(bom) -> FurnitureBOM:
    if isinstance(bom, FurnitureBOM):
        return bom
    if bom is None:
        raise InvalidInputError("Furniture BOM is required", field="bom")
    return FurnitureBOM(**{
        key: to_decimal(value) if isinstance(value, float) else value
        for key, value in dict(bom).items()
    })


class PricingEngine:
    """
    Prices a single furniture item.
    Safe to share between threads: holds no mutable state.
    """

    def compute_price(self, bom, selections, accessory_table, project_type) -> Decimal:
        return self.price_breakdown(bom, selections, accessory_table, project_type).total

    def price_breakdown(self, bom, selections, accessory_table, project_type) -> PriceBreakdown:
        """
        Args:
            bom: FurnitureBOM or dict of component quantities
            selections: {slot: MaterialSelection | None} for the explicit slots
            accessory_table: iterable of AccessoryCostEntry
            project_type: ProjectType or anything parse_project_type() accepts

        Returns:
            PriceBreakdown with one PriceComponent per contributing component
        """
        project_type = parse_project_type(project_type)
        multiplier = PROJECT_TYPE_MULTIPLIERS[project_type]
        bom = _as_bom(bom)
        selections = selections or {}
        unknown = set(selections) - set(EXPLICIT_SLOT_KEYS)
        if unknown:
            raise InvalidInputError(
                f"Unknown material slot(s): {', '.join(sorted(unknown))}", field="selections",
            )

        components = []

        for key in EXPLICIT_SLOT_KEYS:
            quantity = getattr(bom, key)
            material = selections.get(key)
            if not quantity or material is None:
                continue
            unit_cost = to_decimal(material.unit_cost)
            components.append(self._component(key, material.name, quantity, unit_cost, multiplier))

        accessories = AccessoryCostIndex(accessory_table)
        for key in AUTO_INCLUDED_KEYS:
            quantity = getattr(bom, key)
            if not quantity:
                continue
            unit_cost, source_name, _ = accessories.resolve(key)
            components.append(self._component(key, source_name, quantity, unit_cost, multiplier))

        total = round_money(sum((c.subtotal for c in components), Decimal("0")))
        return PriceBreakdown(
            project_type=project_type,
            multiplier=multiplier,
            components=components,
            total=total,
        )

    def _component(self, key, material_name, quantity, unit_cost, multiplier) -> PriceComponent:
        quantity = to_decimal(quantity)
        subtotal = quantity * unit_cost * multiplier
        logger.debug("%s: %s × %s × %s = %s", key, quantity, unit_cost, multiplier, subtotal)
        return PriceComponent(
            name=key,
            material_name=material_name,
            quantity=quantity,
            unit_cost=unit_cost,
            multiplier=multiplier,
            subtotal=subtotal,
        )


_engine = PricingEngine()


def compute_price(bom, selections, accessory_table, project_type) -> Decimal:
    return _engine.compute_price(bom, selections, accessory_table, project_type)


def price_breakdown(bom, selections, accessory_table, project_type) -> PriceBreakdown:
    return _engine.price_breakdown(bom, selections, accessory_table, project_type)


# --- Quotation totals ---

HUNDRED = Decimal("100")


def line_subtotal(quantity, unit_price, discount=None) -> Decimal:
    """quantity × unit price, less a percentage discount (0-100)."""
    discount = to_decimal(discount)
    if not Decimal("0") <= discount <= HUNDRED:
        raise InvalidInputError(f"Discount must be between 0 and 100: {discount}", field="discount")
    base = to_decimal(quantity) * to_decimal(unit_price)
    return round_money(base - base * discount / HUNDRED)


def quotation_totals(lines, tax_rate=None) -> QuotationTotals:
    """
    Subtotal, IVA and total for a quotation.

    Args:
        lines: iterable of (quantity, unit_price, discount)
        tax_rate: fraction, e.g. "0.16". Defaults to settings.TAX_RATE.
    """
    rate = to_decimal(settings.TAX_RATE if tax_rate is None else tax_rate)
    subtotal = sum(
        (line_subtotal(quantity, unit_price, discount) for quantity, unit_price, discount in lines),
        Decimal("0"),
    )
    subtotal = round_money(subtotal)
    taxes = round_money(subtotal * rate)
    return QuotationTotals(subtotal=subtotal, tax_rate=rate, taxes=taxes, total=subtotal + taxes)
