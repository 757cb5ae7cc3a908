"""
Unit cost resolution for BOM components.

Two kinds of component:
1. Explicit slots (mat_huacal ... bisagras, tip_on_largo): priced from the
   material the user picked for that slot. No pick = no contribution.
2. Auto-included components (patas, clip_patas, mensulas, kit_tornillo, cif):
   priced from the shared accessory table, falling back to DEFAULT_ACCESSORY_COSTS.

The accessory table is matched once per table into an AccessoryCostIndex,
so pricing a component is a dict lookup, not a scan.
"""

import logging
from decimal import Decimal

from ..errors import InvalidInputError
from ..models import AUTO_INCLUDED_KEYS, EXPLICIT_SLOT_KEYS

logger = logging.getLogger(__name__)

# Keyword searched (case-insensitive substring) in accessory name or category
ACCESSORY_KEYWORDS = {
    "patas": "pata",
    "clip_patas": "clip",
    "mensulas": "mensul",
    "kit_tornillo": "tornillo",
    "cif": "cif",
}

# Fallback unit costs when no accessory row matches
DEFAULT_ACCESSORY_COSTS = {
    "patas": Decimal("10"),
    "clip_patas": Decimal("2"),
    "mensulas": Decimal("0.9"),
    "kit_tornillo": Decimal("30"),
    "cif": Decimal("100"),
}


def to_decimal(value) -> Decimal:
    """Exact decimal for a cost or quantity. Floats go through str() so 0.9 stays 0.9."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class AccessoryCostIndex:
    """
    Resolved unit costs for every auto-included component, built from one
    accessory table. First matching entry wins; unmatched components use
    the default cost.
    """

    def __init__(self, accessory_table=None):
        self._resolved = {}
        table = list(accessory_table or [])
        for key in AUTO_INCLUDED_KEYS:
            keyword = ACCESSORY_KEYWORDS[key]
            match = None
            for entry in table:
                if keyword in entry.name.lower() or keyword in entry.category.lower():
                    match = entry
                    break
            if match is not None:
                self._resolved[key] = (to_decimal(match.unit_cost), match.name, False)
            else:
                logger.debug("No accessory matches '%s', using default cost for %s", keyword, key)
                self._resolved[key] = (DEFAULT_ACCESSORY_COSTS[key], key, True)

    def unit_cost(self, component_key: str) -> Decimal:
        return self.resolve(component_key)[0]

    def resolve(self, component_key: str):
        """Returns (unit_cost, source_name, used_default)."""
        if component_key not in self._resolved:
            raise InvalidInputError(
                f"'{component_key}' is not an auto-included component", field=component_key,
            )
        return self._resolved[component_key]


def lookup_unit_cost(component_key: str, selection=None, accessory_table=None):
    """
    Unit cost for one BOM component.

    Returns None for an explicit slot with no material selected; that
    component simply contributes nothing.
    """
    if component_key in EXPLICIT_SLOT_KEYS:
        if selection is None:
            return None
        return to_decimal(selection.unit_cost)
    if component_key in AUTO_INCLUDED_KEYS:
        return AccessoryCostIndex(accessory_table).unit_cost(component_key)
    raise InvalidInputError(f"Unknown BOM component: {component_key}", field=component_key)
