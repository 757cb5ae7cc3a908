"""
Database access used by pricing and code allocation.

Pricing and code functions never touch the session themselves; routers build
these repositories and hand their methods in.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .calculators.cost_lookup import to_decimal
from .errors import AllocationConflictError, InvalidInputError
from .project_codes import format_project_code
from .schemas import AccessoryCostEntry, FurnitureBOM, MaterialSelection, ProjectCode

logger = logging.getLogger(__name__)

NO_SELECTION = ("", "none")


class CatalogRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_material_by_id(self, material_id) -> MaterialSelection:
        try:
            material_id = int(material_id)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Material id must be an integer: {material_id!r}", field="material_id")
        material = self.db.query(models.Material).filter(models.Material.id == material_id).first()
        if not material:
            raise InvalidInputError(f"Material {material_id} not found", field="material_id")
        return MaterialSelection(
            id=material.id,
            name=material.name,
            unit_cost=to_decimal(material.unit_cost),
            kind=material.kind,
        )

    def get_accessory_cost_table(self) -> List[AccessoryCostEntry]:
        accessories = self.db.query(models.Accessory).order_by(models.Accessory.id).all()
        return [
            AccessoryCostEntry(name=a.name, category=a.category, unit_cost=to_decimal(a.unit_cost))
            for a in accessories
        ]

    def get_selections(self, slot_ids: Optional[Dict]) -> Dict[str, Optional[MaterialSelection]]:
        """
        {slot: material_id} -> {slot: MaterialSelection | None}.
        None, "" and "none" leave the slot empty.
        """
        selections = {}
        for slot, material_id in (slot_ids or {}).items():
            if slot not in models.SLOT_MATERIAL_KINDS:
                raise InvalidInputError(f"Unknown material slot: {slot}", field="selections")
            if material_id is None or str(material_id).strip().lower() in NO_SELECTION:
                selections[slot] = None
                continue
            material = self.get_material_by_id(material_id)
            expected = models.SLOT_MATERIAL_KINDS[slot]
            if material.kind != expected:
                raise InvalidInputError(
                    f"Material {material.id} is a {material.kind.value}, slot {slot} needs {expected.value}",
                    field=slot,
                )
            selections[slot] = material
        return selections

    def get_furniture(self, furniture_id: int) -> models.Furniture:
        furniture = self.db.query(models.Furniture).filter(models.Furniture.id == furniture_id).first()
        if not furniture:
            raise InvalidInputError(f"Furniture {furniture_id} not found", field="furniture_id")
        return furniture

    def get_furniture_bom(self, furniture_id: int) -> FurnitureBOM:
        furniture = self.get_furniture(furniture_id)
        return FurnitureBOM(**{k: to_decimal(v) if v is not None else None
                               for k, v in furniture.bom().items()})


class CodeRepository:
    def __init__(self, db: Session):
        self.db = db

    def query_codes_by_prefix(self, prefix: str, limit: int = None) -> List[str]:
        """Project codes starting with prefix, highest first."""
        query = self.db.query(models.Quotation.project_code).filter(
            models.Quotation.project_code.like(f"{prefix}%")
        ).order_by(models.Quotation.project_code.desc())
        if limit:
            query = query.limit(limit)
        return [row[0] for row in query.all()]

    def last_code(self, prefix: str) -> List[str]:
        return self.query_codes_by_prefix(prefix, limit=1)

    def reserve(self, code: ProjectCode, build_items=None, **quotation_fields) -> models.Quotation:
        """
        Inserts and commits the quotation row holding this code.

        build_items(project_code) may return the QuotationItem rows; they are
        committed in the same transaction, so a failed insert never leaves a
        used code without its items. The (bucket, sequence) unique constraint
        turns a lost race into AllocationConflictError.
        """
        text = format_project_code(code)
        quotation = models.Quotation(
            project_code=text,
            code_bucket=code.bucket,
            code_sequence=code.sequence,
            code_year=code.year,
            code_month=code.month,
            prototype=code.prototype,
            **quotation_fields,
        )
        if build_items is not None:
            quotation.items = list(build_items(text))
        self.db.add(quotation)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise AllocationConflictError(f"Project code {text} is already taken", code=text) from e
        self.db.refresh(quotation)
        return quotation
