import logging
from datetime import date
from functools import partial

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..code_allocator import allocator
from ..database import get_db
from ..errors import AllocationError, InvalidInputError, MalformedCodeError
from ..price_validator import PriceValidator
from ..pricing_engine import PricingEngine, line_subtotal, parse_project_type, quotation_totals
from ..project_codes import AREAS, FURNITURE_TYPES, compose_furniture_code
from ..repository import CatalogRepository, CodeRepository, NO_SELECTION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotations", tags=["quotations"])

engine = PricingEngine()


def _normalize_slot_ids(selections: dict) -> dict:
    """{slot: id | None} with "none"/"" folded to None, for storage."""
    normalized = {}
    for slot, material_id in (selections or {}).items():
        if material_id is None or str(material_id).strip().lower() in NO_SELECTION:
            normalized[slot] = None
        else:
            normalized[slot] = int(material_id)
    return normalized


def _price_items(items, catalog: CatalogRepository, selections, accessory_table, project_type):
    """Validates each line and prices one unit of it. Returns [(item, furniture, unit_price)]."""
    priced = []
    for item in items:
        if item.area not in AREAS:
            raise InvalidInputError(f"Unknown area code: {item.area!r}", field="area")
        if item.furniture_type not in FURNITURE_TYPES:
            raise InvalidInputError(f"Unknown furniture type: {item.furniture_type!r}", field="furniture_type")
        furniture = catalog.get_furniture(item.furniture_id)
        bom = catalog.get_furniture_bom(item.furniture_id)
        unit_price = engine.compute_price(bom, selections, accessory_table, project_type)
        priced.append((item, furniture, unit_price))
    return priced


def _build_items(priced, project_code: str, production_type=None):
    """QuotationItem rows for priced lines, coded under project_code."""
    return [
        models.QuotationItem(
            furniture_id=furniture.id,
            description=furniture.name,
            quantity=item.quantity,
            unit_price=str(unit_price),
            discount=item.discount,
            area=item.area,
            furniture_type=item.furniture_type,
            production_type=production_type,
            furniture_code=compose_furniture_code(
                project_code, item.area, item.furniture_type, production_type,
            ),
        )
        for item, furniture, unit_price in priced
    ]


def _quotation_to_dict(q: models.Quotation) -> dict:
    totals = quotation_totals((i.quantity, i.unit_price, i.discount) for i in q.items)
    return {
        "id": q.id,
        "client_name": q.client_name,
        "project_type": q.project_type.value,
        "vertical_project": q.vertical_project,
        "prototype": q.prototype,
        "project_code": q.project_code,
        "year": q.code_year,
        "month": q.code_month,
        "sequence": q.code_sequence,
        "selections": q.selections_json or {},
        "created_at": q.created_at.isoformat() if q.created_at else None,
        "items": [
            {
                "id": i.id,
                "furniture_id": i.furniture_id,
                "description": i.description,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "discount": i.discount or 0.0,
                "subtotal": str(line_subtotal(i.quantity, i.unit_price, i.discount)),
                "area": i.area,
                "furniture_type": i.furniture_type,
                "production_type": i.production_type,
                "furniture_code": i.furniture_code,
            }
            for i in q.items
        ],
        **totals.model_dump(mode="json"),
    }


def _get_quotation(db: Session, quotation_id: int) -> models.Quotation:
    quotation = db.query(models.Quotation).filter(models.Quotation.id == quotation_id).first()
    if not quotation:
        raise HTTPException(status_code=404, detail="Quotation not found")
    return quotation


# --- Endpoints ---

@router.post("/")
def create_quotation(request: schemas.QuotationCreate, db: Session = Depends(get_db)):
    """
    Prices every line, then allocates the project code and stores the
    quotation with its lines in one transaction. Each line's furniture code
    derives from the project code.
    """
    catalog = CatalogRepository(db)
    codes = CodeRepository(db)
    try:
        project_type = parse_project_type(request.project_type)
        selections = catalog.get_selections(request.selections)
        accessory_table = catalog.get_accessory_cost_table()
        priced = _price_items(request.items, catalog, selections, accessory_table, project_type)

        code, quotation = allocator.allocate(
            project_type,
            request.quote_date or date.today(),
            partial(codes.query_codes_by_prefix, limit=1),
            partial(
                codes.reserve,
                build_items=partial(_build_items, priced),
                client_name=request.client_name,
                project_type=project_type,
                vertical_project=request.vertical_project,
                selections_json=_normalize_slot_ids(request.selections),
            ),
            vertical_project=request.vertical_project,
            prototype=request.prototype,
        )
    except (InvalidInputError, MalformedCodeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllocationError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info("Quotation %s created with %d items", quotation.project_code, len(priced))
    return _quotation_to_dict(quotation)


@router.get("/{quotation_id}")
def get_quotation(quotation_id: int, db: Session = Depends(get_db)):
    return _quotation_to_dict(_get_quotation(db, quotation_id))


@router.get("/{quotation_id}/price-check")
def price_check(quotation_id: int, db: Session = Depends(get_db)):
    """
    Recalculates every stored unit price against the current catalog.
    Reports drift only; stored prices are left as they are.
    """
    quotation = _get_quotation(db, quotation_id)
    catalog = CatalogRepository(db)
    validator = PriceValidator(engine=engine)
    try:
        selections = catalog.get_selections(quotation.selections_json)
        accessory_table = catalog.get_accessory_cost_table()
        results = []
        for item in quotation.items:
            report = validator.check(
                item.unit_price,
                catalog.get_furniture_bom(item.furniture_id),
                selections,
                accessory_table,
                quotation.project_type,
            )
            results.append({
                "item_id": item.id,
                "furniture_code": item.furniture_code,
                **report.model_dump(mode="json"),
            })
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "quotation_id": quotation.id,
        "project_code": quotation.project_code,
        "has_discrepancy": any(r["has_discrepancy"] for r in results),
        "items": results,
    }


@router.post("/{quotation_id}/additional-order")
def additional_order(quotation_id: int, request: schemas.AdditionalOrderCreate, db: Session = Depends(get_db)):
    """
    Adicional (A) or garantía (G) pieces for an existing project. They reuse
    the project's code; no new sequence is allocated.
    """
    quotation = _get_quotation(db, quotation_id)
    catalog = CatalogRepository(db)
    try:
        selections = catalog.get_selections(quotation.selections_json)
        accessory_table = catalog.get_accessory_cost_table()
        priced = _price_items(request.items, catalog, selections, accessory_table, quotation.project_type)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    quotation.items.extend(
        _build_items(priced, quotation.project_code, production_type=request.production_type.value)
    )
    db.commit()
    db.refresh(quotation)
    return _quotation_to_dict(quotation)
