from datetime import date
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas
from ..code_allocator import allocator
from ..database import get_db
from ..errors import AllocationError, InvalidInputError, MalformedCodeError
from ..pricing_engine import parse_project_type
from ..project_codes import (
    area_name,
    compose_furniture_code,
    format_project_code,
    furniture_type_name,
    parse_furniture_code,
    parse_project_code,
)
from ..repository import CodeRepository

router = APIRouter(prefix="/project-codes", tags=["project-codes"])


@router.get("/next")
def preview_next_code(
    project_type: str,
    vertical_project: Optional[str] = None,
    prototype: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Preview of the next code for this month. Nothing is reserved; the code is
    only guaranteed when a quotation is created.
    """
    today = date.today()
    try:
        ptype = parse_project_type(project_type)
        repo = CodeRepository(db)
        code = allocator.peek(
            ptype, today, partial(repo.query_codes_by_prefix, limit=1),
            vertical_project=vertical_project, prototype=prototype,
        )
    except (InvalidInputError, MalformedCodeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllocationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "project_code": format_project_code(code),
        "sequence": code.sequence,
        "year": today.year,
        "month": today.month,
        "reserved": False,
    }


@router.get("/parse/{code}")
def parse_code(code: str):
    """Parses a project code or a furniture code."""
    try:
        if len(code.split("-")) >= 5:
            furniture = parse_furniture_code(code)
            return {
                **furniture.project.model_dump(),
                "area": furniture.area,
                "area_name": area_name(furniture.area),
                "furniture_type": furniture.furniture_type,
                "furniture_type_name": furniture_type_name(furniture.furniture_type),
                "production_type": furniture.production_type.value if furniture.production_type else None,
            }
        return parse_project_code(code).model_dump()
    except MalformedCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/furniture")
def furniture_code(request: schemas.FurnitureCodeRequest):
    try:
        code = compose_furniture_code(
            request.project_code, request.area, request.furniture_type, request.production_type,
        )
    except (InvalidInputError, MalformedCodeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"furniture_code": code}
