from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from .. import models, schemas
from ..database import get_db

router = APIRouter(prefix="/catalog", tags=["catalog"])

# Default catalog, base costs in MXN. Update via API as supplier prices change.
DEFAULT_MATERIALS = [
    {"name": "MDF 16mm Blanco", "kind": models.MaterialKind.TABLERO, "unit_cost": 120.0},
    {"name": "Melamina 16mm Nogal", "kind": models.MaterialKind.TABLERO, "unit_cost": 150.0},
    {"name": "Triplay Pino 18mm", "kind": models.MaterialKind.TABLERO, "unit_cost": 250.0},
    {"name": "Cubrecanto PVC Blanco 19mm", "kind": models.MaterialKind.CUBRECANTO, "unit_cost": 4.5},
    {"name": "Cubrecanto PVC Nogal 19mm", "kind": models.MaterialKind.CUBRECANTO, "unit_cost": 6.0},
    {"name": "Jaladera basica", "kind": models.MaterialKind.JALADERA, "unit_cost": 35.0},
    {"name": "Corredera 45cm", "kind": models.MaterialKind.CORREDERA, "unit_cost": 120.0},
    {"name": "Bisagra estandar", "kind": models.MaterialKind.BISAGRA, "unit_cost": 25.0},
    {"name": "Tip-On largo", "kind": models.MaterialKind.TIP_ON, "unit_cost": 180.0},
]

DEFAULT_ACCESSORIES = [
    {"name": "Pata niveladora", "category": "patas", "unit_cost": 10.0},
    {"name": "Clip para pata", "category": "clips", "unit_cost": 2.0},
    {"name": "Mensula repisa", "category": "mensulas", "unit_cost": 0.9},
    {"name": "Kit tornilleria", "category": "tornillos", "unit_cost": 30.0},
    {"name": "CIF armado", "category": "cif", "unit_cost": 100.0},
]

DEFAULT_FURNITURE = [
    {"name": "Alacena 60x30x70", "mat_huacal": 0.5, "mat_vista": 0.6, "chap_huacal": 2.5,
     "chap_vista": 3.0, "bisagras": 2, "jaladera": 1, "mensulas": 4, "kit_tornillo": 1},
    {"name": "Gabinete base 90x60x85", "mat_huacal": 0.8, "mat_vista": 0.9, "chap_huacal": 3.5,
     "chap_vista": 4.0, "corredera": 2, "jaladera": 2, "patas": 4, "clip_patas": 4, "cif": 1},
    {"name": "Vestidor completo", "mat_huacal": 2.5, "mat_vista": 1.2, "patas": 4},
]


def seed_catalog(db: Session) -> dict:
    """Insert defaults missing by name. Safe to run repeatedly."""
    seeded = {"materials": 0, "accessories": 0, "furniture": 0}
    for data in DEFAULT_MATERIALS:
        if not db.query(models.Material).filter(models.Material.name == data["name"]).first():
            db.add(models.Material(**data))
            seeded["materials"] += 1
    for data in DEFAULT_ACCESSORIES:
        if not db.query(models.Accessory).filter(models.Accessory.name == data["name"]).first():
            db.add(models.Accessory(**data))
            seeded["accessories"] += 1
    for data in DEFAULT_FURNITURE:
        if not db.query(models.Furniture).filter(models.Furniture.name == data["name"]).first():
            db.add(models.Furniture(**data))
            seeded["furniture"] += 1
    db.commit()
    return seeded


@router.get("/seed")
def seed(db: Session = Depends(get_db)):
    """Seed default materials, accessories and furniture."""
    return {"ok": True, "seeded": seed_catalog(db)}


@router.get("/materials", response_model=List[schemas.MaterialOut])
def list_materials(kind: Optional[models.MaterialKind] = None, db: Session = Depends(get_db)):
    query = db.query(models.Material)
    if kind:
        query = query.filter(models.Material.kind == kind)
    return query.order_by(models.Material.name).all()


@router.patch("/materials/{material_id}", response_model=schemas.MaterialOut)
def update_material(material_id: int, update: schemas.MaterialUpdate, db: Session = Depends(get_db)):
    material = db.query(models.Material).filter(models.Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(material, field, value)
    db.commit()
    db.refresh(material)
    return material


@router.get("/accessories", response_model=List[schemas.AccessoryOut])
def list_accessories(db: Session = Depends(get_db)):
    return db.query(models.Accessory).order_by(models.Accessory.id).all()


@router.get("/furniture")
def list_furniture(db: Session = Depends(get_db)):
    return [
        {"id": f.id, "name": f.name, "bom": f.bom()}
        for f in db.query(models.Furniture).order_by(models.Furniture.name).all()
    ]
