from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from .database import Base
import enum


# --- Enums ---

class ProjectType(str, enum.Enum):
    RESIDENCIAL = "Residencial"
    DESARROLLO = "Desarrollo"   # vertical developments
    OTRO = "Otro"               # interno and anything else explicitly chosen


# Numeric ids used by the legacy quoting forms
LEGACY_PROJECT_TYPE_IDS = {
    "1": ProjectType.RESIDENCIAL,
    "2": ProjectType.OTRO,
    "3": ProjectType.DESARROLLO,
}

# Other names accepted for a project type, lower-case
PROJECT_TYPE_ALIASES = {
    "other": ProjectType.OTRO,
    "interno": ProjectType.OTRO,
    "vertical": ProjectType.DESARROLLO,
}

# DECISION: one canonical multiplier table. Unknown project types are an error,
# never a silent 1.0. See pricing_engine.multiplier_for().
PROJECT_TYPE_MULTIPLIERS = {
    ProjectType.RESIDENCIAL: Decimal("1.8"),
    ProjectType.DESARROLLO: Decimal("1.5"),
    ProjectType.OTRO: Decimal("1.0"),
}


class MaterialKind(str, enum.Enum):
    TABLERO = "Tablero"
    CUBRECANTO = "Cubrecanto"
    JALADERA = "Jaladera"
    CORREDERA = "Corredera"
    BISAGRA = "Bisagra"
    TIP_ON = "TipOn"


class ProductionType(str, enum.Enum):
    ADICIONAL = "A"
    GARANTIA = "G"


# --- BOM component keys ---
# Explicit slots are priced from the material picked for the quotation;
# auto-included components are priced from the accessory table.

EXPLICIT_SLOT_KEYS = [
    "mat_huacal",
    "mat_vista",
    "chap_huacal",
    "chap_vista",
    "jaladera",
    "corredera",
    "bisagras",
    "tip_on_largo",
]

AUTO_INCLUDED_KEYS = [
    "patas",
    "clip_patas",
    "mensulas",
    "kit_tornillo",
    "cif",
]

BOM_KEYS = EXPLICIT_SLOT_KEYS + AUTO_INCLUDED_KEYS

# Which material kinds may fill each explicit slot
SLOT_MATERIAL_KINDS = {
    "mat_huacal": MaterialKind.TABLERO,
    "mat_vista": MaterialKind.TABLERO,
    "chap_huacal": MaterialKind.CUBRECANTO,
    "chap_vista": MaterialKind.CUBRECANTO,
    "jaladera": MaterialKind.JALADERA,
    "corredera": MaterialKind.CORREDERA,
    "bisagras": MaterialKind.BISAGRA,
    "tip_on_largo": MaterialKind.TIP_ON,
}


# --- Catalog tables ---

class Material(Base):
    """Selectable materials with a unit cost (tableros, cubrecantos, herrajes)."""
    __tablename__ = "materiales"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    kind = Column(Enum(MaterialKind), nullable=False)
    unit_cost = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Accessory(Base):
    """Reference costs for auto-included components (patas, ménsulas, CIF...)."""
    __tablename__ = "accesorios"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0.0)


class Furniture(Base):
    """Catalog furniture (insumo) with its bill of materials."""
    __tablename__ = "insumos"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    mat_huacal = Column(Float, nullable=True)
    mat_vista = Column(Float, nullable=True)
    chap_huacal = Column(Float, nullable=True)
    chap_vista = Column(Float, nullable=True)
    jaladera = Column(Float, nullable=True)
    corredera = Column(Float, nullable=True)
    bisagras = Column(Float, nullable=True)
    tip_on_largo = Column(Float, nullable=True)
    patas = Column(Float, nullable=True)
    clip_patas = Column(Float, nullable=True)
    mensulas = Column(Float, nullable=True)
    kit_tornillo = Column(Float, nullable=True)
    cif = Column(Float, nullable=True)

    def bom(self) -> dict:
        return {key: getattr(self, key) for key in BOM_KEYS}


# --- Quotations ---

class Quotation(Base):
    __tablename__ = "cotizaciones"
    __table_args__ = (
        # Sequence numbers are unique per bucket, regardless of prototype suffix
        UniqueConstraint("code_bucket", "code_sequence", name="uq_cotizaciones_bucket_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_name = Column(String, nullable=True)
    project_type = Column(Enum(ProjectType), nullable=False)
    vertical_project = Column(String, nullable=True)
    prototype = Column(String, nullable=True)
    project_code = Column(String, nullable=False, index=True)
    code_bucket = Column(String, nullable=False)  # "RE-505"
    code_sequence = Column(Integer, nullable=False)
    # Full date kept so the code never has to be read back through decade inference
    code_year = Column(Integer, nullable=False)
    code_month = Column(Integer, nullable=False)
    selections_json = Column(JSON, default=dict)  # {slot: material_id}
    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship(
        "QuotationItem", back_populates="quotation", cascade="all, delete-orphan", order_by="QuotationItem.id",
    )


class QuotationItem(Base):
    __tablename__ = "cotizacion_items"

    id = Column(Integer, primary_key=True, index=True)
    quotation_id = Column(Integer, ForeignKey("cotizaciones.id"), nullable=False)
    furniture_id = Column(Integer, ForeignKey("insumos.id"), nullable=False)
    description = Column(String, nullable=False)
    quantity = Column(Integer, default=1)
    unit_price = Column(String, nullable=False)  # Decimal as text
    discount = Column(Float, default=0.0)  # percent off the line
    area = Column(String(2), nullable=False)
    furniture_type = Column(String(3), nullable=False)
    production_type = Column(String(1), nullable=True)  # None = original order
    furniture_code = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    quotation = relationship("Quotation", back_populates="items")
    furniture = relationship("Furniture")
