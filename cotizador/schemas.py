from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Union
from decimal import Decimal
from datetime import date, datetime
from .models import MaterialKind, ProjectType, ProductionType


# --- Catalog snapshots (pricing inputs) ---

class MaterialSelection(BaseModel):
    """A material as it was when picked into a quotation slot."""
    id: int
    name: str
    unit_cost: Decimal = Field(ge=0)
    kind: MaterialKind

    class Config:
        frozen = True
        from_attributes = True


class AccessoryCostEntry(BaseModel):
    name: str
    category: str
    unit_cost: Decimal = Field(ge=0)

    class Config:
        frozen = True
        from_attributes = True


class FurnitureBOM(BaseModel):
    """Component quantities for one furniture item. None and 0 both mean 'not used'."""
    mat_huacal: Optional[Decimal] = Field(default=None, ge=0)
    mat_vista: Optional[Decimal] = Field(default=None, ge=0)
    chap_huacal: Optional[Decimal] = Field(default=None, ge=0)
    chap_vista: Optional[Decimal] = Field(default=None, ge=0)
    jaladera: Optional[Decimal] = Field(default=None, ge=0)
    corredera: Optional[Decimal] = Field(default=None, ge=0)
    bisagras: Optional[Decimal] = Field(default=None, ge=0)
    tip_on_largo: Optional[Decimal] = Field(default=None, ge=0)
    patas: Optional[Decimal] = Field(default=None, ge=0)
    clip_patas: Optional[Decimal] = Field(default=None, ge=0)
    mensulas: Optional[Decimal] = Field(default=None, ge=0)
    kit_tornillo: Optional[Decimal] = Field(default=None, ge=0)
    cif: Optional[Decimal] = Field(default=None, ge=0)

    class Config:
        frozen = True
        from_attributes = True
        extra = "forbid"


# --- Pricing outputs ---

class PriceComponent(BaseModel):
    """Audit line for one priced BOM component. Diagnostic only."""
    name: str
    material_name: str
    quantity: Decimal
    unit_cost: Decimal
    multiplier: Decimal
    subtotal: Decimal


class PriceBreakdown(BaseModel):
    project_type: ProjectType
    multiplier: Decimal
    components: List[PriceComponent] = []
    total: Decimal


class DiscrepancyReport(BaseModel):
    stored: Decimal
    calculated: Decimal
    difference: Decimal
    has_discrepancy: bool
    components: List[PriceComponent] = []


class QuotationTotals(BaseModel):
    subtotal: Decimal
    tax_rate: Decimal
    taxes: Decimal
    total: Decimal


# --- Codes ---

class ProjectCode(BaseModel):
    """Structured form of TYPE-YYM-SEQ[-PROTO]."""
    type_prefix: str
    year: int
    month: int = Field(ge=1, le=12)
    sequence: int = Field(ge=1, le=999)
    prototype: Optional[str] = None

    class Config:
        frozen = True

    @property
    def year_digit(self) -> int:
        return self.year % 10

    @property
    def bucket(self) -> str:
        return f"{self.type_prefix}-{self.year_digit}{self.month:02d}"


class FurnitureCode(BaseModel):
    project: ProjectCode
    area: str
    furniture_type: str
    production_type: Optional[ProductionType] = None

    class Config:
        frozen = True


# --- API bodies ---

class MaterialOut(BaseModel):
    id: int
    name: str
    kind: MaterialKind
    unit_cost: float
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    unit_cost: Optional[float] = Field(default=None, ge=0)


class AccessoryOut(BaseModel):
    id: int
    name: str
    category: str
    unit_cost: float

    class Config:
        from_attributes = True


class QuotationItemCreate(BaseModel):
    furniture_id: int
    quantity: int = Field(default=1, ge=1)
    discount: float = Field(default=0.0, ge=0, le=100)  # percent off this line
    area: str
    furniture_type: str


class QuotationCreate(BaseModel):
    client_name: Optional[str] = None
    project_type: str
    vertical_project: Optional[str] = None
    prototype: Optional[str] = None
    quote_date: Optional[date] = None  # defaults to today; picks the code bucket
    # {slot: material_id}; None or "none" leaves the slot empty
    selections: Dict[str, Optional[Union[int, str]]] = {}
    items: List[QuotationItemCreate] = []


class AdditionalOrderCreate(BaseModel):
    production_type: ProductionType
    items: List[QuotationItemCreate]


class FurnitureCodeRequest(BaseModel):
    project_code: str
    area: str
    furniture_type: str
    production_type: Optional[ProductionType] = None
