"""
Project and furniture codes.

Project code:   TYPE-YYM-SEQ[-PROTO]      e.g. RE-505-001, WN-412-007-B1
Furniture code: PROJECT-AREA-TYPE[-A|G]   e.g. RE-505-001-CL-ALC-A

TYPE  two letters: RE for residential, WN / SY for the known developments,
      otherwise first + last letter of the development name.
YYM   last digit of the year + two-digit month (2025-05 -> 505).
SEQ   three-digit sequence, unique per TYPE-YYM bucket (see code_allocator).
PROTO prototype of a vertical development (B1, A2, PH...).

Everything here is pure string work. Sequencing lives in code_allocator.
"""

import re
from datetime import date
from typing import Optional

from .config import settings
from .errors import InvalidInputError, MalformedCodeError
from .models import ProductionType, ProjectType
from .schemas import FurnitureCode, ProjectCode

RESIDENTIAL_PREFIX = "RE"

# Known vertical developments
VERTICAL_PROJECTS = {
    "WEN": "WN",
    "SATORY": "SY",
}

AREAS = {
    "CL": "closet",
    "DP": "despensa",
    "LV": "lavanderia",
    "VD": "vestidor",
    "PI": "puertas intercomunicacion",
    "LB": "librero",
    "MB": "mueble",
    "ES": "especialidad",
}

FURNITURE_TYPES = {
    "ALC": "alacena",
    "ALT": "alacena tipon",
    "ALE": "alacena esquinera",
    "AET": "alacena esquinera tipon",
    "GAB": "gabinete",
    "GAE": "gabinete esquinero",
    "PAR": "parrilla",
    "TAR": "tarja",
    "DEC": "decorativo",
    "HUA": "huacal",
    "LOC": "locker",
    "LOT": "locker tipon",
    "CLO": "closet",
    "CAJ": "cajonera",
    "CJN": "cajon",
    "CJV": "cajon con vista",
    "CJI": "cajon interno",
    "CIV": "cajon interno vista",
    "CJU": "cajon u",
    "CUV": "cajon u con vista",
    "VIS": "vista",
    "ENT": "entrepano",
    "ZAP": "zapatero",
    "RDC": "repisa doble c/fijacion",
    "RTC": "repisa triple c/fijacion",
    "ACC": "accesorio",
}

MAX_SEQUENCE = 999

_PREFIX_RE = re.compile(r"^[A-Z]{2}$")
_DATE_RE = re.compile(r"^\d{3}$")
_SEQUENCE_RE = re.compile(r"^\d{3}$")
_PROTOTYPE_RE = re.compile(r"^[A-Za-z0-9]+$")


# --- Type prefix ---

def vertical_prefix(vertical_project: Optional[str]) -> str:
    """WN / SY for known developments, else first + last letter of the name."""
    if not vertical_project or not vertical_project.strip():
        raise InvalidInputError(
            "Vertical project name is required for vertical projects", field="vertical_project",
        )
    name = vertical_project.strip().upper()
    if name in VERTICAL_PROJECTS.values():
        return name
    if name in VERTICAL_PROJECTS:
        return VERTICAL_PROJECTS[name]
    letters = [c for c in name if c.isalpha()]
    if not letters:
        raise InvalidInputError(
            f"Vertical project name has no letters: {vertical_project!r}", field="vertical_project",
        )
    return letters[0] + letters[-1]


def type_prefix_for(project_type: ProjectType, vertical_project: Optional[str] = None) -> str:
    if project_type == ProjectType.RESIDENCIAL:
        return RESIDENTIAL_PREFIX
    if project_type == ProjectType.DESARROLLO:
        return vertical_prefix(vertical_project)
    raise InvalidInputError(
        f"Project type {project_type.value} does not get project codes", field="project_type",
    )


def bucket_prefix(type_prefix: str, year_digit: int, month: int) -> str:
    """'RE-505-' for RE, 2025-05. Every code in the bucket starts with this."""
    return f"{type_prefix}-{year_digit % 10}{month:02d}-"


# --- Project codes ---

def build_project_code(project_type: ProjectType, when: date, sequence: int,
                       vertical_project: Optional[str] = None,
                       prototype: Optional[str] = None) -> ProjectCode:
    """Structured code for a project type, calendar month and sequence."""
    prefix = type_prefix_for(project_type, vertical_project)
    if prototype is not None and project_type != ProjectType.DESARROLLO:
        raise InvalidInputError("Prototype only applies to vertical projects", field="prototype")
    return make_project_code(prefix, when.year, when.month, sequence, prototype)


def make_project_code(type_prefix: str, year: int, month: int, sequence: int,
                      prototype: Optional[str] = None) -> ProjectCode:
    if not _PREFIX_RE.match(type_prefix or ""):
        raise InvalidInputError(f"Type prefix must be two letters: {type_prefix!r}", field="type_prefix")
    if not 1 <= month <= 12:
        raise InvalidInputError(f"Month out of range: {month}", field="month")
    if not 1 <= sequence <= MAX_SEQUENCE:
        raise InvalidInputError(
            f"Sequence must be between 1 and {MAX_SEQUENCE}: {sequence}", field="sequence",
        )
    if prototype is not None and not _PROTOTYPE_RE.match(prototype):
        raise InvalidInputError(f"Prototype must be alphanumeric: {prototype!r}", field="prototype")
    return ProjectCode(
        type_prefix=type_prefix,
        year=year,
        month=month,
        sequence=sequence,
        prototype=prototype,
    )


def format_project_code(code: ProjectCode) -> str:
    text = f"{bucket_prefix(code.type_prefix, code.year_digit, code.month)}{code.sequence:03d}"
    if code.prototype:
        text += f"-{code.prototype}"
    return text


def parse_project_code(code: str, decade_base: int = None) -> ProjectCode:
    """
    Inverse of format_project_code().

    The year is rebuilt from one digit against decade_base (default
    settings.CODE_DECADE_BASE), so '505' is 2025 for the 2020s. Callers that
    need the real year should read it from the stored quotation.
    """
    if not isinstance(code, str):
        raise MalformedCodeError("Project code must be a string", code=code)
    parts = code.strip().split("-")
    if len(parts) < 3:
        raise MalformedCodeError(f"Invalid project code format: {code!r}", code=code)
    if len(parts) > 4:
        raise MalformedCodeError(f"Too many segments for a project code: {code!r}", code=code)

    type_prefix, date_segment, sequence_segment = parts[0], parts[1], parts[2]
    if not _PREFIX_RE.match(type_prefix):
        raise MalformedCodeError(f"Bad type prefix in {code!r}", code=code)
    if not _DATE_RE.match(date_segment):
        raise MalformedCodeError(f"Bad date segment in {code!r}", code=code)
    if not _SEQUENCE_RE.match(sequence_segment):
        raise MalformedCodeError(f"Sequence is not a three-digit number in {code!r}", code=code)

    if decade_base is None:
        decade_base = settings.CODE_DECADE_BASE
    year = decade_base - decade_base % 10 + int(date_segment[0])
    month = int(date_segment[1:])
    sequence = int(sequence_segment)
    if not 1 <= month <= 12:
        raise MalformedCodeError(f"Month out of range in {code!r}", code=code)
    if sequence < 1:
        raise MalformedCodeError(f"Sequence 000 is never issued: {code!r}", code=code)

    prototype = None
    if len(parts) == 4:
        prototype = parts[3]
        if not _PROTOTYPE_RE.match(prototype):
            raise MalformedCodeError(f"Bad prototype segment in {code!r}", code=code)

    return ProjectCode(
        type_prefix=type_prefix,
        year=year,
        month=month,
        sequence=sequence,
        prototype=prototype,
    )


def validate_project_code(code: str) -> bool:
    try:
        parse_project_code(code)
        return True
    except MalformedCodeError:
        return False


# --- Furniture codes ---

def _check_area(area: str) -> str:
    if area not in AREAS:
        raise InvalidInputError(f"Unknown area code: {area!r}", field="area")
    return area


def _check_furniture_type(furniture_type: str) -> str:
    if furniture_type not in FURNITURE_TYPES:
        raise InvalidInputError(f"Unknown furniture type: {furniture_type!r}", field="furniture_type")
    return furniture_type


def _check_production_type(production_type) -> Optional[ProductionType]:
    if production_type is None or production_type == "":
        return None
    try:
        return ProductionType(production_type)
    except ValueError:
        raise InvalidInputError(
            f"Production type must be 'A' or 'G': {production_type!r}", field="production_type",
        )


def compose_furniture_code(project_code, area: str, furniture_type: str,
                           production_type=None) -> str:
    """
    PROJECT-AREA-TYPE[-A|G]. Reuses the project's sequence, allocates nothing.
    project_code may be a ProjectCode or its string form.
    """
    if isinstance(project_code, ProjectCode):
        project_text = format_project_code(project_code)
    else:
        project_text = format_project_code(parse_project_code(project_code))
    _check_area(area)
    _check_furniture_type(furniture_type)
    production = _check_production_type(production_type)

    code = f"{project_text}-{area}-{furniture_type}"
    if production is not None:
        code += f"-{production.value}"
    return code


def parse_furniture_code(code: str, decade_base: int = None) -> FurnitureCode:
    if not isinstance(code, str):
        raise MalformedCodeError("Furniture code must be a string", code=code)
    parts = code.strip().split("-")
    if not 5 <= len(parts) <= 7:
        raise MalformedCodeError(f"Invalid furniture code format: {code!r}", code=code)

    production = None
    # A trailing A/G is a production type only when AREA-TYPE sit right before it
    if (len(parts) >= 6 and parts[-1] in ("A", "G")
            and parts[-2] in FURNITURE_TYPES and parts[-3] in AREAS):
        production = ProductionType(parts.pop())

    furniture_type = parts.pop()
    area = parts.pop()
    if area not in AREAS or furniture_type not in FURNITURE_TYPES:
        raise MalformedCodeError(f"Bad area or furniture type in {code!r}", code=code)

    return FurnitureCode(
        project=parse_project_code("-".join(parts), decade_base=decade_base),
        area=area,
        furniture_type=furniture_type,
        production_type=production,
    )


def area_name(code: str) -> str:
    return AREAS.get(code, code)


def furniture_type_name(code: str) -> str:
    return FURNITURE_TYPES.get(code, code)
