"""
Room label parser for floor-plan OCR text

Extracts room name / dimension / area tuples from architectural labels such as
``BEDROOM 12'-6" x 10'-0"``. Best effort: malformed dimensions yield area 0,
the parser never raises.
"""

import math
import re
import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any, Iterable

logger = logging.getLogger(__name__)

# One dimension token: 12' | 12'-6" | 12' 6½" | 12.5
_DIM = r"""\d+(?:'\s*)?(?:-|\s+)?(?:\d+(?:"|½|¼|¾|\.5)?)?"""

ROOM_PATTERN = re.compile(
    r"""([A-Z][A-Z\s/\d]+?)(?:\s*(?:(""" + _DIM + r""")["']?\s*[xX×]\s*(""" + _DIM + r""")["']?)|$)""",
    re.MULTILINE,
)

FEET_INCHES_PATTERN = re.compile(r"""(\d+)'(?:-)?(\d+(?:½|¼|¾|\.5)?)?(?:"|'')?""")
DECIMAL_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

# Circulation and site labels, matched exactly as printed
NON_ROOM_LABELS = re.compile(r"^(UP|DOWN|OPENING|DRIVE|WAY)$")
# Structural labels, any case
STRUCTURAL_LABELS = re.compile(r"^(WALL|FLOOR|CEILING|CLG|SLAB)$", re.IGNORECASE)

FRACTION_GLYPHS = {'½': 0.5, '¼': 0.25, '¾': 0.75}

# Typographic quotes OCR tends to produce
_QUOTE_TABLE = str.maketrans({'“': '"', '”': '"', '″': '"', '’': "'", '‘': "'", '′': "'"})


@dataclass
class ParsedRoom:
    name: str
    area: float = 0.0
    dimensions: Optional[Dict[str, str]] = None
    width_ft: float = 0.0
    length_ft: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SyntheticRoom:
    name: str
    area: float
    dimensions: Dict[str, float] = field(default_factory=dict)
    is_default: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def feet_inches_to_decimal(dim: str) -> float:
    """Convert ``12'-6"`` style text to decimal feet; 0 when unparseable"""
    if not dim:
        return 0.0

    match = FEET_INCHES_PATTERN.search(dim)
    if match:
        feet = int(match.group(1))
        inches = 0.0
        raw_inches = match.group(2)
        if raw_inches:
            glyph = raw_inches[-1]
            if glyph in FRACTION_GLYPHS:
                whole = raw_inches[:-1]
                inches = (float(whole) if whole else 0.0) + FRACTION_GLYPHS[glyph]
            else:
                inches = float(raw_inches)
        return feet + inches / 12

    match = DECIMAL_PATTERN.search(dim)
    if match:
        return float(match.group(1))

    return 0.0


def _clean_dimension(dim: Optional[str]) -> str:
    if not dim:
        return ""
    return re.sub(r"\s+", "", dim).translate(_QUOTE_TABLE)


def parse_room_text(text: str) -> List[ParsedRoom]:
    """
    Parse floor-plan OCR text into rooms.

    Args:
        text: raw OCR text

    Returns:
        Possibly empty list. Labels without a usable dimension pair are kept
        with area 0; callers decide whether to persist them.
    """
    if not isinstance(text, str) or not text:
        return []

    rooms: List[ParsedRoom] = []
    normalized = text.translate(_QUOTE_TABLE)

    for match in ROOM_PATTERN.finditer(normalized):
        name = (match.group(1) or "").strip()
        if not name or NON_ROOM_LABELS.match(name) or STRUCTURAL_LABELS.match(name):
            continue

        width = _clean_dimension(match.group(2))
        length = _clean_dimension(match.group(3))

        width_ft = feet_inches_to_decimal(width)
        length_ft = feet_inches_to_decimal(length)
        area = width_ft * length_ft if width_ft and length_ft else 0.0

        rooms.append(ParsedRoom(
            name=name,
            area=max(0.0, round(area, 2)),
            dimensions={"width": width, "length": length} if width and length else None,
            width_ft=round(width_ft, 4),
            length_ft=round(length_ft, 4),
        ))

    logger.debug(f"Parsed {len(rooms)} room labels from {len(text)} chars of OCR text")
    return rooms


def is_floor_plan(file_name: str, text: str) -> bool:
    """Floor plans are recognized by file name or typical room labels"""
    lowered = (file_name or "").lower()
    if 'floor' in lowered or 'plan' in lowered:
        return True
    text = text or ""
    return 'BEDROOM' in text or 'LIVING' in text or 'KITCHEN' in text


def is_valid_room_name(name: Optional[str]) -> bool:
    """Reject blank, numeric-only and placeholder names"""
    if not name:
        return False
    stripped = name.strip()
    if not stripped or stripped.isdigit():
        return False
    return stripped.lower() != 'unnamed room'


def usable_rooms(rooms: Iterable[ParsedRoom]) -> List[ParsedRoom]:
    """Rooms worth persisting: positive area and a real name"""
    return [room for room in rooms if room.area > 0 and is_valid_room_name(room.name)]


def synthesize_rooms(floor_area: float, room_count: Optional[int]) -> List[SyntheticRoom]:
    """
    Equal-split fallback when no room could be read from the floor plan.

    Args:
        floor_area: declared floor area
        room_count: declared number of rooms; 0 or None means one room
    """
    count = room_count if room_count and room_count > 0 else 1
    avg_area = (floor_area or 0.0) / count
    if avg_area <= 0:
        return []

    side = math.sqrt(avg_area)
    return [
        SyntheticRoom(
            name=f"Room {i + 1}",
            area=avg_area,
            dimensions={"width": side, "length": side},
        )
        for i in range(count)
    ]


def dedupe_rooms_by_name(rooms: Iterable[Any], min_area: float = 0.0) -> List[Any]:
    """
    Keep the first room of each name, dropping rooms at or below min_area.

    Works on ORM rows, dataclasses and dicts.
    """
    seen = set()
    result = []
    for room in rooms:
        name = room.get('name') if isinstance(room, dict) else getattr(room, 'name', None)
        area = room.get('area', 0) if isinstance(room, dict) else getattr(room, 'area', 0)
        if name is None or (area or 0) <= min_area:
            continue
        if name in seen:
            continue
        seen.add(name)
        result.append(room)
    return result
