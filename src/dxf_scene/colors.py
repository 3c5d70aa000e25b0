"""Color normalization for scene nodes.

Every color attached to a ShapeNode is an uppercase ``#RRGGBB`` string.
DXF colors arrive as AutoCAD Color Index values (group code 62) and are
mapped through ezdxf's default color table.
"""

from __future__ import annotations

import logging
import re

from ezdxf.colors import aci2rgb

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

# ACI values with no color of their own
BYBLOCK = 0
BYLAYER = 256


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(value: str | None) -> str | None:
    """Normalize a hex color string to ``#RRGGBB``.

    Accepts ``#rgb``, ``rrggbb`` and ``#RRGGBBAA`` (alpha is dropped).
    Returns None, with a warning, for anything else.
    """
    if value is None:
        return None
    match = _HEX_RE.match(value.strip())
    if match is None:
        logger.warning("Ignoring invalid color %r", value)
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return "#" + digits[:6].upper()


def aci_to_hex(value: str | int) -> str | None:
    """Map an ACI color number to ``#RRGGBB``.

    0 (BYBLOCK), 256 (BYLAYER) and negative values (layer switched off)
    carry no color of their own and give None.
    """
    try:
        index = int(value)
    except ValueError:
        logger.warning("Ignoring non-numeric ACI color %r", value)
        return None
    if index in (BYBLOCK, BYLAYER) or index < 0:
        return None
    if index > 255:
        logger.warning("ACI color %d out of range", index)
        return None
    rgb = aci2rgb(index)
    return rgb_to_hex(rgb[0], rgb[1], rgb[2])
