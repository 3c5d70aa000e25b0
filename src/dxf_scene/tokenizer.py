"""Split ASCII DXF text into (group code, value) tokens.

DXF is strictly line-paired: a code line is always followed by exactly one
value line. Blank lines are skipped, and a code left without a value at the
end of the stream is dropped.
"""

from __future__ import annotations

import codecs
import logging
import re
from collections.abc import Iterator

from .errors import MalformedGroupCode, UnterminatedRecord
from .models import Token

logger = logging.getLogger(__name__)

_TRIM = " \t\r\n"
_CODE_RE = re.compile(r"^-?\d+$")

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def decode_dxf(data: bytes | str) -> str:
    """Decode raw DXF bytes to text.

    UTF-8 (with or without BOM) is tried first; older files written in a
    Windows code page fall back to latin-1, which accepts any byte.
    """
    if isinstance(data, str):
        return data
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8):]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("DXF input is not UTF-8, decoding as latin-1")
        return data.decode("latin-1")


def is_code_line(line: str) -> bool:
    """True if a trimmed line looks like a group code."""
    if not line:
        return False
    if line[0].isdigit():
        return True
    return line[0] == "-" and len(line) > 1 and line[1].isdigit()


def parse_group_code(line: str, line_no: int = 0) -> int:
    if not _CODE_RE.match(line):
        raise MalformedGroupCode(line, line_no)
    code = int(line)
    if not _INT32_MIN <= code <= _INT32_MAX:
        raise MalformedGroupCode(line, line_no)
    return code


def _non_blank_lines(text: str) -> Iterator[tuple[int, str]]:
    for line_no, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip(_TRIM)
        if line:
            yield line_no, line


def iter_tokens(text: str, strict: bool = False) -> Iterator[Token]:
    """Lazily tokenize DXF text.

    Args:
        text: The DXF text.
        strict: Raise UnterminatedRecord instead of dropping a trailing code
            that has no value line.

    Raises:
        MalformedGroupCode: A code line is not a valid integer.
    """
    lines = _non_blank_lines(text)
    for line_no, line in lines:
        if not is_code_line(line):
            continue
        code = parse_group_code(line, line_no)
        value_line = next(lines, None)
        if value_line is None:
            if strict:
                msg = f"Group code {code} on line {line_no} has no value"
                raise UnterminatedRecord(msg)
            logger.warning("Dropping group code %d on line %d: no value line", code, line_no)
            return
        yield Token(code=code, value=value_line[1], line=line_no)


def tokenize(data: bytes | str, strict: bool = False) -> list[Token]:
    """Decode and tokenize a whole buffer."""
    return list(iter_tokens(decode_dxf(data), strict=strict))
