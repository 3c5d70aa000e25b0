"""Group tokens into entity records bounded by code-0 markers."""

from __future__ import annotations

from collections.abc import Iterable

from .models import EntityRecord, Token

DEFAULT_LAYER = "0"

CODE_ENTITY = 0
CODE_LAYER = 8
CODE_COLOR = 62


def assemble_entities(tokens: Iterable[Token]) -> list[EntityRecord]:
    """Group a token stream into entity records.

    Code 0 closes the open record and starts a new one typed by the token's
    value. Section markers (SECTION, ENDSEC, EOF, ...) become records too;
    the builders ignore them. Code 8 also sets the ambient layer, which is
    assigned to a record when it closes. Tokens before the first code 0 are
    ignored. The record still open at end of stream is closed as if a code 0
    followed.
    """
    records: list[EntityRecord] = []
    current: EntityRecord | None = None
    current_layer = DEFAULT_LAYER

    for token in tokens:
        if token.code == CODE_ENTITY:
            if current is not None:
                current.layer = current_layer
                records.append(current)
            current = EntityRecord(type=token.value, line=token.line)
            continue

        if current is None:
            continue

        current.tags.append((token.code, token.value))
        if token.code == CODE_LAYER:
            current_layer = token.value
        elif token.code == CODE_COLOR:
            current.color = token.value

    if current is not None:
        current.layer = current_layer
        records.append(current)

    return records
