"""Value conversions between Python types and asyncpg/pgvector columns."""

import json
from typing import Any


def load_json(value: Any) -> Any:
    """Decode a JSONB column (asyncpg returns text unless a codec is set)."""
    if value is None:
        return None
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def dump_json(value: Any) -> str:
    """Encode a value for a JSONB parameter with stable key order."""
    return json.dumps(value, sort_keys=True, default=str)


def vector_literal(vector: list[float] | None) -> str | None:
    """Convert a list of floats to pgvector text format."""
    if vector is None:
        return None
    return f"[{','.join(repr(float(x)) for x in vector)}]"


def parse_vector(value: str | list | None) -> list[float] | None:
    """Parse a pgvector column (returned as "[0.1,0.2,...]") to floats."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [float(x) for x in value]
    if isinstance(value, str):
        inner = value.strip().strip("[]")
        if not inner:
            return []
        return [float(x) for x in inner.split(",")]
    return None
