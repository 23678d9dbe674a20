"""Storage layer: PostgreSQL connection management and column codecs."""

from context_sync.storage.codecs import dump_json, load_json, parse_vector, vector_literal
from context_sync.storage.database import Database

__all__ = ["Database", "dump_json", "load_json", "parse_vector", "vector_literal"]
