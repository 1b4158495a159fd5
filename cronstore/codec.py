import json
from datetime import date, datetime
from typing import Any, Dict, Mapping

from .errors import SerializationError

Document = Dict[str, Any]


def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_document(doc: Mapping[str, Any]) -> str:
    """Serialize a document for storage. NaN/Infinity are rejected (not valid JSON)."""
    if not isinstance(doc, Mapping):
        raise SerializationError(f"Document must be a mapping, got {type(doc).__name__}")
    try:
        return json.dumps(dict(doc), default=_default, allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode document: {e}") from e


def decode_document(raw: Any) -> Document:
    """Parse a stored document. Anything that is not a JSON object is an error."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"Cannot decode document: {e}") from e
    if not isinstance(raw, str):
        raise SerializationError(f"Cannot decode document of type {type(raw).__name__}")
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Cannot decode document: {e}") from e
    if not isinstance(doc, dict):
        raise SerializationError(f"Stored document is not an object: {type(doc).__name__}")
    return doc
