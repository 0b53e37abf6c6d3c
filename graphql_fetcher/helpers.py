"""
Document and header utilities.

Hashing, operation name extraction, operation classification and header
merging used by the request builder and the dispatchers.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Dict, Mapping, Optional, Sequence

from graphql import print_ast
from graphql.language.ast import Node
from multidict import CIMultiDict

PERSISTED_QUERY_NOT_FOUND = "PersistedQueryNotFound"
DEFAULT_OPERATION_NAME = "(GraphQL)"

DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
}

# Leading whitespace, commas (insignificant in GraphQL) and comment lines
_IGNORED_PREFIX = re.compile(r"^(?:[\s,\ufeff]+|#[^\n\r]*)*")
_OPERATION_NAME = re.compile(r"(?:query|mutation)\s+([_A-Za-z][_0-9A-Za-z]*)")


class TypedDocumentString(str):
    """
    Operation text with optional metadata attached.

    ``meta`` may carry a precomputed ``hash`` (sha256 of the text) and a
    ``documentId`` assigned by an allow-listing build step.
    """

    meta: Dict[str, Any]

    def __new__(cls, value: str, meta: Optional[Mapping[str, Any]] = None) -> "TypedDocumentString":
        instance = super().__new__(cls, value)
        instance.meta = dict(meta or {})
        return instance


def _significant(text: str) -> str:
    return _IGNORED_PREFIX.sub("", text, count=1)


def compute_content_hash(text: str) -> str:
    """
    Hash operation text for automatic persisted queries.

    Plain, unsalted SHA-256 over the UTF-8 bytes, lowercase hex. This is the
    same digest Apollo-compatible servers compute, so a client hash is
    accepted by a server hashing the query independently.
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def extract_operation_name(text: str) -> Optional[str]:
    """Return the name of the leading query or mutation, or None if anonymous."""
    match = _OPERATION_NAME.match(_significant(text))
    if match:
        return match.group(1)
    return None


def classify_operation(text: str) -> str:
    """
    Classify an operation as ``"query"`` or ``"mutation"``.

    Only documents starting with the ``query`` keyword are queries. Anonymous
    shorthand (``{ field }``) is classified as a mutation and therefore never
    sent over GET.
    """
    return "query" if text.strip().startswith("query") else "mutation"


def merge_headers(
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Merge header sets case-insensitively.

    Overrides win over base. ``Content-Type: application/json`` is added only
    when no Content-Type is present under any casing.
    """
    merged: CIMultiDict[str] = CIMultiDict()
    for source in (base or {}, overrides or {}):
        for key, value in source.items():
            if key in merged:
                del merged[key]
            merged[key] = value

    for key, value in DEFAULT_HEADERS.items():
        if key not in merged:
            merged[key] = value

    return {key: value for key, value in merged.items()}


def is_not_empty(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, bytes, Mapping, Sequence)):
        return len(value) > 0
    return True


def prune_object(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop keys whose values are None or empty, preserving order."""
    return {key: value for key, value in data.items() if is_not_empty(value)}


def to_json(value: Any) -> str:
    """Serialize compactly, matching JavaScript's JSON.stringify output."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def has_persisted_query_error(errors: Optional[Sequence[Mapping[str, Any]]]) -> bool:
    """Check for the exact ``PersistedQueryNotFound`` sentinel in an errors array."""
    return any(
        isinstance(item, Mapping) and item.get("message") == PERSISTED_QUERY_NOT_FOUND
        for item in errors or []
    )


def document_to_text(document: Any) -> str:
    """Return the operation text for a string, typed string or parsed AST."""
    if isinstance(document, Node):
        return print_ast(document)
    return str(document)


def _document_meta(document: Any) -> Mapping[str, Any]:
    meta = getattr(document, "meta", None)
    if isinstance(meta, Mapping):
        return meta
    return {}


def get_document_id(document: Any) -> Optional[str]:
    """Default document identifier lookup: ``meta["documentId"]`` if present."""
    value = _document_meta(document).get("documentId")
    return str(value) if value else None


def get_document_hash(document: Any) -> Optional[str]:
    value = _document_meta(document).get("hash")
    return str(value) if value else None
