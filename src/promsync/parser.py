"""
Index document parsing.

Both documents are YAML. Decoding errors, non-mapping roots and schema
mismatches all surface as ``IndexParseError`` so callers only handle one
failure type per document.
"""

from __future__ import annotations

from typing import Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from promsync.errors import IndexParseError
from promsync.models.index import FederationPatterns, RemoteWriteIndex

T = TypeVar("T", bound=BaseModel)


def _parse(blob: bytes, model: Type[T], document: str) -> T:
    try:
        raw = yaml.safe_load(blob)
    except yaml.YAMLError as e:
        raise IndexParseError(document, str(e)) from e

    # An empty document is a valid, empty index
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise IndexParseError(document, f"expected a mapping, got {type(raw).__name__}")

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise IndexParseError(document, str(e)) from e


def parse_federation_document(blob: bytes) -> FederationPatterns:
    """Decode a ``{"match[]": [...]}`` federation document."""
    return _parse(blob, FederationPatterns, "federation")


def parse_remote_write_document(blob: bytes) -> RemoteWriteIndex:
    """Decode a remote-write document."""
    return _parse(blob, RemoteWriteIndex, "remote write")
