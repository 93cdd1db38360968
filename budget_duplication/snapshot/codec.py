"""
Snapshot codec -- Snapshot <-> JSON-compatible dict.

Document shape::

    {
      "metadata": {"version", "exportedBy", "exportedAt", "sourceRcId",
                   "sourceRcName", "sourceFyId", "sourceFyName",
                   "countsByKind": {"fundingItem": 3, ...}},
      "moneyTypes": [{...}], "categories": [...], "spendingCategories": [...],
      "procurementItems": [{"item": {...},
                            "quotes": [{"quote": {...}, "files": [...]}],
                            "events": [{"event": {...}, "files": [...]}]}],
      "fundingItems":  [{"item": {...}, "moneyAllocations": [...]}],
      "spendingItems": [{"item": {...}, "moneyAllocations": [...],
                         "events": [...],
                         "invoices": [{"invoice": {...}, "files": [...]}]}],
      "trainingItems": [...], "travelItems": [...]
    }

Field names are the camelCase form of the model fields.  Decimals are
written as strings, dates as ISO-8601, enums by value.  Cross-references
are written by natural key (``moneyCode``, ``categoryName``) or exported id
(``procurementItemRef``).  Attachment payloads are standard base64 in
``base64Content``; an unavailable payload is an explicit null.

A null or absent list is read as empty.  Anything else that does not match
the shape raises SnapshotFormatError naming the offending path.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from budget_kernel.domain.aggregate import (
    EntityKind,
    FieldSpec,
    FieldType,
    child_kinds,
    spec_for,
)
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import SnapshotFormatError
from budget_duplication.snapshot.types import Snapshot, SnapshotMetadata, SnapshotNode

CONTENT_KEY = "base64Content"
ID_KEY = "id"


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# ---------------------------------------------------------------------------
# Binary payloads
# ---------------------------------------------------------------------------


def encode_content(content: bytes | None) -> str | None:
    if content is None:
        return None
    return base64.b64encode(content).decode("ascii")


def decode_content(text: str | None, path: str = CONTENT_KEY) -> bytes | None:
    if text is None:
        return None
    if not isinstance(text, str):
        raise SnapshotFormatError("base64Content must be a string or null", path)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SnapshotFormatError(f"invalid base64 content: {exc}", path) from exc


# ---------------------------------------------------------------------------
# Scalar values
# ---------------------------------------------------------------------------


def _encode_value(spec: FieldSpec, value: Any) -> Any:
    if value is None:
        return None
    if spec.field_type is FieldType.DECIMAL:
        return str(value)
    if spec.field_type is FieldType.DATE:
        return value.isoformat()
    if spec.field_type is FieldType.ENUM:
        return getattr(value, "value", value)
    return value


def _decode_value(spec: FieldSpec, value: Any, path: str) -> Any:
    if value is None:
        return None
    field_type = spec.field_type
    if field_type in (FieldType.STRING, FieldType.TEXT):
        if not isinstance(value, str):
            raise SnapshotFormatError("expected a string", path)
        return value
    if field_type is FieldType.BOOLEAN:
        if not isinstance(value, bool):
            raise SnapshotFormatError("expected a boolean", path)
        return value
    if field_type is FieldType.INTEGER:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SnapshotFormatError("expected an integer", path)
        return value
    if field_type is FieldType.DECIMAL:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise SnapshotFormatError("expected a decimal", path)
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise SnapshotFormatError(f"invalid decimal {value!r}", path) from exc
    if field_type is FieldType.DATE:
        if not isinstance(value, str):
            raise SnapshotFormatError("expected an ISO date string", path)
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise SnapshotFormatError(f"invalid date {value!r}", path) from exc
    if field_type is FieldType.ENUM:
        allowed = {member.value for member in spec.enum_type}
        if not isinstance(value, str) or value not in allowed:
            raise SnapshotFormatError(
                f"{value!r} is not one of {sorted(allowed)}", path
            )
        return value
    raise SnapshotFormatError(f"unsupported field type {field_type}", path)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def _encode_node(node: SnapshotNode) -> dict[str, Any]:
    spec = spec_for(node.kind)
    own: dict[str, Any] = {ID_KEY: node.ref}
    for field_spec in spec.fields:
        own[camel(field_spec.name)] = _encode_value(
            field_spec, node.record.values.get(field_spec.name)
        )
    for ref in spec.references:
        own[ref.snapshot_key] = node.record.references.get(ref.field)
    if spec.has_payload:
        own[CONTENT_KEY] = encode_content(node.record.content)

    if spec.wrapper is None:
        return own
    body: dict[str, Any] = {spec.wrapper: own}
    for kind in child_kinds(node.kind):
        body[spec_for(kind).collection] = [
            _encode_node(child) for child in node.children_of(kind)
        ]
    return body


def _as_list(value: Any, path: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SnapshotFormatError("expected a list or null", path)
    return value


def _decode_node(kind: EntityKind, data: Any, path: str) -> SnapshotNode:
    spec = spec_for(kind)
    if not isinstance(data, dict):
        raise SnapshotFormatError("expected an object", path)

    if spec.wrapper is None:
        own, own_path = data, path
    else:
        own = data.get(spec.wrapper)
        own_path = f"{path}.{spec.wrapper}"
        if not isinstance(own, dict):
            raise SnapshotFormatError(f"missing '{spec.wrapper}' object", own_path)

    values: dict[str, Any] = {}
    for field_spec in spec.fields:
        key = camel(field_spec.name)
        if key in own:
            values[field_spec.name] = _decode_value(
                field_spec, own[key], f"{own_path}.{key}"
            )

    references: dict[str, Any] = {}
    for ref in spec.references:
        value = own.get(ref.snapshot_key)
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, (str, int))
        ):
            raise SnapshotFormatError(
                "expected a string or integer reference",
                f"{own_path}.{ref.snapshot_key}",
            )
        references[ref.field] = value

    content = None
    if spec.has_payload:
        content = decode_content(own.get(CONTENT_KEY), f"{own_path}.{CONTENT_KEY}")

    ref_id = own.get(ID_KEY)
    children: list[SnapshotNode] = []
    if spec.wrapper is not None:
        for child_kind in child_kinds(kind):
            collection = spec_for(child_kind).collection
            items = _as_list(data.get(collection), f"{path}.{collection}")
            children.extend(
                _decode_node(child_kind, item, f"{path}.{collection}[{index}]")
                for index, item in enumerate(items)
            )

    return SnapshotNode(
        record=EntityRecord(kind, None, None, values, references, content),
        children=tuple(children),
        ref=None if ref_id is None else str(ref_id),
    )


# ---------------------------------------------------------------------------
# Whole document
# ---------------------------------------------------------------------------


def _encode_metadata(metadata: SnapshotMetadata) -> dict[str, Any]:
    return {
        "version": metadata.version,
        "exportedBy": metadata.exported_by,
        "exportedAt": (
            metadata.exported_at.isoformat() if metadata.exported_at else None
        ),
        "sourceRcId": metadata.source_rc_id,
        "sourceRcName": metadata.source_rc_name,
        "sourceFyId": metadata.source_fy_id,
        "sourceFyName": metadata.source_fy_name,
        "countsByKind": dict(metadata.counts_by_kind),
    }


def _decode_metadata(data: Any) -> SnapshotMetadata:
    if not isinstance(data, dict):
        raise SnapshotFormatError("missing metadata object", "metadata")
    version = data.get("version")
    if not isinstance(version, str) or not version:
        raise SnapshotFormatError("metadata.version must be a string", "metadata.version")

    exported_at = data.get("exportedAt")
    if exported_at is not None:
        try:
            exported_at = datetime.fromisoformat(exported_at)
        except (TypeError, ValueError) as exc:
            raise SnapshotFormatError(
                f"invalid timestamp {exported_at!r}", "metadata.exportedAt"
            ) from exc

    counts = data.get("countsByKind") or {}
    if not isinstance(counts, dict) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in counts.values()
    ):
        raise SnapshotFormatError(
            "countsByKind must map kind names to integers", "metadata.countsByKind"
        )

    def _text(key: str) -> str | None:
        value = data.get(key)
        return None if value is None else str(value)

    return SnapshotMetadata(
        version=version,
        exported_by=_text("exportedBy"),
        exported_at=exported_at,
        source_rc_id=_text("sourceRcId"),
        source_rc_name=_text("sourceRcName"),
        source_fy_id=_text("sourceFyId"),
        source_fy_name=_text("sourceFyName"),
        counts_by_kind={str(k): int(v) for k, v in counts.items()},
    )


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    document: dict[str, Any] = {"metadata": _encode_metadata(snapshot.metadata)}
    for kind in child_kinds(EntityKind.FISCAL_YEAR):
        document[spec_for(kind).collection] = [
            _encode_node(node) for node in snapshot.nodes(kind)
        ]
    return document


def snapshot_from_dict(document: Any) -> Snapshot:
    """
    Decode a snapshot document.

    Raises:
        SnapshotFormatError: The document does not match the snapshot shape.
    """
    if not isinstance(document, dict):
        raise SnapshotFormatError("snapshot must be a JSON object")
    metadata = _decode_metadata(document.get("metadata"))
    sections: dict[EntityKind, tuple[SnapshotNode, ...]] = {}
    for kind in child_kinds(EntityKind.FISCAL_YEAR):
        collection = spec_for(kind).collection
        items = _as_list(document.get(collection), collection)
        sections[kind] = tuple(
            _decode_node(kind, item, f"{collection}[{index}]")
            for index, item in enumerate(items)
        )
    return Snapshot(metadata=metadata, sections=sections)


def dumps(snapshot: Snapshot, indent: int | None = 2) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=indent)


def loads(text: str | bytes) -> Snapshot:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"not valid JSON: {exc}") from exc
    return snapshot_from_dict(document)
