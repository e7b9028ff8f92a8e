"""Per-kind schema checks for decoded catalog records.

A record only needs ``kind`` and ``metadata.name`` to load. Everything else
the catalog format asks for (a Component's ``type``, ``lifecycle`` and
``owner``, well-formed names and tags, ...) is checked here with JSON Schema
and reported as `ValidationIssue` warnings on the loaded entity. Records
with warnings still load and still appear in the tree and graph.
"""

from __future__ import annotations

from typing import Any, Mapping

from jsonschema import Draft7Validator

from catschema.entity import EntityKind, ValidationIssue

_NAME_PATTERN = r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$"
_TAG_PATTERN = r"^[a-z0-9:+#]+(-[a-z0-9:+#]+)*$"

_STRING = {"type": "string", "minLength": 1}
_STRING_LIST = {"type": "array", "items": _STRING}

METADATA_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1, "maxLength": 63, "pattern": _NAME_PATTERN},
        "namespace": {"type": "string", "minLength": 1, "maxLength": 63, "pattern": _NAME_PATTERN},
        "title": _STRING,
        "description": {"type": "string"},
        "labels": {"type": "object", "additionalProperties": {"type": "string"}},
        "annotations": {"type": "object", "additionalProperties": {"type": "string"}},
        "tags": {
            "type": "array",
            "items": {"type": "string", "minLength": 1, "maxLength": 63, "pattern": _TAG_PATTERN},
        },
        "links": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["url"],
                "properties": {"url": _STRING, "title": _STRING, "icon": _STRING},
            },
        },
    },
}

SPEC_SCHEMAS: dict[EntityKind, dict[str, Any]] = {
    EntityKind.COMPONENT: {
        "type": "object",
        "required": ["type", "lifecycle", "owner"],
        "properties": {
            "type": _STRING,
            "lifecycle": _STRING,
            "owner": _STRING,
            "system": _STRING,
            "subcomponentOf": _STRING,
            "providesApis": _STRING_LIST,
            "consumesApis": _STRING_LIST,
            "dependsOn": _STRING_LIST,
        },
    },
    EntityKind.API: {
        "type": "object",
        "required": ["type", "lifecycle", "owner", "definition"],
        "properties": {
            "type": _STRING,
            "lifecycle": _STRING,
            "owner": _STRING,
            "system": _STRING,
            "definition": _STRING,
        },
    },
    EntityKind.RESOURCE: {
        "type": "object",
        "required": ["type", "owner"],
        "properties": {
            "type": _STRING,
            "owner": _STRING,
            "system": _STRING,
            "dependsOn": _STRING_LIST,
        },
    },
    EntityKind.SYSTEM: {
        "type": "object",
        "required": ["owner"],
        "properties": {"owner": _STRING, "domain": _STRING},
    },
    EntityKind.DOMAIN: {
        "type": "object",
        "required": ["owner"],
        "properties": {"owner": _STRING, "subdomainOf": _STRING},
    },
    EntityKind.GROUP: {
        "type": "object",
        "required": ["type", "children"],
        "properties": {
            "type": _STRING,
            "parent": _STRING,
            "children": {"type": "array", "items": _STRING},
            "members": _STRING_LIST,
            "profile": {"type": "object"},
        },
    },
    EntityKind.USER: {
        "type": "object",
        "required": ["memberOf"],
        "properties": {
            "memberOf": {"type": "array", "items": _STRING},
            "profile": {"type": "object"},
        },
    },
    EntityKind.LOCATION: {
        "type": "object",
        "properties": {
            "type": _STRING,
            "target": _STRING,
            "targets": _STRING_LIST,
            "presence": {"enum": ["required", "optional"]},
        },
    },
}


def entity_schema(kind: EntityKind) -> dict[str, Any]:
    """Full record schema for one kind; unknown kinds get the envelope only."""
    return {
        "type": "object",
        "required": ["apiVersion", "kind", "metadata"],
        "properties": {
            "apiVersion": _STRING,
            "kind": _STRING,
            "metadata": METADATA_SCHEMA,
            "spec": SPEC_SCHEMAS.get(kind, {"type": "object"}),
        },
    }


_VALIDATORS = {kind: Draft7Validator(entity_schema(kind)) for kind in EntityKind}


def validate_record(record: Mapping[str, Any], kind: EntityKind) -> tuple[ValidationIssue, ...]:
    """Check a decoded record against the schema for ``kind``.

    Returns the findings ordered by location, empty when the record is
    well-formed.
    """
    errors = sorted(
        _VALIDATORS[kind].iter_errors(dict(record)),
        key=lambda e: ([str(p) for p in e.path], e.message),
    )
    return tuple(
        ValidationIssue(path=".".join(str(p) for p in e.path) if e.path else "root", message=e.message)
        for e in errors
    )
