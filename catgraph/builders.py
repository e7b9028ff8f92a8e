from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

from catgraph.logging import setup_logging
from catgraph.refs import parse_ref
from catgraph.validation import validate_record
from catschema.entity import (
    DEFAULT_NAMESPACE,
    SPEC_TYPES,
    Entity,
    EntityKind,
    EntityRef,
    EntitySpec,
    EntityWithSource,
    Link,
    Metadata,
    Profile,
    RefContext,
    RelationLabel,
)
from catschema.errors import EntityValidationError

logger = setup_logging()


def _strip_nonempty(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    s2 = value.strip()
    return s2 or None


def _dedupe_preserve_order(items: list[EntityRef]) -> tuple[EntityRef, ...]:
    seen: set[EntityRef] = set()
    out: list[EntityRef] = []
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return tuple(out)


def _str_mapping(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items() if v is not None}


def _str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    return tuple(s for s in (_strip_nonempty(item) for item in value) if s)


class EntityBuilder(BaseModel):
    """Turns decoded catalog records into `EntityWithSource` values.

    One builder is created per catalog file; ``build`` is called once per
    document. Reference-valued spec fields are parsed here, with the entity's
    namespace as the default, so nothing downstream handles raw strings.
    """

    model_config = ConfigDict(frozen=True)

    source_path: Path

    def _missing(self, field: str, document_index: int, fingerprint: str | None) -> EntityValidationError:
        return EntityValidationError(
            field, source_path=self.source_path, document_index=document_index, fingerprint=fingerprint
        )

    def _section(self, record: Mapping[str, Any], key: str, document_index: int) -> Mapping[str, Any]:
        value = record.get(key)
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            logger.warning(
                "%s (document %d): %r is %s, not a mapping; treating it as empty",
                self.source_path,
                document_index,
                key,
                type(value).__name__,
            )
            return {}
        return value

    def _parse_refs(self, label: RelationLabel, value: Any, namespace: str) -> list[EntityRef]:
        context = RefContext(default_kind=label.default_kind, default_namespace=namespace)
        if isinstance(value, str):
            values = [value]
        elif isinstance(value, list) and label.multi_valued:
            values = value
        else:
            return []
        return [parse_ref(s, context) for s in (_strip_nonempty(v) for v in values) if s]

    def _metadata(self, raw: Mapping[str, Any], name: str) -> Metadata:
        links: list[Link] = []
        raw_links = raw.get("links")
        if isinstance(raw_links, list):
            for item in raw_links:
                if isinstance(item, Mapping) and _strip_nonempty(item.get("url")):
                    links.append(
                        Link(
                            url=item["url"].strip(),
                            title=_strip_nonempty(item.get("title")),
                            icon=_strip_nonempty(item.get("icon")),
                        )
                    )
        return Metadata(
            name=name,
            title=_strip_nonempty(raw.get("title")),
            description=_strip_nonempty(raw.get("description")),
            labels=_str_mapping(raw.get("labels")),
            annotations=_str_mapping(raw.get("annotations")),
            tags=_str_tuple(raw.get("tags")),
            links=tuple(links),
        )

    def _spec(self, kind: EntityKind, raw: Mapping[str, Any], namespace: str) -> EntitySpec:
        cls = SPEC_TYPES[kind]
        fields: dict[str, Any] = {}
        for label in RelationLabel:
            if label.attr not in cls.model_fields or label.value not in raw:
                continue
            refs = self._parse_refs(label, raw[label.value], namespace)
            if label.multi_valued:
                fields[label.attr] = _dedupe_preserve_order(refs)
            elif refs:
                fields[label.attr] = refs[0]

        for key in ("type", "lifecycle", "target"):
            if key in cls.model_fields:
                fields[key] = _strip_nonempty(raw.get(key)) or ""
        if "targets" in cls.model_fields:
            fields["targets"] = _str_tuple(raw.get("targets"))
        if "definition" in cls.model_fields:
            definition = raw.get("definition")
            if isinstance(definition, Mapping):
                definition = definition.get("$text")
            fields["definition"] = definition if isinstance(definition, str) else ""
        if "profile" in cls.model_fields and isinstance(raw.get("profile"), Mapping):
            profile = raw["profile"]
            fields["profile"] = Profile(
                display_name=_strip_nonempty(profile.get("displayName")),
                email=_strip_nonempty(profile.get("email")),
            )
        return cls(**fields)

    def build(
        self, record: Mapping[str, Any], document_index: int = 0, fingerprint: str | None = None
    ) -> EntityWithSource:
        """Build one entity from a decoded YAML mapping.

        ``fingerprint`` identifies the source document in any error raised.

        Raises:
            EntityValidationError: If ``kind`` or ``metadata.name`` is
                missing or blank.
        """
        raw_kind = _strip_nonempty(record.get("kind"))
        if raw_kind is None:
            raise self._missing("kind", document_index, fingerprint)
        raw_metadata = self._section(record, "metadata", document_index)
        name = _strip_nonempty(raw_metadata.get("name"))
        if name is None:
            raise self._missing("metadata.name", document_index, fingerprint)

        kind = EntityKind.from_string(raw_kind)
        namespace = _strip_nonempty(raw_metadata.get("namespace")) or DEFAULT_NAMESPACE
        raw_spec = self._section(record, "spec", document_index)

        entity = Entity(
            api_version=_strip_nonempty(record.get("apiVersion")) or "",
            kind=kind,
            raw_kind=raw_kind,
            metadata=self._metadata(raw_metadata, name),
            namespace=namespace,
            spec=self._spec(kind, raw_spec, namespace),
        )
        issues = validate_record(record, kind)
        if issues:
            logger.debug(
                "%s (document %d): %s loaded with %d schema warnings",
                self.source_path,
                document_index,
                entity.name,
                len(issues),
            )
        return EntityWithSource(
            entity=entity,
            source_path=self.source_path,
            document_index=document_index,
            validation_errors=issues,
        )


def build_entity(
    record: Mapping[str, Any],
    source_path: Path | str,
    document_index: int = 0,
) -> EntityWithSource:
    """Shortcut for ``EntityBuilder(source_path=...).build(record, ...)``."""
    return EntityBuilder(source_path=Path(source_path)).build(record, document_index)
