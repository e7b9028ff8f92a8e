"""Detail projection for the selected entity."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from pydantic import BaseModel, SerializeAsAny

from catgraph.index import EntityIndex, RefStatus
from catgraph.refs import display_ref
from catschema.entity import EntityKind, EntitySpec, EntityWithSource, Metadata, RelationLabel, ValidationIssue


class ReferenceDetail(BaseModel, frozen=True):
    label: RelationLabel
    display: str
    canonical: str
    status: RefStatus
    target_id: int | None = None


class EntityDetails(BaseModel, frozen=True):
    """Everything a detail pane shows for one entity.

    ``display`` on each reference brackets the segments that were inferred
    rather than written; ``status`` carries the resolution color. ``members``
    is filled for groups only. ``validation_errors`` lists schema warnings
    found when the entity was loaded.
    """

    entity_id: int
    kind: EntityKind
    raw_kind: str
    unknown_kind: bool
    display_name: str
    ref_key: str
    metadata: Metadata
    namespace: str
    spec: SerializeAsAny[EntitySpec]
    source_path: Path
    document_index: int
    references: tuple[ReferenceDetail, ...] = ()
    members: tuple[int, ...] = ()
    validation_errors: tuple[ValidationIssue, ...] = ()


def group_members(group_id: int, entities: Sequence[EntityWithSource], index: EntityIndex) -> list[int]:
    """Entities whose ``memberOf`` resolves to ``group_id``, by kind then name."""
    members = [
        entity_id
        for entity_id, item in enumerate(entities)
        if any(index.lookup(ref) == group_id for ref in getattr(item.entity.spec, "member_of", ()))
    ]
    return sorted(members, key=lambda i: (entities[i].entity.kind_label, entities[i].entity.name))


def entity_details(entity_id: int, entities: Sequence[EntityWithSource], index: EntityIndex) -> EntityDetails:
    """Project one entity and its resolved references for display.

    Raises:
        ValueError: If ``entity_id`` is not a position in ``entities``.
    """
    if not 0 <= entity_id < len(entities):
        raise ValueError(f"No entity with id {entity_id}")
    item = entities[entity_id]
    entity = item.entity

    references = []
    for label, ref in entity.spec.references():
        resolution = index.validate(ref)
        references.append(
            ReferenceDetail(
                label=label,
                display=display_ref(ref),
                canonical=ref.canonical(),
                status=resolution.status,
                target_id=resolution.entity_id,
            )
        )

    members: tuple[int, ...] = ()
    if entity.kind is EntityKind.GROUP:
        members = tuple(group_members(entity_id, entities, index))

    return EntityDetails(
        entity_id=entity_id,
        kind=entity.kind,
        raw_kind=entity.raw_kind,
        unknown_kind=entity.kind is EntityKind.UNKNOWN,
        display_name=entity.display_name,
        ref_key=entity.ref_key,
        metadata=entity.metadata,
        namespace=entity.namespace,
        spec=entity.spec,
        source_path=item.source_path,
        document_index=item.document_index,
        references=tuple(references),
        validation_errors=item.validation_errors,
        members=members,
    )
