"""
Relationship extraction for a single selected entity.

Outgoing edges come straight from the subject's reference fields. Incoming
edges need a scan of every other entity, so the graph is computed on demand
for the current selection only and never cached across snapshots.
"""

from typing import Sequence

from pydantic import BaseModel, Field

from catgraph.index import EntityIndex, RefStatus
from catschema.entity import EntityRef, EntityWithSource, RelationLabel


class OutgoingEdge(BaseModel, frozen=True):
    """A reference written on the subject."""

    label: RelationLabel = Field(description="Spec field the reference came from")
    target: EntityRef = Field(description="Parsed reference, with inferred segments flagged")
    status: RefStatus = Field(description="Resolution against the snapshot index")
    target_id: int | None = Field(default=None, description="Entity id when resolved")

    @property
    def resolved(self) -> bool:
        return self.status is RefStatus.RESOLVED

    @property
    def phrase(self) -> str:
        return self.label.phrase


class IncomingEdge(BaseModel, frozen=True):
    """Another entity's reference field that points at the subject."""

    label: RelationLabel = Field(description="Spec field on the source entity")
    source_id: int = Field(ge=0, description="Entity id of the referencing entity")

    @property
    def phrase(self) -> str:
        return self.label.inverse_phrase


class RelationshipGraph(BaseModel, frozen=True):
    """Both directions of the subject's relationships."""

    subject: int = Field(ge=0, description="Entity id the graph is centred on")
    outgoing: tuple[OutgoingEdge, ...] = Field(default=(), description="In relation-label order")
    incoming: tuple[IncomingEdge, ...] = Field(default=(), description="In entity-list order")


def extract_relationships(
    subject_id: int,
    entities: Sequence[EntityWithSource],
    index: EntityIndex,
) -> RelationshipGraph:
    """Collect the outgoing and incoming edges of one entity.

    Each incoming edge stands for one (source entity, field) pair, however
    many references in that field resolve to the subject.

    Raises:
        ValueError: If ``subject_id`` is not a position in ``entities``.
    """
    if not 0 <= subject_id < len(entities):
        raise ValueError(f"No entity with id {subject_id}")

    outgoing: list[OutgoingEdge] = []
    for label, ref in entities[subject_id].entity.spec.references():
        resolution = index.validate(ref)
        outgoing.append(
            OutgoingEdge(label=label, target=ref, status=resolution.status, target_id=resolution.entity_id)
        )

    incoming: list[IncomingEdge] = []
    for source_id, item in enumerate(entities):
        if source_id == subject_id:
            continue
        for label, refs in item.entity.spec.reference_fields():
            if any(index.lookup(ref) == subject_id for ref in refs):
                incoming.append(IncomingEdge(label=label, source_id=source_id))

    return RelationshipGraph(subject=subject_id, outgoing=tuple(outgoing), incoming=tuple(incoming))
