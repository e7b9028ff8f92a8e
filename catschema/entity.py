"""Entity system for the catalog graph.

This module defines the immutable data model that every other stage of the
catalog graph consumes:

- **EntityKind**: The closed set of catalog kinds, plus ``UNKNOWN``
- **EntityRef**: A parsed ``[kind:][namespace/]name`` reference
- **RefContext**: Contextual defaults used when a reference omits segments
- **RelationLabel**: The reference-valued spec fields, in display order
- **Metadata** / **Link**: Descriptive fields shared by all kinds
- **EntitySpec** and one subclass per kind: kind-appropriate spec fields
- **Entity** / **EntityWithSource**: A decoded record and where it came from
- **ValidationIssue**: A non-fatal schema finding attached to a loaded entity

**Reference handling:**

Spec fields that point at other entities (``owner``, ``system``,
``dependsOn``, ...) never hold raw strings. They are parsed into
`EntityRef` values when the entity is built, using the entity's own
namespace as the default, so downstream stages (index, tree, relationship
graph) only ever see structured references.

All models are frozen Pydantic models. A catalog snapshot is rebuilt
wholesale on reload and never mutated in place.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, SerializeAsAny, field_validator

DEFAULT_NAMESPACE = "default"


class EntityKind(str, Enum):
    """Kind of a catalog entity.

    The eight recognised kinds form a closed set. Anything else decodes to
    ``UNKNOWN``; the entity keeps its raw kind string so presenters can show
    an "unknown kind" marker. An unknown kind is never an error.
    """

    COMPONENT = "Component"
    API = "API"
    RESOURCE = "Resource"
    SYSTEM = "System"
    DOMAIN = "Domain"
    GROUP = "Group"
    USER = "User"
    LOCATION = "Location"
    UNKNOWN = "Unknown"

    @property
    def ref_kind(self) -> str:
        """Lowercase form used inside entity references (``"api"``)."""
        return self.value.lower()

    @property
    def is_known(self) -> bool:
        return self is not EntityKind.UNKNOWN

    @classmethod
    def from_string(cls, raw: str) -> "EntityKind":
        """Case-insensitive match against the recognised kinds; never raises."""
        return _KINDS_BY_REF.get(raw.strip().lower(), cls.UNKNOWN)


_KINDS_BY_REF: dict[str, EntityKind] = {kind.ref_kind: kind for kind in EntityKind if kind is not EntityKind.UNKNOWN}

KNOWN_REF_KINDS: frozenset[str] = frozenset(_KINDS_BY_REF)
"""The eight recognised kinds, lowercased as they appear in references."""


def _escape(segment: str) -> str:
    return segment.replace(":", "\\:")


class EntityRef(BaseModel):
    """A structured, possibly partial, address of a catalog entity.

    References are written ``[<kind>:][<namespace>/]<name>``. Segments that
    were omitted in the source text are filled from context and flagged as
    inferred through ``explicit_kind`` / ``explicit_namespace``.

    The explicit flags are presentation-only: equality and hashing use
    ``(kind, namespace, name)`` alone, so ``"my-service"`` parsed with a
    Component default equals ``"component:default/my-service"``.

    Attributes:
        kind: Lowercased kind segment. Unrecognised kinds keep their text.
        namespace: Namespace segment.
        name: Entity name. Never empty.
        explicit_kind: Whether the kind was written in the source text.
        explicit_namespace: Whether the namespace was written in the source text.
    """

    model_config = {"frozen": True}

    kind: str = Field(min_length=1, description="Lowercased kind segment.")
    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1, description="Namespace segment.")
    name: str = Field(min_length=1, description="Entity name.")
    explicit_kind: bool = Field(default=True, description="Kind was written, not inferred.")
    explicit_namespace: bool = Field(default=True, description="Namespace was written, not inferred.")

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: object) -> object:
        if isinstance(value, EntityKind):
            return value.ref_kind
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity of the reference: ``(kind, namespace, name)``."""
        return (self.kind, self.namespace, self.name)

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.from_string(self.kind)

    @property
    def is_known_kind(self) -> bool:
        return self.kind in KNOWN_REF_KINDS

    def canonical(self) -> str:
        """Canonical explicit form ``kind:namespace/name``.

        Colons inside segments are escaped so the result parses back to an
        equal reference.
        """
        return f"{_escape(self.kind)}:{_escape(self.namespace)}/{_escape(self.name)}"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EntityRef):
            return self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.canonical()


class RefContext(BaseModel, frozen=True):
    """Defaults applied to the segments a reference leaves out.

    Attributes:
        default_kind: Kind assumed when the reference has no ``kind:`` prefix.
        default_namespace: Namespace assumed when there is no ``namespace/``.
    """

    default_kind: str = Field(min_length=1)
    default_namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)

    @field_validator("default_kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: object) -> object:
        if isinstance(value, EntityKind):
            return value.ref_kind
        if isinstance(value, str):
            return value.strip().lower()
        return value


class RelationLabel(str, Enum):
    """Reference-valued spec fields, in the order relationships are listed.

    The value is the field name as written in catalog files. Each label
    knows the kind assumed for references that omit one, whether the field
    holds a list, and how to phrase the relationship in each direction.
    """

    OWNER = "owner"
    SYSTEM = "system"
    DOMAIN = "domain"
    DEPENDS_ON = "dependsOn"
    PROVIDES_APIS = "providesApis"
    CONSUMES_APIS = "consumesApis"
    PARENT = "parent"
    MEMBER_OF = "memberOf"
    CHILDREN = "children"
    SUBCOMPONENT_OF = "subcomponentOf"
    SUBDOMAIN_OF = "subdomainOf"

    @property
    def attr(self) -> str:
        """Attribute name on the spec models (``depends_on``)."""
        return _RELATION_ATTRS[self]

    @property
    def default_kind(self) -> EntityKind:
        return _RELATION_DEFAULT_KINDS[self]

    @property
    def multi_valued(self) -> bool:
        return self in _MULTI_VALUED

    @property
    def phrase(self) -> str:
        """Wording for an outgoing edge: ``subject <phrase> target``."""
        return _RELATION_PHRASES[self][0]

    @property
    def inverse_phrase(self) -> str:
        """Wording for an incoming edge: ``subject <inverse_phrase> source``."""
        return _RELATION_PHRASES[self][1]


_RELATION_ATTRS: dict[RelationLabel, str] = {
    RelationLabel.OWNER: "owner",
    RelationLabel.SYSTEM: "system",
    RelationLabel.DOMAIN: "domain",
    RelationLabel.DEPENDS_ON: "depends_on",
    RelationLabel.PROVIDES_APIS: "provides_apis",
    RelationLabel.CONSUMES_APIS: "consumes_apis",
    RelationLabel.PARENT: "parent",
    RelationLabel.MEMBER_OF: "member_of",
    RelationLabel.CHILDREN: "children",
    RelationLabel.SUBCOMPONENT_OF: "subcomponent_of",
    RelationLabel.SUBDOMAIN_OF: "subdomain_of",
}

_RELATION_DEFAULT_KINDS: dict[RelationLabel, EntityKind] = {
    RelationLabel.OWNER: EntityKind.GROUP,
    RelationLabel.SYSTEM: EntityKind.SYSTEM,
    RelationLabel.DOMAIN: EntityKind.DOMAIN,
    RelationLabel.DEPENDS_ON: EntityKind.COMPONENT,
    RelationLabel.PROVIDES_APIS: EntityKind.API,
    RelationLabel.CONSUMES_APIS: EntityKind.API,
    RelationLabel.PARENT: EntityKind.GROUP,
    RelationLabel.MEMBER_OF: EntityKind.GROUP,
    RelationLabel.CHILDREN: EntityKind.GROUP,
    RelationLabel.SUBCOMPONENT_OF: EntityKind.COMPONENT,
    RelationLabel.SUBDOMAIN_OF: EntityKind.DOMAIN,
}

_MULTI_VALUED = frozenset(
    {
        RelationLabel.DEPENDS_ON,
        RelationLabel.PROVIDES_APIS,
        RelationLabel.CONSUMES_APIS,
        RelationLabel.MEMBER_OF,
        RelationLabel.CHILDREN,
    }
)

_RELATION_PHRASES: dict[RelationLabel, tuple[str, str]] = {
    RelationLabel.OWNER: ("owned by", "owner of"),
    RelationLabel.SYSTEM: ("part of", "has part"),
    RelationLabel.DOMAIN: ("in domain", "has system"),
    RelationLabel.DEPENDS_ON: ("depends on", "dependency of"),
    RelationLabel.PROVIDES_APIS: ("provides", "provided by"),
    RelationLabel.CONSUMES_APIS: ("consumes", "consumed by"),
    RelationLabel.PARENT: ("child of", "parent of"),
    RelationLabel.MEMBER_OF: ("member of", "has member"),
    RelationLabel.CHILDREN: ("parent of", "child of"),
    RelationLabel.SUBCOMPONENT_OF: ("subcomponent of", "has subcomponent"),
    RelationLabel.SUBDOMAIN_OF: ("subdomain of", "has subdomain"),
}


class Link(BaseModel, frozen=True):
    """An external link attached to an entity's metadata."""

    url: str = ""
    title: str | None = None
    icon: str | None = None


class Metadata(BaseModel, frozen=True):
    """Descriptive metadata shared by every entity kind.

    Attributes:
        name: Entity name, unique per (kind, namespace). Mandatory.
        title: Optional human-friendly name shown instead of ``name``.
        description: Optional free-text description.
        labels: Key/value labels.
        annotations: Key/value annotations (documentation pointers etc.).
        tags: Ordered tags.
        links: Ordered external links.
    """

    name: str = Field(min_length=1)
    title: str | None = None
    description: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    tags: tuple[str, ...] = ()
    links: tuple[Link, ...] = ()


class Profile(BaseModel, frozen=True):
    """Display profile of a Group or User."""

    display_name: str | None = None
    email: str | None = None


class EntitySpec(BaseModel):
    """Base class for kind-specific spec fields.

    Each kind gets its own subclass declaring exactly the optional fields
    that kind supports, rather than an open-ended dictionary. Reference
    fields hold `EntityRef` (single-valued) or tuples of them (multi-valued);
    `references()` walks them in `RelationLabel` order.
    """

    model_config = {"frozen": True}

    type: str = ""
    lifecycle: str = ""

    def reference_fields(self) -> list[tuple[RelationLabel, tuple[EntityRef, ...]]]:
        """Return the non-empty reference fields in `RelationLabel` order."""
        fields: list[tuple[RelationLabel, tuple[EntityRef, ...]]] = []
        for label in RelationLabel:
            value = getattr(self, label.attr, None)
            if value is None:
                continue
            refs = value if isinstance(value, tuple) else (value,)
            if refs:
                fields.append((label, refs))
        return fields

    def references(self) -> list[tuple[RelationLabel, EntityRef]]:
        """Return every (label, reference) pair in `RelationLabel` order."""
        return [(label, ref) for label, refs in self.reference_fields() for ref in refs]


class ComponentSpec(EntitySpec):
    owner: EntityRef | None = None
    system: EntityRef | None = None
    subcomponent_of: EntityRef | None = None
    depends_on: tuple[EntityRef, ...] = ()
    provides_apis: tuple[EntityRef, ...] = ()
    consumes_apis: tuple[EntityRef, ...] = ()


class ApiSpec(EntitySpec):
    owner: EntityRef | None = None
    system: EntityRef | None = None
    definition: str = ""


class ResourceSpec(EntitySpec):
    owner: EntityRef | None = None
    system: EntityRef | None = None
    depends_on: tuple[EntityRef, ...] = ()


class SystemSpec(EntitySpec):
    owner: EntityRef | None = None
    domain: EntityRef | None = None


class DomainSpec(EntitySpec):
    owner: EntityRef | None = None
    subdomain_of: EntityRef | None = None


class GroupSpec(EntitySpec):
    parent: EntityRef | None = None
    children: tuple[EntityRef, ...] = ()
    profile: Profile | None = None


class UserSpec(EntitySpec):
    member_of: tuple[EntityRef, ...] = ()
    profile: Profile | None = None


class LocationSpec(EntitySpec):
    target: str = ""
    targets: tuple[str, ...] = ()


class UnknownSpec(EntitySpec):
    owner: EntityRef | None = None


SPEC_TYPES: dict[EntityKind, type[EntitySpec]] = {
    EntityKind.COMPONENT: ComponentSpec,
    EntityKind.API: ApiSpec,
    EntityKind.RESOURCE: ResourceSpec,
    EntityKind.SYSTEM: SystemSpec,
    EntityKind.DOMAIN: DomainSpec,
    EntityKind.GROUP: GroupSpec,
    EntityKind.USER: UserSpec,
    EntityKind.LOCATION: LocationSpec,
    EntityKind.UNKNOWN: UnknownSpec,
}


class Entity(BaseModel):
    """A normalised catalog record.

    Attributes:
        api_version: The record's ``apiVersion``, empty when absent.
        kind: Recognised kind, or ``UNKNOWN``.
        raw_kind: The kind string exactly as written in the record.
        metadata: Descriptive metadata.
        namespace: Namespace the entity lives in.
        spec: Kind-specific fields with references already parsed.
    """

    model_config = {"frozen": True}

    api_version: str = ""
    kind: EntityKind
    raw_kind: str = ""
    metadata: Metadata
    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    spec: SerializeAsAny[EntitySpec] = Field(default_factory=EntitySpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def display_name(self) -> str:
        """Title when present, otherwise the name."""
        return self.metadata.title or self.metadata.name

    @property
    def kind_label(self) -> str:
        """Kind as it should be shown: the raw text for unknown kinds."""
        if self.kind is EntityKind.UNKNOWN and self.raw_kind:
            return self.raw_kind
        return self.kind.value

    @property
    def ref_kind(self) -> str:
        if self.kind is EntityKind.UNKNOWN:
            return self.raw_kind.strip().lower() or EntityKind.UNKNOWN.ref_kind
        return self.kind.ref_kind

    @property
    def ref(self) -> EntityRef:
        """Fully explicit reference to this entity."""
        return EntityRef(kind=self.ref_kind, namespace=self.namespace, name=self.metadata.name)

    @property
    def ref_key(self) -> str:
        return self.ref.canonical()


class ValidationIssue(BaseModel, frozen=True):
    """A schema problem in a loaded record that did not stop it loading.

    Attributes:
        path: Dotted location in the record (``spec``, ``metadata.name``).
        message: What is wrong there.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class EntityWithSource(BaseModel, frozen=True):
    """An entity together with the file (and document) it was decoded from.

    The source is attached once at construction and never changes, and so
    are the schema warnings found while building it.
    """

    entity: Entity
    source_path: Path
    document_index: int = Field(default=0, ge=0)
    validation_errors: tuple[ValidationIssue, ...] = ()
