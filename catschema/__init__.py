"""
Catalog Graph Schema - Entity Models and Error Taxonomy

This package contains only Pydantic models and exception classes with no
loading or graph logic. It defines:

- Entity kinds and the reference model
- Metadata and per-kind spec models
- Relationship labels
- Non-fatal schema findings on loaded entities
- Catalog parse errors

These are used by catgraph (loading, indexing, tree and graph building) and
by anything that presents a catalog snapshot.
"""

from catschema.entity import (
    DEFAULT_NAMESPACE,
    KNOWN_REF_KINDS,
    SPEC_TYPES,
    ApiSpec,
    ComponentSpec,
    DomainSpec,
    Entity,
    EntityKind,
    EntityRef,
    EntitySpec,
    EntityWithSource,
    GroupSpec,
    Link,
    LocationSpec,
    Metadata,
    Profile,
    RefContext,
    RelationLabel,
    ResourceSpec,
    SystemSpec,
    UnknownSpec,
    UserSpec,
    ValidationIssue,
)
from catschema.errors import (
    CatalogError,
    DiscoveryError,
    DocumentError,
    EntityValidationError,
    ParseError,
)

__all__ = [
    "ApiSpec",
    "CatalogError",
    "ComponentSpec",
    "DEFAULT_NAMESPACE",
    "DiscoveryError",
    "DocumentError",
    "DomainSpec",
    "Entity",
    "EntityKind",
    "EntityRef",
    "EntitySpec",
    "EntityValidationError",
    "EntityWithSource",
    "GroupSpec",
    "KNOWN_REF_KINDS",
    "Link",
    "LocationSpec",
    "Metadata",
    "ParseError",
    "Profile",
    "RefContext",
    "RelationLabel",
    "ResourceSpec",
    "SPEC_TYPES",
    "SystemSpec",
    "UnknownSpec",
    "UserSpec",
    "ValidationIssue",
]

__version__ = "0.1.0"
