"""Test fixtures and catalog factories.

This module provides:
- ``make_test_entity``: build an `EntityWithSource` from keyword arguments,
  going through the real `EntityBuilder` so reference parsing is exercised
- ``make_catalog_dir``: write catalog files into a temporary directory
- Fixtures for a small sample catalog (a domain, a system, components, an
  API, groups and a user) both as an entity list and as files on disk

Entities are given by kind and name; references in ``spec`` are written the
way they would appear in a catalog-info.yaml file.
"""

from pathlib import Path
from typing import Any, Sequence

import pytest

from catgraph.builders import build_entity
from catgraph.index import EntityIndex
from catschema.entity import EntityKind, EntityWithSource, RefContext


def make_test_entity(
    name: str,
    kind: str = "Component",
    namespace: str | None = None,
    title: str | None = None,
    spec: dict[str, Any] | None = None,
    source_path: str | Path = "catalog-info.yaml",
    document_index: int = 0,
    **metadata: Any,
) -> EntityWithSource:
    """Factory function to create entities with sensible defaults.

    Args:
        name: ``metadata.name`` (required).
        kind: Kind as written in a catalog file (default: Component).
        namespace: ``metadata.namespace``; omitted when None.
        title: Optional ``metadata.title``.
        spec: Raw ``spec`` mapping, references as strings.
        source_path: File the entity claims to come from.
        document_index: Document position within that file.
        **metadata: Extra ``metadata`` keys (description, tags, links, ...).

    Returns:
        The entity as the loader would have produced it.
    """
    meta: dict[str, Any] = {"name": name, **metadata}
    if namespace is not None:
        meta["namespace"] = namespace
    if title is not None:
        meta["title"] = title
    record = {
        "apiVersion": "backstage.io/v1alpha1",
        "kind": kind,
        "metadata": meta,
        "spec": spec or {},
    }
    return build_entity(record, source_path, document_index)


def make_catalog_dir(root: Path, files: dict[str, str]) -> Path:
    """Write ``files`` (relative path -> content) under ``root``.

    Parent directories are created as needed. Returns ``root``.
    """
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def index_of(entities: Sequence[EntityWithSource], name: str) -> int:
    """Position of the first entity called ``name``."""
    for entity_id, item in enumerate(entities):
        if item.entity.name == name:
            return entity_id
    raise KeyError(name)


SAMPLE_CATALOG = """\
apiVersion: backstage.io/v1alpha1
kind: Domain
metadata:
  name: payments
spec:
  owner: team-pay
---
apiVersion: backstage.io/v1alpha1
kind: System
metadata:
  name: billing
  title: Billing Platform
spec:
  owner: team-pay
  domain: payments
---
apiVersion: backstage.io/v1alpha1
kind: Component
metadata:
  name: invoice-service
spec:
  type: service
  lifecycle: production
  owner: team-pay
  system: billing
  dependsOn:
    - component:ledger
    - resource:default/invoices-db
  providesApis:
    - invoice-api
---
apiVersion: backstage.io/v1alpha1
kind: Component
metadata:
  name: ledger
spec:
  type: library
  owner: team-pay
---
apiVersion: backstage.io/v1alpha1
kind: API
metadata:
  name: invoice-api
spec:
  type: openapi
  owner: team-pay
  system: billing
---
apiVersion: backstage.io/v1alpha1
kind: Resource
metadata:
  name: invoices-db
spec:
  type: database
  owner: team-pay
"""

SAMPLE_ORG = """\
apiVersion: backstage.io/v1alpha1
kind: Group
metadata:
  name: engineering
spec:
  type: department
---
apiVersion: backstage.io/v1alpha1
kind: Group
metadata:
  name: team-pay
spec:
  type: team
  parent: engineering
---
apiVersion: backstage.io/v1alpha1
kind: User
metadata:
  name: alice
spec:
  memberOf: [team-pay]
"""


@pytest.fixture
def component_context() -> RefContext:
    """Reference context used for dependsOn-style fields."""
    return RefContext(default_kind=EntityKind.COMPONENT)


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Provide a catalog root with the sample services and organisation.

    Layout::

        catalog-info.yaml        (domain, system, components, API, resource)
        org/catalog-info.yaml    (groups and a user)
    """
    return make_catalog_dir(
        tmp_path,
        {
            "catalog-info.yaml": SAMPLE_CATALOG,
            "org/catalog-info.yaml": SAMPLE_ORG,
        },
    )


@pytest.fixture
def sample_entities() -> list[EntityWithSource]:
    """Provide the d1/s1/c1/c2 layout plus an API, a resource and a group."""
    return [
        make_test_entity("d1", kind="Domain"),
        make_test_entity("s1", kind="System", spec={"domain": "d1"}),
        make_test_entity("c1", spec={"system": "s1", "owner": "g1", "dependsOn": ["c2"]}),
        make_test_entity("c2", spec={"owner": "group:default/g1"}),
        make_test_entity("a1", kind="API", spec={"system": "s1"}),
        make_test_entity("r1", kind="Resource"),
        make_test_entity("g1", kind="Group"),
    ]


@pytest.fixture
def sample_index(sample_entities: list[EntityWithSource]) -> EntityIndex:
    """Provide an index built over ``sample_entities``."""
    return EntityIndex.build(sample_entities)
