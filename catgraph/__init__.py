"""
Catalog Graph - Entity Index, Tree and Relationship Graph for Software Catalogs.

Loads ``catalog-info.yaml`` files into an immutable snapshot made of an
entity list, an index for constant-time reference validation, a
hierarchical tree (domains, systems, orphans, group nesting) and on-demand
relationship graphs for a selected entity.

    from catgraph import Catalog

    catalog = Catalog("services/")
    snapshot = catalog.load()
    rows = snapshot.visible_nodes(expanded=set(snapshot.tree.root_ids))
"""

from catgraph.builders import EntityBuilder, build_entity
from catgraph.catalog import Catalog, CatalogSnapshot, build_snapshot, load_snapshot, reload
from catgraph.config import CatalogConfig, load_config
from catgraph.details import EntityDetails, ReferenceDetail, entity_details, group_members
from catgraph.graph import IncomingEdge, OutgoingEdge, RelationshipGraph, extract_relationships
from catgraph.index import EntityIndex, RefResolution, RefStatus
from catgraph.loader import (
    CatalogLoad,
    FileLoad,
    discover_catalog_files,
    document_fingerprint,
    load_catalog,
    parse_catalog_file,
)
from catgraph.refs import display_ref, display_segments, format_ref, parse_ref
from catgraph.tree import Category, EntityTree, NodeKind, TreeNode, build_tree, visible_nodes
from catgraph.validation import entity_schema, validate_record
from catgraph.view import ViewState

__all__ = [
    "Catalog",
    "CatalogConfig",
    "CatalogLoad",
    "CatalogSnapshot",
    "Category",
    "EntityBuilder",
    "EntityDetails",
    "EntityIndex",
    "EntityTree",
    "FileLoad",
    "IncomingEdge",
    "NodeKind",
    "OutgoingEdge",
    "RefResolution",
    "RefStatus",
    "ReferenceDetail",
    "RelationshipGraph",
    "TreeNode",
    "ViewState",
    "build_entity",
    "build_snapshot",
    "build_tree",
    "discover_catalog_files",
    "display_ref",
    "display_segments",
    "document_fingerprint",
    "entity_details",
    "entity_schema",
    "extract_relationships",
    "format_ref",
    "group_members",
    "load_catalog",
    "load_config",
    "load_snapshot",
    "parse_catalog_file",
    "parse_ref",
    "reload",
    "validate_record",
    "visible_nodes",
]

__version__ = "0.1.0"
