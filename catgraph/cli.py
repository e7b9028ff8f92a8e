#!/usr/bin/env python3
"""
Inspect a catalog from the command line.

Usage:
  catgraph --root services/ tree [--search payments] [--collapsed]
  catgraph --root services/ refs component:default/orders
  catgraph --root services/ graph orders
  catgraph --root services/ errors [--warnings]

Entity names may omit the kind and namespace; the first entity with a
matching name wins. Exit status is 1 when the catalog root cannot be read
and 2 when a named entity does not exist or the log level is unknown.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from catgraph.catalog import CatalogSnapshot, load_snapshot
from catgraph.config import load_config
from catgraph.logging import setup_logging
from catgraph.refs import parse_ref
from catgraph.tree import TreeNode
from catschema.entity import RefContext
from catschema.errors import DiscoveryError

# An unrecognised kind makes the index fall back to a name-only lookup.
_NAME_CONTEXT = RefContext(default_kind="unknown")


def _node_line(snapshot: CatalogSnapshot, node: TreeNode) -> str:
    indent = "  " * node.depth
    if node.entity_id is None:
        return f"{indent}{node.label} ({len(node.children)})"
    entity = snapshot.entities[node.entity_id].entity
    line = f"{indent}{node.label} [{entity.kind_label}]"
    if not entity.kind.is_known:
        line += " (unknown kind)"
    if node.cycle_broken:
        line += " (parent cycle)"
    return line


def _find(snapshot: CatalogSnapshot, name: str) -> int | None:
    if not name.strip():
        return None
    return snapshot.find(parse_ref(name, _NAME_CONTEXT))


def cmd_tree(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    tree = snapshot.tree
    expanded = set(tree.root_ids) if args.collapsed else tree.expandable_ids()
    for node in tree.visible_nodes(expanded, args.search):
        print(_node_line(snapshot, node))
    return 0


def cmd_refs(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    entity_id = _find(snapshot, args.name)
    if entity_id is None:
        print(f"Error: no entity named {args.name!r}", file=sys.stderr)
        return 2
    details = snapshot.details(entity_id)
    print(f"{details.ref_key} ({details.source_path}, document {details.document_index})")
    for ref in details.references:
        print(f"  {ref.label.value}: {ref.display} [{ref.status.value}]")
    for member_id in details.members:
        print(f"  member: {snapshot.entities[member_id].entity.ref_key}")
    for issue in details.validation_errors:
        print(f"  warning: {issue}")
    return 0


def cmd_graph(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    entity_id = _find(snapshot, args.name)
    if entity_id is None:
        print(f"Error: no entity named {args.name!r}", file=sys.stderr)
        return 2
    graph = snapshot.relationship_graph(entity_id)
    print(snapshot.entities[entity_id].entity.ref_key)
    print("Outgoing:")
    for edge in graph.outgoing:
        print(f"  {edge.phrase} {edge.target.canonical()} [{edge.status.value}]")
    print("Incoming:")
    for edge in graph.incoming:
        print(f"  {edge.phrase} {snapshot.entities[edge.source_id].entity.ref_key}")
    return 0


def cmd_errors(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    for error in snapshot.errors:
        print(error)
    if args.warnings:
        for item in snapshot.entities:
            for issue in item.validation_errors:
                print(f"{item.source_path} (document {item.document_index}): {item.entity.ref_key}: {issue}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catgraph",
        description="Inspect a software catalog: entity tree, references and relationships.",
    )
    parser.add_argument("--root", "-r", default=".", help="Catalog root directory or single catalog file (default: .)")
    parser.add_argument("--config", default=None, help="Path to catgraph.toml (default: CATGRAPH_CONFIG or ./catgraph.toml)")
    parser.add_argument("--log-level", default=None, help="Log level (default: from config)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_tree = sub.add_parser("tree", help="Print the entity tree")
    p_tree.add_argument("--search", "-s", default=None, help="Only show nodes matching this text")
    p_tree.add_argument("--collapsed", action="store_true", help="Show top-level categories only")
    p_tree.set_defaults(func=cmd_tree)

    p_refs = sub.add_parser("refs", help="Show an entity's references and their resolution")
    p_refs.add_argument("name", help="Entity reference, e.g. orders or component:default/orders")
    p_refs.set_defaults(func=cmd_refs)

    p_graph = sub.add_parser("graph", help="Show an entity's incoming and outgoing relationships")
    p_graph.add_argument("name", help="Entity reference, e.g. orders or component:default/orders")
    p_graph.set_defaults(func=cmd_graph)

    p_errors = sub.add_parser("errors", help="List documents skipped while loading")
    p_errors.add_argument("--warnings", "-w", action="store_true", help="Also list schema warnings on loaded entities")
    p_errors.set_defaults(func=cmd_errors)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    try:
        setup_logging(args.log_level or config.log_level)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    try:
        snapshot = load_snapshot(args.root, config)
    except DiscoveryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return args.func(snapshot, args)


if __name__ == "__main__":
    sys.exit(main())
