"""Entity reference parsing and rendering.

References are written ``[<kind>:][<namespace>/]<name>``. Omitted segments
are filled from a `RefContext` and remembered as inferred, so a presenter
can tell ``my-service`` apart from ``component:default/my-service`` even
though both address the same entity.
"""

from __future__ import annotations

import re

from catschema.entity import EntityRef, RefContext

# First colon not preceded by a backslash.
_KIND_SEPARATOR = re.compile(r"(?<!\\):")


def _unescape(segment: str) -> str:
    return segment.replace("\\:", ":")


def parse_ref(reference: str, context: RefContext) -> EntityRef:
    """Parse a reference string into an `EntityRef`.

    Parsing is total for any non-blank input: text that does not split into
    a non-empty kind, namespace and name is kept whole as the name, with kind
    and namespace taken from ``context``.

    Raises:
        ValueError: If ``reference`` is blank.
    """
    text = reference.strip()
    if not text:
        raise ValueError("reference must be a non-empty string")

    kind: str | None = None
    rest = text
    match = _KIND_SEPARATOR.search(text)
    if match is not None:
        kind = _unescape(text[: match.start()]).strip().lower()
        rest = text[match.end() :]

    namespace: str | None = None
    name = rest
    if "/" in rest:
        namespace, name = rest.split("/", 1)
        namespace = _unescape(namespace).strip()
    name = _unescape(name).strip()

    if kind == "" or namespace == "" or not name:
        return EntityRef(
            kind=context.default_kind,
            namespace=context.default_namespace,
            name=text,
            explicit_kind=False,
            explicit_namespace=False,
        )

    return EntityRef(
        kind=kind if kind is not None else context.default_kind,
        namespace=namespace if namespace is not None else context.default_namespace,
        name=name,
        explicit_kind=kind is not None,
        explicit_namespace=namespace is not None,
    )


def format_ref(ref: EntityRef) -> str:
    """Render the canonical explicit form ``kind:namespace/name``."""
    return ref.canonical()


def display_segments(ref: EntityRef) -> list[tuple[str, bool]]:
    """Split a reference into ``(text, inferred)`` pairs for display."""
    return [
        (f"{ref.kind}:", not ref.explicit_kind),
        (f"{ref.namespace}/", not ref.explicit_namespace),
        (ref.name, False),
    ]


def display_ref(ref: EntityRef) -> str:
    """Render a reference with inferred segments in brackets.

    >>> display_ref(parse_ref("my-service", RefContext(default_kind="component")))
    '[component:][default/]my-service'
    """
    return "".join(f"[{text}]" if inferred else text for text, inferred in display_segments(ref))
