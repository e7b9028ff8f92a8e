"""Error taxonomy for catalog loading.

- **ParseError**: Base for anything that prevents a record from being loaded.
  Carries the source file and, where known, the document index.
- **DiscoveryError**: The catalog root cannot be read. Fatal on first load,
  recoverable on reload (the previous snapshot is kept).
- **DocumentError**: One YAML document (or a whole file) cannot be decoded.
  Skipped and collected; loading continues with the rest.
- **EntityValidationError**: A decoded record lacks ``kind`` or
  ``metadata.name``. Skipped and collected like a DocumentError.

Unresolved and unknown-kind references are not errors; they are display
states of a loaded entity (see ``catgraph.index.RefStatus``).
"""

from __future__ import annotations

from pathlib import Path


class CatalogError(Exception):
    """Base class for catalog errors."""


class ParseError(CatalogError):
    """A catalog source could not be turned into entities.

    Attributes:
        reason: Human-readable description of the problem.
        source_path: File (or root directory) the problem was found in.
        document_index: Zero-based document index within a multi-document
            file, or ``None`` when the problem concerns the whole file.
        fingerprint: Digest of the offending document's text, when known.
            Unlike the index it does not shift when documents are added
            or removed above it.
    """

    def __init__(
        self,
        reason: str,
        *,
        source_path: Path | str | None = None,
        document_index: int | None = None,
        fingerprint: str | None = None,
    ) -> None:
        self.reason = reason
        self.source_path = Path(source_path) if source_path is not None else None
        self.document_index = document_index
        self.fingerprint = fingerprint
        super().__init__(self._describe())

    def _describe(self) -> str:
        location = str(self.source_path) if self.source_path is not None else "<unknown source>"
        if self.document_index is not None:
            location = f"{location} (document {self.document_index})"
        return f"{location}: {self.reason}"

    @property
    def key(self) -> tuple[str, str, str | int | None]:
        """Identifies the failing document, independent of wording and position.

        The fingerprint stands in for the document index when present, so
        a broken document keeps its key when other documents move around it.
        """
        location = self.fingerprint if self.fingerprint is not None else self.document_index
        return (type(self).__name__, str(self.source_path), location)


class DiscoveryError(ParseError):
    """The catalog root is missing or unreadable."""


class DocumentError(ParseError):
    """A YAML document or file could not be decoded."""


class EntityValidationError(ParseError):
    """A decoded record is missing a mandatory field.

    Attributes:
        field: Dotted path of the missing field (``kind`` or ``metadata.name``).
    """

    def __init__(
        self,
        field: str,
        *,
        source_path: Path | str | None = None,
        document_index: int | None = None,
        fingerprint: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(
            f"missing mandatory field {field!r}",
            source_path=source_path,
            document_index=document_index,
            fingerprint=fingerprint,
        )
