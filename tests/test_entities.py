"""Tests for the entity model and EntityBuilder.

This module verifies:
- Mandatory kind and metadata.name, with errors naming file, document and field
- Defaults for namespace, type, lifecycle and metadata collections
- Reference fields parsed at construction with per-field default kinds
- The entity's namespace as the default for its references
- Unknown kinds kept with their raw text
- Relation labels and their display order
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from catgraph.builders import EntityBuilder, build_entity
from catschema.entity import (
    ApiSpec,
    ComponentSpec,
    EntityKind,
    EntityRef,
    GroupSpec,
    LocationSpec,
    RelationLabel,
    UnknownSpec,
    UserSpec,
)
from catschema.errors import EntityValidationError
from tests.conftest import make_test_entity


class TestMandatoryFields:
    """Records without kind or metadata.name are rejected."""

    def test_missing_kind(self) -> None:
        with pytest.raises(EntityValidationError) as exc_info:
            build_entity({"metadata": {"name": "x"}}, "svc/catalog-info.yaml", 2)

        error = exc_info.value
        assert error.field == "kind"
        assert error.source_path == Path("svc/catalog-info.yaml")
        assert error.document_index == 2
        assert "kind" in str(error)
        assert "document 2" in str(error)

    def test_missing_name(self) -> None:
        with pytest.raises(EntityValidationError) as exc_info:
            build_entity({"kind": "Component", "metadata": {"title": "X"}}, "a.yaml")
        assert exc_info.value.field == "metadata.name"

    def test_missing_metadata(self) -> None:
        with pytest.raises(EntityValidationError) as exc_info:
            build_entity({"kind": "Component"}, "a.yaml")
        assert exc_info.value.field == "metadata.name"

    @pytest.mark.parametrize("kind", ["", "   ", 5, None])
    def test_blank_or_non_string_kind(self, kind: object) -> None:
        with pytest.raises(EntityValidationError):
            build_entity({"kind": kind, "metadata": {"name": "x"}}, "a.yaml")


class TestDefaults:
    """Optional fields get stable defaults."""

    def test_namespace_defaults_to_default(self) -> None:
        item = make_test_entity("svc")
        assert item.entity.namespace == "default"

    def test_type_and_lifecycle_default_to_empty(self) -> None:
        spec = make_test_entity("svc").entity.spec
        assert isinstance(spec, ComponentSpec)
        assert spec.type == ""
        assert spec.lifecycle == ""

    def test_metadata_collections_default_to_empty(self) -> None:
        metadata = make_test_entity("svc").entity.metadata
        assert metadata.tags == ()
        assert metadata.links == ()
        assert metadata.annotations == {}
        assert metadata.labels == {}

    def test_metadata_fields_are_read(self) -> None:
        item = make_test_entity(
            "svc",
            title="Service",
            description="Does things",
            tags=["python", " ", "web"],
            links=[{"url": "https://example.com", "title": "Home", "icon": "web"}, {"title": "no url"}],
            annotations={"backstage.io/techdocs-ref": "dir:."},
            labels={"tier": 1},
        )
        metadata = item.entity.metadata

        assert item.entity.display_name == "Service"
        assert metadata.description == "Does things"
        assert metadata.tags == ("python", "web")
        assert len(metadata.links) == 1
        assert metadata.links[0].url == "https://example.com"
        assert metadata.links[0].icon == "web"
        assert metadata.annotations["backstage.io/techdocs-ref"] == "dir:."
        assert metadata.labels == {"tier": "1"}

    def test_display_name_falls_back_to_name(self) -> None:
        assert make_test_entity("svc").entity.display_name == "svc"

    def test_source_is_attached(self) -> None:
        item = make_test_entity("svc", source_path="a/catalog-info.yaml", document_index=3)
        assert item.source_path == Path("a/catalog-info.yaml")
        assert item.document_index == 3

    def test_non_mapping_spec_is_treated_as_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        record = {"kind": "Component", "metadata": {"name": "svc"}, "spec": ["not", "a", "mapping"]}
        item = build_entity(record, "a.yaml")
        assert item.entity.spec.references() == []
        assert "not a mapping" in caplog.text


class TestReferenceFields:
    """Reference-valued spec fields are parsed when the entity is built."""

    def test_default_kinds_per_field(self) -> None:
        item = make_test_entity(
            "svc",
            spec={
                "owner": "team-a",
                "system": "billing",
                "dependsOn": ["ledger"],
                "providesApis": ["orders"],
                "consumesApis": "payments",
            },
        )
        spec = item.entity.spec
        assert isinstance(spec, ComponentSpec)

        assert spec.owner == EntityRef(kind="group", name="team-a")
        assert spec.system == EntityRef(kind="system", name="billing")
        assert spec.depends_on == (EntityRef(kind="component", name="ledger"),)
        assert spec.provides_apis == (EntityRef(kind="api", name="orders"),)
        assert spec.consumes_apis == (EntityRef(kind="api", name="payments"),)

    def test_inferred_flags_survive(self) -> None:
        spec = make_test_entity("svc", spec={"owner": "user:alice"}).entity.spec
        assert spec.owner.kind == "user"
        assert spec.owner.explicit_kind is True
        assert spec.owner.explicit_namespace is False

    def test_entity_namespace_is_reference_default(self) -> None:
        """References without a namespace live in the referring entity's namespace."""
        spec = make_test_entity("svc", namespace="payments", spec={"dependsOn": ["ledger", "default/shared"]}).entity.spec
        assert [ref.namespace for ref in spec.depends_on] == ["payments", "default"]

    def test_blank_and_non_string_items_are_ignored(self) -> None:
        spec = make_test_entity("svc", spec={"dependsOn": ["a", "", "  ", 3, None, "b"], "owner": "  "}).entity.spec
        assert [ref.name for ref in spec.depends_on] == ["a", "b"]
        assert spec.owner is None

    def test_duplicates_removed_in_order(self) -> None:
        spec = make_test_entity("svc", spec={"dependsOn": ["b", "a", "component:default/b", "a"]}).entity.spec
        assert [ref.name for ref in spec.depends_on] == ["b", "a"]

    def test_single_valued_field_ignores_lists(self) -> None:
        spec = make_test_entity("svc", spec={"owner": ["a", "b"]}).entity.spec
        assert spec.owner is None

    def test_fields_not_defined_for_kind_are_ignored(self) -> None:
        """A Group has no dependsOn; the raw key is not carried over."""
        spec = make_test_entity("g", kind="Group", spec={"dependsOn": ["x"], "parent": "root"}).entity.spec
        assert isinstance(spec, GroupSpec)
        assert [label for label, _ in spec.references()] == [RelationLabel.PARENT]

    def test_references_follow_label_order(self) -> None:
        spec = make_test_entity(
            "svc",
            spec={"consumesApis": ["c"], "dependsOn": ["d"], "system": "s", "owner": "o"},
        ).entity.spec
        labels = [label for label, _ in spec.references()]
        assert labels == [
            RelationLabel.OWNER,
            RelationLabel.SYSTEM,
            RelationLabel.DEPENDS_ON,
            RelationLabel.CONSUMES_APIS,
        ]

    def test_user_member_of(self) -> None:
        spec = make_test_entity("alice", kind="User", spec={"memberOf": ["team-a"], "profile": {"email": "a@x.io"}}).entity.spec
        assert isinstance(spec, UserSpec)
        assert spec.member_of == (EntityRef(kind="group", name="team-a"),)
        assert spec.profile is not None
        assert spec.profile.email == "a@x.io"


class TestKinds:
    """Kind decoding."""

    @pytest.mark.parametrize("raw", ["Component", "component", "COMPONENT"])
    def test_kind_is_case_insensitive(self, raw: str) -> None:
        assert make_test_entity("x", kind=raw).entity.kind is EntityKind.COMPONENT

    def test_unknown_kind_keeps_raw_text(self) -> None:
        entity = make_test_entity("x", kind="Template", spec={"owner": "team-a", "type": "service"}).entity

        assert entity.kind is EntityKind.UNKNOWN
        assert entity.raw_kind == "Template"
        assert entity.kind_label == "Template"
        assert entity.ref_key == "template:default/x"
        assert isinstance(entity.spec, UnknownSpec)
        assert entity.spec.owner == EntityRef(kind="group", name="team-a")

    def test_api_definition(self) -> None:
        spec = make_test_entity("a", kind="API", spec={"definition": "openapi: 3.0.0"}).entity.spec
        assert isinstance(spec, ApiSpec)
        assert spec.definition == "openapi: 3.0.0"

    def test_location_targets(self) -> None:
        spec = make_test_entity("loc", kind="Location", spec={"targets": ["./a.yaml", "./b.yaml"]}).entity.spec
        assert isinstance(spec, LocationSpec)
        assert spec.targets == ("./a.yaml", "./b.yaml")

    def test_entity_ref(self) -> None:
        entity = make_test_entity("svc", namespace="ops").entity
        assert entity.ref == EntityRef(kind="component", namespace="ops", name="svc")
        assert entity.ref_key == "component:ops/svc"


class TestRelationLabel:
    """Relation labels carry defaults and phrasing."""

    def test_first_eight_labels_order(self) -> None:
        assert [label.value for label in RelationLabel][:8] == [
            "owner",
            "system",
            "domain",
            "dependsOn",
            "providesApis",
            "consumesApis",
            "parent",
            "memberOf",
        ]

    def test_phrases(self) -> None:
        assert RelationLabel.DEPENDS_ON.phrase == "depends on"
        assert RelationLabel.DEPENDS_ON.inverse_phrase == "dependency of"
        assert RelationLabel.OWNER.phrase == "owned by"

    def test_builder_is_frozen(self) -> None:
        builder = EntityBuilder(source_path=Path("a.yaml"))
        with pytest.raises(ValidationError):
            builder.source_path = Path("b.yaml")  # type: ignore[misc]
