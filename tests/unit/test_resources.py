"""Unit tests for entity kinds and the resource registry"""

import pytest
from mambu_client.domain.exceptions import UnknownEntityKind, UnsupportedRelationship
from mambu_client.domain.resources import (
    DEFAULT_REGISTRY,
    RESOURCES,
    EntityKind,
    ResourceInfo,
    ResourceRegistry,
)


def test_every_entity_kind_has_a_path():
    """Every kind in the enumeration resolves to a non-empty path"""
    for kind in EntityKind:
        assert DEFAULT_REGISTRY.path_for(kind)


def test_paths_are_distinct():
    """Two kinds never share a path segment"""
    paths = [DEFAULT_REGISTRY.path_for(kind) for kind in EntityKind]
    assert len(paths) == len(set(paths))


def test_known_paths():
    assert DEFAULT_REGISTRY.path_for(EntityKind.CLIENT) == "clients"
    assert DEFAULT_REGISTRY.path_for(EntityKind.LOAN_ACCOUNT) == "loans"
    assert DEFAULT_REGISTRY.path_for(EntityKind.LINE_OF_CREDIT) == "linesofcredit"
    assert DEFAULT_REGISTRY.path_for(EntityKind.GUARANTY) == "guarantees"


def test_unregistered_kind_raises():
    registry = ResourceRegistry({EntityKind.CLIENT: ResourceInfo("clients")})

    with pytest.raises(UnknownEntityKind):
        registry.path_for(EntityKind.GROUP)


def test_unknown_value_raises():
    with pytest.raises(UnknownEntityKind):
        DEFAULT_REGISTRY.resource_for("NOT_A_KIND")


def test_relationship_to_unregistered_kind_rejected_at_construction():
    with pytest.raises(UnknownEntityKind):
        ResourceRegistry(
            {EntityKind.CLIENT: ResourceInfo("clients")},
            [(EntityKind.CLIENT, EntityKind.LOAN_ACCOUNT)],
        )


def test_identity_fields():
    """Most kinds are keyed by encoded key; users by username"""
    assert DEFAULT_REGISTRY.identity_field_for(EntityKind.LOAN_TRANCHE) == "encoded_key"
    assert DEFAULT_REGISTRY.identity_field_for(EntityKind.USER) == "username"


def test_wire_collection_key_defaults_to_path():
    assert RESOURCES[EntityKind.LOAN_TRANCHE].wire_collection_key == "tranches"
    assert ResourceInfo("things", collection_key="items").wire_collection_key == "items"


def test_supported_relationships():
    assert DEFAULT_REGISTRY.supports(EntityKind.CLIENT, EntityKind.LINE_OF_CREDIT)
    assert DEFAULT_REGISTRY.supports(EntityKind.GROUP, EntityKind.LINE_OF_CREDIT)
    assert DEFAULT_REGISTRY.supports(EntityKind.LOAN_ACCOUNT, EntityKind.LOAN_TRANCHE)
    assert not DEFAULT_REGISTRY.supports(EntityKind.LOAN_ACCOUNT, EntityKind.CLIENT)


def test_require_relationship_rejects_unsupported_pair():
    with pytest.raises(UnsupportedRelationship) as exc_info:
        DEFAULT_REGISTRY.require_relationship(EntityKind.LOAN_PRODUCT, EntityKind.LINE_OF_CREDIT)

    assert "LOAN_PRODUCT" in str(exc_info.value)


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        RESOURCES[EntityKind.CLIENT] = ResourceInfo("customers")
