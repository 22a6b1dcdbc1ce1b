"""Tests for ConfigObject."""
import uuid

import pytest

from confdb.context import DatabaseContext
from confdb.datamodel import ModelKind, ModelNotFoundError
from confdb.objects import ConfigObject
from confdb.settings import DatabaseSettings


class TestConfigObject:
    """Tests for ConfigObject construction and property access."""

    def test_new_collection_object(self, registry):
        """Test new collection objects get defaults and a fresh uuid."""
        obj = ConfigObject("network.interface", registry)

        assert obj.is_new()
        assert obj.kind == ModelKind.COLLECTION
        assert obj.get("mtu") == 1500
        uuid.UUID(obj.get_identifier())

    def test_identifiers_differ(self, registry):
        a = ConfigObject("network.interface", registry)
        b = ConfigObject("network.interface", registry)

        assert a.get_identifier() != b.get_identifier()

    def test_singleton_has_no_identifier(self, registry):
        obj = ConfigObject("system.time", registry)

        assert obj.kind == ModelKind.SINGLETON
        assert obj.get_identifier() is None

    def test_unknown_model(self, registry):
        with pytest.raises(ModelNotFoundError):
            ConfigObject("nope", registry)

    def test_model_id_from_context(self, registry, document_path):
        """Test a model id is resolved via the active database context."""
        DatabaseContext.initialize(DatabaseSettings(document_path=document_path), registry)

        obj = ConfigObject("service.ssh")

        assert obj.get("port") == 22

    def test_set_coerces(self, registry):
        obj = ConfigObject("network.interface", registry)

        obj.set("mtu", "9000")
        obj.set("enable", "false")

        assert obj.get("mtu") == 9000
        assert obj.get("enable") is False

    def test_set_invalid_value(self, registry):
        obj = ConfigObject("network.interface", registry)

        with pytest.raises(ValueError):
            obj.set("mtu", "jumbo")

    def test_unknown_property(self, registry):
        obj = ConfigObject("network.interface", registry)

        with pytest.raises(KeyError):
            obj.get("speed")
        with pytest.raises(KeyError):
            obj.set("speed", 1000)

    def test_nested_property(self, registry):
        """Test dotted names address nested object properties."""
        obj = ConfigObject("system.time", registry)

        obj.set("ntp.enable", "yes")
        obj.set("ntp.servers", ["a.example", "b.example"])

        assert obj.get("ntp.enable") is True
        assert obj.get("ntp") == {"enable": True, "servers": ["a.example", "b.example"]}

    def test_nested_unknown(self, registry):
        obj = ConfigObject("system.time", registry)

        with pytest.raises(KeyError):
            obj.get("ntp.peers")

    def test_get_returns_copy(self, registry):
        obj = ConfigObject("system.time", registry)

        obj.get("ntp")["servers"].append("x")

        assert obj.get("ntp.servers") == []

    def test_set_assoc(self, registry):
        """Test unknown keys are ignored unless strict."""
        obj = ConfigObject("network.interface", registry)

        obj.set_assoc({"name": "eth0", "speed": 1000})
        assert obj.get("name") == "eth0"

        with pytest.raises(KeyError):
            obj.set_assoc({"speed": 1000}, strict=True)

    def test_get_assoc(self, registry):
        obj = ConfigObject("service.ssh", registry)
        obj.set("enable", True)

        assert obj.get_assoc() == {"enable": True, "port": 22}

    def test_from_document(self, registry):
        """Test objects loaded from the document keep their identifier."""
        model = registry.get_model("network.interface")

        obj = ConfigObject.from_document(model, {"uuid": "u1", "name": "eth0", "mtu": "9000"})

        assert not obj.is_new()
        assert obj.get_identifier() == "u1"
        assert obj.get("mtu") == 9000
        assert obj.get("enable") is True

    def test_from_document_without_identifier(self, registry):
        model = registry.get_model("network.interface")

        obj = ConfigObject.from_document(model, {"name": "eth0"})

        assert obj.get_identifier() == ""
        assert ConfigObject.from_document(model, {"name": "eth0"}) == obj

    def test_equality(self, registry):
        model = registry.get_model("network.interface")
        data = {"uuid": "u1", "name": "eth0"}

        assert ConfigObject.from_document(model, data) == ConfigObject.from_document(model, data)
        assert ConfigObject.from_document(model, data) != ConfigObject(model)

    def test_repr(self, registry):
        model = registry.get_model("network.interface")
        obj = ConfigObject.from_document(model, {"uuid": "u1"})

        assert repr(obj) == "<ConfigObject network.interface u1 (stored)>"
