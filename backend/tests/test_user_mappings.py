"""
Test Suite for User-Defined Mappings.

Tests:
- CRUD operations
- Validation of mapping records
- JSON and YAML persistence
- Import / export
"""
import json

import pytest
import yaml


def _mapping(**overrides):
    data = {
        "name": "Custom HTTP",
        "sourceType": "n8n-nodes-base.httpRequest",
        "targetType": "custom:Http",
        "direction": "n8nToMake",
        "parameterMap": {"url": "endpoint"},
    }
    data.update(overrides)
    return data


class TestUserMappingCrud:
    """Tests for create, update and delete."""

    def test_save_assigns_id_and_timestamps(self, user_store):
        mapping = user_store.save_mapping(_mapping(id="ignored", createdAt=1))

        assert mapping.id.startswith("user-mapping-")
        assert mapping.id != "ignored"
        assert mapping.created_at > 1
        assert user_store.get_mapping(mapping.id) is mapping

    def test_entries_for_direction(self, user_store):
        from flowbridge.models.workflow_models import Direction

        user_store.save_mapping(_mapping())
        user_store.save_mapping(_mapping(sourceType="x:y", targetType="n8n-nodes-base.x", direction="makeToN8n"))

        forward = user_store.get_mappings_for_direction(Direction.N8N_TO_MAKE)

        assert list(forward) == ["n8n-nodes-base.httpRequest"]
        assert forward["n8n-nodes-base.httpRequest"].origin == "user"
        assert forward["n8n-nodes-base.httpRequest"].parameter_map == {"url": "endpoint"}

    def test_update_keeps_id_and_created_at(self, user_store):
        mapping = user_store.save_mapping(_mapping())

        updated = user_store.update_mapping(mapping.id, {"targetType": "custom:Http2"})

        assert updated.id == mapping.id
        assert updated.created_at == mapping.created_at
        assert updated.target_type == "custom:Http2"
        assert user_store.update_mapping("missing", {}) is None

    def test_delete(self, user_store):
        mapping = user_store.save_mapping(_mapping())

        assert user_store.delete_mapping(mapping.id)
        assert not user_store.delete_mapping(mapping.id)
        assert user_store.get_mappings() == []

    def test_every_change_bumps_version(self, user_store):
        start = user_store.version
        mapping = user_store.save_mapping(_mapping())
        user_store.delete_mapping(mapping.id)

        assert user_store.version == start + 2


class TestUserMappingValidation:
    """Tests for validate_mapping_data."""

    @pytest.mark.parametrize("data", [
        "not an object",
        {"sourceType": "a", "targetType": "b", "direction": "n8nToMake"},
        {"sourceType": "a", "targetType": "b", "direction": "sideways", "parameterMap": {"x": "y"}},
        {"sourceType": "a", "targetType": "b", "direction": "n8nToMake", "parameterMap": ["x"]},
    ])
    def test_invalid_records(self, data):
        from flowbridge.core.errors import ErrorCode, MappingConfigError
        from flowbridge.services.mappings.user_mappings import validate_mapping_data

        with pytest.raises(MappingConfigError) as exc_info:
            validate_mapping_data(data)

        assert exc_info.value.code == ErrorCode.MAPPING_CONFIG

    def test_missing_fields_are_listed(self, user_store):
        from flowbridge.core.errors import MappingConfigError

        with pytest.raises(MappingConfigError) as exc_info:
            user_store.save_mapping({"sourceType": "a"})

        assert "targetType" in exc_info.value.message
        assert user_store.get_mappings() == []

    def test_parameter_map_as_json_string(self, user_store):
        """A JSON string parameter map is parsed; an unparseable one gives {}."""
        good = user_store.save_mapping(_mapping(parameterMap='{"url": "endpoint"}'))
        bad = user_store.save_mapping(_mapping(sourceType="x", parameterMap="{not json"))

        assert good.to_entry().parameter_map == {"url": "endpoint"}
        assert bad.to_entry().parameter_map == {}


class TestUserMappingPersistence:
    """Tests for file persistence."""

    def test_json_file(self, tmp_path):
        from flowbridge.services.mappings.user_mappings import UserMappingStore

        path = tmp_path / "mappings.json"
        UserMappingStore(path).save_mapping(_mapping())

        records = json.loads(path.read_text(encoding="utf-8"))
        reloaded = UserMappingStore(path)

        assert records[0]["sourceType"] == "n8n-nodes-base.httpRequest"
        assert len(reloaded.get_mappings()) == 1

    def test_yaml_file(self, tmp_path):
        from flowbridge.services.mappings.user_mappings import UserMappingStore

        path = tmp_path / "mappings.yaml"
        UserMappingStore(path).save_mapping(_mapping())

        document = yaml.safe_load(path.read_text(encoding="utf-8"))
        reloaded = UserMappingStore(path)

        assert document["mappings"][0]["targetType"] == "custom:Http"
        assert reloaded.get_mappings()[0].target_type == "custom:Http"

    def test_broken_file_is_ignored(self, tmp_path):
        from flowbridge.services.mappings.user_mappings import UserMappingStore

        path = tmp_path / "mappings.json"
        path.write_text("{broken", encoding="utf-8")

        assert UserMappingStore(path).get_mappings() == []

    def test_in_memory_store(self):
        from flowbridge.services.mappings.user_mappings import UserMappingStore

        store = UserMappingStore()
        store.save_mapping(_mapping())

        assert store.path is None
        assert len(store.get_mappings()) == 1


class TestImportExport:
    """Tests for import_mappings and export_mappings."""

    def test_export_then_import(self, user_store):
        from flowbridge.services.mappings.user_mappings import UserMappingStore

        user_store.save_mapping(_mapping())
        exported = user_store.export_mappings()

        other = UserMappingStore()
        count = other.import_mappings(exported)

        assert count == 1
        assert other.get_mappings()[0].id == user_store.get_mappings()[0].id

    def test_import_yaml(self, user_store):
        text = yaml.safe_dump({"mappings": [_mapping()]})

        assert user_store.import_mappings(text) == 1

    def test_import_is_all_or_nothing(self, user_store):
        from flowbridge.core.errors import MappingConfigError

        user_store.save_mapping(_mapping())

        with pytest.raises(MappingConfigError):
            user_store.import_mappings(json.dumps([_mapping(), {"sourceType": "broken"}]))

        assert len(user_store.get_mappings()) == 1

    def test_import_rejects_non_list(self, user_store):
        from flowbridge.core.errors import MappingConfigError

        with pytest.raises(MappingConfigError):
            user_store.import_mappings('"just a string"')
