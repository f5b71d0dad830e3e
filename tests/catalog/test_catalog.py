import json

import pytest

from zigmqtt.catalog import Catalog, default_catalog, load_catalog
from zigmqtt.catalog import transforms
from zigmqtt.errors import CatalogError

LAMP_JSON = {
    "CUSTOM-LAMP": {
        "name": "Custom lamp",
        "@type": ["Light", "OnOffSwitch"],
        "properties": {
            "state": {
                "type": "boolean",
                "@type": "OnOffProperty",
                "value": False,
                "toBus": "bool_to_on_off",
                "fromBus": "on_off_to_bool",
            },
            "brightness": {
                "type": "integer",
                "unit": "percent",
                "minimum": 0,
                "maximum": 100,
                "toBus": "percent_to_brightness",
                "fromBus": "brightness_to_percent",
            },
        },
        "events": {
            "single": {"valueField": "action", "description": "Pressed once"},
        },
    }
}


class TestDefaultCatalog:
    def test_contains_builtin_models(self):
        catalog = default_catalog()

        for model in ("WXKG01LM", "MFKZQ01LM", "WSDCGQ11LM", "MCCGQ11LM", "LED1545G12", "ZNCZ02LM"):
            assert model in catalog
        assert catalog.model_ids == sorted(catalog)

    def test_lookup_of_missing_model(self):
        catalog = default_catalog()
        assert catalog.get("NOT-A-MODEL") is None
        assert catalog.get(None) is None

    def test_entries_are_immutable(self):
        entry = default_catalog().get("WXKG01LM")

        with pytest.raises(TypeError):
            entry.properties["battery"] = None
        with pytest.raises(TypeError):
            entry.events["single"] = None

    def test_switch_events_read_action_field(self):
        entry = default_catalog().get("WXKG01LM")
        assert entry.events["single"].value_field == "action"
        assert "double" in entry.events

    def test_contact_sensor_inverts_contact(self):
        spec = default_catalog().get("MCCGQ11LM").properties["contact"]
        assert spec.from_bus(True) is False
        assert spec.to_bus(False) is True

    def test_bulb_brightness_is_scaled(self):
        spec = default_catalog().get("LED1545G12").properties["brightness"]
        assert spec.to_bus(100) == 254
        assert spec.from_bus(127) == 50


class TestCatalogFromDict:
    def test_parses_properties_and_events(self):
        entry = Catalog.from_dict(LAMP_JSON).get("CUSTOM-LAMP")

        assert entry.name == "Custom lamp"
        assert entry.type_tags == frozenset({"Light", "OnOffSwitch"})
        state = entry.properties["state"]
        assert state.metadata.semantic_type == "OnOffProperty"
        assert state.initial_value is False
        assert state.to_bus(True) == "ON"
        assert state.from_bus("OFF") is False
        assert entry.properties["brightness"].metadata.maximum == 100
        assert entry.events["single"].value_field == "action"
        assert entry.events["single"].metadata == {"description": "Pressed once"}

    def test_missing_transforms_default_to_identity(self):
        catalog = Catalog.from_dict({"M": {"properties": {"level": {"type": "number"}}}})
        spec = catalog.get("M").properties["level"]

        assert spec.to_bus(7) == 7
        assert spec.from_bus(7) == 7
        assert catalog.get("M").name == "M"

    def test_metadata_as_dict(self):
        entry = Catalog.from_dict({
            "M": {"properties": {"mode": {"type": "string", "enum": ["a", "b"], "readOnly": True}}}
        }).get("M")

        data = entry.properties["mode"].metadata.as_dict()
        assert data["enum"] == ["a", "b"]
        assert data["readOnly"] is True
        assert "minimum" not in data

    @pytest.mark.parametrize(
        "raw, message",
        [
            ([], "JSON object"),
            ({"M": "lamp"}, "entry must be an object"),
            ({"M": {"properties": {"x": {"type": "color"}}}}, "invalid type"),
            ({"M": {"properties": {"x": {"type": "number", "toBus": "square"}}}}, "unknown transform"),
            ({"M": {"properties": {"x": 3}}}, "must be an object"),
            ({"M": {"events": {"single": {}}}}, "valueField"),
        ],
    )
    def test_invalid_catalogs(self, raw, message):
        with pytest.raises(CatalogError, match=message):
            Catalog.from_dict(raw)


class TestLoadCatalog:
    def test_file_is_merged_over_builtin(self, tmp_path):
        path = tmp_path / "catalog.json"
        override = dict(LAMP_JSON)
        override["WXKG01LM"] = {"name": "Renamed switch", "properties": {}}
        path.write_text(json.dumps(override))

        catalog = load_catalog(path)

        assert "CUSTOM-LAMP" in catalog
        assert "ZNCZ02LM" in catalog
        assert catalog.get("WXKG01LM").name == "Renamed switch"

    def test_file_only(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(LAMP_JSON))

        catalog = load_catalog(str(path), include_builtin=False)

        assert catalog.model_ids == ["CUSTOM-LAMP"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read catalog"):
            load_catalog(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{broken")

        with pytest.raises(CatalogError):
            load_catalog(path)


class TestTransforms:
    def test_on_off(self):
        assert transforms.on_off_to_bool("ON") is True
        assert transforms.on_off_to_bool(" off ") is False
        assert transforms.on_off_to_bool(1) is True
        assert transforms.bool_to_on_off(True) == "ON"
        assert transforms.bool_to_on_off(False) == "OFF"

    def test_brightness_scale(self):
        assert transforms.percent_to_brightness(0) == 0
        assert transforms.percent_to_brightness(100) == transforms.BRIGHTNESS_MAX
        assert transforms.brightness_to_percent(transforms.BRIGHTNESS_MAX) == 100

    def test_color_temperature(self):
        assert transforms.mired_to_kelvin(250) == 4000
        assert transforms.kelvin_to_mired(4000) == 250

    def test_registry_names(self):
        assert transforms.TRANSFORMS["identity"]("x") == "x"
        assert set(transforms.TRANSFORMS) >= {"on_off_to_bool", "contact_to_open", "kelvin_to_mired"}
