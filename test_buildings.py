"""Tests for buildings module"""

import json
import logging
import os
import tempfile

import pytest

from buildings import (
    Building,
    ResourceAmount,
    building_from_dict,
    buildings_from_data,
    load_buildings_from_json,
    make_building,
    resource_key,
    save_buildings_to_json,
)


def _write_json(data) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False, encoding="utf-8") as f:
        json.dump(data, f)
        return f.name


def test_resource_key_normalizes():
    """resource_key should ignore case and surrounding whitespace"""
    assert resource_key("  Steel ") == resource_key("steel")
    assert resource_key("Steel Beam") != resource_key("SteelBeam")


def test_make_building():
    """make_building should keep order and convert quantities to float"""
    building = make_building("Mill", [("Ore", 2), ("Coal", 1)], [("Steel", 1)])

    assert building == Building(
        "Mill",
        (ResourceAmount("Ore", 2.0), ResourceAmount("Coal", 1.0)),
        (ResourceAmount("Steel", 1.0),),
    )
    assert isinstance(building.inputs[0].quantity, float)


def test_building_from_dict_dataset_shape():
    """building_from_dict should read the parsed dataset shape and ignore extra keys"""
    data = {
        "name": "Steel Mill",
        "maxWorkers": 40,
        "constructionCost": {"materials": [], "totalCost": 0},
        "production": {"maxPerDay": 10, "outputs": [{"name": "Steel", "quantity": 2, "exportTarget": "own"}]},
        "consumption": {"inputs": [{"name": " Iron Ore ", "quantity": "4", "importSource": "importNATO"}]},
    }
    building = building_from_dict(data)

    assert building.name == "Steel Mill"
    assert building.inputs == (ResourceAmount("Iron Ore", 4.0),)
    assert building.outputs == (ResourceAmount("Steel", 2.0),)


def test_building_from_dict_flat_shape():
    """building_from_dict should read the flat shape"""
    building = building_from_dict({"name": "Mine", "outputs": [{"name": "Ore", "quantity": 5}]})

    assert building.inputs == ()
    assert building.outputs == (ResourceAmount("Ore", 5.0),)


def test_building_from_dict_missing_name():
    """building_from_dict should reject a record without a name"""
    with pytest.raises(ValueError, match="Building without a name"):
        building_from_dict({"name": "  ", "outputs": []})


def test_building_from_dict_missing_resource_name():
    """building_from_dict should reject a resource without a name"""
    with pytest.raises(ValueError, match="Resource without a name in 'Mine'"):
        building_from_dict({"name": "Mine", "outputs": [{"quantity": 5}]})


@pytest.mark.parametrize("quantity", [0, -1, "abc", None, True])
def test_building_from_dict_invalid_quantity(quantity):
    """building_from_dict should reject non-numeric and non-positive quantities"""
    with pytest.raises(ValueError, match="Invalid quantity"):
        building_from_dict({"name": "Mine", "outputs": [{"name": "Ore", "quantity": quantity}]})


def test_buildings_from_data_invalid_shape():
    """buildings_from_data should reject unknown top-level shapes"""
    with pytest.raises(ValueError, match="Invalid registry"):
        buildings_from_data({"industry": []})


def test_buildings_from_data_warns_on_duplicates(caplog):
    """duplicate building names should be kept and logged"""
    with caplog.at_level(logging.WARNING, logger="chaingraphery"):
        buildings = buildings_from_data([{"name": "Mine"}, {"name": "Mine"}])

    assert len(buildings) == 2
    assert "Duplicate building name 'Mine'" in caplog.text


def test_load_buildings_from_json_dataset():
    """load_buildings_from_json should read a dataset with a buildings list"""
    temp_path = _write_json({
        "id": "dataset-1",
        "userDefinedName": "Steel",
        "buildings": [
            {"name": "Mine", "production": {"outputs": [{"name": "Ore", "quantity": 5}]}},
            {"name": "Mill", "consumption": {"inputs": [{"name": "Ore", "quantity": 2}]}},
        ],
    })
    try:
        buildings = load_buildings_from_json(temp_path)
        assert [b.name for b in buildings] == ["Mine", "Mill"]
        assert buildings[1].inputs == (ResourceAmount("Ore", 2.0),)
    finally:
        os.remove(temp_path)


def test_load_buildings_from_json_invalid_json():
    """load_buildings_from_json should report malformed JSON as ValueError"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False, encoding="utf-8") as f:
        f.write("{not json")
        temp_path = f.name
    try:
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_buildings_from_json(temp_path)
    finally:
        os.remove(temp_path)


def test_save_and_load_buildings():
    """saved registries should load back unchanged"""
    buildings = [
        make_building("Mine", outputs=[("Ore", 5)]),
        make_building("Mill", [("Ore", 2), ("Coal", 1.5)], [("Steel", 1)]),
    ]
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        temp_path = f.name
    try:
        save_buildings_to_json(temp_path, buildings)
        assert load_buildings_from_json(temp_path) == buildings
        print(f"✓ Saved and loaded {len(buildings)} buildings")
    finally:
        os.remove(temp_path)
