import json

import pytest

from dapp_ranker.features.rankings.registry import (
    DEFAULT_APPLICATIONS,
    ApplicationRegistry,
    RegistryError,
)


def test_default_registry_tracks_known_dapps():
    registry = ApplicationRegistry.default()

    assert len(registry) == len(DEFAULT_APPLICATIONS)
    cetus = [d.origin_id for d in registry if d.display_name == "Cetus AMM"]
    assert len(cetus) == 2
    assert registry.representative("Cetus AMM").origin_id == cetus[0]


def test_representative_is_first_registered_origin(registry):
    representative = registry.representative("Cetus AMM")

    assert representative.origin_id == "0xcetus-a"
    assert representative.category == "DEX"
    assert registry.representative("Missing") is None


def test_membership_and_lookup(registry):
    assert "0xapp1" in registry
    assert "0xnot-tracked" not in registry
    assert registry.get("0xapp2").display_name == "App2"
    assert registry.get("0xnot-tracked") is None


def test_duplicate_package_id_rejected():
    with pytest.raises(RegistryError):
        ApplicationRegistry.from_tuples([("0x1", "A", "DEX"), ("0x1", "B", "DEX")])


def test_from_json_file(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text(
        json.dumps(
            [
                {"package_id": "0xaa", "name": "Alpha", "type": "DEX"},
                {"package_id": "0xbb", "name": "Beta"},
            ]
        )
    )

    registry = ApplicationRegistry.from_json_file(path)

    assert registry.origin_ids == ["0xaa", "0xbb"]
    assert registry.get("0xbb").category == "Unknown"


def test_from_json_file_rejects_malformed_entries(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text(json.dumps([{"name": "No package"}]))

    with pytest.raises(RegistryError):
        ApplicationRegistry.from_json_file(path)


def test_from_json_file_missing_file(tmp_path):
    with pytest.raises(RegistryError):
        ApplicationRegistry.from_json_file(tmp_path / "missing.json")
