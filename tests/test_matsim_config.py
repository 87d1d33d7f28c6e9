"""Tests for loading, editing and writing MATSim config files."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from scag_matsim.matsim_config import MatsimConfig, ParameterSet, format_value
from scag_matsim.utils import format_time


def test_load_reads_params_and_parameter_sets(write_base_config) -> None:
    config = MatsimConfig.load(write_base_config())

    assert config.get_param("network", "inputNetworkFile") == "network.xml.gz"
    assert config.get_param("transit", "useTransit") == "false"
    assert config.get_param("qsim", "trafficDynamics") is None
    assert "qsim" not in config

    teleported = config.module("plansCalcRoute").sets("teleportedModeParameters")
    assert [ps.get("mode") for ps in teleported] == ["walk", "ride", "pt", "undefined", "bike"]
    assert teleported[0].get("teleportedModeSpeed") == "0.83"


def test_set_param_creates_missing_modules_and_formats_values() -> None:
    config = MatsimConfig()
    config.set_param("qsim", "usingTravelTimeCheckInTeleportation", True)
    config.set_param("plansCalcRoute", "routingRandomness", 3.0)
    config.set_param("controler", "lastIteration", 500)

    assert config.get_param("qsim", "usingTravelTimeCheckInTeleportation") == "true"
    assert config.get_param("plansCalcRoute", "routingRandomness") == "3.0"
    assert config.get_param("controler", "lastIteration") == "500"


def test_remove_parameter_sets_uses_predicate() -> None:
    module = ParameterSet("plansCalcRoute")
    for mode in ("walk", "ride", "ride"):
        module.add_parameter_set(ParameterSet("teleportedModeParameters", {"mode": mode}))
    module.add_parameter_set(ParameterSet("networkModeParameters", {"mode": "ride"}))

    removed = module.remove_parameter_sets("teleportedModeParameters", lambda ps: ps.get("mode") == "ride")

    assert removed == 2
    assert [(ps.type, ps.get("mode")) for ps in module.parameter_sets] == [
        ("teleportedModeParameters", "walk"),
        ("networkModeParameters", "ride"),
    ]


def test_write_then_load_keeps_nested_sets(tmp_path, write_base_config) -> None:
    config = MatsimConfig.load(write_base_config())
    scoring = config.module("planCalcScore")
    outer = scoring.add_parameter_set(ParameterSet("scoringParameters", {"subpopulation": "freight"}))
    outer.add_parameter_set(ParameterSet("activityParams", {"activityType": "freight"}))

    written = config.write(tmp_path / "out.xml")
    reloaded = MatsimConfig.load(written)

    assert "config_v2.dtd" in written.read_text(encoding="utf-8")
    nested = reloaded.module("planCalcScore").sets("scoringParameters")[0]
    assert nested.get("subpopulation") == "freight"
    assert nested.sets("activityParams")[0].get("activityType") == "freight"
    assert reloaded.get_param("controler", "outputDirectory") == "output"


def test_load_missing_or_malformed_config_fails(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        MatsimConfig.load(tmp_path / "nope.xml")

    broken = tmp_path / "broken.xml"
    broken.write_text("<config><module name='x'>", encoding="utf-8")
    with pytest.raises(ET.ParseError):
        MatsimConfig.load(broken)

    wrong_root = tmp_path / "network.xml"
    wrong_root.write_text("<network/>", encoding="utf-8")
    with pytest.raises(ValueError):
        MatsimConfig.load(wrong_root)


def test_resolve_is_relative_to_config_directory(write_base_config, tmp_path) -> None:
    config = MatsimConfig.load(write_base_config())

    assert config.resolve("network.xml.gz") == tmp_path / "network.xml.gz"
    assert config.resolve(str(tmp_path / "abs.xml")) == tmp_path / "abs.xml"


def test_value_and_time_formatting() -> None:
    assert format_value(False) == "false"
    assert format_value(0.5) == "0.5"
    assert format_time(600) == "00:10:00"
    assert format_time(27 * 3600) == "27:00:00"
    assert format_time(None) == "undefined"
    with pytest.raises(ValueError):
        format_time(-1)
