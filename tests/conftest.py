"""Shared fixtures: a tiny osmnx-style graph and a base MATSim config."""

from __future__ import annotations

from pathlib import Path

import networkx as nx
import pytest

BASE_CONFIG = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE config SYSTEM "http://www.matsim.org/files/dtd/config_v2.dtd">
<config>
    <module name="controler">
        <param name="outputDirectory" value="output" />
        <param name="lastIteration" value="0" />
    </module>
    <module name="network">
        <param name="inputNetworkFile" value="network.xml.gz" />
    </module>
    <module name="transit">
        <param name="useTransit" value="{use_transit}" />
        <param name="transitScheduleFile" value="schedule.xml.gz" />
    </module>
    <module name="plansCalcRoute">
        <parameterset type="teleportedModeParameters">
            <param name="mode" value="walk" />
            <param name="teleportedModeSpeed" value="0.83" />
        </parameterset>
        <parameterset type="teleportedModeParameters">
            <param name="mode" value="ride" />
        </parameterset>
        <parameterset type="teleportedModeParameters">
            <param name="mode" value="pt" />
        </parameterset>
        <parameterset type="teleportedModeParameters">
            <param name="mode" value="undefined" />
        </parameterset>
        <parameterset type="teleportedModeParameters">
            <param name="mode" value="bike" />
        </parameterset>
    </module>
    <module name="planCalcScore">
        <parameterset type="activityParams">
            <param name="activityType" value="home" />
            <param name="typicalDuration" value="08:00:00" />
        </parameterset>
    </module>
</config>
"""


@pytest.fixture
def write_base_config(tmp_path: Path):
    """Write the base config (and its network file) into `tmp_path`."""

    def _write(use_transit: bool = False, with_network: bool = True) -> Path:
        config_file = tmp_path / "scag-config.xml"
        config_file.write_text(
            BASE_CONFIG.format(use_transit="true" if use_transit else "false"),
            encoding="utf-8",
        )
        if with_network:
            (tmp_path / "network.xml.gz").write_bytes(b"")
        if use_transit:
            (tmp_path / "schedule.xml.gz").write_bytes(b"")
        return config_file

    return _write


@pytest.fixture
def osm_graph() -> nx.MultiDiGraph:
    """An unprojected graph shaped like osmnx output for downtown Los Angeles."""

    graph = nx.MultiDiGraph()
    graph.graph["crs"] = "epsg:4326"
    graph.add_node(1, x=-118.25, y=34.05)
    graph.add_node(2, x=-118.24, y=34.05)
    graph.add_node(3, x=-118.24, y=34.06)
    graph.add_node(4, x=-118.30, y=34.10)

    graph.add_edge(1, 2, key=0, highway="residential", oneway=False, length=920.0)
    graph.add_edge(2, 1, key=0, highway="residential", oneway=False, length=920.0)
    graph.add_edge(2, 3, key=0, highway="primary", oneway=False, lanes="4", maxspeed="35 mph", length=1110.0)
    graph.add_edge(3, 2, key=0, highway="primary", oneway=False, lanes="4", maxspeed="35 mph", length=1110.0)
    graph.add_edge(3, 1, key=0, highway=["motorway", "motorway_link"], oneway=True, lanes="3", length=1450.0)
    graph.add_edge(3, 4, key=0, highway="footway", oneway=False, length=7000.0)
    return graph
