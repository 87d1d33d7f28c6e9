"""Build a routable MATSim network from the SCAG OpenStreetMap extract.

The pipeline is a chain of stages, each taking the previous network and
returning the next one::

    parse_osm -> simplify_network -> clean_network -> adjust_modes -> write_network

Parsing, projection, speed imputation and intersection consolidation are
delegated to osmnx, component cleaning to networkx.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import networkx as nx
import osmnx as ox
import pandas as pd
from pyproj import CRS, Transformer

from .config import CAR, RIDE, WGS84, NetworkConfig
from .network_io import write_network
from .utils import output_directory_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighwayDefaults:
    """Per-direction link attributes assumed for a highway type."""

    lanes: float
    freespeed_kmh: float
    lane_capacity: float  # vehicles per hour and lane


HIGHWAY_DEFAULTS: Dict[str, HighwayDefaults] = {
    "motorway":       HighwayDefaults(2, 120, 2000),
    "motorway_link":  HighwayDefaults(1, 80, 1500),
    "trunk":          HighwayDefaults(1, 80, 2000),
    "trunk_link":     HighwayDefaults(1, 50, 1500),
    "primary":        HighwayDefaults(1, 80, 1500),
    "primary_link":   HighwayDefaults(1, 60, 1500),
    "secondary":      HighwayDefaults(1, 30, 800),
    "secondary_link": HighwayDefaults(1, 30, 800),
    "tertiary":       HighwayDefaults(1, 25, 600),
    "tertiary_link":  HighwayDefaults(1, 25, 600),
    "unclassified":   HighwayDefaults(1, 15, 600),
    "residential":    HighwayDefaults(1, 15, 600),
    "living_street":  HighwayDefaults(1, 10, 300),
}


def get_coordinate_transformation(crs: str) -> Transformer:
    """Return a WGS84 -> `crs` transformer (x=lon, y=lat order)."""

    target = CRS.from_user_input(crs)
    logger.info("--- set the coordinate system for network to be created to %s ---", crs)
    return Transformer.from_crs(CRS.from_user_input(WGS84), target, always_xy=True)


def parse_osm(osm_file: str | Path, crs: str, keep_paths: bool = False) -> nx.MultiDiGraph:
    """Parse the OSM extract into a projected MultiDiGraph with MATSim link attributes.

    With ``keep_paths`` every OSM node along a way is retained; otherwise
    shape-only nodes are collapsed into the link geometry.
    """

    get_coordinate_transformation(crs)

    logger.info("start parsing from osm file %s", osm_file)
    graph = ox.graph_from_xml(
        str(osm_file),
        bidirectional=False,
        simplify=not keep_paths,
        retain_all=True,
    )
    logger.info("finished parsing osm file")

    graph = assign_link_attributes(graph)
    return project_network(graph, crs)


def _resolve_highway(value: object) -> Optional[str]:
    """Pick the first known highway type; osmnx returns lists for merged ways."""

    candidates = value if isinstance(value, (list, tuple)) else [value]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate in HIGHWAY_DEFAULTS:
            return candidate
    return None


def _first_number(value: object) -> Optional[float]:
    candidates = value if isinstance(value, (list, tuple)) else [value]
    for candidate in candidates:
        if candidate is None:
            continue
        match = re.search(r"\d+(\.\d+)?", str(candidate))
        if match:
            return float(match.group())
    return None


def parse_lanes(value: object, oneway: bool) -> Optional[float]:
    """Per-direction lane count from an OSM ``lanes`` tag."""

    lanes = _first_number(value)
    if lanes is None or lanes <= 0:
        return None
    if not oneway:
        lanes = lanes / 2.0
    return max(lanes, 1.0)


def assign_link_attributes(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Attach freespeed, lanes, capacity and allowed modes to every link.

    Links of unknown highway type are dropped, and so are nodes left isolated.
    Speeds come from ``ox.add_edge_speeds``: a tagged ``maxspeed`` wins,
    untagged links get the default speed of their highway type.
    """

    graph = graph.copy()
    unknown = []
    for u, v, key, data in graph.edges(keys=True, data=True):
        highway = _resolve_highway(data.get("highway"))
        if highway is None:
            unknown.append((u, v, key))
        else:
            data["highway"] = highway

    if unknown:
        logger.info("dropping %d links of unsupported highway type", len(unknown))
        graph.remove_edges_from(unknown)
        graph.remove_nodes_from(list(nx.isolates(graph)))
    if graph.number_of_edges() == 0:
        return graph

    graph = ox.add_edge_speeds(
        graph, hwy_speeds={hw: d.freespeed_kmh for hw, d in HIGHWAY_DEFAULTS.items()}
    )
    for _, _, data in graph.edges(data=True):
        defaults = HIGHWAY_DEFAULTS[data["highway"]]
        lanes = parse_lanes(data.get("lanes"), bool(data.get("oneway", False))) or defaults.lanes

        data["freespeed"] = float(data["speed_kph"]) / 3.6
        data["permlanes"] = lanes
        data["capacity"] = lanes * defaults.lane_capacity
        data["modes"] = {CAR}
    return graph


def project_network(graph: nx.MultiDiGraph, crs: str) -> nx.MultiDiGraph:
    """Move node coordinates and link geometries into the network CRS.

    The WGS84 coordinates stay available as ``lon``/``lat`` node attributes.
    """

    graph = graph.copy()
    for _, data in graph.nodes(data=True):
        data.setdefault("lon", data["x"])
        data.setdefault("lat", data["y"])
    if graph.number_of_edges() > 0:
        graph = ox.project_graph(graph, to_crs=crs)
    graph.graph["crs"] = crs
    return graph

def log_network_size(graph: nx.MultiDiGraph, when: str) -> None:
    logger.info("number of nodes %s: %d", when, graph.number_of_nodes())
    logger.info("number of links %s: %d", when, graph.number_of_edges())


def simplify_network(graph: nx.MultiDiGraph, tolerance_m: float) -> nx.MultiDiGraph:
    """Merge nodes closer than `tolerance_m`, collapsing the short links between them.

    Link attributes are carried over per link and never aggregated.
    """

    log_network_size(graph, "before simplifying")
    logger.info("start simplifying the network")
    graph = ox.consolidate_intersections(
        graph,
        tolerance=tolerance_m,
        rebuild_graph=True,
        dead_ends=True,
        reconnect_edges=True,
    )
    log_network_size(graph, "after simplifying")
    return graph


def clean_network(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Keep only the largest strongly connected component.

    Afterwards there is a route from every link to every other link, which
    is not guaranteed for a network converted from OpenStreetMap.
    """

    log_network_size(graph, "before cleaning")
    logger.info("attempt to clean the network")
    if graph.number_of_nodes() == 0:
        cleaned = graph.copy()
    else:
        largest = max(nx.strongly_connected_components(graph), key=len)
        cleaned = graph.subgraph(largest).copy()
    log_network_size(cleaned, "after cleaning")
    return cleaned


def adjust_modes(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Open every car link to ride; all other links keep their mode set."""

    graph = graph.copy()
    adjusted = 0
    for _, _, data in graph.edges(data=True):
        if CAR in data.get("modes", ()):
            data["modes"] = {CAR, RIDE}
            adjusted += 1
    logger.info("set allowed modes to %s,%s on %d links", CAR, RIDE, adjusted)
    return graph


def link_mode_summary(graph: nx.MultiDiGraph) -> pd.DataFrame:
    """Count links per allowed-mode set."""

    modes = pd.Series(
        [",".join(sorted(data.get("modes", ()))) for _, _, data in graph.edges(data=True)],
        dtype="object",
    )
    return modes.value_counts().rename_axis("modes").reset_index(name="links")


def build_network(config: NetworkConfig) -> Path:
    """Run the full OSM -> MATSim network pipeline and return the written file."""

    with output_directory_logging(config.output_dir):
        graph = parse_osm(config.osm_file, config.crs, keep_paths=config.keep_paths)
        if config.simplify:
            graph = simplify_network(graph, config.simplify_tolerance_m)
        if config.clean:
            graph = clean_network(graph)
        graph = adjust_modes(graph)

        for row in link_mode_summary(graph).itertuples(index=False):
            logger.info("links with modes '%s': %d", row.modes, row.links)

        output_file = config.output_file
        logger.info("Writing network to %s", output_file)
        write_network(graph, output_file)
        logger.info("... done.")
    return output_file
