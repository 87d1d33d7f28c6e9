"""MATSim ``network_v2`` reading and writing."""

from __future__ import annotations

import gzip
import math
import xml.etree.ElementTree as ET
from pathlib import Path

import networkx as nx

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
NETWORK_DOCTYPE = (
    '<!DOCTYPE network SYSTEM "http://www.matsim.org/files/dtd/network_v2.dtd">\n'
)
CRS_ATTRIBUTE = "coordinateReferenceSystem"


def _open(path: Path, mode: str):
    # Handle both plain .xml and .xml.gz
    if path.suffix == ".gz":
        return gzip.open(path, mode)
    return open(path, mode)


def _number(value: float) -> str:
    return repr(float(value))


def _link_length(graph: nx.MultiDiGraph, u: object, v: object, data: dict) -> float:
    length = data.get("length")
    if length is not None and not math.isnan(float(length)):
        return float(length)
    from_node, to_node = graph.nodes[u], graph.nodes[v]
    return math.hypot(to_node["x"] - from_node["x"], to_node["y"] - from_node["y"])


def write_network(graph: nx.MultiDiGraph, path: str | Path) -> Path:
    """Serialize `graph` as a MATSim network; gzip-compressed when `path` ends in ``.gz``.

    Nodes need projected ``x``/``y``. Links need ``freespeed``, ``capacity``,
    ``permlanes`` and ``modes``; a missing ``length`` falls back to the
    straight-line node distance.
    """

    path = Path(path)
    root = ET.Element("network")

    crs = graph.graph.get("crs")
    if crs:
        attributes = ET.SubElement(root, "attributes")
        attribute = ET.SubElement(
            attributes, "attribute", {"name": CRS_ATTRIBUTE, "class": "java.lang.String"}
        )
        attribute.text = str(crs)

    nodes = ET.SubElement(root, "nodes")
    for node, data in graph.nodes(data=True):
        ET.SubElement(
            nodes, "node", {"id": str(node), "x": _number(data["x"]), "y": _number(data["y"])}
        )

    links = ET.SubElement(
        root,
        "links",
        {"capperiod": "01:00:00", "effectivecellsize": "7.5", "effectivelanewidth": "3.75"},
    )
    for u, v, key, data in graph.edges(keys=True, data=True):
        ET.SubElement(
            links,
            "link",
            {
                "id": str(data.get("link_id", f"{u}_{v}_{key}")),
                "from": str(u),
                "to": str(v),
                "length": _number(_link_length(graph, u, v, data)),
                "freespeed": _number(data["freespeed"]),
                "capacity": _number(data["capacity"]),
                "permlanes": _number(data["permlanes"]),
                "oneway": "1",
                "modes": ",".join(sorted(data["modes"])),
            },
        )

    ET.indent(root)
    with _open(path, "wb") as f:
        f.write(XML_HEADER.encode("utf-8"))
        f.write(NETWORK_DOCTYPE.encode("utf-8"))
        f.write(ET.tostring(root, encoding="utf-8", xml_declaration=False))
        f.write(b"\n")
    return path


def read_network(path: str | Path) -> nx.MultiDiGraph:
    """Streaming reader for MATSim network files (``.xml`` or ``.xml.gz``)."""

    path = Path(path)
    graph = nx.MultiDiGraph()

    with _open(path, "rb") as f:
        for _, elem in ET.iterparse(f, events=("end",)):
            if elem.tag == "node":
                graph.add_node(
                    elem.attrib["id"],
                    x=float(elem.attrib["x"]),
                    y=float(elem.attrib["y"]),
                )
            elif elem.tag == "link":
                attrs = elem.attrib
                modes = {mode.strip() for mode in attrs.get("modes", "").split(",") if mode.strip()}
                graph.add_edge(
                    attrs["from"],
                    attrs["to"],
                    key=attrs["id"],
                    link_id=attrs["id"],
                    length=float(attrs["length"]),
                    freespeed=float(attrs["freespeed"]),
                    capacity=float(attrs["capacity"]),
                    permlanes=float(attrs.get("permlanes", 1.0)),
                    modes=modes,
                )
            elif elem.tag == "attribute" and elem.attrib.get("name") == CRS_ATTRIBUTE:
                graph.graph["crs"] = (elem.text or "").strip()
            else:
                continue
            elem.clear()

    return graph
