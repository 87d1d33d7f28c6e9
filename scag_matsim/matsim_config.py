"""In-memory model of a MATSim ``config_v2`` file.

A config is a list of named modules. Each module holds scalar ``param``
entries and nested, typed ``parameterset`` blocks::

    <module name="planCalcScore">
        <param name="learningRate" value="1.0" />
        <parameterset type="activityParams">
            <param name="activityType" value="home" />
        </parameterset>
    </module>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

ParamValue = Union[str, bool, int, float]

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
CONFIG_DOCTYPE = '<!DOCTYPE config SYSTEM "http://www.matsim.org/files/dtd/config_v2.dtd">\n'


def format_value(value: ParamValue) -> str:
    """Render a Python value the way MATSim spells it in config files."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() == "true"


class ParameterSet:
    """A typed block of params with optional nested parameter sets."""

    def __init__(self, set_type: str, params: Optional[Mapping[str, ParamValue]] = None):
        self.type = set_type
        self.params: Dict[str, str] = {}
        self.parameter_sets: List[ParameterSet] = []
        for name, value in (params or {}).items():
            self.set(name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type!r}, {self.params!r})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.params.get(name, default)

    def set(self, name: str, value: ParamValue) -> None:
        self.params[name] = format_value(value)

    def sets(self, set_type: str) -> List["ParameterSet"]:
        return [ps for ps in self.parameter_sets if ps.type == set_type]

    def add_parameter_set(self, parameter_set: "ParameterSet") -> "ParameterSet":
        self.parameter_sets.append(parameter_set)
        return parameter_set

    def remove_parameter_sets(
        self, set_type: str, predicate: Callable[["ParameterSet"], bool] = lambda ps: True
    ) -> int:
        """Remove matching parameter sets of `set_type`, returning how many went."""

        kept = [ps for ps in self.parameter_sets if ps.type != set_type or not predicate(ps)]
        removed = len(self.parameter_sets) - len(kept)
        self.parameter_sets = kept
        return removed

    def _to_element(self, tag: str, key: str, label: str) -> ET.Element:
        element = ET.Element(tag, {key: label})
        for name, value in self.params.items():
            ET.SubElement(element, "param", {"name": name, "value": value})
        for ps in self.parameter_sets:
            element.append(ps._to_element("parameterset", "type", ps.type))
        return element

    @classmethod
    def _from_element(cls, element: ET.Element, label: str) -> "ParameterSet":
        instance = cls(label)
        for child in element:
            if child.tag == "param":
                instance.params[child.attrib["name"]] = child.attrib.get("value", "")
            elif child.tag == "parameterset":
                instance.parameter_sets.append(
                    ParameterSet._from_element(child, child.attrib["type"])
                )
        return instance


class ConfigModule(ParameterSet):
    """A top-level ``<module>``; its type is its name."""

    @property
    def name(self) -> str:
        return self.type


class MatsimConfig:
    """A loaded MATSim configuration.

    Modules are created on first access, so overrides can be applied to
    modules the base file does not mention.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self.modules: Dict[str, ConfigModule] = {}

    @classmethod
    def load(cls, path: str | Path) -> "MatsimConfig":
        """Read a config file; missing or malformed files raise immediately."""

        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"MATSim config file not found: {path}")
        root = ET.parse(path).getroot()
        if root.tag != "config":
            raise ValueError(f"{path} is not a MATSim config file (root element <{root.tag}>).")

        config = cls(path)
        for element in root.findall("module"):
            module = ConfigModule._from_element(element, element.attrib["name"])
            config.modules[module.name] = module
        logger.info("loaded config %s with %d modules", path, len(config.modules))
        return config

    @property
    def context(self) -> Path:
        """Directory that relative file names in the config are resolved against."""

        return self.path.parent if self.path is not None else Path.cwd()

    def __contains__(self, module_name: str) -> bool:
        return module_name in self.modules

    def __iter__(self) -> Iterator[ConfigModule]:
        return iter(self.modules.values())

    def module(self, name: str) -> ConfigModule:
        if name not in self.modules:
            self.modules[name] = ConfigModule(name)
        return self.modules[name]

    def get_param(self, module: str, name: str, default: Optional[str] = None) -> Optional[str]:
        if module not in self.modules:
            return default
        return self.modules[module].get(name, default)

    def set_param(self, module: str, name: str, value: ParamValue) -> None:
        self.module(module).set(name, value)

    def resolve(self, filename: str) -> Path:
        path = Path(filename)
        return path if path.is_absolute() else self.context / path

    def write(self, path: str | Path) -> Path:
        path = Path(path)
        root = ET.Element("config")
        for module in self.modules.values():
            root.append(module._to_element("module", "name", module.name))
        ET.indent(root)
        with open(path, "wb") as f:
            f.write(XML_HEADER.encode("utf-8"))
            f.write(CONFIG_DOCTYPE.encode("utf-8"))
            f.write(ET.tostring(root, encoding="utf-8", xml_declaration=False))
            f.write(b"\n")
        logger.info("wrote config to %s", path)
        return path
