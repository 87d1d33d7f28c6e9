"""Configuration objects and type aliases for the SCAG MATSim tooling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Literal, Optional, Tuple


VspCheckingLevel = Literal["ignore", "info", "warn", "abort"]

WGS84 = "EPSG:4326"
NETWORK_CRS = "EPSG:3310"  # California Albers

OSM_FILE = Path("osm-data") / "socal-LA-network_2019-09-22.osm"
NETWORK_OUTPUT_DIR = Path("matsim-input-files") / "network"
SCENARIO_CONFIG_FILE = Path("matsim-input-files") / "scag-config_2019-11-19.xml"
NETWORK_PREFIX = "scag-network"

CAR = "car"
RIDE = "ride"
PT = "pt"


@dataclass
class NetworkConfig:
    """Settings for turning the OSM extract into a MATSim network."""

    osm_file: Path
    output_dir: Path
    crs: str = NETWORK_CRS
    keep_paths: bool = False
    simplify: bool = False
    clean: bool = True
    simplify_tolerance_m: float = 10.0
    run_date: Optional[date] = None

    @classmethod
    def from_root(cls, root_directory: str | Path, **overrides) -> "NetworkConfig":
        root = Path(root_directory)
        return cls(
            osm_file=root / OSM_FILE,
            output_dir=root / NETWORK_OUTPUT_DIR,
            **overrides,
        )

    @property
    def prefix(self) -> str:
        run_date = self.run_date or date.today()
        prefix = f"{NETWORK_PREFIX}_{run_date.isoformat()}"
        if self.simplify:
            prefix += "_simplified"
        return prefix

    @property
    def output_file(self) -> Path:
        return self.output_dir / f"{self.prefix}_network.xml.gz"


@dataclass
class RunConfig:
    """How the external MATSim engine is launched."""

    java: str = "java"
    classpath: Optional[Path] = None
    main_class: str = "org.matsim.run.RunScagScenario"
    max_memory: str = "20G"
    jvm_args: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_root(cls, root_directory: str | Path, **overrides) -> "RunConfig":
        overrides.setdefault("classpath", Path(root_directory) / "matsim-scag.jar")
        return cls(**overrides)
