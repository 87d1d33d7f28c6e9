"""Launch the external MATSim engine for a prepared scenario."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

from .config import RunConfig

if TYPE_CHECKING:
    from .scenario import Scenario

logger = logging.getLogger(__name__)

SWISS_RAIL_RAPTOR_MODULE = "ch.sbb.matsim.routing.pt.raptor.SwissRailRaptorModule"


class TransitRoutingStrategy(Enum):
    """How public transit is handled in a run."""

    TELEPORTED = "teleported"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class TravelTimeBinding:
    """Route and score `mode` with the congested travel time and disutility of `source_mode`."""

    mode: str
    source_mode: str

    def as_argument(self) -> str:
        return f"{self.mode}={self.source_mode}"


class Controler:
    """Holds a scenario plus the modules and bindings to install, then runs MATSim.

    The Java launcher receives the prepared config path followed by
    ``--module <class>`` for every overriding module and
    ``--travel-time-binding <mode>=<source>`` for every binding.

    ``RunConfig.main_class`` is not part of MATSim; the jar on the classpath
    must ship it. It has to load the config from its first argument, install
    every ``--module`` class as an overriding module, bind the travel time
    and travel disutility of ``<source>`` for ``<mode>``, and exit non-zero
    on any argument it does not recognise.
    """

    def __init__(
        self,
        scenario: "Scenario",
        transit_routing: TransitRoutingStrategy,
        run_config: Optional[RunConfig] = None,
    ):
        self.scenario = scenario
        self.transit_routing = transit_routing
        self.run_config = run_config or RunConfig()
        self.overriding_modules: List[str] = []
        self.travel_time_bindings: List[TravelTimeBinding] = []

    @property
    def config(self):
        return self.scenario.config

    def add_overriding_module(self, class_name: str) -> None:
        if class_name in self.overriding_modules:
            raise ValueError(f"module {class_name} is already installed")
        self.overriding_modules.append(class_name)

    def add_travel_time_binding(self, mode: str, source_mode: str) -> None:
        self.travel_time_bindings.append(TravelTimeBinding(mode, source_mode))

    @property
    def prepared_config_path(self) -> Path:
        # next to the base config so relative input paths keep resolving
        base = self.config.path
        if base is None:
            raise ValueError("config has no file path; cannot place the prepared config")
        return base.with_name(f"{base.stem}_prepared.xml")

    def command(self, config_path: Path) -> List[str]:
        rc = self.run_config
        if rc.classpath is None:
            raise ValueError("RunConfig.classpath must point to the MATSim jar")
        cmd = [rc.java, f"-Xmx{rc.max_memory}", *rc.jvm_args, "-cp", str(rc.classpath), rc.main_class]
        cmd.append(str(config_path))
        for module in self.overriding_modules:
            cmd.extend(["--module", module])
        for binding in self.travel_time_bindings:
            cmd.extend(["--travel-time-binding", binding.as_argument()])
        return cmd

    def run(self) -> subprocess.CompletedProcess:
        config_path = self.config.write(self.prepared_config_path)
        cmd = self.command(config_path)
        logger.info("starting MATSim: %s", " ".join(cmd))
        result = subprocess.run(cmd, check=True)
        logger.info("MATSim run finished")
        return result
