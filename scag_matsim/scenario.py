"""Assemble the Los Angeles MATSim scenario: config overrides, inputs, controler."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Literal, Optional, get_args

import networkx as nx

from .activities import ActivityParams, activity_table
from .config import CAR, PT, RIDE, RunConfig, VspCheckingLevel
from .controler import SWISS_RAIL_RAPTOR_MODULE, Controler, TransitRoutingStrategy
from .matsim_config import MatsimConfig, ParameterSet, parse_bool
from .network_io import read_network

logger = logging.getLogger(__name__)

UNDEFINED_MODE = "undefined"

TELEPORTED_PT_WARNING = (
    "Public transit will be teleported and not simulated in the mobsim! "
    "This will have a significant effect on pt-related parameters (travel times, modal split, and so on). "
    "Should only be used for testing or car-focused studies with a fixed modal split."
)


def prepare_config(config_file: str | Path) -> MatsimConfig:
    """Load the base config and apply the fixed scenario overrides."""

    config = MatsimConfig.load(config_file)

    config.set_param("controler", "routingAlgorithmType", "FastAStarLandmarks")

    config.set_param("subtourModeChoice", "probaForRandomSingleTripMode", 0.5)

    config.set_param("plansCalcRoute", "routingRandomness", 3.0)
    for mode in (RIDE, PT, UNDEFINED_MODE):
        remove_mode_routing_params(config, mode)

    config.set_param("qsim", "insertingWaitingVehiclesBeforeDrivingVehicles", True)

    # vsp defaults
    config.set_param("vspExperimental", "vspDefaultsCheckingLevel", "abort")
    config.set_param("plansCalcRoute", "insertingAccessEgressWalk", True)
    config.set_param("qsim", "usingTravelTimeCheckInTeleportation", True)
    config.set_param("qsim", "trafficDynamics", "kinematicWaves")

    register_activity_params(config, activity_table())
    return config


def remove_mode_routing_params(config: MatsimConfig, mode: str) -> int:
    removed = config.module("plansCalcRoute").remove_parameter_sets(
        "teleportedModeParameters", lambda ps: ps.get("mode") == mode
    )
    logger.info("removed %d routing parameter sets for mode '%s'", removed, mode)
    return removed


def default_scoring_parameters(config: MatsimConfig) -> ParameterSet:
    """The parameter set holding scoring params of the default subpopulation.

    Plain configs keep ``activityParams`` directly in ``planCalcScore``; configs
    with ``scoringParameters`` blocks use the one without a subpopulation.
    """

    module = config.module("planCalcScore")
    scoring_sets = module.sets("scoringParameters")
    if not scoring_sets:
        return module
    for ps in scoring_sets:
        if ps.get("subpopulation") in (None, "", "null"):
            return ps
    return module.add_parameter_set(ParameterSet("scoringParameters"))


def register_activity_params(config: MatsimConfig, table: Iterable[ActivityParams]) -> int:
    """Add every entry of `table`; an existing entry of the same type is replaced."""

    scoring = default_scoring_parameters(config)
    count = 0
    for params in table:
        scoring.remove_parameter_sets(
            "activityParams", lambda ps: ps.get("activityType") == params.activity_type
        )
        scoring.add_parameter_set(params.to_parameter_set())
        count += 1
    logger.info("registered %d activity types", count)
    return count


@dataclass
class Scenario:
    """The finalized config together with its resolved input files."""

    config: MatsimConfig
    network_file: Path
    plans_file: Optional[Path] = None
    transit_schedule_file: Optional[Path] = None
    transit_vehicles_file: Optional[Path] = None
    _network: Optional[nx.MultiDiGraph] = field(default=None, repr=False)

    @property
    def network(self) -> nx.MultiDiGraph:
        if self._network is None:
            logger.info("reading network from %s", self.network_file)
            self._network = read_network(self.network_file)
        return self._network


def is_using_transit_in_mobsim(config: MatsimConfig) -> bool:
    return parse_bool(config.get_param("transit", "useTransit")) and parse_bool(
        config.get_param("transit", "usingTransitInMobsim"), default=True
    )


def transit_routing_strategy(config: MatsimConfig) -> TransitRoutingStrategy:
    if is_using_transit_in_mobsim(config):
        return TransitRoutingStrategy.SIMULATED
    return TransitRoutingStrategy.TELEPORTED


def _input_file(config: MatsimConfig, module: str, param: str, required: bool = False) -> Optional[Path]:
    value = config.get_param(module, param)
    if not value or value == "null":
        if required:
            raise ValueError(f"config parameter {module}.{param} is not set")
        return None
    path = config.resolve(value)
    if not path.exists():
        raise FileNotFoundError(f"{module}.{param} points to a missing file: {path}")
    return path


def prepare_scenario(config: MatsimConfig) -> Scenario:
    """Resolve and check the scenario's input files."""

    if config is None:
        raise ValueError("config must not be None")

    scenario = Scenario(
        config=config,
        network_file=_input_file(config, "network", "inputNetworkFile", required=True),
        plans_file=_input_file(config, "plans", "inputPlansFile"),
    )
    if parse_bool(config.get_param("transit", "useTransit")):
        scenario.transit_schedule_file = _input_file(
            config, "transit", "transitScheduleFile", required=True
        )
        scenario.transit_vehicles_file = _input_file(config, "transit", "vehiclesFile")
    return scenario


def prepare_controler(scenario: Scenario, run_config: Optional[RunConfig] = None) -> Controler:
    if scenario is None:
        raise ValueError("scenario must not be None")

    strategy = transit_routing_strategy(scenario.config)
    controler = Controler(scenario, strategy, run_config)

    if strategy is TransitRoutingStrategy.SIMULATED:
        controler.add_overriding_module(SWISS_RAIL_RAPTOR_MODULE)
    else:
        logger.warning(TELEPORTED_PT_WARNING)

    # ride is teleported but uses the congested car travel times
    controler.add_travel_time_binding(RIDE, CAR)
    return controler


Severity = Literal["problem", "warning"]


@dataclass(frozen=True)
class VspViolation:
    module: str
    param: str
    message: str
    severity: Severity = "problem"

    def __str__(self) -> str:
        return f"{self.module}.{self.param}: {self.message}"


class VspDefaultsError(RuntimeError):
    """Raised when the config violates VSP defaults and the checking level is ``abort``."""

    def __init__(self, violations: List[VspViolation]):
        self.violations = violations
        lines = "\n".join(f"  - {v}" for v in violations)
        super().__init__(f"{len(violations)} VSP default(s) violated:\n{lines}")


def check_vsp_defaults(config: MatsimConfig) -> List[VspViolation]:
    """Collect every deviation from the VSP defaults in one pass."""

    violations: List[VspViolation] = []

    traffic_dynamics = config.get_param("qsim", "trafficDynamics", "queue")
    if traffic_dynamics == "queue":
        violations.append(VspViolation(
            "qsim", "trafficDynamics",
            "found 'queue'; vsp should use 'kinematicWaves' or 'withHoles'",
            "warning",
        ))

    if not parse_bool(config.get_param("qsim", "usingTravelTimeCheckInTeleportation")):
        violations.append(VspViolation(
            "qsim", "usingTravelTimeCheckInTeleportation",
            "travel time check in teleportation is switched off",
        ))

    access_egress_type = config.get_param("plansCalcRoute", "accessEgressType")
    inserting_walk = parse_bool(config.get_param("plansCalcRoute", "insertingAccessEgressWalk"))
    if not inserting_walk and access_egress_type in (None, "none"):
        violations.append(VspViolation(
            "plansCalcRoute", "insertingAccessEgressWalk",
            "access/egress legs are not inserted",
        ))

    activity_sets = default_scoring_parameters(config).sets("activityParams") if "planCalcScore" in config else []
    for ps in activity_sets:
        if ps.get("typicalDurationScoreComputation") == "uniform":
            violations.append(VspViolation(
                "planCalcScore", "typicalDurationScoreComputation",
                f"activity type '{ps.get('activityType')}' uses 'uniform'; vsp default is 'relative'",
            ))

    fraction = config.get_param("strategy", "fractionOfIterationsToDisableInnovation")
    if fraction in (None, "Infinity"):
        violations.append(VspViolation(
            "strategy", "fractionOfIterationsToDisableInnovation",
            "innovation is never switched off; vsp default is 0.8",
            "warning",
        ))

    if not parse_bool(config.get_param("plans", "removingUnnecessaryPlanAttributes")):
        violations.append(VspViolation(
            "plans", "removingUnnecessaryPlanAttributes",
            "unnecessary plan attributes are kept",
            "warning",
        ))

    return violations


def enforce_vsp_defaults(config: MatsimConfig) -> List[VspViolation]:
    """Run the VSP defaults check according to the config's checking level."""

    level = config.get_param("vspExperimental", "vspDefaultsCheckingLevel", "ignore")
    if level not in get_args(VspCheckingLevel):
        raise ValueError(f"unknown vspDefaultsCheckingLevel '{level}'")
    if level == "ignore":
        return []

    violations = check_vsp_defaults(config)
    for violation in violations:
        if violation.severity == "problem" and level in ("warn", "abort"):
            logger.warning("vsp default violated: %s", violation)
        else:
            logger.info("vsp default: %s", violation)

    problems = [v for v in violations if v.severity == "problem"]
    if level == "abort" and problems:
        raise VspDefaultsError(problems)
    return violations
