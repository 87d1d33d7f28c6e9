from .config import NetworkConfig, RunConfig
from .network import build_network, parse_osm, simplify_network, clean_network, adjust_modes
from .network_io import read_network, write_network
from .matsim_config import MatsimConfig
from .scenario import prepare_config, prepare_scenario, prepare_controler
from .controler import Controler, TransitRoutingStrategy
