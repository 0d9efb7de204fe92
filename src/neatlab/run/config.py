import configparser
import copy
import logging
import math
import os

from neatlab.activations import activations

logger = logging.getLogger(__name__)

class Config:
    """
    Stores the tunable parameters of a NEAT run.

    A Config starts out holding the default value of every parameter. Values
    can then be read from an INI file and/or overridden through keyword
    arguments or 'update()'. Every value goes through the same normalization:
    numeric parameters are clamped into their valid range, unknown names are
    ignored, and values that cannot be converted leave the current value in
    place. Configuration problems never raise (a missing INI file does).

    Public Methods:
        update(partial): Apply a (partial) dictionary of settings
        to_dict():       Return all settings as a plain dictionary
        copy():          Return an independent copy
    """

    # name => (type, min, max)         for numeric parameters
    # name => (type, allowed values)   for string parameters
    # name => (type,)                  for everything else
    _SETTINGS = {
        'population_size'                  : (int,   20,   500),
        'compatibility_threshold'          : (float, 0.5,  8.0),
        'weight_mutation_rate'             : (float, 0.0,  1.0),
        'add_connection_rate'              : (float, 0.0,  1.0),
        'add_node_rate'                    : (float, 0.0,  1.0),
        'crossover_rate'                   : (float, 0.0,  1.0),
        'inter_species_mate_rate'          : (float, 0.0,  1.0),
        'survival_rate'                    : (float, 0.1,  0.5),
        'allow_recurrent'                  : (bool,),
        'activation'                       : (str,   tuple(activations.keys())),
        'max_stale_generations'            : (int,   3,    60),
        'max_steps_per_eval'               : (int,   160,  3000),
        'excess_coeff'                     : (float, 0.0,  10.0),
        'disjoint_coeff'                   : (float, 0.0,  10.0),
        'weight_coeff'                     : (float, 0.0,  10.0),
        'compatibility_normalize_threshold': (int,   1,    1000),
        'disable_inherit_prob'             : (float, 0.0,  1.0),
        'weight_perturb_prob'              : (float, 0.0,  1.0),
        'weight_replace_prob'              : (float, 0.0,  1.0),
        'weight_perturb_power'             : (float, 0.0,  5.0),
        'weight_perturb_distribution'      : (str,   ('uniform', 'gaussian')),
        'weight_init_range'                : (float, 0.01, 10.0),
        'weight_limit'                     : (float, 0.1,  50.0),
        'num_jobs'                         : (int,   -1,   64),
        'seed'                             : (int,),
    }

    # Alternative names accepted by 'update()': short forms, and the camelCase
    # names some hosts of the evolution worker send
    _ALIASES = {
        'pop_size'              : 'population_size',
        'compat_threshold'      : 'compatibility_threshold',
        'populationSize'        : 'population_size',
        'compatibilityThreshold': 'compatibility_threshold',
        'weightMutationRate'    : 'weight_mutation_rate',
        'addConnectionRate'     : 'add_connection_rate',
        'addNodeRate'           : 'add_node_rate',
        'crossoverRate'         : 'crossover_rate',
        'interSpeciesMateRate'  : 'inter_species_mate_rate',
        'survivalRate'          : 'survival_rate',
        'allowRecurrent'        : 'allow_recurrent',
        'maxStaleGenerations'   : 'max_stale_generations',
        'maxStepsPerEval'       : 'max_steps_per_eval',
    }

    # INI section holding each parameter
    _SECTIONS = {
        'POPULATION' : ['population_size', 'activation', 'allow_recurrent', 'seed'],
        'SPECIATION' : ['compatibility_threshold', 'excess_coeff', 'disjoint_coeff',
                        'weight_coeff', 'compatibility_normalize_threshold'],
        'MUTATION'   : ['weight_mutation_rate', 'add_connection_rate', 'add_node_rate',
                        'weight_perturb_prob', 'weight_replace_prob', 'weight_perturb_power',
                        'weight_perturb_distribution', 'weight_init_range', 'weight_limit'],
        'REPRODUCTION': ['crossover_rate', 'inter_species_mate_rate', 'survival_rate',
                         'disable_inherit_prob'],
        'STAGNATION' : ['max_stale_generations'],
        'EVALUATION' : ['max_steps_per_eval', 'num_jobs'],
    }

    def __init__(self, config_file: str | None = None, **overrides):
        """
        Initialize Config with default values, then apply an optional
        INI file and optional keyword overrides (in this order).

        Parameters:
            config_file: Path to an INI configuration file (optional)
            overrides:   Individual settings, e.g. population_size=50
        """
        self._set_defaults()

        if config_file is not None:
            self._load_file(config_file)

        if overrides:
            self.update(overrides)

    def _set_defaults(self):

        # [POPULATION]

        # The number of genomes in each generation.
        self.population_size = 150

        # Activation function of all hidden and output nodes.
        # Allowed values: "tanh", "sigmoid", "relu", "sin"
        self.activation = "tanh"

        # Whether the add-connection mutation may create cycles.
        self.allow_recurrent = False

        # Seed for the engine's random number generator (None = unseeded).
        self.seed = None

        # [SPECIATION]

        # Genomes whose compatibility distance is below this
        # threshold are placed into the same species.
        self.compatibility_threshold = 3.0

        # Coefficients of the compatibility distance
        # (c1: excess genes, c2: disjoint genes, c3: mean weight difference).
        self.excess_coeff   = 1.0
        self.disjoint_coeff = 1.0
        self.weight_coeff   = 0.4

        # Gene counts are normalized by the size of the larger genome,
        # unless it holds fewer connections than this.
        self.compatibility_normalize_threshold = 20

        # [MUTATION]

        # Per-child probabilities of each kind of mutation.
        self.weight_mutation_rate = 0.8
        self.add_connection_rate  = 0.05
        self.add_node_rate        = 0.03

        # Per-connection probabilities of perturbing / replacing the weight
        # during a weight mutation (the rest are left untouched).
        self.weight_perturb_prob = 0.8
        self.weight_replace_prob = 0.2

        # Magnitude of a weight perturbation; either the half-width of a
        # uniform distribution or the stdev of a gaussian one.
        self.weight_perturb_power        = 0.3
        self.weight_perturb_distribution = "uniform"

        # New weights are drawn uniformly from [-weight_init_range, +weight_init_range].
        self.weight_init_range = 2.0

        # Weights are always clipped to [-weight_limit, +weight_limit].
        self.weight_limit = 4.0

        # [REPRODUCTION]

        # Probability that a child is produced by crossover (vs cloning).
        self.crossover_rate = 0.75

        # Probability that the second parent comes from another species.
        self.inter_species_mate_rate = 0.001

        # Fraction of each species (by fitness) allowed to reproduce.
        self.survival_rate = 0.25

        # Probability that a gene disabled in either parent is disabled in the child.
        self.disable_inherit_prob = 0.75

        # [STAGNATION]

        # A species which hasn't improved for more than this many
        # generations is removed (unless it holds the best genome).
        self.max_stale_generations = 15

        # [EVALUATION]

        # Step budget handed to the environment for one evaluation.
        self.max_steps_per_eval = 1000

        # Number of parallel jobs for fitness evaluation
        # (1 = serial, -1 = all available cores).
        self.num_jobs = 1

    def _load_file(self, config_file: str):
        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file '{config_file}' not found")

        parser = configparser.ConfigParser()
        parser.read(config_file)

        values = {}
        for section, keys in Config._SECTIONS.items():
            if not parser.has_section(section):
                continue
            for key in keys:
                if parser.has_option(section, key):
                    values[key] = parser.get(section, key)

        for section in parser.sections():
            if section not in Config._SECTIONS:
                logger.debug(f"ignoring unknown configuration section [{section}]")

        self.update(values)

    def update(self, partial: dict | None) -> dict:
        """
        Apply a (partial) set of settings.

        Every value is normalized: numbers are clamped into range, strings
        must be one of the allowed values, and anything that can't be
        converted keeps the current setting. Unknown keys are ignored.

        Parameters:
            partial: Dictionary mapping parameter names to new values

        Returns:
            Dictionary with the settings that actually changed (name => new value)
        """
        changed = {}
        if not partial:
            return changed

        for key, raw_value in partial.items():
            key = Config._ALIASES.get(key, key)
            if key not in Config._SETTINGS:
                logger.debug(f"ignoring unknown configuration key '{key}'")
                continue

            value = self._normalize(key, raw_value, getattr(self, key))
            if value != getattr(self, key):
                setattr(self, key, value)
                changed[key] = value

        return changed

    @staticmethod
    def _normalize(key: str, raw_value, current):
        """
        Convert and clamp a single value; returns 'current' if 'raw_value' is unusable.
        """
        setting    = Config._SETTINGS[key]
        value_type = setting[0]

        if value_type is bool:
            if isinstance(raw_value, str):
                lowered = raw_value.strip().lower()
                if lowered in ('1', 'true', 'yes', 'on'):
                    return True
                if lowered in ('0', 'false', 'no', 'off'):
                    return False
                return current
            return bool(raw_value)

        if value_type is str:
            value = str(raw_value).strip().lower()
            return value if value in setting[1] else current

        # 'seed' is the only parameter that may be None
        if key == 'seed':
            if raw_value is None or (isinstance(raw_value, str) and raw_value.strip().lower() == 'none'):
                return None
            try:
                return int(float(raw_value))
            except (TypeError, ValueError, OverflowError):
                return current

        try:
            number = float(raw_value)
        except (TypeError, ValueError):
            return current
        if math.isnan(number):
            return current

        lo, hi = setting[1], setting[2]
        number = max(lo, min(hi, number))
        if value_type is int:
            number = int(math.floor(number))
            if key == 'num_jobs' and number == 0:
                number = 1
        return number

    def to_dict(self) -> dict:
        return {key: getattr(self, key) for key in Config._SETTINGS}

    def copy(self) -> 'Config':
        return copy.deepcopy(self)

    def __repr__(self):
        settings = ", ".join(f"{key}={value!r}" for key, value in self.to_dict().items())
        return f"Config({settings})"
