from enum import Enum
from dataclasses import dataclass
from typing import Any, Optional, Union


class Constants:
    networks = ["local", "test", "finney"]
    local_entrypoint = "ws://127.0.0.1:9944"
    finney_test_entrypoint = "wss://test.finney.opentensor.ai:443"
    finney_entrypoint = "wss://entrypoint-finney.opentensor.ai:443"
    network_map = {
        "local": local_entrypoint,
        "test": finney_test_entrypoint,
        "finney": finney_entrypoint,
    }
    # Frontier serves the Ethereum JSON-RPC on the node's regular RPC port.
    local_evm_rpc = "http://127.0.0.1:9944"
    evm_rpc_map = {
        "local": local_evm_rpc,
        "test": "https://test.chain.opentensor.ai",
        "finney": "https://lite.chain.opentensor.ai",
    }
    localnet_image = "ghcr.io/opentensor/subtensor-localnet:devnet-ready"


class Defaults:
    class config:
        path = "~/.bittensor/evm-tests.yml"
        dictionary = {
            "network": None,
            "evm_rpc": None,
            "sudo_uri": None,
        }

    class subtensor:
        network = "local"

    class faucet:
        # dev chain sudo key
        sudo_uri = "//Alice"
        amount_tao = 1_000_000

    class evm:
        receipt_timeout = 120
        poll_latency = 0.5


defaults = Defaults

# Subnet precompile, dispatches into SubtensorModule / AdminUtils
ISUBNET_ADDRESS = "0x0000000000000000000000000000000000000803"

TYPE_REGISTRY = {
    "types": {
        "Balance": "u64",  # Need to override default u128
    },
}


class RootSudoOnly(Enum):
    FALSE = 0
    TRUE = 1


class ValueKind(Enum):
    INT = "int"
    BOOL = "bool"
    PAIR = "pair"


HyperparamValue = Union[int, bool, tuple[int, int]]


@dataclass(frozen=True)
class Hyperparameter:
    """
    A subnet hyperparameter as exposed by the subnet precompile.

    `contract_name` is the suffix of the precompile's `set*`/`get*` methods, `storage_function` the
    SubtensorModule storage item holding it, and `admin_extrinsic` the AdminUtils call that sets it from
    a root/owner origin.
    """

    name: str
    contract_name: str
    storage_function: str
    admin_extrinsic: str
    value: Optional[HyperparamValue] = None
    kind: ValueKind = ValueKind.INT
    root_only: RootSudoOnly = RootSudoOnly.FALSE
    # global storage item whose value + 1 is the lowest accepted value
    floor_storage: Optional[str] = None
    # other hyperparameters (name, value) which must hold before this one can be set
    prerequisites: tuple[tuple[str, Any], ...] = ()

    @property
    def setter(self) -> str:
        return f"set{self.contract_name}"

    @property
    def getter(self) -> str:
        return f"get{self.contract_name}"

    @property
    def owner_settable(self) -> bool:
        return self.root_only == RootSudoOnly.FALSE


_HYPERPARAMS = (
    Hyperparameter(
        "serving_rate_limit",
        "ServingRateLimit",
        "ServingRateLimit",
        "sudo_set_serving_rate_limit",
        100,
    ),
    Hyperparameter(
        "min_difficulty",
        "MinDifficulty",
        "MinDifficulty",
        "sudo_set_min_difficulty",
        101,
        root_only=RootSudoOnly.TRUE,
    ),
    Hyperparameter(
        "max_difficulty",
        "MaxDifficulty",
        "MaxDifficulty",
        "sudo_set_max_difficulty",
        102,
    ),
    Hyperparameter(
        "weights_version_key",
        "WeightsVersionKey",
        "WeightsVersionKey",
        "sudo_set_weights_version_key",
        103,
    ),
    Hyperparameter(
        "weights_set_rate_limit",
        "WeightsSetRateLimit",
        "WeightsSetRateLimit",
        "sudo_set_weights_set_rate_limit",
        104,
        root_only=RootSudoOnly.TRUE,
    ),
    Hyperparameter(
        "adjustment_alpha",
        "AdjustmentAlpha",
        "AdjustmentAlpha",
        "sudo_set_adjustment_alpha",
        105,
    ),
    Hyperparameter(
        "max_weight_limit",
        "MaxWeightLimit",
        "MaxWeightsLimit",
        "sudo_set_max_weight_limit",
        106,
    ),
    Hyperparameter(
        "immunity_period",
        "ImmunityPeriod",
        "ImmunityPeriod",
        "sudo_set_immunity_period",
        107,
    ),
    Hyperparameter(
        "min_allowed_weights",
        "MinAllowedWeights",
        "MinAllowedWeights",
        "sudo_set_min_allowed_weights",
        108,
    ),
    Hyperparameter("kappa", "Kappa", "Kappa", "sudo_set_kappa", 109),
    Hyperparameter("rho", "Rho", "Rho", "sudo_set_rho", 110),
    Hyperparameter(
        "activity_cutoff",
        "ActivityCutoff",
        "ActivityCutoff",
        "sudo_set_activity_cutoff",
        floor_storage="MinActivityCutoff",
    ),
    Hyperparameter(
        "network_registration_allowed",
        "NetworkRegistrationAllowed",
        "NetworkRegistrationAllowed",
        "sudo_set_network_registration_allowed",
        True,
        ValueKind.BOOL,
    ),
    Hyperparameter(
        "network_pow_registration_allowed",
        "NetworkPowRegistrationAllowed",
        "NetworkPowRegistrationAllowed",
        "sudo_set_network_pow_registration_allowed",
        True,
        ValueKind.BOOL,
    ),
    Hyperparameter(
        "min_burn",
        "MinBurn",
        "MinBurn",
        "sudo_set_min_burn",
        112,
        root_only=RootSudoOnly.TRUE,
    ),
    Hyperparameter(
        "max_burn",
        "MaxBurn",
        "MaxBurn",
        "sudo_set_max_burn",
        113,
        root_only=RootSudoOnly.TRUE,
    ),
    Hyperparameter(
        "difficulty",
        "Difficulty",
        "Difficulty",
        "sudo_set_difficulty",
        114,
        root_only=RootSudoOnly.TRUE,
    ),
    Hyperparameter(
        "bonds_moving_average",
        "BondsMovingAverage",
        "BondsMovingAverage",
        "sudo_set_bonds_moving_average",
        115,
    ),
    Hyperparameter(
        "commit_reveal_weights_enabled",
        "CommitRevealWeightsEnabled",
        "CommitRevealWeightsEnabled",
        "sudo_set_commit_reveal_weights_enabled",
        True,
        ValueKind.BOOL,
    ),
    Hyperparameter(
        "liquid_alpha_enabled",
        "LiquidAlphaEnabled",
        "LiquidAlphaOn",
        "sudo_set_liquid_alpha_enabled",
        True,
        ValueKind.BOOL,
    ),
    Hyperparameter(
        "yuma3_enabled",
        "Yuma3Enabled",
        "Yuma3On",
        "sudo_set_yuma3_enabled",
        True,
        ValueKind.BOOL,
    ),
    Hyperparameter(
        "alpha_values",
        "AlphaValues",
        "AlphaValues",
        "sudo_set_alpha_values",
        (118, 52429),
        ValueKind.PAIR,
        prerequisites=(("liquid_alpha_enabled", True),),
    ),
    Hyperparameter(
        "commit_reveal_weights_interval",
        "CommitRevealWeightsInterval",
        "RevealPeriodEpochs",
        "sudo_set_commit_reveal_weights_interval",
        119,
    ),
)

HYPERPARAMS: dict[str, Hyperparameter] = {hp.name: hp for hp in _HYPERPARAMS}

OWNER_HYPERPARAMS = [hp for hp in _HYPERPARAMS if hp.owner_settable]

# Only the root origin may change these on current runtimes. The precompile still exposes their getters.
ROOT_HYPERPARAMS = [hp for hp in _HYPERPARAMS if not hp.owner_settable]


@dataclass
class SubnetIdentity:
    subnet_name: str
    github_repo: str
    subnet_contact: str
    subnet_url: str
    discord: str
    description: str
    additional: str
    logo_url: Optional[str] = None

    def as_contract_args(self) -> list[str]:
        """Positional string arguments of the matching `registerNetwork` overload."""
        args = [
            self.subnet_name,
            self.github_repo,
            self.subnet_contact,
            self.subnet_url,
            self.discord,
            self.description,
        ]
        if self.logo_url is not None:
            args.append(self.logo_url)
        args.append(self.additional)
        return args


class Gettable:
    def __getitem__(self, item):
        return getattr(self, item)


class ColorPalette(Gettable):
    def __init__(self):
        self.GENERAL = self.General()
        self.SUDO = self.Sudo()
        # aliases
        self.G = self.GENERAL
        self.SU = self.SUDO

    class General(Gettable):
        HEADER = "#4196D6"  # Light Blue
        HINT = "#A2E5B8"  # Mint Green
        SUBHEADING = "#AFEFFF"  # Pale Blue
        SUCCESS = "#53B5A0"  # Teal
        NETUID = "#CBA880"  # Tan
        # aliases
        SUBHEAD = SUBHEADING

    class Sudo(Gettable):
        HYPERPARAMETER = "#4F91C6"  # Medium Blue
        VALUE = "#D09FE9"  # Light Purple
        MISMATCH = "#EB6A6C"  # Salmon Red
        # aliases
        HYPERPARAM = HYPERPARAMETER


COLOR_PALETTE = ColorPalette()
COLORS = COLOR_PALETTE
