"""
ABI of the subnet precompile (`ISubnet`), deployed by the runtime at `ISUBNET_ADDRESS`.
"""

from typing import Any

_IDENTITY_FIELDS = (
    "subnetName",
    "githubRepo",
    "subnetContact",
    "subnetUrl",
    "discord",
    "description",
)


def _register_network(string_fields: tuple[str, ...]) -> dict[str, Any]:
    inputs = [{"internalType": "bytes32", "name": "hotkey", "type": "bytes32"}]
    inputs += [
        {"internalType": "string", "name": field, "type": "string"}
        for field in string_fields
    ]
    return {
        "inputs": inputs,
        "name": "registerNetwork",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    }


def _getter(name: str, *output_types: str) -> dict[str, Any]:
    return {
        "inputs": [{"internalType": "uint16", "name": "netuid", "type": "uint16"}],
        "name": f"get{name}",
        "outputs": [
            {"internalType": type_, "name": "", "type": type_}
            for type_ in output_types
        ],
        "stateMutability": "view",
        "type": "function",
    }


def _setter(name: str, *inputs: tuple[str, str]) -> dict[str, Any]:
    return {
        "inputs": [{"internalType": "uint16", "name": "netuid", "type": "uint16"}]
        + [
            {"internalType": type_, "name": arg_name, "type": type_}
            for arg_name, type_ in inputs
        ],
        "name": f"set{name}",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    }


# contract name: solidity type of the value
_SCALAR_HYPERPARAMS = {
    "ServingRateLimit": "uint64",
    "MinDifficulty": "uint64",
    "MaxDifficulty": "uint64",
    "WeightsVersionKey": "uint64",
    "WeightsSetRateLimit": "uint64",
    "AdjustmentAlpha": "uint64",
    "MaxWeightLimit": "uint16",
    "ImmunityPeriod": "uint16",
    "MinAllowedWeights": "uint16",
    "Kappa": "uint16",
    "Rho": "uint16",
    "ActivityCutoff": "uint16",
    "NetworkRegistrationAllowed": "bool",
    "NetworkPowRegistrationAllowed": "bool",
    "MinBurn": "uint64",
    "MaxBurn": "uint64",
    "Difficulty": "uint64",
    "BondsMovingAverage": "uint64",
    "CommitRevealWeightsEnabled": "bool",
    "LiquidAlphaEnabled": "bool",
    "Yuma3Enabled": "bool",
    "CommitRevealWeightsInterval": "uint64",
}

ISUBNET_ABI: list[dict[str, Any]] = [
    _register_network(()),
    _register_network(_IDENTITY_FIELDS + ("additional",)),
    _register_network(_IDENTITY_FIELDS + ("logoUrl", "additional")),
]
for _name, _type in _SCALAR_HYPERPARAMS.items():
    _arg = _name[0].lower() + _name[1:]
    ISUBNET_ABI.append(_getter(_name, _type))
    ISUBNET_ABI.append(_setter(_name, (_arg, _type)))
ISUBNET_ABI.append(_getter("AlphaValues", "uint16", "uint16"))
ISUBNET_ABI.append(
    _setter("AlphaValues", ("alphaLow", "uint16"), ("alphaHigh", "uint16"))
)

REGISTER_NETWORK_SIGNATURES = {
    0: "registerNetwork(bytes32)",
    7: "registerNetwork(bytes32,string,string,string,string,string,string,string)",
    8: "registerNetwork(bytes32,string,string,string,string,string,string,string,string)",
}
