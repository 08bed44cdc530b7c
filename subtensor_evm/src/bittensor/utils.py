import ast
import os
from typing import Any, Optional, Type, Union
from urllib.parse import urlparse

from rich.console import Console
from yaml import safe_load

from subtensor_evm.src import (
    defaults,
    Constants,
    Hyperparameter,
    HyperparamValue,
    ValueKind,
)

BT_DOCS_LINK = "https://docs.bittensor.com"


console = Console()
json_console = Console()
err_console = Console(stderr=True)
verbose_console = Console(quiet=True)


def print_console(message: str, colour: str, title: str, console_: Console):
    console_.print(
        f"[bold {colour}][{title}]:[/bold {colour}] [{colour}]{message}[/{colour}]\n"
    )


def print_verbose(message: str, status=None):
    """Print verbose messages while temporarily pausing the status spinner."""
    if status:
        status.stop()
        print_console(message, "green", "Verbose", verbose_console)
        status.start()
    else:
        print_console(message, "green", "Verbose", verbose_console)


def print_error(message: str, status=None):
    """Print error messages while temporarily pausing the status spinner."""
    if status:
        status.stop()
        print_console(message, "red", "Error", err_console)
        status.start()
    else:
        print_console(message, "red", "Error", err_console)


RAO_PER_TAO = 1e9


def tao_to_rao(amount: float) -> int:
    return int(amount * RAO_PER_TAO)


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Converts a hex-encoded string into bytes. Handles 0x-prefixed and non-prefixed hex-encoded strings.
    """
    if hex_str.startswith("0x"):
        bytes_result = bytes.fromhex(hex_str[2:])
    else:
        bytes_result = bytes.fromhex(hex_str)
    return bytes_result


def format_error_message(error_message: Union[dict, Exception]) -> str:
    """
    Formats an error message from the Subtensor error information for use in extrinsics.

    Args:
        error_message: A dictionary containing the error information from Subtensor, or a SubstrateRequestException
                       containing dictionary literal args.

    Returns:
        str: A formatted error message string.
    """
    err_name = "UnknownError"
    err_type = "UnknownType"
    err_description = "Unknown Description"

    if isinstance(error_message, Exception):
        # generally gotten through SubstrateRequestException args
        new_error_message = None
        for arg in error_message.args:
            try:
                d = ast.literal_eval(arg)
                if isinstance(d, dict):
                    if "error" in d:
                        new_error_message = d["error"]
                        break
                    elif all(x in d for x in ["code", "message", "data"]):
                        new_error_message = d
                        break
            except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
                pass
        if new_error_message is None:
            return_val = " ".join(str(arg) for arg in error_message.args)

            return f"Subtensor returned: {return_val}"
        else:
            error_message = new_error_message

    if isinstance(error_message, dict):
        # subtensor error structure
        if (
            error_message.get("code")
            and error_message.get("message")
            and error_message.get("data")
        ):
            err_name = "SubstrateRequestException"
            err_type = error_message.get("message", "")
            err_data = error_message.get("data", "")

            # subtensor custom error marker
            if err_data.startswith("Custom error:"):
                err_description = (
                    f"{err_data} | Please consult {BT_DOCS_LINK}/errors/custom"
                )
            else:
                err_description = err_data

        elif (
            error_message.get("type")
            and error_message.get("name")
            and error_message.get("docs")
        ):
            err_type = error_message.get("type", err_type)
            err_name = error_message.get("name", err_name)
            err_docs = error_message.get("docs", [err_description])
            err_description = " ".join(err_docs)
            err_description += (
                f" | Please consult {BT_DOCS_LINK}/errors/subtensor#{err_name.lower()}"
            )

        elif error_message.get("code") and error_message.get("message"):
            err_type = error_message.get("code", err_name)
            err_name = "Custom type"
            err_description = error_message.get("message", err_description)

        else:
            print_error(
                f"String representation of real error_message: {str(error_message)}"
            )

    return f"Subtensor returned `{err_name}({err_type})` error. This means: `{err_description}`."


def validate_chain_endpoint(endpoint_url) -> tuple[bool, str]:
    parsed = urlparse(endpoint_url)
    if parsed.scheme not in ("ws", "wss"):
        return False, (
            f"Invalid URL or network name provided: [bright_cyan]({endpoint_url})[/bright_cyan].\n"
            f"Allowed network names are [bright_cyan]{', '.join(Constants.networks)}[/bright_cyan]. "
            "Valid chain endpoints should use the scheme [bright_cyan]`ws` or `wss`[/bright_cyan].\n"
        )
    if not parsed.netloc:
        return False, "Invalid URL passed as the endpoint"
    return True, ""


def validate_evm_endpoint(endpoint_url) -> tuple[bool, str]:
    parsed = urlparse(endpoint_url)
    if parsed.scheme not in ("http", "https"):
        return False, (
            f"Invalid EVM RPC URL provided: [bright_cyan]({endpoint_url})[/bright_cyan].\n"
            "The Ethereum JSON-RPC endpoint should use the scheme [bright_cyan]`http` or `https`[/bright_cyan].\n"
        )
    if not parsed.netloc:
        return False, "Invalid URL passed as the EVM endpoint"
    return True, ""


def load_config(path: Optional[str] = None) -> dict[str, Any]:
    """
    Loads the config, layering (lowest to highest precedence) the defaults, the YAML config file, and the
    `SUBTENSOR_WS_URL`, `SUBTENSOR_EVM_RPC_URL` and `SUDO_URI` environment variables.

    The config file is read from `path`, `SUBTENSOR_EVM_CONFIG_PATH`, or `~/.bittensor/evm-tests.yml`. A missing
    file is not an error.
    """
    config = dict(defaults.config.dictionary)
    config_path = os.path.expanduser(
        path or os.getenv("SUBTENSOR_EVM_CONFIG_PATH") or defaults.config.path
    )
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            file_config = safe_load(f) or {}
        for key, value in file_config.items():
            if key in config:
                config[key] = value
            else:
                print_verbose(f"Ignoring unknown config key '{key}' in {config_path}")
    for key, env_var in (
        ("network", "SUBTENSOR_WS_URL"),
        ("evm_rpc", "SUBTENSOR_EVM_RPC_URL"),
        ("sudo_uri", "SUDO_URI"),
    ):
        if value := os.getenv(env_var):
            config[key] = value
    return config


def get_evm_rpc(network: str, evm_rpc: Optional[str] = None) -> str:
    """
    Picks the Ethereum RPC matching a network name or chain endpoint. A `ws(s)://` chain endpoint maps onto the same
    host and port over `http(s)://`, which is where a subtensor node serves Frontier's RPC.
    """
    if evm_rpc:
        return evm_rpc
    if network in Constants.evm_rpc_map:
        return Constants.evm_rpc_map[network]
    parsed = urlparse(network)
    if parsed.scheme in ("ws", "wss") and parsed.netloc:
        scheme = "https" if parsed.scheme == "wss" else "http"
        return parsed._replace(scheme=scheme).geturl()
    return Constants.evm_rpc_map[defaults.subtensor.network]


def string_to_bool(val) -> Union[bool, Type[ValueError]]:
    try:
        return {"true": True, "1": True, "0": False, "false": False}[val.lower()]
    except KeyError:
        return ValueError


def parse_hyperparameter_value(
    hyperparam: Hyperparameter, value: str
) -> HyperparamValue:
    """
    Parses a user-supplied string into the value type of the hyperparameter.

    :raises ValueError: when the string does not fit the hyperparameter's kind.
    """
    if hyperparam.kind == ValueKind.BOOL:
        parsed = string_to_bool(value)
        if parsed is ValueError:
            raise ValueError(f"{hyperparam.name} expects a boolean, got '{value}'")
        return parsed
    if hyperparam.kind == ValueKind.PAIR:
        parts = [x.strip() for x in value.split(",")]
        if len(parts) != 2:
            raise ValueError(
                f"{hyperparam.name} expects two comma-separated integers, got '{value}'"
            )
        return int(parts[0]), int(parts[1])
    return int(value)


def coerce_value(kind: ValueKind, raw: Any) -> Optional[HyperparamValue]:
    """
    Normalises a raw value, returned either by the precompile getter or by a storage query, so both paths compare
    equal when they hold the same hyperparameter.
    """
    if raw is None:
        return None
    if kind == ValueKind.BOOL:
        return bool(raw)
    if kind == ValueKind.PAIR:
        low, high = raw
        return int(low), int(high)
    return int(raw)
