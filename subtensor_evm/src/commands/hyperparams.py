import asyncio
import json
from dataclasses import dataclass, asdict
from typing import TYPE_CHECKING, Optional, Union

from bittensor_wallet import Keypair
from rich import box
from rich.table import Column, Table

from subtensor_evm.src import (
    HYPERPARAMS,
    COLOR_PALETTE,
    Hyperparameter,
    HyperparamValue,
    SubnetIdentity,
)
from subtensor_evm.src.bittensor.utils import (
    coerce_value,
    console,
    json_console,
    print_error,
    print_verbose,
)

if TYPE_CHECKING:
    from subtensor_evm.src.bittensor.evm_interface import SubnetPrecompile
    from subtensor_evm.src.bittensor.subtensor_interface import SubtensorInterface


@dataclass
class ParityResult:
    """A hyperparameter as seen through the precompile getter and through chain storage."""

    name: str
    netuid: int
    contract_value: Optional[HyperparamValue]
    chain_value: Optional[HyperparamValue]
    expected: Optional[HyperparamValue] = None

    @property
    def matches(self) -> bool:
        return self.contract_value is not None and self.contract_value == self.chain_value

    @property
    def ok(self) -> bool:
        if self.expected is None:
            return self.matches
        return self.matches and self.contract_value == self.expected

    def describe(self) -> str:
        return (
            f"{self.name} on subnet {self.netuid}: contract={self.contract_value!r} "
            f"chain={self.chain_value!r} expected={self.expected!r}"
        )

    def to_dict(self) -> dict:
        out = asdict(self)
        out["matches"] = self.matches
        return out


async def resolve_value(
    subtensor: "SubtensorInterface", hyperparam: Hyperparameter
) -> HyperparamValue:
    """
    The value a check should set. Hyperparameters with a floor use one above the chain's current floor, since
    anything at or below it is rejected by the pallet.
    """
    if hyperparam.floor_storage is not None:
        return await subtensor.get_global_value(hyperparam.floor_storage) + 1
    return hyperparam.value


async def check_parity(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    hyperparam: Hyperparameter,
    netuid: int,
    expected: Optional[HyperparamValue] = None,
) -> ParityResult:
    """Reads a hyperparameter through the precompile getter and the storage query, concurrently."""
    contract_value, chain_raw = await asyncio.gather(
        precompile.get_hyperparameter(hyperparam, netuid),
        subtensor.get_hyperparameter(hyperparam.storage_function, netuid),
    )
    return ParityResult(
        name=hyperparam.name,
        netuid=netuid,
        contract_value=contract_value,
        chain_value=coerce_value(hyperparam.kind, chain_raw),
        expected=expected,
    )


async def ensure_prerequisites(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    hyperparam: Hyperparameter,
    netuid: int,
) -> tuple[bool, str]:
    """
    Brings every prerequisite of `hyperparam` to its required value through the precompile. Prerequisites already
    holding on chain are left untouched, so their own rate limits are not hit.
    """
    for name, required in hyperparam.prerequisites:
        prerequisite = HYPERPARAMS[name]
        current = coerce_value(
            prerequisite.kind,
            await subtensor.get_hyperparameter(prerequisite.storage_function, netuid),
        )
        if current == required:
            continue
        print_verbose(f"Setting prerequisite {name}={required} for {hyperparam.name}")
        success, err_msg, _ = await precompile.set_hyperparameter(
            prerequisite, netuid, required
        )
        if not success:
            return False, f"Unable to set prerequisite {name}: {err_msg}"
    return True, ""


async def set_and_verify(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    hyperparam: Hyperparameter,
    netuid: int,
    value: Optional[HyperparamValue] = None,
) -> tuple[bool, str, Optional[ParityResult]]:
    """
    Sets a hyperparameter through the precompile and reads it back through both paths.

    :param value: value to set, defaults to the table value of the hyperparameter (see `resolve_value`)

    :return: (success, error message, parity of the two read paths after the transaction)
    """
    if value is None:
        value = await resolve_value(subtensor, hyperparam)
    success, err_msg = await ensure_prerequisites(
        subtensor, precompile, hyperparam, netuid
    )
    if not success:
        return False, err_msg, None
    success, err_msg, _ = await precompile.set_hyperparameter(hyperparam, netuid, value)
    if not success:
        return False, err_msg, None
    result = await check_parity(subtensor, precompile, hyperparam, netuid, value)
    if not result.ok:
        return False, f"Mismatch for {result.describe()}", result
    return True, "", result


async def register_network(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    hotkey: Union[str, bytes, Keypair],
    identity: Optional[SubnetIdentity] = None,
) -> tuple[bool, str, Optional[int]]:
    """
    Registers a subnet through the precompile and checks the network count grew by one.

    :return: (success, error message, netuid of the new subnet)
    """
    total_before = await subtensor.get_total_networks()
    success, err_msg, _ = await precompile.register_network(hotkey, identity)
    if not success:
        return False, err_msg, None
    total_after = await subtensor.get_total_networks()
    if total_after != total_before + 1:
        return (
            False,
            f"Expected {total_before + 1} networks after registration, chain reports {total_after}",
            None,
        )
    return True, "", total_after - 1


async def get_hyperparameters_parity(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    netuid: int,
    json_output: bool = False,
) -> bool:
    """View every hyperparameter of a subnet through both the precompile and chain storage."""
    print_verbose("Fetching hyperparameters")
    if not await subtensor.subnet_exists(netuid):
        print_error(f"Subnet with netuid {netuid} does not exist.")
        return False
    results = await asyncio.gather(
        *(
            check_parity(subtensor, precompile, hp, netuid)
            for hp in HYPERPARAMS.values()
        )
    )

    table = Table(
        Column("[white]HYPERPARAMETER", style=COLOR_PALETTE.SU.HYPERPARAMETER),
        Column("[white]CONTRACT", style=COLOR_PALETTE.SU.VALUE),
        Column("[white]CHAIN", style=COLOR_PALETTE.SU.VALUE),
        Column("[white]MATCH"),
        Column("[white]OWNER SETTABLE"),
        title=f"[{COLOR_PALETTE.G.HEADER}]\nSubnet Precompile Hyperparameters\n NETUID: "
        f"[{COLOR_PALETTE.G.SUBHEAD}]{netuid}[/{COLOR_PALETTE.G.SUBHEAD}]"
        f" - Network: [{COLOR_PALETTE.G.SUBHEAD}]{subtensor.network}[/{COLOR_PALETTE.G.SUBHEAD}]\n",
        show_footer=True,
        width=None,
        pad_edge=False,
        box=box.SIMPLE,
        show_edge=True,
    )
    dict_out = []
    for result in sorted(results, key=lambda x: x.name):
        owner_settable = HYPERPARAMS[result.name].owner_settable
        if json_output:
            dict_out.append(dict(result.to_dict(), owner_settable=owner_settable))
        else:
            match = (
                f"[{COLOR_PALETTE.G.SUCCESS}]yes[/{COLOR_PALETTE.G.SUCCESS}]"
                if result.matches
                else f"[{COLOR_PALETTE.SU.MISMATCH}]no[/{COLOR_PALETTE.SU.MISMATCH}]"
            )
            table.add_row(
                "  " + result.name,
                str(result.contract_value),
                str(result.chain_value),
                match,
                str(owner_settable),
            )
    if json_output:
        json_console.print(json.dumps(dict_out))
    else:
        console.print(table)
    return all(result.matches for result in results)


def allowed_value(
    hyperparam: Hyperparameter, value: HyperparamValue
) -> tuple[bool, str]:
    """
    Check the allowed values on hyperparameters. Return False if value is out of bounds.

    Reminder error message ends like:  Value is {value} but must be {error_message}.
    """
    if hyperparam.name == "alpha_values":
        alpha_low, alpha_high = value
        if alpha_high <= 52428 or alpha_high >= 65535:
            return (
                False,
                f"between 52428 and 65535 for alpha_high (but is {alpha_high})",
            )
        if alpha_low < 0 or alpha_low > 52428:
            return (
                False,
                f"between 0 and 52428 for alpha_low (but is {alpha_low})",
            )
    return True, ""


async def sudo_set_hyperparameter(
    subtensor: "SubtensorInterface",
    precompile: "SubnetPrecompile",
    hyperparam: Hyperparameter,
    netuid: int,
    value: HyperparamValue,
    sudo_keypair: Keypair,
    json_output: bool = False,
) -> bool:
    """
    Sets a hyperparameter with the root origin (local chains only), then reports what both read paths return.
    """
    is_allowed, error_message = allowed_value(hyperparam, value)
    if not is_allowed:
        print_error(f"Value is {value} but must be {error_message}")
        return False
    if not await subtensor.subnet_exists(netuid):
        print_error(f"Subnet with netuid {netuid} does not exist.")
        return False

    success, err_msg = await subtensor.sudo_set_hyperparameter(
        hyperparam, netuid, value, sudo_keypair
    )
    result = None
    if success:
        result = await check_parity(subtensor, precompile, hyperparam, netuid, value)
        if not result.ok:
            success, err_msg = False, f"Mismatch for {result.describe()}"

    if json_output:
        json_console.print(
            json.dumps(
                {
                    "success": success,
                    "error": err_msg,
                    "result": result.to_dict() if result else None,
                }
            )
        )
    elif success:
        console.print(
            f":white_heavy_check_mark: [dark_sea_green3]Hyperparameter {hyperparam.name} set to {value}, "
            f"precompile and chain agree[/dark_sea_green3]"
        )
    else:
        print_error(err_msg)
    return success
