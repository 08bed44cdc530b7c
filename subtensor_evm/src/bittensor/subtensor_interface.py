from typing import Optional, Any, Union

from async_substrate_interface import AsyncExtrinsicReceipt
from async_substrate_interface.async_substrate import AsyncSubstrateInterface
from async_substrate_interface.errors import SubstrateRequestException
from bittensor_wallet import Keypair
from bittensor_wallet.utils import SS58_FORMAT
import typer

from subtensor_evm.src import (
    Constants,
    defaults,
    TYPE_REGISTRY,
    Hyperparameter,
    HyperparamValue,
    ValueKind,
)
from subtensor_evm.src.bittensor.utils import (
    format_error_message,
    console,
    err_console,
    print_error,
    print_verbose,
    validate_chain_endpoint,
)

SUBTENSOR_MODULE = "SubtensorModule"
DEFAULT_PALLET = "AdminUtils"


class SubtensorInterface:
    """
    Thin layer for interacting with Substrate Interface. Mostly the storage reads and sudo calls the precompile
    checks need.
    """

    def __init__(self, network: str):
        if network in Constants.network_map:
            self.chain_endpoint = Constants.network_map[network]
            self.network = network
        else:
            is_valid, _ = validate_chain_endpoint(network)
            if is_valid:
                self.chain_endpoint = network
                if network in Constants.network_map.values():
                    self.network = next(
                        key
                        for key, value in Constants.network_map.items()
                        if value == network
                    )
                else:
                    self.network = "custom"
            else:
                console.log(
                    f"Network not specified or not valid. Using default chain endpoint: "
                    f"{Constants.network_map[defaults.subtensor.network]}.\n"
                    f"You can set this with the `--network` flag, or the SUBTENSOR_WS_URL environment variable."
                    f" If you're sure you're using the correct URL, ensure it begins with 'ws://' or 'wss://'"
                )
                self.chain_endpoint = Constants.network_map[defaults.subtensor.network]
                self.network = defaults.subtensor.network
        self.substrate = AsyncSubstrateInterface(
            url=self.chain_endpoint,
            ss58_format=SS58_FORMAT,
            type_registry=TYPE_REGISTRY,
            chain_name="Bittensor",
        )

    def __str__(self):
        return f"Network: {self.network}, Chain: {self.chain_endpoint}"

    async def __aenter__(self):
        with console.status(
            f"[yellow]Connecting to Substrate:[/yellow][bold white] {self}..."
        ):
            try:
                await self.substrate.initialize()
                return self
            except TimeoutError:
                err_console.print(
                    "\n[red]Error[/red]: Timeout occurred connecting to substrate. "
                    f"Verify your chain and network settings: {self}"
                )
                raise typer.Exit(code=1)

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.substrate.close()

    async def query(
        self,
        module: str,
        storage_function: str,
        params: Optional[list] = None,
        block_hash: Optional[str] = None,
        reuse_block_hash: bool = False,
    ) -> Any:
        """
        Pass-through to substrate.query which automatically returns the .value if it's a ScaleObj
        """
        result = await self.substrate.query(
            module=module,
            storage_function=storage_function,
            params=params,
            block_hash=block_hash,
            reuse_block_hash=reuse_block_hash,
        )
        if hasattr(result, "value"):
            return result.value
        else:
            return result

    async def get_total_networks(self, block_hash: Optional[str] = None) -> int:
        """Number of subnets ever added, root included."""
        result = await self.query(
            module=SUBTENSOR_MODULE,
            storage_function="TotalNetworks",
            block_hash=block_hash,
        )
        return int(result or 0)

    async def subnet_exists(
        self, netuid: int, block_hash: Optional[str] = None, reuse_block: bool = False
    ) -> bool:
        """
        Checks if a subnet with the specified unique identifier (netuid) exists.

        :param netuid: The unique identifier of the subnet.
        :param block_hash: The hash of the blockchain block number at which to check the subnet existence.
        :param reuse_block: Whether to reuse the last-used block hash.

        :return: `True` if the subnet exists, `False` otherwise.
        """
        result = await self.query(
            module=SUBTENSOR_MODULE,
            storage_function="NetworksAdded",
            params=[netuid],
            block_hash=block_hash,
            reuse_block_hash=reuse_block,
        )
        return bool(result)

    async def get_hyperparameter(
        self,
        param_name: str,
        netuid: int,
        block_hash: Optional[str] = None,
        reuse_block: bool = False,
    ) -> Optional[Any]:
        """
        Retrieves a specified hyperparameter for a specific subnet, straight from SubtensorModule storage.

        :param param_name: The storage item holding the hyperparameter, e.g. `ServingRateLimit`.
        :param netuid: The unique identifier of the subnet.
        :param block_hash: The hash of blockchain block number for the query.
        :param reuse_block: Whether to reuse the last-used block hash.

        :return: The value of the specified hyperparameter if the subnet exists, or None
        """
        if not await self.subnet_exists(netuid, block_hash, reuse_block):
            print_error(f"Subnet with netuid {netuid} does not exist.")
            return None

        return await self.query(
            module=SUBTENSOR_MODULE,
            storage_function=param_name,
            params=[netuid],
            block_hash=block_hash,
            reuse_block_hash=reuse_block,
        )

    async def get_global_value(
        self, storage_function: str, block_hash: Optional[str] = None
    ) -> int:
        """A SubtensorModule storage item that is not keyed by netuid, e.g. `MinActivityCutoff`."""
        result = await self.query(
            module=SUBTENSOR_MODULE,
            storage_function=storage_function,
            block_hash=block_hash,
        )
        return int(result)

    async def get_balance(self, ss58_address: str) -> int:
        """Free balance of an account, in rao."""
        result = await self.query(
            module="System",
            storage_function="Account",
            params=[ss58_address],
        )
        return int(result["data"]["free"])

    async def sign_and_send_extrinsic(
        self,
        call,
        keypair: Keypair,
        wait_for_inclusion: bool = True,
        wait_for_finalization: bool = True,
        era: Optional[dict[str, int]] = None,
    ) -> tuple[bool, str, Optional[AsyncExtrinsicReceipt]]:
        """
        Helper method to sign and submit an extrinsic call to chain.

        :param call: a prepared Call object
        :param keypair: the keypair used to sign the extrinsic
        :param wait_for_inclusion: whether to wait until the extrinsic call is included on the chain
        :param wait_for_finalization: whether to wait until the extrinsic call is finalized on the chain
        :param era: The length (in blocks) for which a transaction should be valid.

        :return: (success, error message, receipt)
        """
        call_args: dict[str, Any] = {"call": call, "keypair": keypair}
        if era is not None:
            call_args["era"] = era
        extrinsic = await self.substrate.create_signed_extrinsic(**call_args)
        try:
            response = await self.substrate.submit_extrinsic(
                extrinsic,
                wait_for_inclusion=wait_for_inclusion,
                wait_for_finalization=wait_for_finalization,
            )
            # We only wait here if we expect finalization.
            if not wait_for_finalization and not wait_for_inclusion:
                return True, "", response
            if await response.is_success:
                return True, "", response
            else:
                return False, format_error_message(await response.error_message), None
        except SubstrateRequestException as e:
            return False, format_error_message(e), None

    async def sudo_call_extrinsic(
        self,
        call_module: str,
        call_function: str,
        call_params: dict[str, Any],
        sudo_keypair: Keypair,
    ) -> tuple[bool, str, Optional[AsyncExtrinsicReceipt]]:
        """
        Wraps a call in `Sudo.sudo` and submits it, signed by the sudo key, waiting for finalization.

        :raises ValueError: if the call does not exist in the chain's metadata.
        """
        inner_call = await self.substrate.compose_call(
            call_module=call_module,
            call_function=call_function,
            call_params=call_params,
        )
        sudo_call = await self.substrate.compose_call(
            call_module="Sudo",
            call_function="sudo",
            call_params={"call": inner_call},
        )
        return await self.sign_and_send_extrinsic(sudo_call, sudo_keypair)

    async def force_set_balance(
        self, ss58_address: str, amount_rao: int, sudo_keypair: Keypair
    ) -> tuple[bool, str]:
        """
        Sets the free balance of an account. Only available to the sudo key, so only usable on local/dev chains.
        """
        with console.status(
            f":satellite: Funding [white]{ss58_address}[/white] on {self}...",
            spinner="earth",
        ):
            success, err_msg, _ = await self.sudo_call_extrinsic(
                call_module="Balances",
                call_function="force_set_balance",
                call_params={"who": ss58_address, "new_free": amount_rao},
                sudo_keypair=sudo_keypair,
            )
        if success:
            print_verbose(f"Set balance of {ss58_address} to {amount_rao} rao")
        return success, err_msg

    async def turn_off_hyperparam_freeze_window(
        self, sudo_keypair: Keypair
    ) -> tuple[bool, str]:
        """
        Sets the admin freeze window to zero blocks, so owner hyperparameter changes are accepted at any point of the
        tempo.

        :raises ValueError: on runtimes without `sudo_set_admin_freeze_window`.
        """
        success, err_msg, _ = await self.sudo_call_extrinsic(
            call_module=DEFAULT_PALLET,
            call_function="sudo_set_admin_freeze_window",
            call_params={"window": 0},
            sudo_keypair=sudo_keypair,
        )
        return success, err_msg

    async def sudo_set_hyperparameter(
        self,
        hyperparam: Hyperparameter,
        netuid: int,
        value: HyperparamValue,
        sudo_keypair: Keypair,
    ) -> tuple[bool, str]:
        """
        Sets a hyperparameter through AdminUtils with the root origin. Unlike the precompile path this works for
        root-only hyperparameters too.
        """
        found, call_params = search_metadata(
            hyperparam.admin_extrinsic,
            hyperparam.kind,
            value,
            netuid,
            self.substrate.metadata,
        )
        if not found:
            return (
                False,
                f"{hyperparam.admin_extrinsic} is not a per-subnet call of {DEFAULT_PALLET} on this chain",
            )
        with console.status(
            f":satellite: Setting hyperparameter [white]{hyperparam.name}[/white] to [white]{value}[/white] "
            f"on subnet [white]{netuid}[/white] ...",
            spinner="earth",
        ):
            success, err_msg, _ = await self.sudo_call_extrinsic(
                call_module=DEFAULT_PALLET,
                call_function=hyperparam.admin_extrinsic,
                call_params=call_params,
                sudo_keypair=sudo_keypair,
            )
        return success, err_msg


def search_metadata(
    call_name: str,
    kind: ValueKind,
    value: HyperparamValue,
    netuid: int,
    metadata,
    pallet_name: str = DEFAULT_PALLET,
) -> tuple[bool, Optional[dict]]:
    """
    Searches the substrate metadata AdminUtils pallet for a given call. Crafts a response dict to be used
        as call parameters for setting this hyperparameter.

    Args:
        call_name: the AdminUtils call setting the hyperparameter
        kind: the kind of value the hyperparameter holds
        value: the value to set, a 2-tuple for pair hyperparameters
        netuid: the specified netuid
        metadata: the subtensor.substrate.metadata
        pallet_name: the name of the module to use for the query. If not set, the default value is DEFAULT_PALLET

    Returns:
        (success, dict of call params)

    """
    values = list(value) if kind == ValueKind.PAIR else [value]
    call_crafter: dict[str, Union[int, bool]] = {"netuid": netuid}

    pallet = metadata.get_metadata_pallet(pallet_name)
    for call in pallet.calls:
        if call.name == call_name:
            if "netuid" not in [x.name for x in call.args]:
                return False, None
            call_args = [arg for arg in call.args if arg.value["name"] != "netuid"]
            if len(call_args) != len(values):
                return False, None
            for arg_, val in zip(call_args, values):
                call_crafter[arg_.value["name"]] = val
            return True, call_crafter
    else:
        return False, None
