#!/usr/bin/env python3
import asyncio
import ssl
import traceback
from typing import Coroutine, Optional

import typer
from async_substrate_interface.errors import (
    SubstrateRequestException,
    ConnectionClosed,
    InvalidHandshake,
)
from typing_extensions import Annotated

from subtensor_evm.src import defaults, HYPERPARAMS, COLORS
from subtensor_evm.src.bittensor.evm_interface import EvmInterface, SubnetPrecompile
from subtensor_evm.src.bittensor.subtensor_interface import SubtensorInterface
from subtensor_evm.src.bittensor.utils import (
    console,
    err_console,
    verbose_console,
    json_console,
    get_evm_rpc,
    load_config,
    parse_hyperparameter_value,
)
from subtensor_evm.src.bittensor.wallets import get_keypair_from_uri
from subtensor_evm.src.commands import faucet, hyperparams as hyperparams_cmds
from subtensor_evm.version import __version__

_epilog = "Made with [bold red]:heart:[/bold red] by The Openτensor Foundaτion"


def arg__(arg_name: str) -> str:
    """
    Helper function to 'arg' format a string for rich console
    """
    return f"[{COLORS.G.HINT}]{arg_name}[/{COLORS.G.HINT}]"


class Options:
    """
    Re-usable typer args
    """

    network = typer.Option(
        None,
        "--network",
        "--subtensor.network",
        "--chain",
        "--subtensor.chain_endpoint",
        help="The subtensor network to connect to: a network name (local, test, finney) or a ws(s):// endpoint.",
        show_default=False,
    )
    evm_rpc = typer.Option(
        None,
        "--evm-rpc",
        "--evm.rpc",
        help="Ethereum JSON-RPC endpoint of the node. Derived from --network when not given.",
        show_default=False,
    )
    netuid = typer.Option(
        None,
        "--netuid",
        help="Netuid of the subnet.",
        prompt="Enter the netuid",
    )
    quiet = typer.Option(
        False,
        "--quiet",
        help="Display only critical information on the console.",
    )
    verbose = typer.Option(
        False,
        "--verbose",
        help="Enable verbose output.",
    )
    json_output = typer.Option(
        False,
        "--json-output",
        "--json-out",
        help="Outputs the result of the command as JSON.",
    )
    sudo_uri = typer.Option(
        None,
        "--sudo-uri",
        help="URI of the sudo key, e.g. //Alice. Local chains only.",
        show_default=False,
    )


def verbosity_console_handler(verbosity_level: int = 1) -> None:
    """
    Sets verbosity level of console output
    :param verbosity_level: int corresponding to verbosity level of console output (0 is quiet, 1 is normal, 2 is
        verbose)
    """
    if verbosity_level not in range(4):
        raise ValueError(
            f"Invalid verbosity level: {verbosity_level}. "
            f"Must be one of: 0 (quiet + json output), 1 (normal), 2 (verbose), 3 (json output + verbose)"
        )
    if verbosity_level == 0:
        console.quiet = True
        err_console.quiet = True
        verbose_console.quiet = True
        json_console.quiet = False
    elif verbosity_level == 1:
        console.quiet = False
        err_console.quiet = False
        verbose_console.quiet = True
        json_console.quiet = True
    elif verbosity_level == 2:
        console.quiet = False
        err_console.quiet = False
        verbose_console.quiet = False
        json_console.quiet = True
    elif verbosity_level == 3:
        console.quiet = True
        err_console.quiet = True
        verbose_console.quiet = False
        json_console.quiet = False


def version_callback(value: bool):
    """
    Prints the current version/branch-name
    """
    if value:
        typer.echo(f"subtensor-evm version: {__version__}")
        raise typer.Exit()


class CLIManager:
    """
    :var app: the main CLI Typer app
    """

    def __init__(self):
        self.config = load_config()
        self.app = typer.Typer(
            rich_markup_mode="rich",
            callback=self.main_callback,
            epilog=_epilog,
            no_args_is_help=True,
        )
        self.app.command("hyperparams")(self.hyperparams)
        self.app.command("fund")(self.fund)
        self.app.command("sudo-set")(self.sudo_set)

    def _run_command(self, cmd: Coroutine):
        """
        Runs the supplied coroutine with `asyncio.run`
        """

        async def _run():
            try:
                return await cmd
            except typer.Exit:
                raise
            except (ConnectionRefusedError, ssl.SSLError, InvalidHandshake):
                err_console.print("Unable to connect to the chain")
                verbose_console.print(traceback.format_exc())
            except (ConnectionClosed, SubstrateRequestException) as e:
                if isinstance(e, SubstrateRequestException):
                    err_console.print(str(e))
                verbose_console.print(traceback.format_exc())
            except Exception as e:
                err_console.print(f"An unknown error has occurred: {e}")
                verbose_console.print(traceback.format_exc())
            raise typer.Exit(code=1)

        result = asyncio.run(_run())
        if result is False:
            raise typer.Exit(code=1)
        return result

    def main_callback(
        self,
        version: Annotated[
            Optional[bool],
            typer.Option(
                "--version", callback=version_callback, help="Show the version"
            ),
        ] = None,
    ):
        """
        Checks the subnet precompile of a subtensor node against the chain's own storage.
        """

    def verbosity_handler(
        self, quiet: bool, verbose: bool, json_output: bool = False
    ) -> None:
        if quiet and verbose:
            err_console.print("Cannot specify both `--quiet` and `--verbose`")
            raise typer.Exit()
        if json_output and verbose:
            verbosity_console_handler(3)
        elif json_output or quiet:
            verbosity_console_handler(0)
        elif verbose:
            verbosity_console_handler(2)
        else:
            verbosity_console_handler(1)

    def _endpoints(
        self, network: Optional[str], evm_rpc: Optional[str]
    ) -> tuple[str, str]:
        network = network or self.config.get("network") or defaults.subtensor.network
        return network, get_evm_rpc(network, evm_rpc or self.config.get("evm_rpc"))

    def _sudo_keypair(self, sudo_uri: Optional[str]):
        return get_keypair_from_uri(
            sudo_uri or self.config.get("sudo_uri") or defaults.faucet.sudo_uri
        )

    def hyperparams(
        self,
        network: Optional[str] = Options.network,
        evm_rpc: Optional[str] = Options.evm_rpc,
        netuid: int = Options.netuid,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
        json_output: bool = Options.json_output,
    ):
        """
        Shows every hyperparameter of a subnet as returned by the subnet precompile and by chain storage, and whether
        the two agree.

        EXAMPLE

        [green]$[/green] btevm hyperparams --netuid 2 --network local
        """
        self.verbosity_handler(quiet, verbose, json_output)
        network, evm_rpc = self._endpoints(network, evm_rpc)

        async def _run():
            async with SubtensorInterface(network) as subtensor, EvmInterface(
                evm_rpc
            ) as evm:
                return await hyperparams_cmds.get_hyperparameters_parity(
                    subtensor, SubnetPrecompile(evm), netuid, json_output
                )

        return self._run_command(_run())

    def fund(
        self,
        address: str = typer.Option(
            ...,
            "--address",
            "--ss58",
            "--h160",
            help="ss58 or H160 address to fund. H160 addresses fund their mirrored account.",
        ),
        amount: Optional[float] = typer.Option(
            None,
            "--amount",
            help=f"Balance to set, in TAO. Defaults to {defaults.faucet.amount_tao}.",
        ),
        network: Optional[str] = Options.network,
        sudo_uri: Optional[str] = Options.sudo_uri,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
        json_output: bool = Options.json_output,
    ):
        """
        Sets the balance of an account with the sudo key. Only works on local chains.

        EXAMPLE

        [green]$[/green] btevm fund --address 0x8f8B1a5fD3bD2d7bE1A1F6C0D8f9Fb3e3b6C9d2A
        """
        self.verbosity_handler(quiet, verbose, json_output)
        network, _ = self._endpoints(network, None)
        sudo_keypair = self._sudo_keypair(sudo_uri)

        async def _run():
            async with SubtensorInterface(network) as subtensor:
                return await faucet.fund(
                    subtensor, address, sudo_keypair, amount, json_output
                )

        return self._run_command(_run())

    def sudo_set(
        self,
        param: str = typer.Option(
            ..., "--param", help=f"One of: {', '.join(HYPERPARAMS)}"
        ),
        value: str = typer.Option(
            ...,
            "--value",
            help="New value. Booleans as true/false, alpha_values as 'low,high'.",
        ),
        network: Optional[str] = Options.network,
        evm_rpc: Optional[str] = Options.evm_rpc,
        netuid: int = Options.netuid,
        sudo_uri: Optional[str] = Options.sudo_uri,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
        json_output: bool = Options.json_output,
    ):
        """
        Sets a hyperparameter with the root origin, including root-only ones, and checks the precompile getter
        reports the new value. Only works on local chains.

        EXAMPLE

        [green]$[/green] btevm sudo-set --netuid 2 --param min_burn --value 1000
        """
        self.verbosity_handler(quiet, verbose, json_output)
        if param not in HYPERPARAMS:
            err_console.print(
                f"Unknown hyperparameter {arg__(param)}. Choose from: {', '.join(HYPERPARAMS)}"
            )
            raise typer.Exit(code=1)
        hyperparam = HYPERPARAMS[param]
        try:
            parsed_value = parse_hyperparameter_value(hyperparam, value)
        except ValueError as e:
            err_console.print(str(e))
            raise typer.Exit(code=1)
        network, evm_rpc = self._endpoints(network, evm_rpc)
        sudo_keypair = self._sudo_keypair(sudo_uri)

        async def _run():
            async with SubtensorInterface(network) as subtensor, EvmInterface(
                evm_rpc
            ) as evm:
                return await hyperparams_cmds.sudo_set_hyperparameter(
                    subtensor,
                    SubnetPrecompile(evm),
                    hyperparam,
                    netuid,
                    parsed_value,
                    sudo_keypair,
                    json_output,
                )

        return self._run_command(_run())

    def run(self):
        self.app()


def main():
    manager = CLIManager()
    manager.run()


if __name__ == "__main__":
    main()
