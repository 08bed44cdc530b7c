import json
from typing import TYPE_CHECKING, Iterable, Optional

from bittensor_wallet import Keypair

from subtensor_evm.src import defaults
from subtensor_evm.src.bittensor.address_utils import h160_to_ss58, is_evm_address
from subtensor_evm.src.bittensor.utils import (
    console,
    json_console,
    print_error,
    tao_to_rao,
)

if TYPE_CHECKING:
    from subtensor_evm.src.bittensor.subtensor_interface import SubtensorInterface


def resolve_substrate_address(address: str) -> str:
    """An H160 address funds its mirrored substrate account; an ss58 address is used as is."""
    if is_evm_address(address):
        return h160_to_ss58(address)
    return address


async def fund_accounts(
    subtensor: "SubtensorInterface",
    addresses: Iterable[str],
    sudo_keypair: Keypair,
    amount_tao: float = defaults.faucet.amount_tao,
) -> tuple[bool, str]:
    """
    Force-sets the free balance of each address, stopping at the first failure.

    :param addresses: ss58 or H160 addresses
    """
    amount_rao = tao_to_rao(amount_tao)
    for address in addresses:
        ss58_address = resolve_substrate_address(address)
        success, err_msg = await subtensor.force_set_balance(
            ss58_address, amount_rao, sudo_keypair
        )
        if not success:
            return False, f"Unable to fund {address}: {err_msg}"
    return True, ""


async def fund(
    subtensor: "SubtensorInterface",
    address: str,
    sudo_keypair: Keypair,
    amount_tao: Optional[float] = None,
    json_output: bool = False,
) -> bool:
    if amount_tao is None:
        amount_tao = defaults.faucet.amount_tao
    success, err_msg = await fund_accounts(
        subtensor, [address], sudo_keypair, amount_tao
    )
    ss58_address = resolve_substrate_address(address)
    if json_output:
        json_console.print(
            json.dumps(
                {
                    "success": success,
                    "error": err_msg,
                    "address": address,
                    "ss58_address": ss58_address,
                    "amount_tao": amount_tao,
                }
            )
        )
    elif success:
        console.print(
            f":white_heavy_check_mark: [dark_sea_green3]Set balance of {ss58_address} to {amount_tao} τ"
            f"[/dark_sea_green3]"
        )
    else:
        print_error(err_msg)
    return success
