from collections import namedtuple
from typing import Optional

from bittensor_wallet import Keypair
from eth_account.signers.local import LocalAccount

from subtensor_evm.src import Hyperparameter, SubnetIdentity
from subtensor_evm.src.bittensor.address_utils import h160_to_ss58
from subtensor_evm.src.bittensor.evm_interface import EvmInterface, SubnetPrecompile
from subtensor_evm.src.bittensor.subtensor_interface import SubtensorInterface
from subtensor_evm.src.commands.faucet import fund_accounts
from subtensor_evm.src.commands.hyperparams import (
    ParityResult,
    check_parity,
    register_network,
    set_and_verify,
)

LocalChain = namedtuple("LocalChain", ["ws_url", "evm_rpc_url"])

FundedAccounts = namedtuple("FundedAccounts", ["evm", "hotkey1", "hotkey2"])

IDENTITY = SubnetIdentity(
    subnet_name="name",
    github_repo="repo",
    subnet_contact="contact",
    subnet_url="subnetUrl",
    discord="discord",
    description="description",
    additional="additional",
)

IDENTITY_WITH_LOGO = SubnetIdentity(
    subnet_name="name",
    github_repo="repo",
    subnet_contact="contact",
    subnet_url="subnetUrl",
    discord="discord",
    description="description",
    additional="additional",
    logo_url="logoUrl",
)


async def fund_test_accounts(
    chain: LocalChain, accounts: FundedAccounts, sudo_keypair: Keypair
) -> tuple[bool, str]:
    async with SubtensorInterface(chain.ws_url) as subtensor:
        return await fund_accounts(
            subtensor,
            [
                accounts.hotkey1.ss58_address,
                accounts.hotkey2.ss58_address,
                accounts.evm.address,
            ],
            sudo_keypair,
        )


async def turn_off_hyperparam_freeze_window(
    chain: LocalChain, sudo_keypair: Keypair
) -> tuple[bool, str]:
    async with SubtensorInterface(chain.ws_url) as subtensor:
        return await subtensor.turn_off_hyperparam_freeze_window(sudo_keypair)


async def register_subnet(
    chain: LocalChain,
    evm_account: LocalAccount,
    hotkey: Keypair,
    identity: Optional[SubnetIdentity] = None,
) -> tuple[bool, str, Optional[int]]:
    async with SubtensorInterface(chain.ws_url) as subtensor, EvmInterface(
        chain.evm_rpc_url, evm_account
    ) as evm:
        return await register_network(
            subtensor, SubnetPrecompile(evm), hotkey, identity
        )


async def get_total_networks(chain: LocalChain) -> int:
    async with SubtensorInterface(chain.ws_url) as subtensor:
        return await subtensor.get_total_networks()


async def get_subnet_owner(chain: LocalChain, netuid: int) -> Optional[str]:
    async with SubtensorInterface(chain.ws_url) as subtensor:
        return await subtensor.query(
            module="SubtensorModule", storage_function="SubnetOwner", params=[netuid]
        )


async def set_and_verify_hyperparameter(
    chain: LocalChain, evm_account: LocalAccount, hyperparam: Hyperparameter, netuid: int
) -> tuple[bool, str, Optional[ParityResult]]:
    async with SubtensorInterface(chain.ws_url) as subtensor, EvmInterface(
        chain.evm_rpc_url, evm_account
    ) as evm:
        return await set_and_verify(
            subtensor, SubnetPrecompile(evm), hyperparam, netuid
        )


async def read_hyperparameter(
    chain: LocalChain, hyperparam: Hyperparameter, netuid: int
) -> ParityResult:
    async with SubtensorInterface(chain.ws_url) as subtensor, EvmInterface(
        chain.evm_rpc_url
    ) as evm:
        return await check_parity(
            subtensor, SubnetPrecompile(evm), hyperparam, netuid
        )


async def get_balances(chain: LocalChain, evm_address: str) -> tuple[int, int]:
    """Balance of an EVM account as seen by the EVM RPC (wei) and by its mirrored substrate account (rao)."""
    async with SubtensorInterface(chain.ws_url) as subtensor, EvmInterface(
        chain.evm_rpc_url
    ) as evm:
        return await evm.get_balance(evm_address), await subtensor.get_balance(
            h160_to_ss58(evm_address)
        )
