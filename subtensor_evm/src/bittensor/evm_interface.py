from typing import Optional, Any, Union

from bittensor_wallet import Keypair
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.types import TxReceipt

from subtensor_evm.src import (
    defaults,
    ISUBNET_ADDRESS,
    Hyperparameter,
    HyperparamValue,
    SubnetIdentity,
    ValueKind,
    COLOR_PALETTE,
)
from subtensor_evm.src.bittensor.address_utils import to_bytes32
from subtensor_evm.src.bittensor.subnet_abi import (
    ISUBNET_ABI,
    REGISTER_NETWORK_SIGNATURES,
)
from subtensor_evm.src.bittensor.utils import (
    coerce_value,
    console,
    print_verbose,
    validate_evm_endpoint,
)


def format_evm_error(error: Exception) -> str:
    """Formats a web3 exception raised while building, sending or waiting for a transaction."""
    if isinstance(error, ContractLogicError):
        revert_data = getattr(error, "data", None)
        data = f" (data: {revert_data})" if revert_data else ""
        return f"EVM execution reverted: `{getattr(error, 'message', None) or error}`{data}."
    if isinstance(error, TimeExhausted):
        return f"Timed out waiting for the transaction receipt: {error}"
    return f"Ethereum RPC returned: {error}"


class EvmInterface:
    """
    Async web3 client for the Ethereum RPC served by a subtensor node, optionally bound to a local account used to
    sign transactions.
    """

    def __init__(self, rpc_url: str, account: Optional[LocalAccount] = None):
        is_valid, err_msg = validate_evm_endpoint(rpc_url)
        if not is_valid:
            raise ValueError(err_msg)
        self.rpc_url = rpc_url
        self.account = account
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))

    def __str__(self):
        return f"EVM RPC: {self.rpc_url}"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.w3.provider.disconnect()

    async def get_balance(self, address: Optional[str] = None) -> int:
        """Balance in wei of `address`, or of the bound account."""
        address = address or self.account.address
        return await self.w3.eth.get_balance(to_checksum_address(address))

    async def send_transaction(
        self, contract_function, value: int = 0
    ) -> tuple[bool, str, Optional[TxReceipt]]:
        """
        Builds, signs and sends a contract call, then waits for its receipt.

        :param contract_function: a bound web3 contract function, e.g. `contract.functions.setKappa(1, 2)`
        :param value: wei sent along with the call

        :return: (success, error message, receipt). The receipt is returned for reverted transactions as well.
        """
        if self.account is None:
            return False, "No account is bound to sign the transaction.", None
        try:
            tx = await contract_function.build_transaction(
                {
                    "from": self.account.address,
                    "value": value,
                    "nonce": await self.w3.eth.get_transaction_count(
                        self.account.address, "pending"
                    ),
                    "chainId": await self.w3.eth.chain_id,
                }
            )
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            print_verbose(f"Submitted transaction {tx_hash.hex()}")
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=defaults.evm.receipt_timeout,
                poll_latency=defaults.evm.poll_latency,
            )
        except Web3Exception as e:
            return False, format_evm_error(e), None

        if receipt["status"] != 1:
            return (
                False,
                f"Transaction {receipt['transactionHash'].hex()} reverted in block {receipt['blockNumber']}.",
                receipt,
            )
        return True, "", receipt


class SubnetPrecompile:
    """Binding of the subnet precompile."""

    def __init__(self, evm: EvmInterface, address: str = ISUBNET_ADDRESS):
        self.evm = evm
        self.address = to_checksum_address(address)
        self.contract = evm.w3.eth.contract(address=self.address, abi=ISUBNET_ABI)

    def __str__(self):
        return f"SubnetPrecompile({self.address}, {self.evm})"

    async def register_network(
        self,
        hotkey: Union[str, bytes, Keypair],
        identity: Optional[SubnetIdentity] = None,
    ) -> tuple[bool, str, Optional[TxReceipt]]:
        """
        Registers a new subnet owned by the signing account. The overload is picked from the identity: none, an
        identity without a logo URL, or a full identity.
        """
        args: list[Any] = [to_bytes32(hotkey)]
        if identity is not None:
            args += identity.as_contract_args()
        signature = REGISTER_NETWORK_SIGNATURES[len(args) - 1]
        contract_function = self.contract.get_function_by_signature(signature)(*args)
        with console.status(
            f":satellite: Registering subnet through [white]{signature}[/white] ...",
            spinner="earth",
        ):
            return await self.evm.send_transaction(contract_function)

    async def set_hyperparameter(
        self, hyperparam: Hyperparameter, netuid: int, value: HyperparamValue
    ) -> tuple[bool, str, Optional[TxReceipt]]:
        if hyperparam.kind == ValueKind.PAIR:
            args = [netuid, *value]
        else:
            args = [netuid, value]
        contract_function = self.contract.get_function_by_name(hyperparam.setter)(
            *args
        )
        with console.status(
            f":satellite: Setting hyperparameter [{COLOR_PALETTE.SU.HYPERPARAM}]{hyperparam.name}"
            f"[/{COLOR_PALETTE.SU.HYPERPARAM}] to [{COLOR_PALETTE.SU.VALUE}]{value}[/{COLOR_PALETTE.SU.VALUE}] on "
            f"subnet [{COLOR_PALETTE.G.NETUID}]{netuid}[/{COLOR_PALETTE.G.NETUID}] ...",
            spinner="earth",
        ):
            return await self.evm.send_transaction(contract_function)

    async def get_hyperparameter(
        self, hyperparam: Hyperparameter, netuid: int
    ) -> Optional[HyperparamValue]:
        raw = await self.contract.get_function_by_name(hyperparam.getter)(
            netuid
        ).call()
        return coerce_value(hyperparam.kind, raw)
