import hashlib
from typing import Union

from bittensor_wallet import Keypair
from bittensor_wallet.utils import SS58_FORMAT
from eth_utils import is_address, to_bytes, to_checksum_address

from subtensor_evm.src.bittensor.utils import hex_to_bytes

# prefix of the hashed-address mapping used by pallet_evm on subtensor
EVM_ADDRESS_PREFIX = b"evm:"


def h160_to_ss58(evm_address: str, ss58_format: int = SS58_FORMAT) -> str:
    """
    Converts an H160 (Ethereum) address to the ss58 address of the substrate account that mirrors it.

    Funds and origins of an EVM account live in the account whose public key is
    `blake2_256(b"evm:" ++ h160)`, so this is the address to fund or inspect on the substrate side.

    :param evm_address: 0x-prefixed 20 byte hex address, in any letter case.
    :param ss58_format: ss58 prefix of the resulting address.

    :return: ss58 address of the mirrored account.
    """
    if not is_address(evm_address):
        raise ValueError(f"Invalid H160 address: {evm_address}")
    address_bytes = to_bytes(hexstr=to_checksum_address(evm_address))
    public_key = hashlib.blake2b(
        EVM_ADDRESS_PREFIX + address_bytes, digest_size=32
    ).digest()
    return public_key_to_ss58(public_key, ss58_format)


def public_key_to_ss58(
    public_key: Union[str, bytes], ss58_format: int = SS58_FORMAT
) -> str:
    if isinstance(public_key, str):
        public_key = hex_to_bytes(public_key)
    if len(public_key) != 32:
        raise ValueError("a public_key should be 32 bytes")
    return Keypair(public_key=public_key.hex(), ss58_format=ss58_format).ss58_address


def ss58_to_public_key(ss58_address: str) -> bytes:
    return bytes(Keypair(ss58_address=ss58_address).public_key)


def to_bytes32(key: Union[str, bytes, Keypair]) -> bytes:
    """
    Normalises a keypair, ss58 address, hex public key or raw public key into the `bytes32` the precompile takes
    for a hotkey.
    """
    if isinstance(key, Keypair):
        return bytes(key.public_key)
    if isinstance(key, bytes):
        if len(key) != 32:
            raise ValueError("a public_key should be 32 bytes")
        return key
    if key.startswith("0x"):
        return to_bytes32(hex_to_bytes(key))
    return ss58_to_public_key(key)


def is_evm_address(address: str) -> bool:
    return isinstance(address, str) and address.startswith("0x") and is_address(address)
