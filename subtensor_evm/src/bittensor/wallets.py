from eth_account import Account
from eth_account.signers.local import LocalAccount
from bittensor_wallet import Keypair


def generate_random_evm_account() -> LocalAccount:
    """Creates a throwaway Ethereum account. Nothing is written to disk."""
    return Account.create()


def get_random_substrate_keypair() -> Keypair:
    """Creates a throwaway sr25519 keypair from a freshly generated mnemonic."""
    return Keypair.create_from_mnemonic(Keypair.generate_mnemonic())


def get_keypair_from_uri(uri: str) -> Keypair:
    """Dev keys such as `//Alice`."""
    return Keypair.create_from_uri(uri)
