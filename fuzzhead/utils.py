import os
from dataclasses import dataclass

from algokit_utils import Account, get_algod_client, get_default_localnet_config

from algosdk import transaction
from algosdk.v2client import algod
from algosdk.atomic_transaction_composer import AccountTransactionSigner
from algosdk.kmd import KMDClient


KMD_ADDRESS = "http://localhost"
KMD_TOKEN = "a" * 64
KMD_PORT = os.getenv("KMD_PORT", default="4002")
KMD_URL = f"{KMD_ADDRESS}:{KMD_PORT}"

DEFAULT_KMD_WALLET_NAME = "unencrypted-default-wallet"
DEFAULT_KMD_WALLET_PASSWORD = ""

#: microalgos given to every account the fuzzer creates
FUNDING_AMOUNT = int(2e8)


def get_algod() -> algod.AlgodClient:
    """algod client configured from ALGOD_* variables, localnet otherwise"""
    if os.getenv("ALGOD_SERVER"):
        return get_algod_client()
    return get_algod_client(get_default_localnet_config("algod"))


def get_kmd_client(addr: str = KMD_URL, token: str = KMD_TOKEN) -> KMDClient:
    """creates a new kmd client using the default localnet parameters"""
    return KMDClient(kmd_token=token, kmd_address=addr)


@dataclass
class SandboxAccount:
    """A localnet account whose key is held by kmd"""

    address: str
    #: base64 encoded private key
    private_key: str


def get_dispenser(
    kmd_address: str = KMD_URL,
    kmd_token: str = KMD_TOKEN,
    wallet_name: str = DEFAULT_KMD_WALLET_NAME,
    wallet_password: str = DEFAULT_KMD_WALLET_PASSWORD,
) -> SandboxAccount:
    """First account of the kmd wallet localnet creates, which holds the
    funds of a private network"""
    kmd = get_kmd_client(kmd_address, kmd_token)
    wallet_id = next((w["id"] for w in kmd.list_wallets() if w["name"] == wallet_name), None)
    if wallet_id is None:
        raise LookupError(f"Wallet not found: {wallet_name}")

    wallet_handle = kmd.init_wallet_handle(wallet_id, wallet_password)
    try:
        addresses = kmd.list_keys(wallet_handle)
        if not addresses:
            raise LookupError(f"No funded accounts in {wallet_name}")
        address = addresses[0]
        private_key = kmd.export_key(wallet_handle, wallet_password, address)
    finally:
        kmd.release_wallet_handle(wallet_handle)

    return SandboxAccount(address, private_key)


def dispense(algod_client: algod.AlgodClient, address: str, amount: int) -> None:
    dispenser = get_dispenser()
    sp = algod_client.suggested_params()
    ptxn = transaction.PaymentTxn(
        sender=dispenser.address, sp=sp, receiver=address, amt=amount
    ).sign(dispenser.private_key)
    txid = algod_client.send_transaction(ptxn)
    transaction.wait_for_confirmation(algod_client, txid, 4)


def get_funded_account(algod_client: algod.AlgodClient) -> tuple[Account, AccountTransactionSigner]:
    account = Account.new_account()
    dispense(algod_client, account.address, FUNDING_AMOUNT)
    return account, AccountTransactionSigner(account.private_key)
