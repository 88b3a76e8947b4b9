import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from urllib.error import URLError

from algokit_utils import ApplicationClient, ApplicationSpecification, CallConfig, LogicError
from algosdk import abi, atomic_transaction_composer, transaction
from algosdk.atomic_transaction_composer import AccountTransactionSigner
from algosdk.error import (
    ABIEncodingError,
    AlgodHTTPError,
    AtomicTransactionComposerError,
    ConfirmationTimeoutError,
    TransactionRejectedError,
)
from algosdk.v2client import algod

from fuzzhead.adapters import ExecutionAdapter, InvocationOutcome
from fuzzhead.compiler import find_artifact, load_app_spec
from fuzzhead.errors import BackendUnreachable, DeployError, InitError
from fuzzhead.introspect import ContractDescriptor, EntryPoint
from fuzzhead.utils import get_algod, get_funded_account

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (URLError, ConnectionError, TimeoutError)
#: raised while an argument list is encoded into an app call
ENCODING_ERRORS = (ABIEncodingError, AtomicTransactionComposerError, TypeError, ValueError)
#: chance that a trial is sent by an account other than the deployer
OTHER_SENDER_BIAS = 0.7


class FuzzAppClient(ApplicationClient):

    @property
    def allows_bare_create(self) -> bool:
        config = self.app_spec.bare_call_config.get("no_op", CallConfig.NEVER)
        return bool(config & CallConfig.CREATE)

    def get_method(self, name: str) -> abi.Method:
        return self.app_spec.contract.get_method_by_name(name)

    def change_sender(self, address: str, signer: AccountTransactionSigner) -> None:
        self.sender = address
        self.signer = signer

    def call(self, method: abi.Method, args: list) -> tuple[dict | None, str | None]:
        """Submits one method call and waits for it.

        :return: the confirmed transaction info, or None and the error
        reported by algod when the call was rejected"""
        try:
            txns = self._prepare_txns(method, args)
            txid = self.algod_client.send_transactions(txns)
            result = transaction.wait_for_confirmation(self.algod_client, txid, 4)
        except (AlgodHTTPError, ConfirmationTimeoutError, TransactionRejectedError) as e:
            return None, str(e)

        result["txid"] = txid
        result["fee"] = txns[-1].transaction.fee
        return result, None

    def create_with(self, method: abi.Method, args: list) -> tuple[dict | None, str | None]:
        """Creates the application through an ABI create method."""
        kwargs = {arg.name: value for arg, value in zip(method.args, args)}
        try:
            response = self.create(call_abi_method=method, **kwargs)
        except (AlgodHTTPError, LogicError, ConfirmationTimeoutError, TransactionRejectedError) as e:
            return None, str(e)
        return {"txid": response.tx_id, "confirmed-round": response.confirmed_round}, None

    def _prepare_txns(self, method, args):
        sp = self.algod_client.suggested_params()
        atc = atomic_transaction_composer.AtomicTransactionComposer()

        atc.add_method_call(
            app_id= self.app_id,
            method= method,
            sender= self.sender,
            sp= sp,
            signer= self.signer,
            method_args= args
        )
        txns = atc.gather_signatures()
        return txns

    @staticmethod
    def from_app_spec(algod_client: algod.AlgodClient, app_spec: ApplicationSpecification) -> "FuzzAppClient":
        account, signer = get_funded_account(algod_client)
        app_client = FuzzAppClient(
            algod_client,
            app_spec,
            sender= account.address,
            signer= signer
        )
        return app_client


@dataclass
class AlgodHandle:
    contract: ContractDescriptor
    client: FuzzAppClient
    senders: list[tuple[str, AccountTransactionSigner]] = field(default_factory=list)
    created: bool = False


class AlgodAdapter(ExecutionAdapter):
    """Runs contracts on an algod node (localnet by default).

    Apps that cannot be created bare are created by their init method, so
    deployment is completed by the first init invocation.
    """

    name = "algod"

    def __init__(self, senders: int = 1, artifacts: Path | None = None, algod_client: algod.AlgodClient | None = None):
        self.senders = max(1, senders)
        self.artifacts = Path(artifacts) if artifacts else None
        self.algod_client = algod_client or get_algod()
        try:
            self.algod_client.status()
        except Exception as e:
            raise BackendUnreachable(f"algod at {self.algod_client.algod_address} is unreachable: {e}") from e

    def _app_spec(self, contract: ContractDescriptor, artifact) -> ApplicationSpecification:
        if artifact is not None:
            return artifact
        if self.artifacts is not None:
            path = find_artifact(self.artifacts, contract.name)
            if path is not None:
                return load_app_spec(path)
        raise DeployError(f"No ARC-32 app spec for {contract.name}, compile it or pass --artifacts")

    def deploy(self, contract: ContractDescriptor, artifact=None, constructor_args: list | None = None) -> AlgodHandle:
        app_spec = self._app_spec(contract, artifact)
        try:
            client = FuzzAppClient.from_app_spec(self.algod_client, app_spec)
            senders = [(client.sender, client.signer)]
            for _ in range(self.senders - 1):
                account, signer = get_funded_account(self.algod_client)
                senders.append((account.address, signer))
        except TRANSPORT_ERRORS as e:
            raise BackendUnreachable(f"algod is unreachable: {e}") from e
        except (AlgodHTTPError, LookupError) as e:
            raise DeployError(f"Cannot fund accounts for {contract.name}: {e}") from e

        for entry_point in (contract.init, *contract.entry_points):
            if entry_point is None:
                continue
            try:
                client.get_method(entry_point.name)
            except KeyError as e:
                raise DeployError(f"{contract.name}.{entry_point.name} is missing from the app spec") from e

        handle = AlgodHandle(contract, client, senders)
        if contract.init is None:
            self._create_bare(handle)
        return handle

    def _create_bare(self, handle: AlgodHandle) -> None:
        name = handle.contract.name
        if not handle.client.allows_bare_create:
            raise InitError(f"{name} can only be created by its init method")
        try:
            handle.client.create(call_abi_method=False)
        except TRANSPORT_ERRORS as e:
            raise BackendUnreachable(f"algod is unreachable: {e}") from e
        except (AlgodHTTPError, LogicError) as e:
            raise DeployError(f"Cannot create {name}: {e}") from e
        handle.created = True
        logger.debug("Created %s (app id %d)", name, handle.client.app_id)

    def invoke(self, handle: AlgodHandle, entry_point: EntryPoint, args: list) -> InvocationOutcome:
        client = handle.client
        method = client.get_method(entry_point.name)
        try:
            if not handle.created and entry_point.is_init:
                result, error = client.create_with(method, args)
                handle.created = result is not None
            else:
                if not handle.created:
                    self._create_bare(handle)
                self._choose_sender(handle)
                result, error = client.call(method, args)
        except TRANSPORT_ERRORS as e:
            raise BackendUnreachable(f"algod is unreachable: {e}") from e
        except ENCODING_ERRORS as e:
            return InvocationOutcome(False, f"argument encoding failed: {e}")

        if result is None:
            return InvocationOutcome(False, error)
        return InvocationOutcome(True, side_effects={
            "txid": result.get("txid"),
            "confirmed_round": result.get("confirmed-round"),
            "fee": result.get("fee"),
            "logs": result.get("logs", []),
        })

    def _choose_sender(self, handle: AlgodHandle) -> None:
        deployer, others = handle.senders[0], handle.senders[1:]
        sender = deployer
        if others and random.random() < OTHER_SENDER_BIAS:
            sender = random.choice(others)
        handle.client.change_sender(*sender)
