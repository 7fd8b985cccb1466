"""
AlgoIoT client for writing device data to Algorand.

The AlgoIoT client owns a device account decoded from its mnemonic and
provides a high-level API for submitting payments that carry sensor data in
their note field, and for opting the account in to assets and applications.
"""

import logging
from typing import Callable, Optional, Sequence

from .account import Account
from .blockchain import AlgodClient, AlgodConfig, HttpAlgodClient
from .envelope import wrap_signed_transaction
from .network import Network, NetworkConfig, decode_address, network_config
from .notes import NoteBuilder
from .signing import sign_transaction
from .transactions import (
    BuildContext,
    TransactionParams,
    build_application_noop,
    build_application_opt_in,
    build_asset_creation,
    build_asset_destroy,
    build_asset_freeze,
    build_asset_opt_in,
    build_asset_opt_out,
    build_payment,
)
from .types import (
    DEFAULT_APPLICATION_ID,
    DEFAULT_APPLICATION_NOOP_ID,
    DEFAULT_ASSET_ID,
    DEFAULT_ASSET_TOTAL,
    DEFAULT_PAYMENT_AMOUNT,
)

logger = logging.getLogger(__name__)

Builder = Callable[[BuildContext, TransactionParams], None]


class AlgoIoT:
    """
    High-level client for a device account.

    By default transactions go to the device's own address (a transaction
    to self only costs the fee) on TestNet. The client is not thread-safe:
    the note and destination are shared by every submission.

    Example usage:
        ```python
        device = AlgoIoT("weather-station", mnemonic)
        device.note.add_float("temp", 21.5)
        device.note.add_uint8("hum", 48)
        txid = device.submit_payment()
        ```
    """

    def __init__(
        self,
        app_name: str,
        mnemonic: str,
        network: Network = Network.TESTNET,
        algod: Optional[AlgodClient] = None,
        verify_checksum: bool = False,
    ) -> None:
        """
        Initialize the client.

        Args:
            app_name: Application name written at the head of notes (max 31 chars).
            mnemonic: The device account's 25-word mnemonic.
            network: Network to submit to.
            algod: Node client; defaults to the network's public endpoint.
            verify_checksum: Also verify the mnemonic checksum word.
        """
        self.note = NoteBuilder(app_name)
        self.account = Account.from_mnemonic(mnemonic, verify_checksum=verify_checksum)
        self.destination = self.account.public_key
        self._network_config = network_config(network)
        self._owns_algod = algod is None
        self.algod = algod or HttpAlgodClient(AlgodConfig.for_network(network))
        self.transaction_id = ""

    @property
    def app_name(self) -> str:
        return self.note.app_name

    @property
    def address(self) -> str:
        """The device account's Algorand address."""
        return self.account.address

    @property
    def public_key(self) -> bytes:
        """The device account's public key (32 bytes)."""
        return self.account.public_key

    @property
    def network(self) -> Network:
        return self._network_config.network

    @property
    def network_config(self) -> NetworkConfig:
        return self._network_config

    def set_destination_address(self, address: str) -> None:
        """
        Send future payments to ``address`` instead of the device itself.

        Raises:
            InvalidAddressError: If the address cannot be decoded.
        """
        self.destination = decode_address(address)

    def set_network(self, network: Network) -> None:
        """
        Switch network.

        Genesis ID, genesis hash and API URL change together. A default node
        client is replaced by one for the new network; a caller-supplied one
        is kept.
        """
        config = network_config(network)
        if self._owns_algod:
            if isinstance(self.algod, HttpAlgodClient):
                self.algod.close()
            self.algod = HttpAlgodClient(AlgodConfig(algod_url=config.api_url))
        self._network_config = config

    # MARK: - Preparing

    def _prepare(self, builder: Builder, params: TransactionParams) -> bytes:
        context = BuildContext()
        builder(context, params)
        signature = sign_transaction(context, self.account)
        return wrap_signed_transaction(context, signature)

    def prepare_payment(
        self,
        params: TransactionParams,
        amount: int = DEFAULT_PAYMENT_AMOUNT,
    ) -> bytes:
        """Build and sign a payment carrying the current note."""
        note = self.note.render()
        return self._prepare(
            lambda ctx, p: build_payment(
                ctx, p, self.public_key, self.destination, amount, note
            ),
            params,
        )

    def prepare_asset_opt_in(self, params: TransactionParams, asset_id: int) -> bytes:
        """Build and sign an asset opt-in."""
        return self._prepare(
            lambda ctx, p: build_asset_opt_in(ctx, p, self.public_key, asset_id),
            params,
        )

    def prepare_asset_opt_out(
        self,
        params: TransactionParams,
        asset_id: int,
        close_to: Optional[str] = None,
    ) -> bytes:
        """Build and sign an asset opt-out."""
        close_to_key = decode_address(close_to) if close_to is not None else None
        return self._prepare(
            lambda ctx, p: build_asset_opt_out(
                ctx, p, self.public_key, asset_id, close_to_key
            ),
            params,
        )

    def prepare_application_opt_in(self, params: TransactionParams, app_id: int) -> bytes:
        """Build and sign an application opt-in."""
        return self._prepare(
            lambda ctx, p: build_application_opt_in(ctx, p, self.public_key, app_id),
            params,
        )

    def prepare_application_noop(
        self,
        params: TransactionParams,
        app_id: int,
        app_args: Sequence[bytes] = (),
        foreign_assets: Sequence[int] = (),
        foreign_apps: Sequence[int] = (),
        accounts: Sequence[str] = (),
    ) -> bytes:
        """Build and sign a NoOp application call; ``accounts`` are addresses."""
        account_keys = [decode_address(address) for address in accounts]
        return self._prepare(
            lambda ctx, p: build_application_noop(
                ctx, p, self.public_key, app_id, app_args, foreign_assets, foreign_apps, account_keys
            ),
            params,
        )

    def prepare_asset_creation(
        self,
        params: TransactionParams,
        asset_name: str,
        unit_name: str,
        url: str = "",
        decimals: int = 0,
        total: int = DEFAULT_ASSET_TOTAL,
    ) -> bytes:
        """Build and sign an asset creation managed by the device account."""
        return self._prepare(
            lambda ctx, p: build_asset_creation(
                ctx, p, self.public_key, asset_name, unit_name, url, decimals, total
            ),
            params,
        )

    def prepare_asset_freeze(
        self,
        params: TransactionParams,
        asset_id: int,
        freeze_address: str,
        frozen: bool,
    ) -> bytes:
        """Build and sign an asset freeze of ``freeze_address``'s holding."""
        target = decode_address(freeze_address)
        return self._prepare(
            lambda ctx, p: build_asset_freeze(ctx, p, self.public_key, asset_id, target, frozen),
            params,
        )

    def prepare_asset_destroy(self, params: TransactionParams, asset_id: int) -> bytes:
        """Build and sign an asset destroy."""
        return self._prepare(
            lambda ctx, p: build_asset_destroy(ctx, p, self.public_key, asset_id),
            params,
        )

    # MARK: - Submitting

    def _submit(self, description: str, prepare: Callable[[TransactionParams], bytes]) -> str:
        self.transaction_id = ""
        # Parameters are fetched for every attempt and never reused
        params = self.algod.get_transaction_params(self.network)
        logger.debug(
            "Preparing %s: first valid %d, fee %d", description, params.first_valid, params.fee
        )
        payload = prepare(params)
        txid = self.algod.submit_transaction(payload)
        self.transaction_id = txid
        logger.info("Submitted %s with ID %s", description, txid)
        return txid

    def submit_payment(self, amount: int = DEFAULT_PAYMENT_AMOUNT) -> str:
        """
        Submit a payment to the destination carrying the current note.

        Returns:
            The transaction ID.

        Raises:
            NetworkError: If fetching parameters or submitting fails.
            InvalidInputError: If the transaction fails validation.
        """
        return self._submit("payment", lambda params: self.prepare_payment(params, amount))

    def submit_asset_opt_in(self, asset_id: int = DEFAULT_ASSET_ID) -> str:
        """Opt the device account in to an asset."""
        return self._submit(
            f"asset {asset_id} opt-in",
            lambda params: self.prepare_asset_opt_in(params, asset_id),
        )

    def submit_asset_opt_out(self, asset_id: int, close_to: Optional[str] = None) -> str:
        """Opt the device account out of an asset, closing to ``close_to``."""
        return self._submit(
            f"asset {asset_id} opt-out",
            lambda params: self.prepare_asset_opt_out(params, asset_id, close_to),
        )

    def submit_application_opt_in(self, app_id: int = DEFAULT_APPLICATION_ID) -> str:
        """Opt the device account in to an application."""
        return self._submit(
            f"application {app_id} opt-in",
            lambda params: self.prepare_application_opt_in(params, app_id),
        )

    def submit_application_noop(
        self,
        app_id: int = DEFAULT_APPLICATION_NOOP_ID,
        app_args: Sequence[bytes] = (),
        foreign_assets: Sequence[int] = (),
        foreign_apps: Sequence[int] = (),
        accounts: Sequence[str] = (),
    ) -> str:
        """Call an application with the NoOp completion."""
        return self._submit(
            f"application {app_id} call",
            lambda params: self.prepare_application_noop(
                params, app_id, app_args, foreign_assets, foreign_apps, accounts
            ),
        )

    def submit_asset_creation(
        self,
        asset_name: str,
        unit_name: str,
        url: str = "",
        decimals: int = 0,
        total: int = DEFAULT_ASSET_TOTAL,
    ) -> str:
        """Create an asset managed by the device account."""
        return self._submit(
            f"asset {asset_name!r} creation",
            lambda params: self.prepare_asset_creation(
                params, asset_name, unit_name, url, decimals, total
            ),
        )

    def submit_asset_freeze(self, asset_id: int, freeze_address: str, frozen: bool) -> str:
        """Freeze or unfreeze an account's holding of an asset."""
        return self._submit(
            f"asset {asset_id} {'freeze' if frozen else 'unfreeze'}",
            lambda params: self.prepare_asset_freeze(params, asset_id, freeze_address, frozen),
        )

    def submit_asset_destroy(self, asset_id: int) -> str:
        """Destroy an asset the device account manages."""
        return self._submit(
            f"asset {asset_id} destroy",
            lambda params: self.prepare_asset_destroy(params, asset_id),
        )

    def close(self) -> None:
        """Close the node client if this client created it."""
        if self._owns_algod and isinstance(self.algod, HttpAlgodClient):
            self.algod.close()

    def __enter__(self) -> "AlgoIoT":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"AlgoIoT({self.app_name!r}, {self.address})"
