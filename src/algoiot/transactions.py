"""
Transaction builders for AlgoIoT.

Each builder writes one unsigned transaction into a BuildContext as a
canonical MessagePack map. Algorand verifies signatures against the
canonical encoding, so keys are written in ascending order and integers use
the smallest width, except asset and application IDs which are written as
uint 32 whenever they fit (as the reference SDKs do for realistic IDs).

The body starts RESERVED_HEADER_SIZE bytes into the buffer. The gap is
filled later by the signing prefix and then by the signed envelope header.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .encoder import CanonicalEncoder
from .network import Network, NetworkConfig, network_config
from .types import (
    ADDRESS_SIZE,
    APPLICATION_OPT_IN,
    ASSET_MAX_DECIMALS,
    ASSET_NAME_MAX_LENGTH,
    ASSET_UNIT_NAME_MAX_LENGTH,
    ASSET_URL_MAX_LENGTH,
    DEFAULT_ASSET_TOTAL,
    MAX_APP_ACCOUNTS,
    MAX_APP_ARGS,
    MAX_APP_REFERENCES,
    MAX_NOTE_SIZE,
    MAX_TRANSACTION_SIZE,
    MIN_PAYMENT,
    RESERVED_HEADER_SIZE,
    TXN_TYPE_APPLICATION_CALL,
    TXN_TYPE_ASSET_CONFIG,
    TXN_TYPE_ASSET_FREEZE,
    TXN_TYPE_ASSET_TRANSFER,
    TXN_TYPE_PAYMENT,
    VALIDITY_WINDOW,
    InvalidTransactionError,
)

logger = logging.getLogger(__name__)

FieldWriter = Callable[[CanonicalEncoder], None]

MAX_UINT64 = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class TransactionParams:
    """Network parameters a transaction is built against."""

    first_valid: int
    """First valid round (the node's last round when fetched)."""

    fee: int
    """Fee in microAlgos (the node's minimum fee when fetched)."""

    network: Network = Network.TESTNET
    """Network the transaction is for."""

    @property
    def last_valid(self) -> int:
        """Last valid round."""
        return self.first_valid + VALIDITY_WINDOW

    @property
    def config(self) -> NetworkConfig:
        return network_config(self.network)


@dataclass
class BuildContext:
    """
    Buffer for building, signing and wrapping a single transaction.

    A context is owned by one build; create a new one per transaction.
    """

    encoder: CanonicalEncoder = field(
        default_factory=lambda: CanonicalEncoder(MAX_TRANSACTION_SIZE)
    )
    txn_type: Optional[str] = None
    """Type of the transaction written, set by the builder."""

    signed: bool = False
    """Whether the envelope header has been written."""

    @property
    def body_start(self) -> int:
        return RESERVED_HEADER_SIZE

    @property
    def has_body(self) -> bool:
        return self.txn_type is not None and self.encoder.length > RESERVED_HEADER_SIZE

    def body(self) -> bytes:
        """The encoded unsigned transaction map."""
        return self.encoder.view(RESERVED_HEADER_SIZE, self.encoder.length)

    def payload(self) -> bytes:
        """The whole buffer content; the submittable transaction once wrapped."""
        return self.encoder.getvalue()


# MARK: - Validation


def _require_address(name: str, value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_SIZE:
        raise InvalidTransactionError(name, f"address must be {ADDRESS_SIZE} bytes")
    return bytes(value)


def _require_uint(name: str, value: int, minimum: int = 0, maximum: int = MAX_UINT64) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidTransactionError(name, f"must be an integer, got {type(value).__name__}")
    if not minimum <= value <= maximum:
        raise InvalidTransactionError(
            name, f"{value} out of range (must be between {minimum} and {maximum})"
        )


def _require_params(params: TransactionParams) -> None:
    _require_uint("fv", params.first_valid, minimum=1)
    _require_uint("fee", params.fee, minimum=1)
    if params.last_valid > MAX_UINT64:
        raise InvalidTransactionError("lv", "last valid round out of range")


def _require_id(name: str, value: int) -> None:
    _require_uint(name, value, minimum=1)


def _require_text(name: str, value: str, max_length: int, required: bool = True) -> None:
    if not isinstance(value, str):
        raise InvalidTransactionError(name, "must be a string")
    if required and not value:
        raise InvalidTransactionError(name, "must not be empty")
    if len(value.encode("utf-8")) > max_length:
        raise InvalidTransactionError(name, f"longer than {max_length} bytes")


def _require_context(context: BuildContext, txn_type: str) -> None:
    if context is None or context.encoder is None:
        raise InvalidTransactionError(txn_type, "no build context")
    # A failed build leaves bytes behind too, so any written byte disqualifies
    if context.txn_type is not None or context.encoder.length > 0:
        raise InvalidTransactionError(
            txn_type, "build context already used; create one per transaction"
        )


# MARK: - Field writers


def _uint(value: int) -> FieldWriter:
    return lambda encoder: encoder.add_uint(value)


def _id(value: int) -> FieldWriter:
    def write(encoder: CanonicalEncoder) -> None:
        if value <= 0xFFFFFFFF:
            encoder.add_uint32(value)
        else:
            encoder.add_uint64(value)
    return write


def _bytes(value: bytes) -> FieldWriter:
    return lambda encoder: encoder.add_bytes(value)


def _string(value: str) -> FieldWriter:
    return lambda encoder: encoder.add_string(value)


def _text(value: str) -> FieldWriter:
    return lambda encoder: encoder.add_text(value)


def _array(items: list[FieldWriter]) -> FieldWriter:
    def write(encoder: CanonicalEncoder) -> None:
        encoder.add_array_header(len(items))
        for write_item in items:
            write_item(encoder)
    return write


def _require_canonical_order(name: str, fields: list[tuple[str, FieldWriter]]) -> None:
    keys = [key for key, _ in fields]
    if keys != sorted(set(keys)):
        raise InvalidTransactionError(name, f"keys not in canonical order: {keys}")


def _write_fields(encoder: CanonicalEncoder, fields: list[tuple[str, FieldWriter]]) -> None:
    encoder.add_map_header(len(fields))
    for key, write in fields:
        encoder.add_string(key)
        write(encoder)


def _map(name: str, fields: list[tuple[str, FieldWriter]]) -> FieldWriter:
    _require_canonical_order(name, fields)
    return lambda encoder: _write_fields(encoder, fields)


def _header_fields(
    params: TransactionParams,
    sender: bytes,
    txn_type: str,
) -> list[tuple[str, FieldWriter]]:
    """Fields shared by every transaction type."""
    config = params.config
    genesis_hash = config.genesis_hash_bytes
    return [
        ("fee", _uint(params.fee)),
        ("fv", _uint(params.first_valid)),
        ("gen", _string(config.genesis_id)),
        ("gh", _bytes(genesis_hash)),
        ("lv", _uint(params.last_valid)),
        ("snd", _bytes(sender)),
        ("type", _string(txn_type)),
    ]


def _write_map(
    context: BuildContext,
    txn_type: str,
    fields: list[tuple[str, FieldWriter]],
) -> None:
    _require_context(context, txn_type)
    _require_canonical_order(txn_type, fields)

    encoder = context.encoder
    encoder.seek(RESERVED_HEADER_SIZE)
    _write_fields(encoder, fields)

    context.txn_type = txn_type
    logger.debug(
        "Encoded %s transaction: %d fields, %d bytes",
        txn_type,
        len(fields),
        encoder.length - RESERVED_HEADER_SIZE,
    )


# MARK: - Builders


def build_payment(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    receiver: bytes,
    amount: int,
    note: bytes = b"",
) -> None:
    """
    Encode a payment transaction.

    Fields: amt, fee, fv, gen, gh, lv, [note,] rcv, snd, type.

    Args:
        context: Build context to write into
        params: Network parameters
        sender: 32-byte sender public key
        receiver: 32-byte receiver public key
        amount: Amount in microAlgos
        note: Optional note, omitted when empty

    Raises:
        InvalidTransactionError: If a field fails validation
        InvalidGenesisHashError: If the network genesis hash cannot be decoded
        EncoderCapacityError: If the transaction does not fit the buffer
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    receiver = _require_address("rcv", receiver)
    _require_uint("amt", amount, minimum=MIN_PAYMENT)
    if not isinstance(note, (bytes, bytearray)):
        raise InvalidTransactionError("note", f"note must be bytes, got {type(note).__name__}")
    if len(note) > MAX_NOTE_SIZE:
        raise InvalidTransactionError(
            "note", f"note too long: {len(note)} bytes (maximum {MAX_NOTE_SIZE})"
        )

    fields = [("amt", _uint(amount))] + _header_fields(params, sender, TXN_TYPE_PAYMENT)
    if note:
        fields.append(("note", _bytes(bytes(note))))
    fields.append(("rcv", _bytes(receiver)))
    fields.sort(key=lambda item: item[0])

    _write_map(context, TXN_TYPE_PAYMENT, fields)


def build_asset_opt_in(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    asset_id: int,
) -> None:
    """
    Encode an asset opt-in: a zero-amount asset transfer to oneself.

    Fields: arcv, fee, fv, gen, gh, lv, snd, type, xaid.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    _require_id("xaid", asset_id)

    fields = (
        [("arcv", _bytes(sender))]
        + _header_fields(params, sender, TXN_TYPE_ASSET_TRANSFER)
        + [("xaid", _id(asset_id))]
    )
    _write_map(context, TXN_TYPE_ASSET_TRANSFER, fields)


def build_asset_opt_out(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    asset_id: int,
    close_to: Optional[bytes] = None,
) -> None:
    """
    Encode an asset opt-out, closing the holding to ``close_to``.

    The remaining balance goes to ``close_to``, or back to the sender when
    not given (only valid for the asset creator).

    Fields: aclose, arcv, fee, fv, gen, gh, lv, snd, type, xaid.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    close_to = _require_address("aclose", close_to if close_to is not None else sender)
    _require_id("xaid", asset_id)

    fields = (
        [("aclose", _bytes(close_to)), ("arcv", _bytes(close_to))]
        + _header_fields(params, sender, TXN_TYPE_ASSET_TRANSFER)
        + [("xaid", _id(asset_id))]
    )
    _write_map(context, TXN_TYPE_ASSET_TRANSFER, fields)


def build_application_opt_in(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    app_id: int,
) -> None:
    """
    Encode an application opt-in call.

    Fields: apan, apid, fee, fv, gen, gh, lv, snd, type.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    _require_id("apid", app_id)

    fields = [
        ("apan", lambda encoder: encoder.add_uint7(APPLICATION_OPT_IN)),
        ("apid", _id(app_id)),
    ] + _header_fields(params, sender, TXN_TYPE_APPLICATION_CALL)
    _write_map(context, TXN_TYPE_APPLICATION_CALL, fields)


def build_application_noop(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    app_id: int,
    app_args: Sequence[bytes] = (),
    foreign_assets: Sequence[int] = (),
    foreign_apps: Sequence[int] = (),
    accounts: Sequence[bytes] = (),
) -> None:
    """
    Encode a NoOp application call.

    Empty argument and reference lists are omitted, as canonical encoding
    drops empty values.

    Fields: [apaa,] [apas,] [apat,] [apfa,] apid, fee, fv, gen, gh, lv, snd, type.

    Args:
        context: Build context to write into
        params: Network parameters
        sender: 32-byte sender public key
        app_id: Application to call
        app_args: Raw application arguments
        foreign_assets: Asset IDs the call may read
        foreign_apps: Application IDs the call may read
        accounts: 32-byte public keys of accounts the call may read

    Raises:
        InvalidTransactionError: If a field fails validation
        EncoderCapacityError: If the transaction does not fit the buffer
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    _require_id("apid", app_id)

    app_args = list(app_args)
    if len(app_args) > MAX_APP_ARGS:
        raise InvalidTransactionError("apaa", f"at most {MAX_APP_ARGS} arguments")
    for arg in app_args:
        if not isinstance(arg, (bytes, bytearray)):
            raise InvalidTransactionError("apaa", "arguments must be bytes")
    foreign_assets = list(foreign_assets)
    for asset_id in foreign_assets:
        _require_id("apas", asset_id)
    foreign_apps = list(foreign_apps)
    for foreign_app_id in foreign_apps:
        _require_id("apfa", foreign_app_id)
    accounts = [_require_address("apat", account) for account in accounts]
    if len(accounts) > MAX_APP_ACCOUNTS:
        raise InvalidTransactionError("apat", f"at most {MAX_APP_ACCOUNTS} accounts")
    if len(foreign_assets) + len(foreign_apps) + len(accounts) > MAX_APP_REFERENCES:
        raise InvalidTransactionError(
            "apid", f"at most {MAX_APP_REFERENCES} foreign references in total"
        )

    fields = []
    if app_args:
        fields.append(("apaa", _array([_bytes(bytes(arg)) for arg in app_args])))
    if foreign_assets:
        fields.append(("apas", _array([_uint(value) for value in foreign_assets])))
    if accounts:
        fields.append(("apat", _array([_bytes(account) for account in accounts])))
    if foreign_apps:
        fields.append(("apfa", _array([_uint(value) for value in foreign_apps])))
    fields.append(("apid", _id(app_id)))
    fields += _header_fields(params, sender, TXN_TYPE_APPLICATION_CALL)
    _write_map(context, TXN_TYPE_APPLICATION_CALL, fields)


def build_asset_creation(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    asset_name: str,
    unit_name: str,
    url: str = "",
    decimals: int = 0,
    total: int = DEFAULT_ASSET_TOTAL,
    manager: Optional[bytes] = None,
    freeze: Optional[bytes] = None,
) -> None:
    """
    Encode an asset creation.

    The sender becomes the manager unless another manager is given, so the
    asset can later be destroyed. Without a freeze address the asset cannot
    be frozen.

    Fields: apar{an, [au,] [dc,] [f,] m, t, un}, fee, fv, gen, gh, lv, snd, type.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    _require_text("an", asset_name, ASSET_NAME_MAX_LENGTH)
    _require_text("un", unit_name, ASSET_UNIT_NAME_MAX_LENGTH)
    _require_text("au", url, ASSET_URL_MAX_LENGTH, required=False)
    _require_uint("dc", decimals, maximum=ASSET_MAX_DECIMALS)
    _require_uint("t", total, minimum=1)
    manager = _require_address("m", manager if manager is not None else sender)
    if freeze is not None:
        freeze = _require_address("f", freeze)

    asset_params = [("an", _text(asset_name))]
    if url:
        asset_params.append(("au", _text(url)))
    if decimals:
        asset_params.append(("dc", _uint(decimals)))
    if freeze is not None:
        asset_params.append(("f", _bytes(freeze)))
    asset_params += [
        ("m", _bytes(manager)),
        ("t", _uint(total)),
        ("un", _text(unit_name)),
    ]

    fields = [("apar", _map("apar", asset_params))] + _header_fields(
        params, sender, TXN_TYPE_ASSET_CONFIG
    )
    _write_map(context, TXN_TYPE_ASSET_CONFIG, fields)


def build_asset_freeze(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    asset_id: int,
    target: bytes,
    frozen: bool,
) -> None:
    """
    Encode an asset freeze or unfreeze of ``target``'s holding.

    Canonical encoding drops false values, so ``afrz`` is only written when
    freezing.

    Fields: [afrz,] fadd, faid, fee, fv, gen, gh, lv, snd, type.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    target = _require_address("fadd", target)
    _require_id("faid", asset_id)
    if not isinstance(frozen, bool):
        raise InvalidTransactionError("afrz", "freeze state must be a bool")

    fields = []
    if frozen:
        fields.append(("afrz", lambda encoder: encoder.add_bool(True)))
    fields += [("fadd", _bytes(target)), ("faid", _id(asset_id))]
    fields += _header_fields(params, sender, TXN_TYPE_ASSET_FREEZE)
    _write_map(context, TXN_TYPE_ASSET_FREEZE, fields)


def build_asset_destroy(
    context: BuildContext,
    params: TransactionParams,
    sender: bytes,
    asset_id: int,
) -> None:
    """
    Encode an asset destroy. Only the asset manager can send it.

    Fields: caid, fee, fv, gen, gh, lv, snd, type.
    """
    _require_params(params)
    sender = _require_address("snd", sender)
    _require_id("caid", asset_id)

    fields = [("caid", _id(asset_id))] + _header_fields(params, sender, TXN_TYPE_ASSET_CONFIG)
    _write_map(context, TXN_TYPE_ASSET_CONFIG, fields)
