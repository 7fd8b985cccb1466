"""
AlgoIoT - Algorand transactions from constrained devices

Python implementation of the AlgoIoT pipeline: mnemonic key decoding,
canonical MessagePack encoding, Ed25519 signing and submission to algod.
"""

from .mnemonic import decode_mnemonic, encode_mnemonic
from .account import Account
from .encoder import CanonicalEncoder
from .network import (
    Network,
    NetworkConfig,
    network_config,
    decode_address,
    encode_address,
    decode_genesis_hash,
)
from .notes import NoteBuilder
from .transactions import (
    BuildContext,
    TransactionParams,
    build_payment,
    build_asset_opt_in,
    build_asset_opt_out,
    build_application_opt_in,
    build_application_noop,
    build_asset_creation,
    build_asset_freeze,
    build_asset_destroy,
)
from .signing import sign_transaction, verify_transaction_signature
from .envelope import wrap_signed_transaction, ENVELOPE_HEADER_SIZE
from .types import (
    RESERVED_HEADER_SIZE,
    MAX_TRANSACTION_SIZE,
    VALIDITY_WINDOW,
    AlgoIoTError,
    InvalidInputError,
    MnemonicError,
    MalformedMnemonicError,
    InvalidWordError,
    WrongWordCountError,
    ChecksumMismatchError,
    InvalidAddressError,
    InvalidGenesisHashError,
    InvalidTransactionError,
    NoteError,
    EncoderCapacityError,
    SigningError,
    EnvelopeLayoutError,
    NetworkError,
)
from .blockchain import (
    AlgodConfig,
    AlgodClient,
    HttpAlgodClient,
)
from .client import AlgoIoT

__version__ = "0.1.0"

__all__ = [
    # Mnemonic
    "decode_mnemonic",
    "encode_mnemonic",
    # Account
    "Account",
    # Encoder
    "CanonicalEncoder",
    # Network
    "Network",
    "NetworkConfig",
    "network_config",
    "decode_address",
    "encode_address",
    "decode_genesis_hash",
    # Notes
    "NoteBuilder",
    # Transactions
    "BuildContext",
    "TransactionParams",
    "build_payment",
    "build_asset_opt_in",
    "build_asset_opt_out",
    "build_application_opt_in",
    "build_application_noop",
    "build_asset_creation",
    "build_asset_freeze",
    "build_asset_destroy",
    # Signing
    "sign_transaction",
    "verify_transaction_signature",
    # Envelope
    "wrap_signed_transaction",
    "ENVELOPE_HEADER_SIZE",
    # Constants
    "RESERVED_HEADER_SIZE",
    "MAX_TRANSACTION_SIZE",
    "VALIDITY_WINDOW",
    # Errors
    "AlgoIoTError",
    "InvalidInputError",
    "MnemonicError",
    "MalformedMnemonicError",
    "InvalidWordError",
    "WrongWordCountError",
    "ChecksumMismatchError",
    "InvalidAddressError",
    "InvalidGenesisHashError",
    "InvalidTransactionError",
    "NoteError",
    "EncoderCapacityError",
    "SigningError",
    "EnvelopeLayoutError",
    "NetworkError",
    # Blockchain
    "AlgodConfig",
    "AlgodClient",
    "HttpAlgodClient",
    # Client
    "AlgoIoT",
]
