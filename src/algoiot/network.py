"""
Algorand network selection and text decoding helpers.

Each network is identified by a genesis ID and genesis hash that every
transaction must carry, and is reached through an algod API endpoint.
API endpoints can be overridden with the ``ALGOD_TESTNET_URL`` and
``ALGOD_MAINNET_URL`` environment variables.
"""

import base64
import binascii
import os
from dataclasses import dataclass
from enum import Enum

from .mnemonic import sha512_256
from .types import (
    ADDRESS_SIZE,
    ADDRESS_CHECKSUM_SIZE,
    ADDRESS_TEXT_LENGTH,
    GENESIS_HASH_SIZE,
    InvalidAddressError,
    InvalidGenesisHashError,
)


# Fallback algod endpoints (AlgoNode public endpoints)
FALLBACK_ALGOD_TESTNET = "https://testnet-api.algonode.cloud"
FALLBACK_ALGOD_MAINNET = "https://mainnet-api.algonode.cloud"

TESTNET_GENESIS_ID = "testnet-v1.0"
TESTNET_GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="
MAINNET_GENESIS_ID = "mainnet-v1.0"
MAINNET_GENESIS_HASH = "wGHE2Pwdvd7S12BL5FaOP20EGYesN73ktiC1qzkkit8="


class Network(Enum):
    """Algorand network a client submits to."""

    TESTNET = "testnet"
    MAINNET = "mainnet"

    @property
    def config(self) -> "NetworkConfig":
        return network_config(self)


@dataclass(frozen=True)
class NetworkConfig:
    """Constants identifying one Algorand network."""

    network: Network
    """Which network these constants belong to."""

    genesis_id: str
    """Human-readable genesis ID (e.g. ``testnet-v1.0``)."""

    genesis_hash: str
    """Base64-encoded 32-byte genesis hash."""

    api_url: str
    """Base URL of the algod REST API."""

    @property
    def genesis_hash_bytes(self) -> bytes:
        """The decoded 32-byte genesis hash."""
        return decode_genesis_hash(self.genesis_hash)


def network_config(network: Network) -> NetworkConfig:
    """
    Get the constants for a network.

    The API URL is read from the environment on every call so overrides set
    after import still apply.
    """
    if network is Network.TESTNET:
        return NetworkConfig(
            network=network,
            genesis_id=TESTNET_GENESIS_ID,
            genesis_hash=TESTNET_GENESIS_HASH,
            api_url=os.environ.get("ALGOD_TESTNET_URL", FALLBACK_ALGOD_TESTNET),
        )
    if network is Network.MAINNET:
        return NetworkConfig(
            network=network,
            genesis_id=MAINNET_GENESIS_ID,
            genesis_hash=MAINNET_GENESIS_HASH,
            api_url=os.environ.get("ALGOD_MAINNET_URL", FALLBACK_ALGOD_MAINNET),
        )
    raise ValueError(f"Unsupported network: {network!r}")


def decode_genesis_hash(genesis_hash: str) -> bytes:
    """
    Decode a Base64 genesis hash.

    Args:
        genesis_hash: Base64 text of a 32-byte hash

    Returns:
        32-byte genesis hash

    Raises:
        InvalidGenesisHashError: If the text is not valid Base64 of 32 bytes
    """
    try:
        decoded = base64.b64decode(genesis_hash, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise InvalidGenesisHashError(f"Invalid genesis hash: {e}") from e

    if len(decoded) != GENESIS_HASH_SIZE:
        raise InvalidGenesisHashError(
            f"Genesis hash must be {GENESIS_HASH_SIZE} bytes, got {len(decoded)}"
        )
    return decoded


def _address_checksum(public_key: bytes) -> bytes:
    return sha512_256(public_key)[-ADDRESS_CHECKSUM_SIZE:]


def encode_address(public_key: bytes) -> str:
    """
    Encode a 32-byte public key as an Algorand address.

    Algorand addresses are base32-encoded: 32 bytes public key + 4 bytes
    checksum, with the padding stripped.
    """
    if len(public_key) != ADDRESS_SIZE:
        raise InvalidAddressError(
            f"Public key must be {ADDRESS_SIZE} bytes, got {len(public_key)}"
        )
    raw = bytes(public_key) + _address_checksum(public_key)
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode_address(address: str) -> bytes:
    """
    Decode an Algorand address to its 32-byte public key.

    Args:
        address: 58-character Algorand address

    Returns:
        32-byte Ed25519 public key

    Raises:
        InvalidAddressError: If the address is malformed or its checksum
            does not match
    """
    if not isinstance(address, str) or len(address) != ADDRESS_TEXT_LENGTH:
        raise InvalidAddressError(
            f"Address must be {ADDRESS_TEXT_LENGTH} characters"
        )

    padded = address + "=" * ((8 - len(address) % 8) % 8)
    try:
        decoded = base64.b32decode(padded)
    except (binascii.Error, ValueError) as e:
        raise InvalidAddressError(f"Invalid address encoding: {e}") from e

    if len(decoded) != ADDRESS_SIZE + ADDRESS_CHECKSUM_SIZE:
        raise InvalidAddressError(f"Decoded address has wrong length: {len(decoded)}")

    public_key = decoded[:ADDRESS_SIZE]
    if decoded[ADDRESS_SIZE:] != _address_checksum(public_key):
        raise InvalidAddressError(f"Address checksum mismatch: {address}")
    return public_key
