"""
Signing account for AlgoIoT.

An Account holds the Ed25519 seed decoded from a mnemonic and the public key
derived from it. The public key doubles as the account's on-chain address.
"""

from dataclasses import dataclass, field

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .mnemonic import decode_mnemonic, encode_mnemonic
from .network import encode_address
from .types import KEY_SIZE


@dataclass(frozen=True)
class Account:
    """
    An Algorand account able to sign transactions.

    Attributes:
        private_key: The 32-byte Ed25519 seed.
        public_key: The 32-byte Ed25519 public key (the sender address).
    """

    private_key: bytes = field(repr=False)
    public_key: bytes

    @classmethod
    def from_private_key(cls, private_key: bytes) -> "Account":
        """
        Create an Account from a 32-byte Ed25519 seed.

        Raises:
            ValueError: If private_key is not 32 bytes.
        """
        if len(private_key) != KEY_SIZE:
            raise ValueError(f"Private key must be {KEY_SIZE} bytes, got {len(private_key)}")

        signing_key = Ed25519PrivateKey.from_private_bytes(private_key)
        return cls(
            private_key=bytes(private_key),
            public_key=signing_key.public_key().public_bytes_raw(),
        )

    @classmethod
    def from_mnemonic(cls, phrase: str, verify_checksum: bool = False) -> "Account":
        """
        Create an Account from a 25-word Algorand mnemonic.

        Raises:
            MnemonicError: If the phrase cannot be decoded.
        """
        return cls.from_private_key(decode_mnemonic(phrase, verify_checksum=verify_checksum))

    @property
    def address(self) -> str:
        """The account's 58-character Algorand address."""
        return encode_address(self.public_key)

    @property
    def signing_key(self) -> Ed25519PrivateKey:
        return Ed25519PrivateKey.from_private_bytes(self.private_key)

    def to_mnemonic(self) -> str:
        """
        The account's 25-word mnemonic.

        Warning: Handle with care. This exposes the private key.
        """
        return encode_mnemonic(self.private_key)

    def __str__(self) -> str:
        return f"Account({self.address})"
