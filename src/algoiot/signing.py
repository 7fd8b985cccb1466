"""
Transaction signing for AlgoIoT.

Algorand transaction signatures are Ed25519 signatures over the canonical
transaction bytes prefixed with the "TX" domain-separation tag. The prefix is
written into the last two bytes of the context's reserved header, so the
signed message is one contiguous slice of the buffer and the body never moves.
"""

import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .account import Account
from .transactions import BuildContext
from .types import (
    ADDRESS_SIZE,
    RESERVED_HEADER_SIZE,
    SIGNATURE_SIZE,
    TRANSACTION_PREFIX,
    SigningError,
)

logger = logging.getLogger(__name__)

PREFIX_OFFSET = RESERVED_HEADER_SIZE - len(TRANSACTION_PREFIX)


def signing_payload(context: BuildContext) -> bytes:
    """
    Write the "TX" prefix in front of the body and return prefix + body.

    Raises:
        SigningError: If the context holds no transaction body
    """
    if context is None or context.encoder is None:
        raise SigningError("No build context to sign")
    if not context.has_body:
        raise SigningError("Build context holds no transaction body")
    if context.signed:
        raise SigningError("Transaction is already wrapped in a signed envelope")

    encoder = context.encoder
    encoder.patch(PREFIX_OFFSET, TRANSACTION_PREFIX)
    return encoder.view(PREFIX_OFFSET, encoder.length)


def sign_transaction(context: BuildContext, account: Account) -> bytes:
    """
    Sign the transaction held in a build context.

    Args:
        context: Context filled by one of the transaction builders
        account: Account whose key signs the transaction

    Returns:
        64-byte Ed25519 signature

    Raises:
        SigningError: If the context holds no transaction body
    """
    message = signing_payload(context)
    signature = account.signing_key.sign(message)
    logger.debug("Signed %d-byte %s transaction", len(message), context.txn_type)
    return signature


def verify_transaction_signature(
    body: bytes,
    signature: bytes,
    public_key: bytes,
) -> bool:
    """
    Verify a transaction signature over "TX" + body.

    Args:
        body: Canonical unsigned transaction bytes
        signature: 64-byte Ed25519 signature
        public_key: 32-byte sender public key

    Returns:
        True if the signature is valid, False otherwise

    Raises:
        SigningError: If the key or signature lengths are invalid
    """
    if len(signature) != SIGNATURE_SIZE:
        raise SigningError(
            f"Signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}"
        )

    if len(public_key) != ADDRESS_SIZE:
        raise SigningError(
            f"Public key must be {ADDRESS_SIZE} bytes, got {len(public_key)}"
        )
    verifying_key = Ed25519PublicKey.from_public_bytes(public_key)

    try:
        verifying_key.verify(signature, TRANSACTION_PREFIX + bytes(body))
        return True
    except InvalidSignature:
        return False
