"""
Signed transaction envelope for AlgoIoT.

A signed Algorand transaction is the map ``{"sig": <64 bytes>, "txn": {...}}``.
Keys sort "sig" before "txn", so the encoded body is the last thing in the
envelope. Builders leave exactly enough room at the head of the buffer for::

    [0]      fixmap, 2 entries       (1 byte)
    [1-4]    "sig"                   (4 bytes)
    [5-70]   bin 8, 64-byte sig      (66 bytes)
    [71-74]  "txn"                   (4 bytes)
    [75+]    transaction map         (variable)

Wrapping rewrites only that header; the body bytes stay where they are.
"""

import logging

from .encoder import bytes_size, map_header_size, string_size
from .transactions import BuildContext
from .types import (
    RESERVED_HEADER_SIZE,
    SIGNATURE_KEY,
    SIGNATURE_SIZE,
    TRANSACTION_KEY,
    EnvelopeLayoutError,
    SigningError,
)

logger = logging.getLogger(__name__)

ENVELOPE_FIELDS = 2

ENVELOPE_HEADER_SIZE = (
    map_header_size(ENVELOPE_FIELDS)
    + string_size(SIGNATURE_KEY)
    + bytes_size(SIGNATURE_SIZE)
    + string_size(TRANSACTION_KEY)
)

if ENVELOPE_HEADER_SIZE != RESERVED_HEADER_SIZE:
    raise EnvelopeLayoutError(
        f"Envelope header is {ENVELOPE_HEADER_SIZE} bytes but "
        f"{RESERVED_HEADER_SIZE} are reserved"
    )


def wrap_signed_transaction(context: BuildContext, signature: bytes) -> bytes:
    """
    Turn a signed transaction body into the submittable envelope.

    Args:
        context: Context holding a signed transaction body
        signature: 64-byte signature from sign_transaction()

    Returns:
        The complete signed transaction bytes

    Raises:
        SigningError: If the signature or context is invalid
        EnvelopeLayoutError: If the header does not end exactly where the
            body starts
    """
    if len(signature) != SIGNATURE_SIZE:
        raise SigningError(
            f"Signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}"
        )
    if context is None or context.encoder is None:
        raise SigningError("No build context to wrap")
    if not context.has_body:
        raise SigningError("Build context holds no transaction body")

    encoder = context.encoder
    encoder.seek(0)
    encoder.add_map_header(ENVELOPE_FIELDS)
    encoder.add_string(SIGNATURE_KEY)
    encoder.add_bytes(signature)
    encoder.add_string(TRANSACTION_KEY)

    if encoder.position != RESERVED_HEADER_SIZE:
        raise EnvelopeLayoutError(
            f"Envelope header ended at {encoder.position}, "
            f"body starts at {RESERVED_HEADER_SIZE}"
        )

    # Leave the cursor at the end of the content
    encoder.seek(encoder.length)
    context.signed = True

    payload = context.payload()
    logger.debug("Signed %s transaction: %s", context.txn_type, payload.hex())
    return payload
