"""
Algorand 25-word mnemonic decoding.

An Algorand mnemonic is 24 words carrying the 32-byte Ed25519 seed, packed
as 11-bit indices into the BIP-39 English word list (least significant bit
first), followed by one checksum word taken from the SHA-512/256 hash of the
seed.
"""

from functools import lru_cache
from typing import Optional

from algosdk import wordlist
from cryptography.hazmat.primitives import hashes

from .types import (
    KEY_SIZE,
    MNEMONIC_WORD_COUNT,
    MNEMONIC_MIN_WORD_LENGTH,
    MNEMONIC_BITS_PER_WORD,
    MNEMONIC_VOCABULARY_SIZE,
    MalformedMnemonicError,
    InvalidWordError,
    WrongWordCountError,
    ChecksumMismatchError,
)


_WORD_MASK = (1 << MNEMONIC_BITS_PER_WORD) - 1


@lru_cache(maxsize=1)
def vocabulary() -> tuple[str, ...]:
    """The 2048-word BIP-39 English vocabulary, in index order."""
    words = tuple(wordlist.word_list_raw().split())
    if len(words) != MNEMONIC_VOCABULARY_SIZE:
        raise RuntimeError(
            f"Word list must have {MNEMONIC_VOCABULARY_SIZE} words, got {len(words)}"
        )
    return words


@lru_cache(maxsize=1)
def _word_indexes() -> dict[str, int]:
    return {word: index for index, word in enumerate(vocabulary())}


def sha512_256(data: bytes) -> bytes:
    """SHA-512/256 digest, the hash Algorand uses for checksums."""
    digest = hashes.Hash(hashes.SHA512_256())
    digest.update(data)
    return digest.finalize()


def checksum_word_index(key: bytes) -> int:
    """Vocabulary index of the checksum word for ``key``."""
    h = sha512_256(key)
    return (h[0] | (h[1] << 8)) & _WORD_MASK


def _pack_indexes(indexes: list[int]) -> bytes:
    out = bytearray()
    accumulator = 0
    bits = 0
    for index in indexes:
        accumulator |= index << bits
        bits += MNEMONIC_BITS_PER_WORD
        while bits >= 8:
            out.append(accumulator & 0xFF)
            accumulator >>= 8
            bits -= 8
    if bits:
        out.append(accumulator & 0xFF)
    return bytes(out)


def _unpack_indexes(data: bytes) -> list[int]:
    indexes = []
    accumulator = 0
    bits = 0
    for byte in data:
        accumulator |= byte << bits
        bits += 8
        if bits >= MNEMONIC_BITS_PER_WORD:
            indexes.append(accumulator & _WORD_MASK)
            accumulator >>= MNEMONIC_BITS_PER_WORD
            bits -= MNEMONIC_BITS_PER_WORD
    if bits:
        indexes.append(accumulator & _WORD_MASK)
    return indexes


def decode_mnemonic(phrase: Optional[str], verify_checksum: bool = False) -> bytes:
    """
    Decode a 25-word mnemonic into a 32-byte private key seed.

    The checksum word is parsed but only verified when ``verify_checksum``
    is set.

    Args:
        phrase: 25 space-delimited lowercase words
        verify_checksum: Also check the 25th word against the decoded key

    Returns:
        32-byte Ed25519 seed

    Raises:
        MalformedMnemonicError: If the phrase is missing or too short
        InvalidWordError: If a word is not in the vocabulary
        WrongWordCountError: If there are not exactly 25 words
        ChecksumMismatchError: If ``verify_checksum`` is set and the checksum
            word does not match
    """
    if not isinstance(phrase, str):
        raise MalformedMnemonicError("Mnemonic must be a string")

    # 25 words of at least 3 letters, each followed by a separator
    min_length = MNEMONIC_WORD_COUNT * (MNEMONIC_MIN_WORD_LENGTH + 1) - 1
    if len(phrase) < min_length:
        raise MalformedMnemonicError(
            f"Mnemonic too short: {len(phrase)} characters (minimum {min_length})"
        )

    words = phrase.split()
    if not words:
        raise MalformedMnemonicError("Mnemonic contains no words")

    lookup = _word_indexes()
    indexes = []
    for position, word in enumerate(words, start=1):
        index = lookup.get(word)
        if index is None:
            raise InvalidWordError(word, position)
        indexes.append(index)
        if len(indexes) > MNEMONIC_WORD_COUNT:
            raise WrongWordCountError(len(words))

    if len(indexes) != MNEMONIC_WORD_COUNT:
        raise WrongWordCountError(len(indexes))

    # 25 x 11 bits = 34 full bytes plus 3 bits; only the seed is kept
    key = _pack_indexes(indexes)[:KEY_SIZE]

    if verify_checksum and checksum_word_index(key) != indexes[-1]:
        raise ChecksumMismatchError("Checksum word does not match the decoded key")

    return key


def encode_mnemonic(key: bytes) -> str:
    """
    Encode a 32-byte seed as a 25-word mnemonic, checksum word included.

    Args:
        key: 32-byte Ed25519 seed

    Returns:
        25 space-delimited words

    Raises:
        ValueError: If key is not 32 bytes
    """
    if len(key) != KEY_SIZE:
        raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")

    words = vocabulary()
    indexes = _unpack_indexes(key)
    indexes.append(checksum_word_index(key))
    return " ".join(words[i] for i in indexes)
