"""Constants and exception types for AlgoIoT."""

from typing import Optional


# Key and address sizes
KEY_SIZE = 32
ADDRESS_SIZE = 32
ADDRESS_CHECKSUM_SIZE = 4
ADDRESS_TEXT_LENGTH = 58
GENESIS_HASH_SIZE = 32
SIGNATURE_SIZE = 64

# Mnemonic constants
MNEMONIC_WORD_COUNT = 25
MNEMONIC_MIN_WORD_LENGTH = 3
MNEMONIC_BITS_PER_WORD = 11
MNEMONIC_VOCABULARY_SIZE = 2048

# Encoder constants
MAX_TRANSACTION_SIZE = 1280  # 1253 max measured for a payment with a full note
SHORT_MAP_MAX_FIELDS = 15
SHORT_STRING_MAX_LENGTH = 31
SHORT_BYTES_MAX_LENGTH = 255

# Signing constants
# Room left at the head of the buffer for {"sig": <64 bytes>, "txn": ...}
RESERVED_HEADER_SIZE = 75
TRANSACTION_PREFIX = b"TX"
SIGNATURE_KEY = "sig"
TRANSACTION_KEY = "txn"

# Transaction constants
VALIDITY_WINDOW = 1000
MIN_PAYMENT = 1
DEFAULT_PAYMENT_AMOUNT = 100_000
DEFAULT_ASSET_ID = 733709260
DEFAULT_APPLICATION_ID = 738608433
APPLICATION_OPT_IN = 1
DEFAULT_APPLICATION_NOOP_ID = 51
DEFAULT_ASSET_TOTAL = 1

# Asset and application call limits
ASSET_NAME_MAX_LENGTH = 32
ASSET_UNIT_NAME_MAX_LENGTH = 8
ASSET_URL_MAX_LENGTH = 96
ASSET_MAX_DECIMALS = 19
MAX_APP_ARGS = 15
MAX_APP_ACCOUNTS = 4
MAX_APP_REFERENCES = 8

# Note constants
MAX_NOTE_SIZE = 1000
NOTE_LABEL_MAX_LENGTH = 31
APP_NAME_MAX_LENGTH = NOTE_LABEL_MAX_LENGTH

# Transaction types
TXN_TYPE_PAYMENT = "pay"
TXN_TYPE_ASSET_TRANSFER = "axfer"
TXN_TYPE_APPLICATION_CALL = "appl"
TXN_TYPE_ASSET_CONFIG = "acfg"
TXN_TYPE_ASSET_FREEZE = "afrz"


# Exception types
class AlgoIoTError(Exception):
    """Base exception for AlgoIoT errors."""
    pass


class InvalidInputError(AlgoIoTError):
    """An argument was missing, malformed or out of range."""
    pass


class MnemonicError(InvalidInputError):
    """Mnemonic phrase could not be decoded."""
    pass


class MalformedMnemonicError(MnemonicError):
    """Mnemonic is missing or too short to hold 25 words."""
    pass


class InvalidWordError(MnemonicError):
    """Mnemonic contains a word outside the vocabulary."""

    def __init__(self, word: str, position: int) -> None:
        self.word = word
        self.position = position
        super().__init__(f"Invalid mnemonic word at position {position}: {word!r}")


class WrongWordCountError(MnemonicError):
    """Mnemonic does not contain exactly 25 words."""

    def __init__(self, count: int, expected: int = MNEMONIC_WORD_COUNT) -> None:
        self.count = count
        self.expected = expected
        qualifier = "many" if count > expected else "few"
        super().__init__(
            f"Too {qualifier} mnemonic words: got {count}, expected {expected}"
        )

    @property
    def too_many(self) -> bool:
        return self.count > self.expected


class ChecksumMismatchError(MnemonicError):
    """Checksum word does not match the decoded key."""
    pass


class InvalidAddressError(InvalidInputError):
    """Address text could not be decoded to 32 bytes."""
    pass


class InvalidGenesisHashError(InvalidInputError):
    """Genesis hash text could not be decoded to 32 bytes."""
    pass


class InvalidTransactionError(InvalidInputError):
    """Transaction fields failed validation before encoding."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class NoteError(InvalidInputError):
    """Note field could not be added."""
    pass


class EncoderCapacityError(AlgoIoTError):
    """Write would exceed the encoder's fixed capacity."""

    def __init__(self, needed: int, remaining: int) -> None:
        self.needed = needed
        self.remaining = remaining
        super().__init__(
            f"Encoder capacity exceeded: need {needed} bytes, {remaining} remaining"
        )


class SigningError(AlgoIoTError):
    """Signing precondition failed."""
    pass


class EnvelopeLayoutError(SigningError):
    """Signed envelope header does not fit the reserved header region."""
    pass


class NetworkError(AlgoIoTError):
    """Talking to the algod node failed."""

    def __init__(
        self,
        stage: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.stage = stage
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{stage} failed{detail}: {message}")
