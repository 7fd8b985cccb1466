"""
Algod node access for AlgoIoT.

This module provides the abstract interface the client uses to fetch
transaction parameters and submit signed transactions, and an implementation
over the algod REST API using httpx.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from .network import Network, network_config
from .transactions import TransactionParams
from .types import NetworkError

logger = logging.getLogger(__name__)

GET_TRANSACTION_PARAMS = "/v2/transactions/params"
POST_TRANSACTION = "/v2/transactions"
ALGORAND_POST_MIME_TYPE = "application/msgpack"
API_TOKEN_HEADER = "X-Algo-API-Token"

DEFAULT_TIMEOUT = 5.0


@dataclass
class AlgodConfig:
    """Configuration for an algod node connection."""

    algod_url: str
    """Algod node URL."""

    algod_token: str = ""
    """Algod API token (AlgoNode does not require one)."""

    timeout: float = DEFAULT_TIMEOUT
    """Connect and read timeout in seconds."""

    @classmethod
    def for_network(cls, network: Network) -> "AlgodConfig":
        """Creates configuration for the network's public endpoint."""
        return cls(algod_url=network_config(network).api_url)

    @classmethod
    def testnet(cls) -> "AlgodConfig":
        """Creates configuration for TestNet (via AlgoNode)."""
        return cls.for_network(Network.TESTNET)

    @classmethod
    def mainnet(cls) -> "AlgodConfig":
        """Creates configuration for MainNet (via AlgoNode)."""
        return cls.for_network(Network.MAINNET)

    @classmethod
    def localnet(cls) -> "AlgodConfig":
        """Creates configuration for LocalNet (Algokit sandbox)."""
        return cls(algod_url="http://localhost:4001", algod_token="a" * 64)


class AlgodClient(ABC):
    """Abstract base class for interacting with an Algorand node (algod)."""

    @abstractmethod
    def get_transaction_params(self, network: Network) -> TransactionParams:
        """Get current transaction parameters for a new transaction."""
        pass

    @abstractmethod
    def submit_transaction(self, signed_txn: bytes) -> str:
        """Submit a signed transaction and return its ID."""
        pass


class HttpAlgodClient(AlgodClient):
    """
    Algod REST client.

    Every failure (transport error, non-200 status, unexpected body) is
    raised as NetworkError. Nothing is retried.
    """

    def __init__(
        self,
        config: AlgodConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        headers = {}
        if config.algod_token:
            headers[API_TOKEN_HEADER] = config.algod_token
        self._client = httpx.Client(
            base_url=config.algod_url.rstrip("/"),
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpAlgodClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, stage: str, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(stage, str(e)) from e

        if response.status_code != 200:
            logger.warning(
                "%s: HTTP %d from %s: %s",
                stage,
                response.status_code,
                path,
                response.text,
            )
            raise NetworkError(stage, response.text or "no data", response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError(stage, "response is not valid JSON", response.status_code) from e
        if not isinstance(body, dict):
            raise NetworkError(stage, "response is not a JSON object", response.status_code)
        return body

    def get_transaction_params(self, network: Network) -> TransactionParams:
        """
        Fetch the current round and minimum fee.

        The node's last round becomes the transaction's first valid round.

        Raises:
            NetworkError: If the request fails or the response lacks the fields
        """
        stage = "get transaction params"
        body = self._request(stage, "GET", GET_TRANSACTION_PARAMS)

        last_round = body.get("last-round")
        min_fee = body.get("min-fee")
        if not isinstance(last_round, int) or not isinstance(min_fee, int):
            raise NetworkError(stage, f"missing last-round or min-fee in {body}")

        logger.debug("Transaction params: last-round=%d min-fee=%d", last_round, min_fee)
        return TransactionParams(first_valid=last_round, fee=min_fee, network=network)

    def submit_transaction(self, signed_txn: bytes) -> str:
        """
        Submit a signed transaction.

        Raises:
            NetworkError: If the node rejects the transaction or the request fails
        """
        stage = "submit transaction"
        logger.debug("Submitting %d-byte transaction", len(signed_txn))
        body = self._request(
            stage,
            "POST",
            POST_TRANSACTION,
            content=bytes(signed_txn),
            headers={"Content-Type": ALGORAND_POST_MIME_TYPE},
        )

        txid = body.get("txId")
        if not isinstance(txid, str) or not txid:
            raise NetworkError(stage, f"missing txId in {body}")
        return txid
