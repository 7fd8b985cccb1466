"""Tests for the algod client and the high-level AlgoIoT client.

HTTP calls are served by httpx.MockTransport, so no node is contacted.
"""

import json

import httpx
import msgpack
import pytest

from algoiot.account import Account
from algoiot.blockchain import (
    ALGORAND_POST_MIME_TYPE,
    API_TOKEN_HEADER,
    AlgodClient,
    AlgodConfig,
    HttpAlgodClient,
)
from algoiot.client import AlgoIoT
from algoiot.mnemonic import encode_mnemonic
from algoiot.network import Network, network_config
from algoiot.signing import verify_transaction_signature
from algoiot.transactions import TransactionParams
from algoiot.types import (
    RESERVED_HEADER_SIZE,
    InvalidAddressError,
    InvalidTransactionError,
    NetworkError,
)
from .test_vectors import (
    APPLICATION_ID,
    APPLICATION_NOOP_KEYS,
    APPLICATION_OPT_IN_KEYS,
    ASSET_CREATION_KEYS,
    ASSET_DESTROY_KEYS,
    ASSET_FREEZE_KEYS,
    ASSET_ID,
    ASSET_OPT_IN_KEYS,
    ASSET_OPT_OUT_KEYS,
    DEVICE_SEED_HEX,
    PAYMENT_KEYS,
    PAYMENT_KEYS_WITH_NOTE,
    RECEIVER_SEED_HEX,
    SMALL_APPLICATION_ID,
)


NODE_URL = "https://algod.test"
TXID = "TXIDTXIDTXIDTXIDTXIDTXIDTXIDTXIDTXIDTXIDTXIDTXIDTXID"

_PARAMS_JSON = {
    "consensus-version": "future",
    "fee": 0,
    "genesis-hash": "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
    "genesis-id": "testnet-v1.0",
    "last-round": 40_000_000,
    "min-fee": 1000,
}


class FakeNode:
    """Records requests and serves canned algod responses."""

    def __init__(self, params_status: int = 200, submit_status: int = 200) -> None:
        self.params_status = params_status
        self.submit_status = submit_status
        self.requests: list[httpx.Request] = []
        self.submitted: list[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path == "/v2/transactions/params":
            return httpx.Response(self.params_status, json=_PARAMS_JSON)
        if request.method == "POST" and request.url.path == "/v2/transactions":
            self.submitted.append(request.content)
            if self.submit_status != 200:
                return httpx.Response(
                    self.submit_status, json={"message": "transaction rejected"}
                )
            return httpx.Response(200, json={"txId": TXID})
        return httpx.Response(404, json={"message": "not found"})


def make_algod(handler, token: str = "") -> HttpAlgodClient:
    config = AlgodConfig(algod_url=NODE_URL, algod_token=token)
    return HttpAlgodClient(config, transport=httpx.MockTransport(handler))


@pytest.fixture
def device() -> Account:
    return Account.from_private_key(bytes.fromhex(DEVICE_SEED_HEX))


@pytest.fixture
def receiver() -> Account:
    return Account.from_private_key(bytes.fromhex(RECEIVER_SEED_HEX))


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def client(node: FakeNode, device: Account) -> AlgoIoT:
    return AlgoIoT("station", encode_mnemonic(device.private_key), algod=make_algod(node))


class TestAlgodConfig:
    """Test node configuration."""

    def test_for_network(self, monkeypatch) -> None:
        monkeypatch.delenv("ALGOD_MAINNET_URL", raising=False)
        config = AlgodConfig.mainnet()
        assert config.algod_url == network_config(Network.MAINNET).api_url
        assert config.timeout == 5.0

    def test_localnet(self) -> None:
        config = AlgodConfig.localnet()
        assert config.algod_url == "http://localhost:4001"
        assert len(config.algod_token) == 64


class TestHttpAlgodClient:
    """Test the algod REST client."""

    def test_is_algod_client(self, node) -> None:
        assert isinstance(make_algod(node), AlgodClient)

    def test_get_transaction_params(self, node) -> None:
        params = make_algod(node).get_transaction_params(Network.TESTNET)
        assert params == TransactionParams(first_valid=40_000_000, fee=1000)
        assert params.last_valid == 40_001_000

    def test_submit_transaction(self, node) -> None:
        txid = make_algod(node).submit_transaction(b"\x82payload")
        assert txid == TXID
        request = node.requests[-1]
        assert request.headers["Content-Type"] == ALGORAND_POST_MIME_TYPE
        assert request.content == b"\x82payload"

    def test_token_header(self, node) -> None:
        make_algod(node, token="secret").get_transaction_params(Network.TESTNET)
        assert node.requests[-1].headers[API_TOKEN_HEADER] == "secret"

    def test_no_token_header_by_default(self, node) -> None:
        make_algod(node).get_transaction_params(Network.TESTNET)
        assert API_TOKEN_HEADER not in node.requests[-1].headers

    def test_http_error_status(self) -> None:
        algod = make_algod(FakeNode(params_status=500))
        with pytest.raises(NetworkError) as exc_info:
            algod.get_transaction_params(Network.TESTNET)
        assert exc_info.value.status_code == 500
        assert exc_info.value.stage == "get transaction params"

    def test_rejected_submission(self) -> None:
        algod = make_algod(FakeNode(submit_status=400))
        with pytest.raises(NetworkError) as exc_info:
            algod.submit_transaction(b"\x82")
        assert exc_info.value.status_code == 400
        assert "transaction rejected" in str(exc_info.value)

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            make_algod(handler).get_transaction_params(Network.TESTNET)
        assert exc_info.value.status_code is None

    def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"not json")

        with pytest.raises(NetworkError):
            make_algod(handler).get_transaction_params(Network.TESTNET)

    def test_missing_fields(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"last-round": 5})

        with pytest.raises(NetworkError):
            make_algod(handler).get_transaction_params(Network.TESTNET)

    def test_missing_txid(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "ok"})

        with pytest.raises(NetworkError):
            make_algod(handler).submit_transaction(b"\x82")

    def test_context_manager(self, node) -> None:
        with make_algod(node) as algod:
            assert algod.get_transaction_params(Network.TESTNET).fee == 1000


class TestAlgoIoTSetup:
    """Test client construction and configuration."""

    def test_account_from_mnemonic(self, client, device) -> None:
        assert client.public_key == device.public_key
        assert client.address == device.address
        assert client.app_name == "station"

    def test_defaults(self, client, device) -> None:
        assert client.network is Network.TESTNET
        assert client.destination == device.public_key
        assert client.transaction_id == ""

    def test_set_destination(self, client, receiver) -> None:
        client.set_destination_address(receiver.address)
        assert client.destination == receiver.public_key

    def test_invalid_destination_keeps_previous(self, client, device) -> None:
        with pytest.raises(InvalidAddressError):
            client.set_destination_address("not an address")
        assert client.destination == device.public_key

    def test_set_network_keeps_supplied_algod(self, client) -> None:
        algod = client.algod
        client.set_network(Network.MAINNET)
        assert client.network is Network.MAINNET
        assert client.network_config.genesis_id == "mainnet-v1.0"
        assert client.algod is algod

    def test_set_network_replaces_default_algod(self, device, monkeypatch) -> None:
        monkeypatch.setenv("ALGOD_MAINNET_URL", "http://mainnet.test")
        client = AlgoIoT("station", encode_mnemonic(device.private_key))
        client.set_network(Network.MAINNET)
        assert client.algod.config.algod_url == "http://mainnet.test"

    def test_repr(self, client, device) -> None:
        assert device.address in repr(client)

    def test_close_owned_algod(self, device) -> None:
        client = AlgoIoT("station", encode_mnemonic(device.private_key))
        client.close()
        assert client.algod._client.is_closed

    def test_close_keeps_supplied_algod(self, client, node) -> None:
        client.close()
        assert not client.algod._client.is_closed
        assert client.algod.get_transaction_params(Network.TESTNET).fee == 1000

    def test_context_manager(self, device) -> None:
        with AlgoIoT("station", encode_mnemonic(device.private_key)) as client:
            algod = client.algod
            assert not algod._client.is_closed
        assert algod._client.is_closed


class TestSubmit:
    """Test the full pipeline against a fake node."""

    def submitted(self, node: FakeNode) -> dict:
        return msgpack.unpackb(node.submitted[-1], raw=False)

    def test_payment_to_self(self, client, node, device) -> None:
        txid = client.submit_payment()

        assert txid == TXID
        assert client.transaction_id == TXID
        signed = self.submitted(node)
        txn = signed["txn"]
        assert list(txn) == PAYMENT_KEYS
        assert txn["rcv"] == txn["snd"] == device.public_key
        assert txn["amt"] == 100_000
        assert txn["fv"] == 40_000_000
        assert txn["lv"] == 40_001_000
        assert txn["fee"] == 1000

    def test_payment_signature_verifies(self, client, node, device) -> None:
        client.submit_payment()
        payload = node.submitted[-1]
        signature = self.submitted(node)["sig"]
        assert verify_transaction_signature(
            payload[RESERVED_HEADER_SIZE:], signature, device.public_key
        )

    def test_payment_with_note(self, client, node, receiver) -> None:
        client.set_destination_address(receiver.address)
        client.note.add_float("temp", 21.5)
        client.note.add_uint8("hum", 48)
        client.submit_payment(amount=1)

        txn = self.submitted(node)["txn"]
        assert list(txn) == PAYMENT_KEYS_WITH_NOTE
        assert txn["rcv"] == receiver.public_key
        assert txn["note"].startswith(b"station:j")
        assert json.loads(txn["note"][len(b"station:j"):]) == {"temp": 21.5, "hum": 48}

    def test_params_fetched_per_submission(self, client, node) -> None:
        client.submit_payment()
        client.submit_payment()
        gets = [r for r in node.requests if r.method == "GET"]
        assert len(gets) == 2

    def test_asset_opt_in(self, client, node, device) -> None:
        client.submit_asset_opt_in()
        txn = self.submitted(node)["txn"]
        assert list(txn) == ASSET_OPT_IN_KEYS
        assert txn["xaid"] == ASSET_ID
        assert txn["arcv"] == device.public_key

    def test_asset_opt_out(self, client, node, receiver) -> None:
        client.submit_asset_opt_out(ASSET_ID, close_to=receiver.address)
        txn = self.submitted(node)["txn"]
        assert list(txn) == ASSET_OPT_OUT_KEYS
        assert txn["aclose"] == receiver.public_key

    def test_application_opt_in(self, client, node) -> None:
        client.submit_application_opt_in()
        txn = self.submitted(node)["txn"]
        assert list(txn) == APPLICATION_OPT_IN_KEYS
        assert txn["apid"] == APPLICATION_ID
        assert txn["apan"] == 1

    def test_application_noop(self, client, node, receiver) -> None:
        client.submit_application_noop(
            APPLICATION_ID,
            app_args=[b"reading", b"\x00\x15"],
            foreign_assets=[ASSET_ID],
            foreign_apps=[SMALL_APPLICATION_ID],
            accounts=[receiver.address],
        )
        txn = self.submitted(node)["txn"]
        assert list(txn) == APPLICATION_NOOP_KEYS
        assert txn["apaa"] == [b"reading", b"\x00\x15"]
        assert txn["apat"] == [receiver.public_key]
        assert "apan" not in txn

    def test_application_noop_default_app(self, client, node) -> None:
        client.submit_application_noop()
        txn = self.submitted(node)["txn"]
        assert txn["apid"] == SMALL_APPLICATION_ID
        assert list(txn) == APPLICATION_NOOP_KEYS[4:]

    def test_application_noop_bad_account(self, client, node) -> None:
        with pytest.raises(InvalidAddressError):
            client.submit_application_noop(APPLICATION_ID, accounts=["not an address"])
        assert node.submitted == []

    def test_asset_creation(self, client, node, device) -> None:
        client.submit_asset_creation("Weather station", "WSTN", url="https://example.com")
        txn = self.submitted(node)["txn"]
        assert list(txn) == ASSET_CREATION_KEYS
        assert txn["apar"]["m"] == device.public_key
        assert txn["apar"]["au"] == "https://example.com"
        assert client.transaction_id == TXID

    def test_asset_freeze(self, client, node, receiver) -> None:
        client.submit_asset_freeze(ASSET_ID, receiver.address, True)
        txn = self.submitted(node)["txn"]
        assert list(txn) == ASSET_FREEZE_KEYS
        assert txn["fadd"] == receiver.public_key

        client.submit_asset_freeze(ASSET_ID, receiver.address, False)
        assert "afrz" not in self.submitted(node)["txn"]

    def test_asset_destroy(self, client, node) -> None:
        client.submit_asset_destroy(ASSET_ID)
        txn = self.submitted(node)["txn"]
        assert list(txn) == ASSET_DESTROY_KEYS
        assert txn["caid"] == ASSET_ID

    def test_params_failure(self, device) -> None:
        node = FakeNode(params_status=503)
        client = AlgoIoT("station", encode_mnemonic(device.private_key), algod=make_algod(node))
        with pytest.raises(NetworkError):
            client.submit_payment()
        assert node.submitted == []
        assert client.transaction_id == ""

    def test_rejected_submission_clears_txid(self, device) -> None:
        node = FakeNode()
        client = AlgoIoT("station", encode_mnemonic(device.private_key), algod=make_algod(node))
        client.submit_payment()
        node.submit_status = 400
        with pytest.raises(NetworkError):
            client.submit_payment()
        assert client.transaction_id == ""

    def test_invalid_amount_not_submitted(self, client, node) -> None:
        with pytest.raises(InvalidTransactionError):
            client.submit_payment(amount=0)
        assert node.submitted == []


class TestPrepare:
    """Test offline preparation."""

    def test_prepare_payment_is_deterministic(self, client) -> None:
        params = TransactionParams(first_valid=100, fee=1000)
        assert client.prepare_payment(params) == client.prepare_payment(params)

    def test_prepare_uses_current_network(self, client) -> None:
        client.set_network(Network.MAINNET)
        params = client.algod.get_transaction_params(client.network)
        txn = msgpack.unpackb(client.prepare_asset_opt_in(params, ASSET_ID), raw=False)["txn"]
        assert txn["gen"] == "mainnet-v1.0"
