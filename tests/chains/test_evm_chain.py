"""
Tests for the JSON-RPC EVM chain, against httpx.MockTransport.
"""

import json
from decimal import Decimal

import httpx
import pytest

from gateway.chains.evm import EvmChain
from gateway.core.errors import ConfigError, RpcError
from gateway.core.gateway_config import ChainConfig, NetworkConfig

from tests.fakes import TOKEN_LIST, WALLET_KEY

NODE_URL = "http://node.test"


def _chain(handler, tmp_path, chain_id: int = 1, manual_gas_price=None, keys=None) -> EvmChain:
    token_file = tmp_path / "tokens.json"
    token_file.write_text(json.dumps({"tokens": TOKEN_LIST}))
    return EvmChain(
        "ethereum",
        "mainnet",
        ChainConfig(gas_price_token="ETH", manual_gas_price=manual_gas_price),
        NetworkConfig(chain_id=chain_id, node_url=NODE_URL, token_list=str(token_file)),
        private_keys=[WALLET_KEY] if keys is None else keys,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _node(results: dict):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        calls.append(payload)
        result = results.get(payload["method"])
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    handler.calls = calls
    return handler


@pytest.mark.asyncio
async def test_init_checks_chain_id_and_loads_tokens(tmp_path):
    handler = _node({"eth_chainId": "0x1"})
    chain = _chain(handler, tmp_path)

    await chain.init()
    await chain.init()

    assert chain.ready()
    assert len(chain.stored_token_list) == 3
    assert [call["method"] for call in handler.calls] == ["eth_chainId"]


@pytest.mark.asyncio
async def test_chain_id_mismatch_raises(tmp_path):
    chain = _chain(_node({"eth_chainId": "0x38"}), tmp_path)

    with pytest.raises(ConfigError):
        await chain.init()
    assert not chain.ready()


@pytest.mark.asyncio
async def test_transaction_count_uses_latest_block(tmp_path):
    handler = _node({"eth_getTransactionCount": "0x1a"})
    chain = _chain(handler, tmp_path)

    assert await chain.get_transaction_count("0xabc") == 26
    assert handler.calls[0]["params"] == ["0xabc", "latest"]


@pytest.mark.asyncio
async def test_nonce_manager_is_seeded_from_the_node(tmp_path):
    chain = _chain(_node({"eth_getTransactionCount": "0x5"}), tmp_path)

    assert await chain.nonce_manager.allocate("0xabc") == 5


@pytest.mark.asyncio
async def test_gas_price_in_gwei(tmp_path):
    chain = _chain(_node({"eth_gasPrice": hex(12_500_000_000)}), tmp_path)

    assert await chain.gas_price() == Decimal("12.5")


@pytest.mark.asyncio
async def test_manual_gas_price_skips_rpc(tmp_path):
    handler = _node({})
    chain = _chain(handler, tmp_path, manual_gas_price=Decimal("3"))

    assert await chain.gas_price() == Decimal("3")
    assert handler.calls == []


@pytest.mark.asyncio
async def test_rpc_error_object_raises(tmp_path):
    chain = _chain(
        _node({"eth_sendRawTransaction": {"error": {"code": -32000, "message": "nonce too low"}}}),
        tmp_path,
    )

    with pytest.raises(RpcError, match="nonce too low") as exc_info:
        await chain.send_raw_transaction("0x00")
    assert exc_info.value.code == -32000
    assert exc_info.value.method == "eth_sendRawTransaction"


@pytest.mark.asyncio
async def test_transport_failure_raises_rpc_error(tmp_path):
    chain = _chain(lambda request: httpx.Response(503), tmp_path)

    with pytest.raises(RpcError):
        await chain.get_transaction_count("0xabc")


def test_signers_by_address(tmp_path):
    chain = _chain(_node({}), tmp_path)
    signer = next(iter(chain._signers.values()))

    assert chain.get_signer(signer.address.lower()) is signer
    with pytest.raises(ConfigError):
        chain.get_signer("0x" + "99" * 20)


def test_malformed_private_key_raises(tmp_path):
    with pytest.raises(ConfigError):
        _chain(_node({}), tmp_path, keys=["not-a-key"])
