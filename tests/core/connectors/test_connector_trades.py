"""
Tests for connector pricing and execution (openocean variant with a fixed-rate router).
"""

import time
from dataclasses import replace
from decimal import Decimal
from fractions import Fraction

import pytest
from unittest.mock import AsyncMock

from gateway.core.connectors.base import parse_fraction
from gateway.core.connectors.openocean import OpenOceanConnector
from gateway.core.errors import (
    BroadcastRejectedError,
    ConfigError,
    NoRouteError,
    NotReadyError,
    RpcError,
    StaleNonceError,
    StaleRouteError,
)
from gateway.core.execution.models import TradeSide, invert_price

from tests.fakes import FakeChain, FakeRouter, FakeSigner, make_connector_config

ONE_WETH = 10**18


def _connector(chain: FakeChain, router: FakeRouter, **config) -> OpenOceanConnector:
    return OpenOceanConnector("openocean", chain, make_connector_config(**config), router)


async def _ready_connector(chain: FakeChain, router: FakeRouter, **config) -> OpenOceanConnector:
    connector = _connector(chain, router, **config)
    await connector.initialize()
    return connector


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_trades_before_initialize_raise_not_ready(self, fake_chain, fake_router, weth, usdc):
        connector = _connector(fake_chain, fake_router)

        with pytest.raises(NotReadyError):
            await connector.estimate_sell_trade(weth, usdc, ONE_WETH)
        assert fake_router.quotes == []

    @pytest.mark.asyncio
    async def test_initialize_inits_chain_once_and_seals_tokens(self, fake_chain, fake_router):
        connector = _connector(fake_chain, fake_router)

        await connector.initialize()
        await connector.initialize()

        assert connector.ready()
        assert fake_chain.init_calls == 1
        assert connector.tokens.sealed
        assert connector.get_token_by_symbol("weth").decimals == 18

    def test_config_properties(self, fake_chain, fake_router):
        connector = _connector(fake_chain, fake_router, maximum_hops=2)

        assert connector.router_address == "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
        assert connector.gas_limit_estimate == 150000
        assert connector.ttl == 600
        assert connector.maximum_hops == 2


class TestAllowedSlippage:
    def test_override_is_parsed_exactly(self, fake_chain, fake_router):
        connector = _connector(fake_chain, fake_router)

        assert connector.get_allowed_slippage("3/200") == Fraction(3, 200)
        assert connector.get_allowed_slippage() == Fraction(1, 100)

    @pytest.mark.parametrize("value", ["abc", "1/0", "0.01", "3/2", ""])
    def test_malformed_override_raises(self, value):
        with pytest.raises(ConfigError):
            parse_fraction(value)

    def test_malformed_config_raises(self, fake_chain, fake_router):
        connector = _connector(fake_chain, fake_router, allowed_slippage="one percent")

        with pytest.raises(ConfigError):
            connector.get_allowed_slippage()


class TestEstimates:
    @pytest.mark.asyncio
    async def test_sell_estimate(self, fake_chain, fake_router, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)

        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        assert intent.side == TradeSide.SELL
        assert intent.amount_out == 2000 * 10**6
        assert intent.expected_amount == 1980 * 10**6
        assert intent.execution_price == Fraction(2000)
        assert intent.allowed_slippage == Fraction(1, 100)
        assert intent.expires_at > time.time()
        assert fake_router.quotes[0].exact_out is False

    @pytest.mark.asyncio
    async def test_no_route_raises_without_touching_nonces(self, fake_chain, fake_router, weth, usdc):
        fake_router.no_route = True
        connector = await _ready_connector(fake_chain, fake_router)
        fake_chain.nonce_manager.allocate = AsyncMock()

        with pytest.raises(NoRouteError):
            await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        fake_chain.nonce_manager.allocate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_positive_amount_raises(self, fake_chain, fake_router, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)

        with pytest.raises(ConfigError):
            await connector.estimate_sell_trade(weth, usdc, 0)

    @pytest.mark.asyncio
    async def test_buy_estimate_inverts_the_opposite_sell(self, fake_chain, fake_router, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)

        sell = await connector.estimate_sell_trade(weth, usdc, 2 * ONE_WETH)
        buy = await connector.estimate_buy_trade(usdc, weth, 2 * ONE_WETH)

        assert buy.side == TradeSide.BUY
        assert buy.route_reversed
        assert buy.token_in == usdc and buy.token_out == weth
        assert buy.execution_price == invert_price(sell.execution_price)
        assert invert_price(buy.execution_price) == Fraction(2000)
        assert buy.amount_in == 4000 * 10**6
        assert buy.expected_amount == 4040 * 10**6


class TestExecution:
    @pytest.mark.asyncio
    async def test_sell_execution_commits_nonce(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        handle = await connector.execute_trade(fake_signer, intent, Decimal("5"), 150000)

        assert handle.nonce == 0
        assert fake_signer.signed[0]["gasPrice"] == 5_000_000_000
        assert fake_signer.signed[0]["data"] == "0xdeadbeef"
        build_quote, params = fake_router.builds[0]
        assert build_quote is intent.route
        assert params.recipient == fake_signer.address
        assert params.deadline >= int(time.time()) + 599
        state = fake_chain.nonce_manager.get_state(fake_signer.address)
        assert state.committed == {0} and state.reserved == set()

    @pytest.mark.asyncio
    async def test_fee_market_wins_over_legacy_price(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        await connector.execute_trade(
            fake_signer,
            intent,
            Decimal("5"),
            150000,
            max_fee_per_gas=40_000_000_000,
            max_priority_fee_per_gas=1_000_000_000,
        )

        tx = fake_signer.signed[0]
        assert tx["maxFeePerGas"] == 40_000_000_000
        assert tx["maxPriorityFeePerGas"] == 1_000_000_000
        assert "gasPrice" not in tx

    @pytest.mark.asyncio
    async def test_consecutive_trades_use_consecutive_nonces(self, fake_chain, fake_router, fake_signer, weth, usdc):
        fake_chain.tx_count = 12
        connector = await _ready_connector(fake_chain, fake_router)

        nonces = []
        for _ in range(3):
            intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)
            nonces.append((await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)).nonce)

        assert nonces == [12, 13, 14]

    @pytest.mark.asyncio
    async def test_explicit_nonce_is_used(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        handle = await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000, nonce=7)

        assert handle.nonce == 7
        assert fake_signer.signed[0]["nonce"] == 7

    @pytest.mark.asyncio
    async def test_stale_explicit_nonce_raises(self, fake_chain, fake_router, fake_signer, weth, usdc):
        fake_chain.tx_count = 5
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        with pytest.raises(StaleNonceError):
            await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000, nonce=4)
        assert fake_signer.signed == []

    @pytest.mark.asyncio
    async def test_expired_intent_raises_before_allocation(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)
        expired = replace(intent, expires_at=time.time() - 1)

        with pytest.raises(StaleRouteError):
            await connector.execute_trade(fake_signer, expired, Decimal("1"), 150000)

        assert fake_router.builds == []
        assert fake_chain.nonce_manager.get_state(fake_signer.address) is None

    @pytest.mark.asyncio
    async def test_built_call_below_minimum_raises(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)
        fake_router.build_amount_out = intent.expected_amount - 1

        with pytest.raises(StaleRouteError):
            await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)

        assert fake_chain.nonce_manager.get_state(fake_signer.address) is None
        assert fake_signer.signed == []

    @pytest.mark.asyncio
    async def test_intent_from_other_connector_rejected(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        with pytest.raises(ConfigError):
            await connector.execute_trade(fake_signer, replace(intent, connector="uniswap"), Decimal("1"), 150000)

    @pytest.mark.asyncio
    async def test_reversed_buy_requotes_the_forward_route(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_buy_trade(usdc, weth, ONE_WETH)

        await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)

        forward = fake_router.quotes[-1]
        assert forward.token_in == usdc and forward.token_out == weth
        assert forward.amount == 2000 * 10**6
        assert forward.exact_out is False
        build_quote, params = fake_router.builds[0]
        assert build_quote.token_in == usdc
        assert params.exact_out is False

    @pytest.mark.asyncio
    async def test_reversed_buy_past_slippage_is_stale(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_buy_trade(usdc, weth, ONE_WETH)
        # WETH got 5% more expensive since the quote
        fake_router.rate_multiplier = Fraction(95, 100)

        with pytest.raises(StaleRouteError):
            await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)
        assert fake_router.builds == []

    @pytest.mark.asyncio
    async def test_rejection_releases_nonce_for_the_next_trade(self, fake_chain, fake_router, fake_signer, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        fake_chain.send_error = RpcError("replacement transaction underpriced")
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)

        with pytest.raises(BroadcastRejectedError):
            await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)

        fake_chain.send_error = None
        handle = await connector.execute_trade(fake_signer, intent, Decimal("1"), 150000)
        assert handle.nonce == 0

    @pytest.mark.asyncio
    async def test_wallets_are_independent(self, fake_chain, fake_router, weth, usdc):
        connector = await _ready_connector(fake_chain, fake_router)
        intent = await connector.estimate_sell_trade(weth, usdc, ONE_WETH)
        alice = FakeSigner("0x" + "aa" * 20)
        bob = FakeSigner("0x" + "bb" * 20)

        first = await connector.execute_trade(alice, intent, Decimal("1"), 150000)
        second = await connector.execute_trade(bob, intent, Decimal("1"), 150000)

        assert first.nonce == 0 and second.nonce == 0
