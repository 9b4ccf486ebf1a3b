import pytest

from gateway.core.tokens import Token

from tests.fakes import TOKEN_LIST, FakeChain, FakeRouter, FakeSigner


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fake_router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def weth() -> Token:
    return Token.from_dict(TOKEN_LIST[0])


@pytest.fixture
def usdc() -> Token:
    return Token.from_dict(TOKEN_LIST[1])
