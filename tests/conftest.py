"""
Pytest fixtures for the Secret Network SDK tests.
"""
import pytest

from scrt_sdk.address import derive_address
from scrt_sdk.config import NetworkConfig
from scrt_sdk.models import AccountIdentity, Coin
from scrt_sdk.tx import make_fee

from test_helpers import (
    create_test_client, TEST_CHAIN_ID, TEST_PRIV_KEY, TEST_PUBKEY_HEX,
    TEST_ACCOUNT_NUMBER, TEST_SEQUENCE
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Keep gateway settings from the developer's shell out of the tests."""
    for name in (
        "SCRT_NETWORK", "SCRT_LCD_URL", "SCRT_CHAIN_ID", "SCRT_TIMEOUT",
        "SCRT_API_KEY", "SCRT_INSECURE_LCD", "SCRT_PRIVATE_KEY",
        "MAINNET_LCD_URL", "TESTNET_LCD_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    NetworkConfig._networks_cache = None
    yield
    NetworkConfig._networks_cache = None


@pytest.fixture
def private_key():
    return TEST_PRIV_KEY


@pytest.fixture
def public_key():
    return bytes.fromhex(TEST_PUBKEY_HEX)


@pytest.fixture
def sender(public_key):
    return derive_address(public_key)


@pytest.fixture
def client():
    c = create_test_client()
    yield c
    c.close()


@pytest.fixture
def chain_id():
    return TEST_CHAIN_ID


@pytest.fixture
def fee():
    return make_fee(200000, gas_price="0.1uscrt")


@pytest.fixture
def identity(sender):
    return AccountIdentity(address=sender, account_number=TEST_ACCOUNT_NUMBER, sequence=TEST_SEQUENCE)


@pytest.fixture
def coin():
    return Coin(denom="uscrt", amount="1000")
