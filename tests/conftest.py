"""
Pytest configuration and shared fixtures
"""
import httpx
import pytest

from bridgeroute.core.models.bridge_models import TransferRequest
from bridgeroute.core.services.bridge.adapters import AcrossAdapter, DeBridgeAdapter, LayerZeroAdapter
from bridgeroute.core.services.bridge.aggregator import BridgeAggregator
from bridgeroute.core.services.bridge.security import BridgeSecurity
from tests.fixtures.mocks import RecordingTransport, make_async_signer, make_signer, service_unavailable


@pytest.fixture
def down_transport():
    """Transport where every provider answers 503"""
    return RecordingTransport(service_unavailable)


@pytest.fixture
async def down_client(down_transport):
    async with httpx.AsyncClient(transport=down_transport) as client:
        yield client


@pytest.fixture
def offline_adapters(down_client):
    """All three providers wired to an unreachable API"""
    return [
        DeBridgeAdapter(client=down_client),
        LayerZeroAdapter(client=down_client),
        AcrossAdapter(client=down_client),
    ]


@pytest.fixture
def aggregator(offline_adapters):
    return BridgeAggregator(adapters=offline_adapters)


@pytest.fixture
def security(down_client):
    """Security analyzer whose explorer lookups always fail"""
    return BridgeSecurity(client=down_client)


@pytest.fixture
def eth_to_arbitrum():
    return TransferRequest(
        from_chain="ethereum",
        to_chain="arbitrum",
        from_token="ETH",
        to_token="ETH",
        amount="1",
    )


@pytest.fixture
def signer():
    return make_signer()


@pytest.fixture
def async_signer():
    return make_async_signer()
