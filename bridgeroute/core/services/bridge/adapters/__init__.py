"""
Bridge provider adapters
"""
from typing import List, Optional

import httpx

from bridgeroute.core.services.bridge.errors import UnknownAdapter

from .across_adapter import AcrossAdapter
from .base import BridgeAdapter
from .debridge_adapter import DeBridgeAdapter
from .layerzero_adapter import LayerZeroAdapter

ADAPTER_FACTORIES = {
    "debridge": DeBridgeAdapter,
    "layerzero": LayerZeroAdapter,
    "lz": LayerZeroAdapter,
    "across": AcrossAdapter,
}


def create_adapter(name: str, client: Optional[httpx.AsyncClient] = None) -> BridgeAdapter:
    """
    Build an adapter by provider name (case-insensitive, "lz" for LayerZero)

    Raises:
        UnknownAdapter: no adapter is registered under that name
    """
    factory = ADAPTER_FACTORIES.get((name or "").strip().lower())
    if factory is None:
        raise UnknownAdapter(name)
    return factory(client=client)


def create_default_adapters() -> List[BridgeAdapter]:
    """One instance of every provider, each with its own HTTP client"""
    return [DeBridgeAdapter(), LayerZeroAdapter(), AcrossAdapter()]


__all__ = [
    'AcrossAdapter',
    'BridgeAdapter',
    'DeBridgeAdapter',
    'LayerZeroAdapter',
    'create_adapter',
    'create_default_adapters',
]
