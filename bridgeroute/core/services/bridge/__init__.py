"""
Bridge Service Module
Quote aggregation, risk scoring and execution across bridge providers
"""
from .adapters import (
    AcrossAdapter,
    BridgeAdapter,
    DeBridgeAdapter,
    LayerZeroAdapter,
    create_adapter,
    create_default_adapters,
)
from .aggregator import BridgeAggregator, calculate_score, create_bridge_aggregator
from .bridge_service import CrossChainBridge, create_cross_chain_bridge
from .config import BridgeConfig
from .errors import (
    BridgeError,
    NoRouteAvailable,
    ProviderApiError,
    SecurityCheckFailed,
    SigningFailure,
    UnknownAdapter,
    UnsupportedChain,
)
from .security import BridgeSecurity, create_bridge_security

__all__ = [
    'AcrossAdapter',
    'BridgeAdapter',
    'BridgeAggregator',
    'BridgeConfig',
    'BridgeError',
    'BridgeSecurity',
    'CrossChainBridge',
    'DeBridgeAdapter',
    'LayerZeroAdapter',
    'NoRouteAvailable',
    'ProviderApiError',
    'SecurityCheckFailed',
    'SigningFailure',
    'UnknownAdapter',
    'UnsupportedChain',
    'calculate_score',
    'create_adapter',
    'create_bridge_aggregator',
    'create_bridge_security',
    'create_cross_chain_bridge',
    'create_default_adapters',
]
