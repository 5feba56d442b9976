"""
bridgeroute - cross-chain bridge quote aggregation and risk scoring
"""
from bridgeroute.core.models import ExecutionHandle, Quote, RiskAssessment, ScoredQuote, TransferRequest
from bridgeroute.core.services.bridge import (
    BridgeAggregator,
    BridgeSecurity,
    CrossChainBridge,
    create_cross_chain_bridge,
)

__version__ = "0.1.0"

__all__ = [
    'BridgeAggregator',
    'BridgeSecurity',
    'CrossChainBridge',
    'ExecutionHandle',
    'Quote',
    'RiskAssessment',
    'ScoredQuote',
    'TransferRequest',
    'create_cross_chain_bridge',
]
