"""
Data models for bridge quotes, executions and risk assessments
"""
from .bridge_models import (
    BridgeFee,
    BridgeStatus,
    ExecutionHandle,
    PlatformLink,
    Quote,
    RiskAssessment,
    RouteOption,
    ScoredQuote,
    SigningCapability,
    TransferRequest,
)

__all__ = [
    'BridgeFee',
    'BridgeStatus',
    'ExecutionHandle',
    'PlatformLink',
    'Quote',
    'RiskAssessment',
    'RouteOption',
    'ScoredQuote',
    'SigningCapability',
    'TransferRequest',
]
