"""
Bridge error taxonomy

Only structural failures (UnsupportedChain, NoRouteAvailable, UnknownAdapter,
SecurityCheckFailed) reach callers. ProviderApiError and SigningFailure are
raised and absorbed inside the adapters.
"""
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from bridgeroute.core.models.bridge_models import RiskAssessment


class BridgeError(Exception):
    """Base class for all bridge errors"""


class UnsupportedChain(BridgeError):
    """Requested chain is not covered by an adapter"""

    def __init__(self, adapter_name: str, chain: str, supported: Iterable[str]):
        self.adapter_name = adapter_name
        self.chain = chain
        self.supported = sorted(supported)
        super().__init__(
            f"{adapter_name} does not support {chain}. Supported: {', '.join(self.supported)}"
        )


class NoRouteAvailable(BridgeError):
    """Aggregation produced zero quotes"""

    def __init__(self, from_chain: str, to_chain: str):
        self.from_chain = from_chain
        self.to_chain = to_chain
        super().__init__(f"No bridges available for route {from_chain} -> {to_chain}")


class UnknownAdapter(BridgeError):
    """Registry lookup by adapter name failed"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown adapter: {name}")


class ProviderApiError(BridgeError):
    """External provider API call failed or returned an unusable payload"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} API error: {message}")


class SigningFailure(BridgeError):
    """Building, signing or broadcasting a transfer failed"""


class SecurityCheckFailed(BridgeError):
    """A risk assessment marked the transfer unsafe"""

    def __init__(self, assessment: "RiskAssessment"):
        self.assessment = assessment
        reasons = ", ".join(assessment.warnings) or "risk score too high"
        super().__init__(f"Bridge transaction failed security check: {reasons}")
