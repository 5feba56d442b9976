"""
Bridge Models
Data models for quotes, executions and risk assessments
"""
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BridgeStatus(str, Enum):
    """Canonical lifecycle states of a bridge transfer"""
    PENDING = "pending"
    FILLED = "filled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    PARTIAL_FILLED = "partialFilled"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_final(self) -> bool:
        """True once the transfer can no longer change state"""
        return self in (
            BridgeStatus.FILLED,
            BridgeStatus.CONFIRMED,
            BridgeStatus.COMPLETED,
            BridgeStatus.EXPIRED,
            BridgeStatus.CANCELLED,
            BridgeStatus.FAILED,
        )


class TransferRequest(BaseModel):
    """
    A cross-chain transfer the caller wants priced

    Amount is a decimal string in whole token units (e.g. "1.5" ETH).
    """
    model_config = ConfigDict(frozen=True)

    from_chain: str
    to_chain: str
    from_token: str = "ETH"
    to_token: str = "ETH"
    amount: str
    from_address: Optional[str] = None
    to_address: Optional[str] = None  # Recipient on the destination chain

    @field_validator("from_chain", "to_chain")
    @classmethod
    def normalize_chain(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> str:
        """Amount must parse as a positive decimal"""
        try:
            value = Decimal(str(v).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"amount must be a decimal string, got {v!r}") from e
        if not value.is_finite() or value <= 0:
            raise ValueError("amount must be greater than 0")
        return str(v).strip()


class BridgeFee(BaseModel):
    """Fee breakdown: fixed part in source token units plus a percentage"""
    model_config = ConfigDict(frozen=True)

    fixed: float = 0.0
    percentage: float = 0.0
    fee_token_symbol: Optional[str] = None


class Quote(BaseModel):
    """
    Priced estimate of a transfer from one adapter

    Immutable once produced. to_amount and fee are always populated, either
    from live provider data or from the adapter's fallback estimator
    (is_estimate=True).
    """
    model_config = ConfigDict(frozen=True)

    adapter_name: str
    from_chain: str
    to_chain: str
    from_token: str
    to_token: str
    from_amount: str
    to_amount: str
    fee: BridgeFee
    estimated_time_seconds: int
    slippage_percent: float
    provider_raw_payload: Dict[str, Any] = Field(default_factory=dict)
    recipient_address: Optional[str] = None
    contract_address: Optional[str] = None
    is_estimate: bool = False


class ScoredQuote(BaseModel):
    """A quote together with its composite ranking score"""
    adapter_name: str
    quote: Quote
    score: float


class RouteOption(BaseModel):
    """Adapter able to serve a chain pair (no quote fetched)"""
    adapter_name: str
    supported: bool = True


class PlatformLink(BaseModel):
    """Deep link to the provider's own UI for a quote"""
    url: str
    label: str
    bridge: str


class ExecutionHandle(BaseModel):
    """
    Result of executing a quote

    Created on execute; status is refreshed by polling the owning adapter.
    """
    transaction_hash: Optional[str] = None
    status: BridgeStatus = BridgeStatus.PENDING
    bridge_name: str
    provider_order_id: Optional[str] = None
    simulation: bool = False
    error: Optional[str] = None
    from_chain: Optional[str] = None
    to_chain: Optional[str] = None


class RiskAssessment(BaseModel):
    """Safety verdict for a quote, computed fresh on every verification"""
    safe: bool
    contract_verified: bool
    scam_check_passed: bool
    risk_score: int = Field(ge=0, le=100)
    risk_factors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


@runtime_checkable
class SigningCapability(Protocol):
    """
    Wallet collaborator supplied by the caller

    sign() and broadcast() may be plain or async methods. broadcast()
    returns a mapping with at least a "hash" key.
    """
    address: str

    def sign(self, transaction: Dict[str, Any]) -> Any:
        ...

    def broadcast(self, signed_transaction: Any) -> Dict[str, Any]:
        ...
