"""
Bridge adapter contract and shared pure helpers

Adapters do not inherit from a common base class. Each provider implements
the BridgeAdapter protocol on its own and only reuses the stateless helpers
below (chain validation, fee tiers, unit conversion, HTTP JSON fetch,
status normalization, execution handles).
"""
import inspect
import secrets
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

import httpx

from bridgeroute.core.models.bridge_models import (
    BridgeFee,
    BridgeStatus,
    ExecutionHandle,
    PlatformLink,
    Quote,
    SigningCapability,
    TransferRequest,
)
from bridgeroute.core.services.bridge.errors import ProviderApiError, SigningFailure, UnsupportedChain
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

# (amount threshold, fixed fee, percentage fee); first tier whose threshold
# the amount exceeds wins, the last tier is the floor
FeeTiers = Sequence[Tuple[float, float, float]]


@runtime_checkable
class BridgeAdapter(Protocol):
    """Capabilities every bridge provider adapter implements"""

    name: str

    def supported_chains(self) -> FrozenSet[str]:
        ...

    def is_chain_supported(self, chain: str) -> bool:
        ...

    async def get_quote(self, request: TransferRequest) -> Quote:
        ...

    def estimate_quote(self, request: TransferRequest) -> Quote:
        ...

    async def execute_bridge(self, quote: Quote, signer: Optional[SigningCapability] = None) -> ExecutionHandle:
        ...

    async def get_status(self, handle: ExecutionHandle) -> BridgeStatus:
        ...

    def get_platform_link(self, quote: Quote) -> PlatformLink:
        ...

    async def aclose(self) -> None:
        ...


def validate_chain_support(adapter_name: str, supported: Iterable[str], chain: str) -> None:
    """Raise UnsupportedChain unless chain is in the supported set"""
    supported = frozenset(supported)
    if chain not in supported:
        raise UnsupportedChain(adapter_name, chain, supported)


def safe_float(value, default: float = 0.0) -> float:
    """Safely convert to float"""
    try:
        return float(value) if value is not None else default
    except (ValueError, TypeError):
        return default


def tiered_fee(amount: float, tiers: FeeTiers, fee_token_symbol: Optional[str] = None) -> BridgeFee:
    """Pick the fee for an amount from a descending tier table"""
    for threshold, fixed, percentage in tiers:
        if amount > threshold:
            return BridgeFee(fixed=fixed, percentage=percentage, fee_token_symbol=fee_token_symbol)
    _, fixed, percentage = tiers[-1]
    return BridgeFee(fixed=fixed, percentage=percentage, fee_token_symbol=fee_token_symbol)


def apply_rate(amount: str, rate: float) -> str:
    """Scale a decimal amount string by a conversion rate"""
    return str(Decimal(amount) * Decimal(str(rate)))


def to_base_units(amount: str, decimals: int) -> str:
    """Convert a decimal token amount to integer base units ("1.5", 6 -> "1500000")"""
    try:
        return str(int(Decimal(amount).scaleb(decimals)))
    except (InvalidOperation, ValueError) as e:
        raise ProviderApiError("local", f"cannot convert amount {amount!r}") from e


def from_base_units(value: Any, decimals: int) -> str:
    """Convert integer base units back to a decimal token amount string"""
    try:
        return format(Decimal(str(value)).scaleb(-decimals).normalize(), "f")
    except (InvalidOperation, ValueError) as e:
        raise ProviderApiError("local", f"cannot parse base-unit amount {value!r}") from e


def spread_percentage(from_amount: str, to_amount: str) -> float:
    """Implied fee percentage from the input/output difference, never negative"""
    sent = safe_float(from_amount)
    received = safe_float(to_amount)
    if sent <= 0:
        return 0.0
    return max(0.0, (sent - received) / sent * 100)


async def fetch_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    GET a provider endpoint and return its JSON object

    Raises:
        ProviderApiError: transport failure, timeout, non-2xx status,
            body that is not a JSON object, or a provider error payload
    """
    try:
        kwargs = {"params": params, "headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await client.get(url, **kwargs)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        raise ProviderApiError(provider, f"HTTP {e.response.status_code}", e.response.status_code) from e
    except httpx.HTTPError as e:
        raise ProviderApiError(provider, f"{type(e).__name__}: {e}") from e
    except ValueError as e:
        raise ProviderApiError(provider, "malformed JSON payload") from e

    if not isinstance(data, dict):
        raise ProviderApiError(provider, "unexpected payload shape")

    error_code = data.get("errorCode") or data.get("errorId") or data.get("error")
    if error_code:
        message = data.get("errorMessage") or data.get("message") or error_code
        raise ProviderApiError(provider, f"provider error {error_code}: {message}")

    return data


def normalize_status(code: Any, table: Mapping[Any, BridgeStatus]) -> BridgeStatus:
    """
    Map a provider status code onto BridgeStatus

    Numeric codes (int or digit strings) are looked up as ints, string codes
    case-insensitively. Anything unmapped is UNKNOWN.
    """
    if code is None:
        return BridgeStatus.UNKNOWN
    if isinstance(code, bool):
        return BridgeStatus.UNKNOWN
    if isinstance(code, int):
        return table.get(code, BridgeStatus.UNKNOWN)
    text = str(code).strip()
    if text.isdigit():
        return table.get(int(text), BridgeStatus.UNKNOWN)
    lowered = {k.lower(): v for k, v in table.items() if isinstance(k, str)}
    return lowered.get(text.lower(), BridgeStatus.UNKNOWN)


def synthetic_tx_hash() -> str:
    """Locally generated 32-byte hash for simulated or failed executions"""
    return "0x" + secrets.token_hex(32)


def build_quote(
    adapter_name: str,
    request: TransferRequest,
    to_amount: str,
    fee: BridgeFee,
    estimated_time_seconds: int,
    slippage_percent: float,
    raw: Optional[Dict[str, Any]] = None,
    contract_address: Optional[str] = None,
    is_estimate: bool = False,
) -> Quote:
    """Assemble a Quote for a request"""
    return Quote(
        adapter_name=adapter_name,
        from_chain=request.from_chain,
        to_chain=request.to_chain,
        from_token=request.from_token,
        to_token=request.to_token,
        from_amount=request.amount,
        to_amount=to_amount,
        fee=fee,
        estimated_time_seconds=int(estimated_time_seconds),
        slippage_percent=float(slippage_percent),
        provider_raw_payload=raw or {},
        recipient_address=request.to_address,
        contract_address=contract_address,
        is_estimate=is_estimate,
    )


def simulation_handle(quote: Quote) -> ExecutionHandle:
    """Handle for an execution without a signer; nothing is broadcast"""
    return ExecutionHandle(
        transaction_hash=synthetic_tx_hash(),
        status=BridgeStatus.PENDING,
        bridge_name=quote.adapter_name,
        simulation=True,
        from_chain=quote.from_chain,
        to_chain=quote.to_chain,
    )


def submitted_handle(quote: Quote, tx_hash: str, provider_order_id: Any = None) -> ExecutionHandle:
    """Handle for a broadcast transfer awaiting settlement"""
    return ExecutionHandle(
        transaction_hash=tx_hash,
        status=BridgeStatus.PENDING,
        bridge_name=quote.adapter_name,
        provider_order_id=_order_id_text(provider_order_id),
        simulation=False,
        from_chain=quote.from_chain,
        to_chain=quote.to_chain,
    )


def failed_handle(quote: Quote, error: Exception, provider_order_id: Any = None) -> ExecutionHandle:
    """Handle reporting an execution failure instead of raising it"""
    return ExecutionHandle(
        transaction_hash=synthetic_tx_hash(),
        status=BridgeStatus.PENDING,
        bridge_name=quote.adapter_name,
        provider_order_id=_order_id_text(provider_order_id),
        simulation=False,
        error=str(error),
        from_chain=quote.from_chain,
        to_chain=quote.to_chain,
    )


def _order_id_text(order_id: Any) -> Optional[str]:
    # providers return order ids as strings or plain integers
    return None if order_id is None else str(order_id)


def normalize_tx_hash(value: Any) -> Optional[str]:
    """Hex string for a broadcast hash; web3 returns HexBytes, RPC clients return str"""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex() if value else None
    text = str(value).strip()
    return text or None


async def maybe_await(value):
    """Await value if the signer returned an awaitable"""
    if inspect.isawaitable(value):
        return await value
    return value


async def sign_and_broadcast(signer: SigningCapability, transactions: List[Dict[str, Any]]) -> str:
    """
    Sign and broadcast descriptors in order, returning the last hash

    Raises:
        SigningFailure: signer or broadcast failed, or no hash came back
    """
    if not transactions:
        raise SigningFailure("no transaction to sign")

    tx_hash = None
    for descriptor in transactions:
        try:
            signed = await maybe_await(signer.sign(descriptor))
            result = await maybe_await(signer.broadcast(signed))
        except Exception as e:
            raise SigningFailure(f"sign/broadcast failed: {e}") from e

        if isinstance(result, Mapping):
            raw_hash = result.get("hash")
        elif isinstance(result, (str, bytes, bytearray)):
            raw_hash = result
        else:
            raw_hash = getattr(result, "hash", None)
        tx_hash = normalize_tx_hash(raw_hash)
        if not tx_hash:
            raise SigningFailure("broadcast returned no transaction hash")
        logger.info(f"📤 Broadcast {tx_hash[:18]}... to {descriptor.get('to')}")

    return tx_hash
