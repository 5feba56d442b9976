"""
LayerZero Adapter
Quotes and transfers through Stargate, message status through LayerZero Scan
"""
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

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
from bridgeroute.core.services.bridge.adapters.base import (
    apply_rate,
    build_quote,
    failed_handle,
    fetch_json,
    from_base_units,
    normalize_status,
    safe_float,
    sign_and_broadcast,
    simulation_handle,
    spread_percentage,
    submitted_handle,
    to_base_units,
    validate_chain_support,
)
from bridgeroute.core.services.bridge.config import BridgeConfig
from bridgeroute.core.services.bridge.errors import ProviderApiError
from bridgeroute.infrastructure.config.settings import settings
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

LAYERZERO_SUPPORTED_CHAINS = frozenset(
    ["ethereum", "bsc", "polygon", "arbitrum", "avalanche", "optimism", "base", "arweave"]
)

# Stargate chain keys and the EVM chain ID each transaction is sent on
STARGATE_CHAIN_KEYS = {
    "ethereum": "ethereum",
    "bsc": "bsc",
    "polygon": "polygon",
    "arbitrum": "arbitrum",
    "optimism": "optimism",
    "avalanche": "avalanche",
    "base": "base",
}
EVM_CHAIN_IDS = {
    "ethereum": 1,
    "bsc": 56,
    "polygon": 137,
    "arbitrum": 42161,
    "optimism": 10,
    "avalanche": 43114,
    "base": 8453,
}

STARGATE_NATIVE_TOKEN = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
NATIVE_TOKEN_SYMBOLS = frozenset(["ETH", "BNB", "POL", "MATIC", "AVAX"])

# Fallback estimator constants
FALLBACK_RATE = 0.998
FALLBACK_FEE = BridgeFee(fixed=2.0, percentage=0.15)
DEFAULT_TRANSFER_TIME = 300
DEFAULT_SLIPPAGE = 0.3

MESSAGE_STATUS_MAP = {
    "INFLIGHT": BridgeStatus.PENDING,
    "CONFIRMING": BridgeStatus.PENDING,
    "DELIVERED": BridgeStatus.COMPLETED,
    "PAYLOAD_STORED": BridgeStatus.PARTIAL_FILLED,
    "FAILED": BridgeStatus.FAILED,
    "BLOCKED": BridgeStatus.FAILED,
}


class LayerZeroAdapter:
    """Adapter for LayerZero transfers routed through Stargate"""

    name = "LayerZero"

    def __init__(
        self,
        api_url: Optional[str] = None,
        scan_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        fallback_rate: float = FALLBACK_RATE,
        fallback_fee: BridgeFee = FALLBACK_FEE,
    ):
        self.api_url = (api_url or BridgeConfig.LAYERZERO_API_URL).rstrip("/")
        self.scan_url = (scan_url or BridgeConfig.LAYERZERO_SCAN_URL).rstrip("/")
        self.timeout = timeout or settings.http.request_timeout_seconds
        self.status_timeout = settings.http.status_timeout_seconds
        self.fallback_rate = fallback_rate
        self.fallback_fee = fallback_fee
        self.client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout, headers={"Accept": "application/json"})
        return self.client

    async def aclose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    def supported_chains(self) -> FrozenSet[str]:
        return LAYERZERO_SUPPORTED_CHAINS

    def is_chain_supported(self, chain: str) -> bool:
        return chain in LAYERZERO_SUPPORTED_CHAINS

    async def get_quote(self, request: TransferRequest) -> Quote:
        validate_chain_support(self.name, LAYERZERO_SUPPORTED_CHAINS, request.from_chain)
        validate_chain_support(self.name, LAYERZERO_SUPPORTED_CHAINS, request.to_chain)

        try:
            return await self.fetch_live_quote(request)
        except ProviderApiError as e:
            logger.warning(f"⚠️ [LayerZero] API fetch failed, using fallback: {e}")
            return self.estimate_quote(request)

    def _token_address(self, token: str) -> str:
        if token and token.startswith("0x"):
            return token
        if (token or "").upper() in NATIVE_TOKEN_SYMBOLS:
            return STARGATE_NATIVE_TOKEN
        raise ProviderApiError(self.name, f"token {token!r} needs a contract address")

    async def _fetch_routes(
        self,
        from_chain: str,
        to_chain: str,
        from_token: str,
        to_token: str,
        amount: str,
        src_address: str,
        dst_address: str,
    ) -> Dict[str, Any]:
        """Best Stargate route for a transfer, raising ProviderApiError when none"""
        src_key = STARGATE_CHAIN_KEYS.get(from_chain)
        dst_key = STARGATE_CHAIN_KEYS.get(to_chain)
        if not src_key or not dst_key:
            raise ProviderApiError(self.name, f"no Stargate chain key for {from_chain} -> {to_chain}")

        src_amount = to_base_units(amount, BridgeConfig.get_token_decimals(from_token))
        params = {
            "srcToken": self._token_address(from_token),
            "dstToken": self._token_address(to_token),
            "srcAddress": src_address,
            "dstAddress": dst_address,
            "srcChainKey": src_key,
            "dstChainKey": dst_key,
            "srcAmount": src_amount,
            "dstAmountMin": "0",
        }
        data = await fetch_json(self._get_client(), self.name, f"{self.api_url}/quotes", params=params)

        routes = [r for r in data.get("quotes") or [] if isinstance(r, dict) and not r.get("error")]
        if not routes:
            raise ProviderApiError(self.name, "no Stargate route available")
        return max(routes, key=lambda r: safe_float(r.get("dstAmount")))

    async def fetch_live_quote(self, request: TransferRequest) -> Quote:
        route = await self._fetch_routes(
            request.from_chain,
            request.to_chain,
            request.from_token,
            request.to_token,
            request.amount,
            request.from_address or BridgeConfig.ZERO_ADDRESS,
            request.to_address or request.from_address or BridgeConfig.ZERO_ADDRESS,
        )
        try:
            quote = self._parse_route(request, route)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderApiError(self.name, f"malformed route payload: {e}") from e

        logger.info(f"✅ LayerZero quote via {route.get('route')}: {request.amount} -> {quote.to_amount}")
        return quote

    def _parse_route(self, request: TransferRequest, route: Dict[str, Any]) -> Quote:
        if route.get("dstAmount") is None:
            raise ProviderApiError(self.name, "route has no dstAmount")

        to_decimals = BridgeConfig.get_token_decimals(request.to_token)
        to_amount = from_base_units(route["dstAmount"], to_decimals)

        # Messaging fees are paid in the native token of the source chain
        native_fees = sum(safe_float(from_base_units(f.get("amount") or 0, 18)) for f in route.get("fees") or [])
        fee = BridgeFee(
            fixed=native_fees,
            percentage=spread_percentage(request.amount, to_amount),
            fee_token_symbol=BridgeConfig.NATIVE_SYMBOLS.get(request.from_chain),
        )

        dst_amount = safe_float(route["dstAmount"])
        dst_min = safe_float(route.get("dstAmountMin"), dst_amount)
        slippage = (dst_amount - dst_min) / dst_amount * 100 if dst_amount > 0 else DEFAULT_SLIPPAGE

        steps = route.get("steps") or []
        contract = (steps[-1].get("transaction") or {}).get("to") if steps else None

        return build_quote(
            self.name,
            request,
            to_amount=to_amount,
            fee=fee,
            estimated_time_seconds=int(safe_float((route.get("duration") or {}).get("estimated"), DEFAULT_TRANSFER_TIME)),
            slippage_percent=max(0.0, slippage),
            raw=route,
            contract_address=contract or BridgeConfig.LAYERZERO_ENDPOINT_V2,
        )

    def estimate_quote(self, request: TransferRequest) -> Quote:
        """Deterministic local quote used when Stargate is unavailable"""
        return build_quote(
            self.name,
            request,
            to_amount=apply_rate(request.amount, self.fallback_rate),
            fee=self.fallback_fee.model_copy(update={"fee_token_symbol": request.from_token}),
            estimated_time_seconds=self.estimate_time(request.from_chain, request.to_chain),
            slippage_percent=DEFAULT_SLIPPAGE,
            contract_address=BridgeConfig.LAYERZERO_ENDPOINT_V2,
            is_estimate=True,
        )

    def estimate_time(self, from_chain: str = "", to_chain: str = "") -> int:
        return DEFAULT_TRANSFER_TIME

    async def execute_bridge(self, quote: Quote, signer: Optional[SigningCapability] = None) -> ExecutionHandle:
        """
        Re-quote with the signer's addresses and broadcast every Stargate step

        Steps (token approval, then the bridge call) are signed in order.
        """
        if signer is None:
            logger.info(f"🧪 [LayerZero] No signer supplied, simulating {quote.from_chain} -> {quote.to_chain}")
            return simulation_handle(quote)

        try:
            route = await self._fetch_routes(
                quote.from_chain,
                quote.to_chain,
                quote.from_token,
                quote.to_token,
                quote.from_amount,
                signer.address,
                quote.recipient_address or signer.address,
            )
            transactions = self._step_transactions(quote, route, signer.address)
            tx_hash = await sign_and_broadcast(signer, transactions)
            handle = submitted_handle(quote, tx_hash)
        except Exception as e:
            logger.error(f"❌ [LayerZero] Execution failed: {e}")
            return failed_handle(quote, e)

        logger.info(f"✅ LayerZero transfer broadcast in {tx_hash}")
        return handle

    def _step_transactions(self, quote: Quote, route: Mapping[str, Any], sender: str) -> List[Dict[str, Any]]:
        transactions = []
        for step in route.get("steps") or []:
            tx = step.get("transaction") or {}
            if not tx.get("to"):
                continue
            transactions.append({
                "chainId": EVM_CHAIN_IDS.get(quote.from_chain),
                "from": tx.get("from") or sender,
                "to": tx["to"],
                "data": tx.get("data", "0x"),
                "value": tx.get("value", "0"),
            })
        if not transactions:
            raise ProviderApiError(self.name, "route has no executable steps")
        return transactions

    async def get_status(self, handle: ExecutionHandle) -> BridgeStatus:
        """Poll LayerZero Scan for the message sent by the source transaction"""
        if not handle.transaction_hash and not handle.provider_order_id:
            return BridgeStatus.UNKNOWN
        if handle.simulation:
            return BridgeStatus.PENDING

        if handle.provider_order_id:
            url = f"{self.scan_url}/messages/guid/{handle.provider_order_id}"
        else:
            url = f"{self.scan_url}/messages/tx/{handle.transaction_hash}"

        try:
            data = await fetch_json(self._get_client(), self.name, url, timeout=self.status_timeout)
        except ProviderApiError as e:
            logger.warning(f"⚠️ [LayerZero] Status lookup failed: {e}")
            return BridgeStatus.PENDING

        messages = data.get("data") or []
        if not isinstance(messages, list) or not messages:
            # Scan has not indexed the source transaction yet
            return BridgeStatus.PENDING
        message = messages[0] if isinstance(messages[0], dict) else {}
        status = message.get("status")
        if isinstance(status, dict):
            status = status.get("name")
        return normalize_status(status, MESSAGE_STATUS_MAP)

    def get_platform_link(self, quote: Quote) -> PlatformLink:
        # LayerZero's end-user bridge UI is Stargate
        src = STARGATE_CHAIN_KEYS.get(quote.from_chain, "ethereum")
        dst = STARGATE_CHAIN_KEYS.get(quote.to_chain, "arbitrum")
        url = f"https://stargate.finance/bridge?srcChain={src}&dstChain={dst}"
        return PlatformLink(url=url, label=f"Bridge on {self.name}", bridge=self.name)
