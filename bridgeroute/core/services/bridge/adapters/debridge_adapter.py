"""
deBridge Adapter
Quotes, order creation and order status through the DLN API
"""
from typing import Any, Dict, FrozenSet, Mapping, Optional

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
    FeeTiers,
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
    tiered_fee,
    to_base_units,
    validate_chain_support,
)
from bridgeroute.core.services.bridge.config import BridgeConfig
from bridgeroute.core.services.bridge.errors import ProviderApiError
from bridgeroute.infrastructure.config.settings import settings
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

DEBRIDGE_SUPPORTED_CHAINS = frozenset(
    ["ethereum", "bsc", "polygon", "arbitrum", "avalanche", "optimism", "arweave"]
)

# deBridge internal chain IDs (EVM chains reuse their EVM IDs)
DEBRIDGE_CHAIN_IDS = {
    "ethereum": 1,
    "bsc": 56,
    "polygon": 137,
    "arbitrum": 42161,
    "optimism": 10,
    "avalanche": 43114,
    "base": 8453,
}

NATIVE_TOKEN_SYMBOLS = frozenset(["ETH", "BNB", "POL", "MATIC", "AVAX"])

# Fallback estimator tables
FALLBACK_RATES = {
    "ethereum": 1.0,
    "bsc": 0.998,
    "polygon": 0.997,
    "arbitrum": 0.999,
    "avalanche": 0.996,
    "optimism": 0.998,
}
DEFAULT_FALLBACK_RATE = 0.99
FEE_TIERS: FeeTiers = (
    (10000, 5.0, 0.1),
    (1000, 3.0, 0.2),
    (0, 1.0, 0.3),
)
TRANSFER_TIMES = {
    "ethereum": {"bsc": 300, "polygon": 600, "arbitrum": 900},
    "bsc": {"ethereum": 300, "polygon": 600, "arbitrum": 900},
    "polygon": {"ethereum": 600, "bsc": 600, "arbitrum": 300},
    "arbitrum": {"ethereum": 900, "bsc": 900, "polygon": 300},
}
DEFAULT_TRANSFER_TIME = 600
DEFAULT_SLIPPAGE = 0.5

# DLN order states, numeric and named
ORDER_STATUS_MAP = {
    0: BridgeStatus.PENDING,
    1: BridgeStatus.PENDING,
    2: BridgeStatus.FILLED,
    3: BridgeStatus.FILLED,
    4: BridgeStatus.CANCELLED,
    5: BridgeStatus.CANCELLED,
    6: BridgeStatus.COMPLETED,
    7: BridgeStatus.CANCELLED,
    "None": BridgeStatus.PENDING,
    "Created": BridgeStatus.PENDING,
    "Fulfilled": BridgeStatus.FILLED,
    "SentUnlock": BridgeStatus.FILLED,
    "OrderCancelled": BridgeStatus.CANCELLED,
    "SentOrderCancel": BridgeStatus.CANCELLED,
    "ClaimedUnlock": BridgeStatus.COMPLETED,
    "ClaimedOrderCancel": BridgeStatus.CANCELLED,
}


class DeBridgeAdapter:
    """Adapter for the deBridge (DLN) cross-chain API"""

    name = "deBridge"

    def __init__(
        self,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        fallback_rates: Optional[Mapping[str, float]] = None,
        fee_tiers: Optional[FeeTiers] = None,
    ):
        """Initialize deBridge adapter"""
        self.api_url = (api_url or BridgeConfig.DEBRIDGE_API_URL).rstrip("/")
        self.timeout = timeout or settings.http.request_timeout_seconds
        self.status_timeout = settings.http.status_timeout_seconds
        self.fallback_rates = dict(fallback_rates or FALLBACK_RATES)
        self.fee_tiers = fee_tiers or FEE_TIERS
        self.client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=BridgeConfig.get_debridge_headers(),
            )
        return self.client

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it"""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    def supported_chains(self) -> FrozenSet[str]:
        return DEBRIDGE_SUPPORTED_CHAINS

    def is_chain_supported(self, chain: str) -> bool:
        return chain in DEBRIDGE_SUPPORTED_CHAINS

    async def get_quote(self, request: TransferRequest) -> Quote:
        """
        Get a bridge quote, falling back to a local estimate

        Raises:
            UnsupportedChain: either chain is outside the supported set
        """
        validate_chain_support(self.name, DEBRIDGE_SUPPORTED_CHAINS, request.from_chain)
        validate_chain_support(self.name, DEBRIDGE_SUPPORTED_CHAINS, request.to_chain)

        try:
            return await self.fetch_live_quote(request)
        except ProviderApiError as e:
            logger.warning(f"⚠️ [deBridge] API fetch failed, using fallback: {e}")
            return self.estimate_quote(request)

    def _order_params(self, request_like: Any) -> Dict[str, Any]:
        from_chain = request_like.from_chain
        to_chain = request_like.to_chain
        src_chain_id = DEBRIDGE_CHAIN_IDS.get(from_chain)
        dst_chain_id = DEBRIDGE_CHAIN_IDS.get(to_chain)
        if not src_chain_id or not dst_chain_id:
            raise ProviderApiError(self.name, f"no DLN chain id for {from_chain} -> {to_chain}")

        amount = getattr(request_like, "amount", None) or request_like.from_amount
        return {
            "srcChainId": src_chain_id,
            "srcChainTokenIn": self._token_address(request_like.from_token),
            "srcChainTokenInAmount": to_base_units(amount, BridgeConfig.get_token_decimals(request_like.from_token)),
            "dstChainId": dst_chain_id,
            "dstChainTokenOut": self._token_address(request_like.to_token),
            "prependOperatingExpenses": "true",
            "affiliateFeePercent": "0",
        }

    def _token_address(self, token: str) -> str:
        """DLN wants token addresses; native symbols map to the zero address"""
        if token and token.startswith("0x"):
            return token
        if (token or "").upper() in NATIVE_TOKEN_SYMBOLS:
            return BridgeConfig.ZERO_ADDRESS
        raise ProviderApiError(self.name, f"token {token!r} needs a contract address")

    async def fetch_live_quote(self, request: TransferRequest) -> Quote:
        """
        Query the DLN quote endpoint

        Raises:
            ProviderApiError: API unreachable or payload unusable
        """
        params = self._order_params(request)
        logger.info(f"📊 Requesting quote from deBridge: {request.amount} {request.from_token} "
                    f"{request.from_chain} -> {request.to_chain}")

        data = await fetch_json(self._get_client(), self.name, f"{self.api_url}/dln/order/quote", params=params)
        try:
            quote = self._parse_quote(request, data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderApiError(self.name, f"malformed quote payload: {e}") from e

        logger.info(f"✅ deBridge quote: {request.amount} -> {quote.to_amount} {request.to_token}")
        return quote

    def _parse_quote(self, request: TransferRequest, data: Dict[str, Any]) -> Quote:
        estimation = data.get("estimation") or {}
        token_out = estimation.get("dstChainTokenOut") or {}
        if token_out.get("amount") is None:
            raise ProviderApiError(self.name, "quote has no dstChainTokenOut amount")

        decimals = token_out.get("decimals")
        if decimals is None:
            decimals = BridgeConfig.get_token_decimals(request.to_token)
        to_amount = from_base_units(token_out["amount"], int(decimals))

        # fixFee is charged in the source chain's native token
        fee = BridgeFee(
            fixed=safe_float(from_base_units(data.get("fixFee") or 0, 18)),
            percentage=spread_percentage(request.amount, to_amount),
            fee_token_symbol=BridgeConfig.NATIVE_SYMBOLS.get(request.from_chain),
        )
        order = data.get("order") or {}
        estimated_time = order.get("approximateFulfillmentDelay") or self.estimate_time(
            request.from_chain, request.to_chain
        )
        slippage = safe_float(estimation.get("recommendedSlippage"), DEFAULT_SLIPPAGE)

        return build_quote(
            self.name,
            request,
            to_amount=to_amount,
            fee=fee,
            estimated_time_seconds=int(safe_float(estimated_time, DEFAULT_TRANSFER_TIME)),
            slippage_percent=slippage,
            raw=data,
            contract_address=BridgeConfig.DLN_SOURCE_ADDRESS,
        )

    def estimate_quote(self, request: TransferRequest) -> Quote:
        """Deterministic local quote used when the API is unavailable"""
        rate = self.fallback_rates.get(request.to_chain, DEFAULT_FALLBACK_RATE)
        return build_quote(
            self.name,
            request,
            to_amount=apply_rate(request.amount, rate),
            fee=tiered_fee(safe_float(request.amount), self.fee_tiers, request.from_token),
            estimated_time_seconds=self.estimate_time(request.from_chain, request.to_chain),
            slippage_percent=DEFAULT_SLIPPAGE,
            contract_address=BridgeConfig.DLN_SOURCE_ADDRESS,
            is_estimate=True,
        )

    def estimate_time(self, from_chain: str, to_chain: str) -> int:
        return TRANSFER_TIMES.get(from_chain, {}).get(to_chain, DEFAULT_TRANSFER_TIME)

    async def execute_bridge(self, quote: Quote, signer: Optional[SigningCapability] = None) -> ExecutionHandle:
        """
        Create a DLN order and hand its transaction to the signer

        Without a signer a simulated handle is returned. Failures are
        reported on the handle, never raised.
        """
        if signer is None:
            logger.info(f"🧪 [deBridge] No signer supplied, simulating {quote.from_chain} -> {quote.to_chain}")
            return simulation_handle(quote)

        order_id = None
        try:
            params = self._order_params(quote)
            recipient = quote.recipient_address or signer.address
            params.update({
                "dstChainTokenOutAmount": "auto",
                "srcChainOrderAuthorityAddress": signer.address,
                "dstChainOrderAuthorityAddress": recipient,
                "dstChainTokenOutRecipient": recipient,
            })

            logger.info(f"🔨 Creating deBridge order...")
            order_data = await fetch_json(
                self._get_client(), self.name, f"{self.api_url}/dln/order/create-tx", params=params
            )
            order_id = order_data.get("orderId")
            tx = order_data.get("tx") or {}
            if not tx.get("to") or not tx.get("data"):
                raise ProviderApiError(self.name, "create-tx response has no transaction")

            descriptor = {
                "chainId": params["srcChainId"],
                "from": signer.address,
                "to": tx["to"],
                "data": tx["data"],
                "value": tx.get("value", "0"),
            }
            tx_hash = await sign_and_broadcast(signer, [descriptor])
            handle = submitted_handle(quote, tx_hash, provider_order_id=order_id)
        except Exception as e:
            logger.error(f"❌ [deBridge] Execution failed: {e}")
            return failed_handle(quote, e, provider_order_id=order_id)

        logger.info(f"✅ deBridge order {order_id} broadcast in {tx_hash}")
        return handle

    async def get_status(self, handle: ExecutionHandle) -> BridgeStatus:
        """Poll the DLN order status"""
        if not handle.provider_order_id and not handle.transaction_hash:
            return BridgeStatus.UNKNOWN
        if handle.simulation:
            return BridgeStatus.PENDING

        try:
            order_id = handle.provider_order_id or await self._order_id_for_tx(handle.transaction_hash)
            data = await fetch_json(
                self._get_client(), self.name, f"{self.api_url}/dln/order/{order_id}/status",
                timeout=self.status_timeout,
            )
        except ProviderApiError as e:
            logger.warning(f"⚠️ [deBridge] Status lookup failed: {e}")
            return BridgeStatus.PENDING

        status = normalize_status(data.get("status"), ORDER_STATUS_MAP)
        logger.info(f"📊 deBridge order {order_id[:20]}... status: {status.value}")
        return status

    async def _order_id_for_tx(self, tx_hash: str) -> str:
        data = await fetch_json(
            self._get_client(), self.name, f"{self.api_url}/dln/tx/{tx_hash}/order-ids",
            timeout=self.status_timeout,
        )
        order_ids = data.get("orderIds") or []
        if not order_ids:
            raise ProviderApiError(self.name, f"no order for transaction {tx_hash}")
        return str(order_ids[0])

    def get_platform_link(self, quote: Quote) -> PlatformLink:
        src_chain_id = DEBRIDGE_CHAIN_IDS.get(quote.from_chain, 1)
        dst_chain_id = DEBRIDGE_CHAIN_IDS.get(quote.to_chain, 42161)
        token = quote.from_token if quote.from_token.startswith("0x") else BridgeConfig.ZERO_ADDRESS
        url = (
            f"https://app.debridge.finance/deport?inputChain={src_chain_id}&outputChain={dst_chain_id}"
            f"&inputCurrency={token}&amount={quote.from_amount}"
        )
        return PlatformLink(url=url, label=f"Bridge on {self.name}", bridge=self.name)
