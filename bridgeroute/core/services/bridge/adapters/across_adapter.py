"""
Across Adapter
Relayer fee quotes, swap/approval transactions and deposit status
"""
from typing import Any, Dict, FrozenSet, List, Optional

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
    submitted_handle,
    to_base_units,
    validate_chain_support,
)
from bridgeroute.core.services.bridge.config import BridgeConfig
from bridgeroute.core.services.bridge.errors import ProviderApiError
from bridgeroute.infrastructure.config.settings import settings
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

ACROSS_SUPPORTED_CHAINS = frozenset(["ethereum", "arbitrum", "optimism", "polygon"])

ACROSS_CHAIN_IDS = {
    "ethereum": 1,
    "arbitrum": 42161,
    "optimism": 10,
    "polygon": 137,
}

# Token symbol -> chain -> contract address. Across bridges ETH as WETH.
ACROSS_TOKEN_ADDRESSES = {
    "WETH": {
        "ethereum": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "arbitrum": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        "optimism": "0x4200000000000000000000000000000000000006",
        "polygon": "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",
    },
    "USDC": {
        "ethereum": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "arbitrum": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "optimism": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        "polygon": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
    },
    "USDT": {
        "ethereum": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "arbitrum": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
        "optimism": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
        "polygon": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    },
}
TOKEN_ALIASES = {"ETH": "WETH"}

# Fallback estimator constants
FALLBACK_RATE = 0.999
FALLBACK_FEE = BridgeFee(fixed=1.0, percentage=0.05)
FAST_ROUTES = {("ethereum", "arbitrum"): 180}
DEFAULT_TRANSFER_TIME = 600
DEFAULT_SLIPPAGE = 0.1

DEPOSIT_STATUS_MAP = {
    "pending": BridgeStatus.PENDING,
    "slowFillRequested": BridgeStatus.PENDING,
    "filled": BridgeStatus.FILLED,
    "expired": BridgeStatus.EXPIRED,
    "refunded": BridgeStatus.CANCELLED,
}


def resolve_token_address(symbol: str, chain: str) -> Optional[str]:
    """Chain-specific contract address for a token symbol, None when unknown"""
    if symbol and symbol.startswith("0x"):
        return symbol
    key = (symbol or "").upper()
    key = TOKEN_ALIASES.get(key, key)
    return ACROSS_TOKEN_ADDRESSES.get(key, {}).get(chain)


class AcrossAdapter:
    """Adapter for the Across intent-based bridge"""

    name = "Across"

    def __init__(
        self,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        fallback_rate: float = FALLBACK_RATE,
        fallback_fee: BridgeFee = FALLBACK_FEE,
    ):
        self.api_url = (api_url or BridgeConfig.ACROSS_API_URL).rstrip("/")
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
        return ACROSS_SUPPORTED_CHAINS

    def is_chain_supported(self, chain: str) -> bool:
        return chain in ACROSS_SUPPORTED_CHAINS

    async def get_quote(self, request: TransferRequest) -> Quote:
        validate_chain_support(self.name, ACROSS_SUPPORTED_CHAINS, request.from_chain)
        validate_chain_support(self.name, ACROSS_SUPPORTED_CHAINS, request.to_chain)

        try:
            return await self.fetch_live_quote(request)
        except ProviderApiError as e:
            logger.warning(f"⚠️ [Across] API fetch failed, using fallback: {e}")
            return self.estimate_quote(request)

    def _route_params(self, from_chain: str, to_chain: str, from_token: str, to_token: str, amount: str) -> Dict[str, Any]:
        input_token = resolve_token_address(from_token, from_chain)
        output_token = resolve_token_address(to_token, to_chain)
        if not input_token or not output_token:
            raise ProviderApiError(self.name, f"no Across token address for {from_token}/{to_token}")

        return {
            "inputToken": input_token,
            "outputToken": output_token,
            "originChainId": ACROSS_CHAIN_IDS[from_chain],
            "destinationChainId": ACROSS_CHAIN_IDS[to_chain],
            "amount": to_base_units(amount, BridgeConfig.get_token_decimals(from_token)),
        }

    async def fetch_live_quote(self, request: TransferRequest) -> Quote:
        params = self._route_params(
            request.from_chain, request.to_chain, request.from_token, request.to_token, request.amount
        )
        data = await fetch_json(self._get_client(), self.name, f"{self.api_url}/suggested-fees", params=params)

        if data.get("isAmountTooLow"):
            raise ProviderApiError(self.name, "amount below relayer minimum")

        try:
            quote = self._parse_fees(request, params, data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderApiError(self.name, f"malformed fee payload: {e}") from e

        logger.info(f"✅ Across quote: {request.amount} -> {quote.to_amount} {request.to_token}")
        return quote

    def _parse_fees(self, request: TransferRequest, params: Dict[str, Any], data: Dict[str, Any]) -> Quote:
        decimals = BridgeConfig.get_token_decimals(request.from_token)
        total_relay_fee = data.get("totalRelayFee") or {}
        if total_relay_fee.get("total") is None and data.get("outputAmount") is None:
            raise ProviderApiError(self.name, "fee response has neither totalRelayFee nor outputAmount")

        if data.get("outputAmount") is not None:
            output_base = int(data["outputAmount"])
        else:
            output_base = int(params["amount"]) - int(total_relay_fee["total"])
        to_amount = from_base_units(max(output_base, 0), BridgeConfig.get_token_decimals(request.to_token))

        # pct fields are 1e18-scaled fractions; 1e16 == 1%
        gas_fee = data.get("relayerGasFee") or {}
        pct_fee = safe_float((data.get("lpFee") or {}).get("pct")) + safe_float(
            (data.get("relayerCapitalFee") or {}).get("pct")
        )
        fee = BridgeFee(
            fixed=safe_float(from_base_units(gas_fee.get("total") or 0, decimals)),
            percentage=pct_fee / 1e16,
            fee_token_symbol=request.from_token,
        )

        return build_quote(
            self.name,
            request,
            to_amount=to_amount,
            fee=fee,
            estimated_time_seconds=int(safe_float(
                data.get("estimatedFillTimeSec"), self.estimate_time(request.from_chain, request.to_chain)
            )),
            slippage_percent=safe_float(data.get("slippage"), DEFAULT_SLIPPAGE),
            raw=data,
            contract_address=data.get("spokePoolAddress") or BridgeConfig.ACROSS_SPOKE_POOLS.get(request.from_chain),
        )

    def estimate_quote(self, request: TransferRequest) -> Quote:
        """Deterministic local quote used when the Across API is unavailable"""
        return build_quote(
            self.name,
            request,
            to_amount=apply_rate(request.amount, self.fallback_rate),
            fee=self.fallback_fee.model_copy(update={"fee_token_symbol": request.from_token}),
            estimated_time_seconds=self.estimate_time(request.from_chain, request.to_chain),
            slippage_percent=DEFAULT_SLIPPAGE,
            contract_address=BridgeConfig.ACROSS_SPOKE_POOLS.get(request.from_chain),
            is_estimate=True,
        )

    def estimate_time(self, from_chain: str, to_chain: str) -> int:
        return FAST_ROUTES.get((from_chain, to_chain), DEFAULT_TRANSFER_TIME)

    async def execute_bridge(self, quote: Quote, signer: Optional[SigningCapability] = None) -> ExecutionHandle:
        """Fetch approval + deposit transactions from Across and broadcast them"""
        if signer is None:
            logger.info(f"🧪 [Across] No signer supplied, simulating {quote.from_chain} -> {quote.to_chain}")
            return simulation_handle(quote)

        try:
            params = self._route_params(
                quote.from_chain, quote.to_chain, quote.from_token, quote.to_token, quote.from_amount
            )
            params.update({
                "tradeType": "exactInput",
                "depositor": signer.address,
                "recipient": quote.recipient_address or signer.address,
            })
            data = await fetch_json(self._get_client(), self.name, f"{self.api_url}/swap/approval", params=params)
            transactions = self._approval_transactions(data, params["originChainId"], signer.address)
            tx_hash = await sign_and_broadcast(signer, transactions)
            handle = submitted_handle(quote, tx_hash)
        except Exception as e:
            logger.error(f"❌ [Across] Execution failed: {e}")
            return failed_handle(quote, e)

        logger.info(f"✅ Across deposit broadcast in {tx_hash}")
        return handle

    def _approval_transactions(self, data: Dict[str, Any], chain_id: int, sender: str) -> List[Dict[str, Any]]:
        swap_tx = data.get("swapTx") or {}
        if not swap_tx.get("to"):
            raise ProviderApiError(self.name, "swap/approval response has no swapTx")

        transactions = []
        for tx in [*(data.get("approvalTxns") or []), swap_tx]:
            transactions.append({
                "chainId": tx.get("chainId", chain_id),
                "from": sender,
                "to": tx["to"],
                "data": tx.get("data", "0x"),
                "value": tx.get("value", "0"),
            })
        return transactions

    async def get_status(self, handle: ExecutionHandle) -> BridgeStatus:
        """Poll the deposit status for the origin transaction"""
        if not handle.transaction_hash:
            return BridgeStatus.UNKNOWN
        if handle.simulation:
            return BridgeStatus.PENDING

        params = {"depositTxHash": handle.transaction_hash}
        if handle.from_chain in ACROSS_CHAIN_IDS:
            params["originChainId"] = ACROSS_CHAIN_IDS[handle.from_chain]

        try:
            data = await fetch_json(
                self._get_client(), self.name, f"{self.api_url}/deposit/status",
                params=params, timeout=self.status_timeout,
            )
        except ProviderApiError as e:
            logger.warning(f"⚠️ [Across] Status lookup failed: {e}")
            return BridgeStatus.PENDING

        return normalize_status(data.get("status"), DEPOSIT_STATUS_MAP)

    def get_platform_link(self, quote: Quote) -> PlatformLink:
        origin_id = ACROSS_CHAIN_IDS.get(quote.from_chain, 1)
        dest_id = ACROSS_CHAIN_IDS.get(quote.to_chain, 42161)
        token = resolve_token_address(quote.from_token, quote.from_chain) or BridgeConfig.ZERO_ADDRESS
        url = (
            f"https://app.across.to/?originChainId={origin_id}&destinationChainId={dest_id}"
            f"&inputToken={token}&amount={quote.from_amount}"
        )
        return PlatformLink(url=url, label=f"Bridge on {self.name}", bridge=self.name)
