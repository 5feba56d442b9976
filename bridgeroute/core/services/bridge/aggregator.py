"""
Bridge Aggregator
Fans quote requests out to every adapter and ranks the results
"""
import asyncio
from typing import Iterable, List, Optional, Set

from bridgeroute.core.models.bridge_models import (
    ExecutionHandle,
    Quote,
    RouteOption,
    ScoredQuote,
    SigningCapability,
    TransferRequest,
)
from bridgeroute.core.services.bridge.adapters import BridgeAdapter, create_default_adapters
from bridgeroute.core.services.bridge.adapters.base import safe_float
from bridgeroute.core.services.bridge.errors import NoRouteAvailable, UnknownAdapter
from bridgeroute.infrastructure.config.settings import HttpSettings, ScoringSettings, settings
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)


def calculate_score(quote: Quote, weights: Optional[ScoringSettings] = None) -> float:
    """
    Composite ranking score for a quote; higher is better, never negative

    receive  = to_amount / from_amount
    fee      = 1 - fixed / from_amount - percentage / 100
    time     = 1 / max(minutes, 1)
    slippage = 1 - slippage_percent / 100
    """
    weights = weights or settings.scoring
    from_amount = safe_float(quote.from_amount)
    to_amount = safe_float(quote.to_amount)

    if from_amount > 0:
        receive_score = to_amount / from_amount
        fee_score = 1 - (quote.fee.fixed / from_amount) - (quote.fee.percentage / 100)
    else:
        receive_score = 0.0
        fee_score = 0.0
    time_score = 1 / max(quote.estimated_time_seconds / 60, 1)
    slippage_score = 1 - quote.slippage_percent / 100

    score = (
        weights.receive_weight * receive_score
        + weights.fee_weight * fee_score
        + weights.time_weight * time_score
        + weights.slippage_weight * slippage_score
    )
    return max(0.0, score)


class BridgeAggregator:
    """Owns the adapter registry and ranks quotes across it"""

    def __init__(
        self,
        adapters: Optional[Iterable[BridgeAdapter]] = None,
        scoring: Optional[ScoringSettings] = None,
        http: Optional[HttpSettings] = None,
    ):
        self.adapters: List[BridgeAdapter] = list(adapters) if adapters is not None else create_default_adapters()
        self.scoring = scoring or settings.scoring
        self.quote_deadline = (http or settings.http).quote_deadline_seconds

    async def __aenter__(self) -> "BridgeAggregator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close every adapter's HTTP client"""
        await asyncio.gather(*(adapter.aclose() for adapter in self.adapters), return_exceptions=True)

    # Registry

    def add_adapter(self, adapter: BridgeAdapter) -> None:
        self.adapters.append(adapter)

    def remove_adapter(self, name: str) -> None:
        self.adapters = [a for a in self.adapters if a.name != name]

    def get_adapter(self, name: str) -> Optional[BridgeAdapter]:
        return next((a for a in self.adapters if a.name == name), None)

    def adapter_names(self) -> Set[str]:
        return {a.name for a in self.adapters}

    def supported_chains(self) -> Set[str]:
        """Union of chains across all adapters"""
        chains: Set[str] = set()
        for adapter in self.adapters:
            chains.update(adapter.supported_chains())
        return chains

    def is_chain_supported(self, chain: str) -> bool:
        return any(a.is_chain_supported(chain) for a in self.adapters)

    def _adapters_for(self, request: TransferRequest) -> List[BridgeAdapter]:
        return [
            a for a in self.adapters
            if a.is_chain_supported(request.from_chain) and a.is_chain_supported(request.to_chain)
        ]

    # Quotes

    def calculate_score(self, quote: Quote) -> float:
        return calculate_score(quote, self.scoring)

    async def _scored_quote(self, adapter: BridgeAdapter, request: TransferRequest) -> ScoredQuote:
        quote = await asyncio.wait_for(adapter.get_quote(request), timeout=self.quote_deadline)
        return ScoredQuote(adapter_name=adapter.name, quote=quote, score=self.calculate_score(quote))

    async def get_quotes(self, request: TransferRequest) -> List[ScoredQuote]:
        """
        Quote the request on every adapter supporting both chains

        Adapters run concurrently, each bounded by the quote deadline. An
        adapter that raises or times out is logged and left out.

        Returns:
            Scored quotes sorted best first (possibly empty)
        """
        candidates = self._adapters_for(request)
        if not candidates:
            logger.info(f"⏭️ No adapter supports {request.from_chain} -> {request.to_chain}")
            return []

        results = await asyncio.gather(
            *(self._scored_quote(adapter, request) for adapter in candidates),
            return_exceptions=True,
        )

        scored: List[ScoredQuote] = []
        for adapter, result in zip(candidates, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.warning(f"⏱️ {adapter.name} quote exceeded {self.quote_deadline}s deadline")
            elif isinstance(result, BaseException):
                logger.warning(f"⚠️ {adapter.name} quote failed: {type(result).__name__}: {result}")
            else:
                scored.append(result)

        scored.sort(key=lambda s: s.score, reverse=True)
        logger.info(
            f"📊 {len(scored)}/{len(candidates)} quotes for {request.amount} {request.from_token} "
            f"{request.from_chain} -> {request.to_chain}"
        )
        return scored

    async def find_best_quote(self, request: TransferRequest) -> ScoredQuote:
        """
        Raises:
            NoRouteAvailable: no adapter produced a quote
        """
        quotes = await self.get_quotes(request)
        if not quotes:
            raise NoRouteAvailable(request.from_chain, request.to_chain)

        best = quotes[0]
        logger.info(f"🏆 Best route: {best.adapter_name} (score {best.score:.4f})")
        return best

    def compare_routes(self, request: TransferRequest) -> List[RouteOption]:
        """Adapters able to serve the pair, without fetching quotes"""
        return [RouteOption(adapter_name=a.name, supported=True) for a in self._adapters_for(request)]

    async def execute_best_quote(
        self,
        request: TransferRequest,
        signer: Optional[SigningCapability] = None,
    ) -> ExecutionHandle:
        """
        Raises:
            NoRouteAvailable: no adapter produced a quote
            UnknownAdapter: the winning adapter was removed before execution
        """
        best = await self.find_best_quote(request)
        adapter = self.get_adapter(best.adapter_name)
        if adapter is None:
            raise UnknownAdapter(best.adapter_name)
        return await adapter.execute_bridge(best.quote, signer)


def create_bridge_aggregator() -> BridgeAggregator:
    """Aggregator with the default adapter set"""
    return BridgeAggregator()
