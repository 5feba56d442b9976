"""
Cross-Chain Bridge Service - Main orchestrator for quote → verify → execute
Blocks execution of quotes that fail the security check
"""
from typing import List, Optional, Set

from bridgeroute.core.models.bridge_models import (
    BridgeStatus,
    ExecutionHandle,
    Quote,
    RiskAssessment,
    RouteOption,
    ScoredQuote,
    SigningCapability,
    TransferRequest,
)
from bridgeroute.core.services.bridge.aggregator import BridgeAggregator
from bridgeroute.core.services.bridge.errors import SecurityCheckFailed, UnknownAdapter
from bridgeroute.core.services.bridge.security import BridgeSecurity
from bridgeroute.infrastructure.logging.logger import get_logger, setup_logging

logger = get_logger(__name__)


class CrossChainBridge:
    """Aggregator + security analyzer behind one entry point"""

    def __init__(
        self,
        aggregator: Optional[BridgeAggregator] = None,
        security: Optional[BridgeSecurity] = None,
    ):
        self.aggregator = aggregator or BridgeAggregator()
        self.security = security or BridgeSecurity(known_adapters=self.aggregator.adapter_names())

    async def __aenter__(self) -> "CrossChainBridge":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.aggregator.aclose()
        await self.security.aclose()

    async def get_quotes(self, request: TransferRequest) -> List[ScoredQuote]:
        return await self.aggregator.get_quotes(request)

    async def get_best_quote(self, request: TransferRequest) -> ScoredQuote:
        return await self.aggregator.find_best_quote(request)

    def compare_routes(self, request: TransferRequest) -> List[RouteOption]:
        return self.aggregator.compare_routes(request)

    async def verify_transaction(self, quote: Quote) -> RiskAssessment:
        """Security verdict, trusting every adapter registered right now"""
        return await self.security.verify_transaction(quote, known_adapters=self.aggregator.adapter_names())

    def supported_chains(self) -> Set[str]:
        return self.aggregator.supported_chains()

    def is_chain_supported(self, chain: str) -> bool:
        return self.aggregator.is_chain_supported(chain)

    async def execute_bridge(
        self,
        request: TransferRequest,
        signer: Optional[SigningCapability] = None,
    ) -> ExecutionHandle:
        """
        Pick the best quote, verify it, and execute it when safe

        Raises:
            NoRouteAvailable: no adapter produced a quote
            SecurityCheckFailed: the best quote was assessed unsafe
            UnknownAdapter: the winning adapter was removed before execution
        """
        best = await self.get_best_quote(request)
        assessment = await self.verify_transaction(best.quote)

        if not assessment.safe:
            logger.warning(
                f"🚫 Blocking {best.adapter_name} transfer: risk {assessment.risk_score}, "
                f"warnings={assessment.warnings}"
            )
            raise SecurityCheckFailed(assessment)

        adapter = self.aggregator.get_adapter(best.adapter_name)
        if adapter is None:
            raise UnknownAdapter(best.adapter_name)
        return await adapter.execute_bridge(best.quote, signer)

    async def get_transaction_status(
        self,
        handle: ExecutionHandle,
        adapter_name: Optional[str] = None,
    ) -> BridgeStatus:
        """
        Raises:
            UnknownAdapter: the owning adapter is not registered
        """
        name = adapter_name or handle.bridge_name
        adapter = self.aggregator.get_adapter(name)
        if adapter is None:
            raise UnknownAdapter(name)
        return await adapter.get_status(handle)


def create_cross_chain_bridge(configure_logging: bool = True) -> CrossChainBridge:
    """Bridge service with default adapters and security lists, logging configured from settings"""
    if configure_logging:
        setup_logging()
    return CrossChainBridge()
