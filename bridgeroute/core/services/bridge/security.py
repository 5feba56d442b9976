"""
Bridge Security Analyzer
Contract trust, recipient screening and heuristic risk scoring for quotes
"""
import asyncio
from typing import Iterable, List, NamedTuple, Optional, Set

import httpx

from bridgeroute.core.models.bridge_models import Quote, RiskAssessment
from bridgeroute.core.services.bridge.adapters.base import safe_float
from bridgeroute.core.services.bridge.config import BridgeConfig
from bridgeroute.infrastructure.config.settings import RiskSettings, settings
from bridgeroute.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_KNOWN_ADAPTERS = frozenset(["deBridge", "LayerZero", "Across"])

# Risk factor labels
LARGE_AMOUNT = "Large transaction amount"
HIGH_FEE = "High fee percentage"
HIGH_SLIPPAGE = "High slippage tolerance"
LONG_TIME = "Long processing time"
UNKNOWN_ADAPTER = "Unknown bridge adapter"
ANALYSIS_UNAVAILABLE = "Risk analysis unavailable"


class RiskAnalysis(NamedTuple):
    score: int
    factors: List[str]


class BridgeSecurity:
    """
    Evaluates a quote before execution

    The verified-contract allowlist and scam-address blocklist are instance
    state, seeded from BridgeConfig and extendable at runtime. Addresses are
    stored lower-cased.
    """

    def __init__(
        self,
        verified_contracts: Optional[Iterable[str]] = None,
        scam_addresses: Optional[Iterable[str]] = None,
        known_adapters: Optional[Iterable[str]] = None,
        risk: Optional[RiskSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        explorer_api_key: Optional[str] = None,
    ):
        if verified_contracts is None:
            verified_contracts = BridgeConfig.KNOWN_BRIDGE_CONTRACTS
        if scam_addresses is None:
            scam_addresses = BridgeConfig.KNOWN_SCAM_ADDRESSES
        self.verified_contracts: Set[str] = {a.lower() for a in verified_contracts}
        self.scam_addresses: Set[str] = {a.lower() for a in scam_addresses}
        self.known_adapters = {n.lower() for n in (known_adapters or DEFAULT_KNOWN_ADAPTERS)}
        self.risk = risk or settings.risk
        self.explorer_api_key = explorer_api_key or BridgeConfig.EXPLORER_API_KEY
        self.client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=settings.http.request_timeout_seconds)
        return self.client

    async def aclose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    async def verify_transaction(
        self,
        quote: Quote,
        known_adapters: Optional[Iterable[str]] = None,
    ) -> RiskAssessment:
        """
        Run all checks concurrently and combine them into a verdict

        A check that raises counts as failed; nothing is propagated.
        known_adapters extends the trusted adapter names for this call.
        """
        contract_result, scam_result, risk_result = await asyncio.gather(
            self.verify_contract(quote),
            self.check_scam_database(quote),
            self.analyze_risk(quote, known_adapters),
            return_exceptions=True,
        )

        if isinstance(contract_result, BaseException):
            logger.warning(f"⚠️ Contract verification errored: {contract_result}")
            contract_result = False
        if isinstance(scam_result, BaseException):
            logger.warning(f"⚠️ Scam check errored: {scam_result}")
            scam_result = False
        if isinstance(risk_result, BaseException):
            logger.warning(f"⚠️ Risk analysis errored: {risk_result}")
            risk_result = RiskAnalysis(score=100, factors=[ANALYSIS_UNAVAILABLE])

        safe = contract_result and scam_result and risk_result.score < self.risk.safe_score_threshold
        assessment = RiskAssessment(
            safe=safe,
            contract_verified=contract_result,
            scam_check_passed=scam_result,
            risk_score=risk_result.score,
            risk_factors=risk_result.factors,
            warnings=self.generate_warnings(contract_result, scam_result, risk_result),
            recommendations=self.get_recommendations(quote),
        )
        log = logger.info if safe else logger.warning
        log(f"🛡️ {quote.adapter_name} quote risk {assessment.risk_score}/100, safe={safe}")
        return assessment

    async def verify_contract(self, quote: Quote) -> bool:
        """
        Explorer ABI lookup, falling back to the local allowlist

        Verified when the explorer reports a non-empty ABI. Any other outcome
        (no address, unknown chain, HTTP failure, unverified source) defers
        to allowlist membership.
        """
        address = quote.contract_address or quote.recipient_address
        if not address:
            return False

        explorer_api = BridgeConfig.EXPLORER_APIS.get(self.get_chain_id(quote))
        if explorer_api:
            params = {"module": "contract", "action": "getabi", "address": address}
            if self.explorer_api_key:
                params["apikey"] = self.explorer_api_key
            try:
                response = await self._get_client().get(explorer_api, params=params)
                response.raise_for_status()
                data = response.json()
                if isinstance(data, dict) and str(data.get("status")) == "1" and self._is_abi(data.get("result")):
                    return True
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"⚠️ Contract verification lookup failed: {e}")

        return self.is_contract_verified(address)

    @staticmethod
    def _is_abi(result) -> bool:
        return isinstance(result, str) and result.strip().startswith("[") and result.strip() != "[]"

    @staticmethod
    def get_chain_id(quote: Quote) -> int:
        return BridgeConfig.get_chain_id(quote.from_chain) or BridgeConfig.get_chain_id(quote.to_chain) or 1

    async def check_scam_database(self, quote: Quote) -> bool:
        """True when the recipient is not on the blocklist"""
        return not self.is_scam_address(quote.recipient_address or "")

    async def analyze_risk(self, quote: Quote, known_adapters: Optional[Iterable[str]] = None) -> RiskAnalysis:
        """Additive penalty score, clamped to 0..100"""
        risk = self.risk
        trusted = self.known_adapters | {n.lower() for n in (known_adapters or ())}
        factors: List[str] = []
        score = 0

        if safe_float(quote.from_amount) >= risk.large_amount:
            score += risk.large_amount_penalty
            factors.append(LARGE_AMOUNT)

        if quote.fee.percentage > risk.high_fee_percentage:
            score += risk.high_fee_penalty
            factors.append(HIGH_FEE)

        if quote.slippage_percent > risk.high_slippage_percent:
            score += risk.high_slippage_penalty
            factors.append(HIGH_SLIPPAGE)

        if quote.estimated_time_seconds > risk.long_time_seconds:
            score += risk.long_time_penalty
            factors.append(LONG_TIME)

        if not quote.adapter_name or quote.adapter_name.lower() not in trusted:
            score += risk.unknown_adapter_penalty
            factors.append(UNKNOWN_ADAPTER)

        return RiskAnalysis(score=min(max(score, 0), 100), factors=factors)

    def generate_warnings(self, contract_ok: bool, not_scam: bool, risk: RiskAnalysis) -> List[str]:
        warnings = []

        if not contract_ok:
            warnings.append("Bridge contract not verified - exercise caution")

        if not not_scam:
            warnings.append("WARNING: Recipient address flagged as potentially suspicious")

        if risk.score > self.risk.warning_score_threshold:
            warnings.append("High risk transaction - review carefully before proceeding")

        if LARGE_AMOUNT in risk.factors:
            warnings.append("Consider breaking up large transactions")

        return warnings

    def get_recommendations(self, quote: Quote) -> List[str]:
        recommendations = []

        if quote.slippage_percent > self.risk.recommend_slippage_percent:
            recommendations.append("Consider lowering slippage tolerance")

        if quote.fee.percentage > self.risk.recommend_fee_percentage:
            recommendations.append("Compare fees across different bridges")

        if quote.estimated_time_seconds > self.risk.recommend_time_seconds:
            recommendations.append("Consider a faster bridge for time-sensitive transfers")

        recommendations.append("Always verify the destination address before confirming")
        return recommendations

    def get_security_score(self, quote: Quote) -> int:
        """
        Quick 0..100 display score (higher is safer)

        Uses only local lists, no network; not used to gate execution.
        """
        risk = self.risk
        score = 100

        if not self.is_contract_verified(quote.contract_address or ""):
            score -= risk.score_unverified_contract_penalty

        if self.is_scam_address(quote.recipient_address or ""):
            score -= risk.score_scam_recipient_penalty

        if safe_float(quote.from_amount) > risk.score_large_amount:
            score -= risk.score_large_amount_penalty

        return max(0, score)

    # Allow / deny lists

    def add_verified_contract(self, address: str) -> None:
        self.verified_contracts.add(address.lower())

    def remove_verified_contract(self, address: str) -> None:
        self.verified_contracts.discard(address.lower())

    def is_contract_verified(self, address: str) -> bool:
        return bool(address) and address.lower() in self.verified_contracts

    def add_scam_address(self, address: str) -> None:
        self.scam_addresses.add(address.lower())

    def is_scam_address(self, address: str) -> bool:
        return bool(address) and address.lower() in self.scam_addresses


def create_bridge_security(known_adapters: Optional[Iterable[str]] = None) -> BridgeSecurity:
    return BridgeSecurity(known_adapters=known_adapters)
