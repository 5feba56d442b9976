"""
Security analyzer tests: contract verification, scam screening, risk scoring
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from bridgeroute.core.models.bridge_models import TransferRequest
from bridgeroute.core.services.bridge.adapters import AcrossAdapter, DeBridgeAdapter, LayerZeroAdapter
from bridgeroute.core.services.bridge.config import BridgeConfig
from bridgeroute.core.services.bridge.security import BridgeSecurity, create_bridge_security
from bridgeroute.infrastructure.config.settings import RiskSettings
from tests.fixtures.mocks import RecordingTransport, make_quote

UNLISTED_CONTRACT = "0x" + "1" * 40
SCAM_ADDRESS = "0x0000000000000000000000000000000000000bad"
VERIFIED_ABI = '[{"type":"function","name":"deposit","inputs":[]}]'


def _explorer(body):
    return RecordingTransport(lambda request: httpx.Response(200, json=body))


def _risky_quote(**overrides):
    values = dict(
        from_amount="150000",
        to_amount="140000",
        percentage=2.0,
        slippage_percent=5.0,
        estimated_time_seconds=7200,
        contract_address=UNLISTED_CONTRACT,
    )
    values.update(overrides)
    return make_quote(**values)


class TestVerifyTransaction:

    async def test_allowlisted_low_risk_quote_is_safe(self, security):
        quote = make_quote(contract_address=BridgeConfig.DLN_SOURCE_ADDRESS)

        assessment = await security.verify_transaction(quote)

        assert assessment.safe is True
        assert assessment.contract_verified is True
        assert assessment.scam_check_passed is True
        assert assessment.risk_score == 0
        assert assessment.risk_factors == []
        assert assessment.warnings == []
        assert assessment.recommendations == ["Always verify the destination address before confirming"]

    async def test_high_risk_quote(self, security):
        assessment = await security.verify_transaction(_risky_quote())

        assert assessment.safe is False
        assert assessment.risk_score >= 50
        assert assessment.risk_factors == [
            "Large transaction amount",
            "High fee percentage",
            "High slippage tolerance",
            "Long processing time",
        ]
        assert "Bridge contract not verified - exercise caution" in assessment.warnings
        assert "High risk transaction - review carefully before proceeding" in assessment.warnings
        assert "Consider breaking up large transactions" in assessment.warnings
        assert assessment.recommendations == [
            "Consider lowering slippage tolerance",
            "Compare fees across different bridges",
            "Consider a faster bridge for time-sensitive transfers",
            "Always verify the destination address before confirming",
        ]

    async def test_score_at_threshold_is_unsafe(self, security):
        quote = make_quote(
            adapter_name="Mystery",
            from_amount="100000",
            to_amount="99000",
            contract_address=BridgeConfig.DLN_SOURCE_ADDRESS,
        )

        assessment = await security.verify_transaction(quote)

        assert assessment.risk_score == 30
        assert assessment.contract_verified is True
        assert assessment.safe is False

    async def test_scam_recipient_is_unsafe(self, security):
        quote = make_quote(contract_address=BridgeConfig.DLN_SOURCE_ADDRESS, recipient_address=SCAM_ADDRESS.upper())

        assessment = await security.verify_transaction(quote)

        assert assessment.scam_check_passed is False
        assert assessment.safe is False
        assert "WARNING: Recipient address flagged as potentially suspicious" in assessment.warnings

    async def test_failing_check_counts_as_failed(self, security):
        quote = make_quote(contract_address=BridgeConfig.DLN_SOURCE_ADDRESS)

        with patch.object(security, "check_scam_database", AsyncMock(side_effect=RuntimeError("db offline"))):
            assessment = await security.verify_transaction(quote)

        assert assessment.scam_check_passed is False
        assert assessment.contract_verified is True
        assert assessment.safe is False

    async def test_failing_risk_analysis_scores_maximum(self, security):
        quote = make_quote(contract_address=BridgeConfig.DLN_SOURCE_ADDRESS)

        with patch.object(security, "analyze_risk", AsyncMock(side_effect=ValueError("bad quote"))):
            assessment = await security.verify_transaction(quote)

        assert assessment.risk_score == 100
        assert assessment.risk_factors == ["Risk analysis unavailable"]
        assert assessment.safe is False


class TestVerifyContract:

    async def test_explorer_abi_verifies(self):
        transport = _explorer({"status": "1", "message": "OK", "result": VERIFIED_ABI})
        async with httpx.AsyncClient(transport=transport) as client:
            security = BridgeSecurity(client=client, explorer_api_key="KEY")
            verified = await security.verify_contract(make_quote(contract_address=UNLISTED_CONTRACT))

        assert verified is True
        request = transport.requests[0]
        assert request.url.host == "api.etherscan.io"
        assert request.url.params["action"] == "getabi"
        assert request.url.params["address"] == UNLISTED_CONTRACT
        assert request.url.params["apikey"] == "KEY"

    async def test_explorer_uses_source_chain(self):
        transport = _explorer({"status": "1", "result": VERIFIED_ABI})
        async with httpx.AsyncClient(transport=transport) as client:
            security = BridgeSecurity(client=client)
            await security.verify_contract(make_quote(from_chain="polygon", contract_address=UNLISTED_CONTRACT))

        assert transport.requests[0].url.host == "api.polygonscan.com"

    @pytest.mark.parametrize("body", [
        {"status": "0", "message": "NOTOK", "result": "Contract source code not verified"},
        {"status": "1", "result": "[]"},
        ["unexpected"],
    ])
    async def test_unverified_source_is_rejected(self, body):
        async with httpx.AsyncClient(transport=_explorer(body)) as client:
            security = BridgeSecurity(client=client)

            assert await security.verify_contract(make_quote(contract_address=UNLISTED_CONTRACT)) is False

    async def test_unverified_source_defers_to_allowlist(self):
        body = {"status": "0", "result": "Contract source code not verified"}
        async with httpx.AsyncClient(transport=_explorer(body)) as client:
            security = BridgeSecurity(client=client)
            quote = make_quote(contract_address=BridgeConfig.ACROSS_SPOKE_POOLS["ethereum"].lower())

            assert await security.verify_contract(quote) is True

    async def test_explorer_outage_falls_back_to_allowlist(self, security, down_transport):
        assert await security.verify_contract(make_quote(contract_address=UNLISTED_CONTRACT)) is False
        assert await security.verify_contract(make_quote(contract_address=BridgeConfig.LAYERZERO_ENDPOINT_V2)) is True
        assert len(down_transport.requests) == 2

    async def test_recipient_is_checked_without_contract(self, security):
        security.add_verified_contract(UNLISTED_CONTRACT)

        assert await security.verify_contract(make_quote(recipient_address=UNLISTED_CONTRACT)) is True

    async def test_missing_address_is_unverified(self, security, down_transport):
        assert await security.verify_contract(make_quote()) is False
        assert down_transport.requests == []


class TestAnalyzeRisk:

    async def test_large_amount_threshold_is_inclusive(self, security):
        at_threshold = await security.analyze_risk(make_quote(from_amount="100000", to_amount="99900"))
        below = await security.analyze_risk(make_quote(from_amount="99999", to_amount="99900"))

        assert at_threshold.factors == ["Large transaction amount"]
        assert at_threshold.score == 20
        assert below.factors == []
        assert below.score == 0

    async def test_risky_transfer_accumulates_factors(self, security):
        quote = make_quote(
            from_amount="100000",
            to_amount="97000",
            percentage=2.0,
            slippage_percent=5.0,
            estimated_time_seconds=4000,
        )

        analysis = await security.analyze_risk(quote)

        assert analysis.score >= 50
        assert {
            "Large transaction amount",
            "High fee percentage",
            "High slippage tolerance",
            "Long processing time",
        } <= set(analysis.factors)

    async def test_unknown_adapter(self, security):
        analysis = await security.analyze_risk(make_quote(adapter_name="ShadyBridge"))

        assert analysis.factors == ["Unknown bridge adapter"]
        assert analysis.score == 10

    async def test_known_adapters_are_configurable(self, down_client):
        security = BridgeSecurity(client=down_client, known_adapters=["ShadyBridge"])

        assert (await security.analyze_risk(make_quote(adapter_name="shadybridge"))).score == 0
        assert (await security.analyze_risk(make_quote(adapter_name="deBridge"))).score == 10

    async def test_score_is_clamped(self, down_client):
        security = BridgeSecurity(client=down_client, risk=RiskSettings(large_amount_penalty=90))

        analysis = await security.analyze_risk(_risky_quote(adapter_name="ShadyBridge"))

        assert analysis.score == 100
        assert len(analysis.factors) == 5

    async def test_thresholds_are_strict(self, security):
        quote = make_quote(percentage=1.0, slippage_percent=3.0, estimated_time_seconds=3600)

        assert (await security.analyze_risk(quote)).score == 0


class TestLists:

    def test_allowlist_add_and_remove(self, security):
        assert not security.is_contract_verified(UNLISTED_CONTRACT)

        security.add_verified_contract(UNLISTED_CONTRACT)
        assert security.is_contract_verified(UNLISTED_CONTRACT)

        security.remove_verified_contract(UNLISTED_CONTRACT)
        assert not security.is_contract_verified(UNLISTED_CONTRACT)

    def test_seeded_allowlist(self, security):
        for address in BridgeConfig.KNOWN_BRIDGE_CONTRACTS:
            assert security.is_contract_verified(address.upper().replace("0X", "0x"))

    def test_scam_lookup_is_case_insensitive(self, security):
        assert security.is_scam_address(SCAM_ADDRESS.upper())
        assert not security.is_scam_address("")
        assert not security.is_scam_address(UNLISTED_CONTRACT)

    async def test_added_scam_address_is_blocked(self, security):
        security.add_scam_address("0xSCAM")

        assert security.is_scam_address("0xSCAM")
        assert security.is_scam_address("0xscam")
        assert await security.check_scam_database(make_quote(recipient_address="0xScam")) is False
        assert await security.check_scam_database(make_quote()) is True

    def test_instances_do_not_share_lists(self, down_client):
        first = BridgeSecurity(client=down_client)
        second = BridgeSecurity(client=down_client)

        first.add_scam_address(UNLISTED_CONTRACT)

        assert not second.is_scam_address(UNLISTED_CONTRACT)


class TestSecurityScore:

    def test_clean_quote_scores_full(self, security):
        quote = make_quote(contract_address=BridgeConfig.DLN_SOURCE_ADDRESS)

        assert security.get_security_score(quote) == 100

    def test_penalties_accumulate(self, security):
        quote = make_quote(
            from_amount="20000",
            to_amount="19900",
            contract_address=UNLISTED_CONTRACT,
            recipient_address=SCAM_ADDRESS,
        )

        assert security.get_security_score(quote) == 20


@pytest.mark.parametrize("from_chain,to_chain,expected", [
    ("polygon", "arbitrum", 137),
    ("arweave", "arbitrum", 42161),
    ("arweave", "solana", 1),
])
def test_get_chain_id(from_chain, to_chain, expected):
    quote = make_quote(from_chain=from_chain, to_chain=to_chain)

    assert BridgeSecurity.get_chain_id(quote) == expected


def test_factory_uses_default_lists():
    security = create_bridge_security(known_adapters=["deBridge"])

    assert security.known_adapters == {"debridge"}
    assert security.is_contract_verified(BridgeConfig.DLN_SOURCE_ADDRESS)


@pytest.mark.parametrize("adapter_cls", [DeBridgeAdapter, LayerZeroAdapter, AcrossAdapter])
async def test_adapter_estimate_for_small_transfer_is_safe(adapter_cls, security, down_client):
    adapter = adapter_cls(client=down_client)
    quote = adapter.estimate_quote(TransferRequest(from_chain="ethereum", to_chain="arbitrum", amount="100"))

    assessment = await security.verify_transaction(quote)

    assert assessment.safe is True
    assert assessment.contract_verified is True
    assert assessment.scam_check_passed is True
    assert assessment.risk_factors == []
    assert assessment.risk_score == 0


async def test_known_adapters_can_be_extended_per_call(security):
    quote = make_quote(adapter_name="Stub", contract_address=BridgeConfig.DLN_SOURCE_ADDRESS)

    trusted = await security.verify_transaction(quote, known_adapters=["Stub"])
    untrusted = await security.verify_transaction(quote)

    assert trusted.risk_factors == []
    assert untrusted.risk_factors == ["Unknown bridge adapter"]
    assert "stub" not in security.known_adapters
