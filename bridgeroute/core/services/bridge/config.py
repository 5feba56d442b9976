"""
Bridge Configuration
Static chain, token and contract tables shared by the bridge services
Uses settings.py for environment variables
"""
from bridgeroute.infrastructure.config.settings import settings


class BridgeConfig:
    """Bridge configuration using centralized settings"""

    # API Configuration
    DEBRIDGE_API_URL = settings.providers.debridge_api_url
    DEBRIDGE_API_KEY = settings.providers.debridge_api_key
    LAYERZERO_API_URL = settings.providers.layerzero_api_url
    LAYERZERO_SCAN_URL = settings.providers.layerzero_scan_url
    ACROSS_API_URL = settings.providers.across_api_url
    EXPLORER_API_KEY = settings.providers.explorer_api_key

    # EVM chain IDs
    CHAIN_IDS = {
        "ethereum": 1,
        "bsc": 56,
        "polygon": 137,
        "arbitrum": 42161,
        "optimism": 10,
        "avalanche": 43114,
        "base": 8453,
    }

    NATIVE_SYMBOLS = {
        "ethereum": "ETH",
        "bsc": "BNB",
        "polygon": "POL",
        "arbitrum": "ETH",
        "optimism": "ETH",
        "avalanche": "AVAX",
        "base": "ETH",
    }

    ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

    # Token decimals (anything not listed is treated as 18)
    TOKEN_DECIMALS = {
        "USDC": 6,
        "USDC.E": 6,
        "USDT": 6,
        "WBTC": 8,
    }
    DEFAULT_DECIMALS = 18

    # Contract ABI lookups, keyed by EVM chain ID
    EXPLORER_APIS = {
        1: "https://api.etherscan.io/api",
        56: "https://api.bscscan.com/api",
        137: "https://api.polygonscan.com/api",
        42161: "https://api.arbiscan.io/api",
        10: "https://api-optimistic.etherscan.io/api",
        43114: "https://api.snowtrace.io/api",
        8453: "https://api.basescan.org/api",
    }

    # Bridge entry-point contracts trusted without an explorer lookup
    DLN_SOURCE_ADDRESS = "0xeF4fB24aD0916217251F553c0596F8Edc630EB66"  # deBridge DlnSource (all EVM chains)
    LAYERZERO_ENDPOINT_V2 = "0x1a44076050125825900e736c501f859c50fE728c"
    ACROSS_SPOKE_POOLS = {
        "ethereum": "0x5c7BCd6E7De5423a257D81B442095A1a6ced35C5",
        "arbitrum": "0xe35e9842fceaCA96570B734083f4a58e8F7C5f2A",
        "optimism": "0x6f26Bf09B1C792e3228e5467807a900A503c0281",
        "polygon": "0x9295ee1d8C5b022Be115A2AD3c30C72E34e7F096",
    }

    KNOWN_BRIDGE_CONTRACTS = frozenset(
        [DLN_SOURCE_ADDRESS, LAYERZERO_ENDPOINT_V2, *ACROSS_SPOKE_POOLS.values()]
    )

    # Recipients known to belong to drainers or phishing campaigns
    KNOWN_SCAM_ADDRESSES = frozenset([
        "0x0000000000000000000000000000000000000bad",
    ])

    @classmethod
    def get_chain_id(cls, chain: str):
        """EVM chain ID for a chain name, None when unknown"""
        return cls.CHAIN_IDS.get(chain)

    @classmethod
    def get_token_decimals(cls, symbol: str) -> int:
        """Decimals for a token symbol; addresses and unknown symbols use 18"""
        return cls.TOKEN_DECIMALS.get((symbol or "").upper(), cls.DEFAULT_DECIMALS)

    @classmethod
    def get_debridge_headers(cls) -> dict:
        """Get headers for deBridge API requests"""
        headers = {
            "Accept": "application/json",
        }
        if cls.DEBRIDGE_API_KEY:
            headers["Authorization"] = f"Bearer {cls.DEBRIDGE_API_KEY}"
        return headers
