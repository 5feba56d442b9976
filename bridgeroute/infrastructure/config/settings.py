"""
bridgeroute Application Settings
Centralized configuration management using Pydantic
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables BEFORE defining settings classes
if not os.getenv('BRIDGEROUTE_SKIP_DOTENV'):
    load_dotenv('.env.local')  # Development env first
    load_dotenv('.env', override=False)  # Fallback env (no override)


class LoggingSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dedup_window_seconds: float = 60.0
    dedup_max_repeats: int = 3  # 0 disables repeat suppression


class HttpSettings(BaseSettings):
    """HTTP client timeouts and per-task deadlines"""

    model_config = SettingsConfigDict(env_prefix="HTTP_", extra="ignore")

    request_timeout_seconds: float = 10.0
    quote_deadline_seconds: float = 15.0  # Upper bound for one adapter's get_quote
    status_timeout_seconds: float = 10.0

    @field_validator("request_timeout_seconds", "quote_deadline_seconds", "status_timeout_seconds")
    @classmethod
    def validate_positive(cls, v):
        """Timeouts must be positive, an unbounded call is never allowed"""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


class ProviderSettings(BaseSettings):
    """Bridge provider and explorer API configuration"""

    model_config = SettingsConfigDict(env_prefix="PROVIDER_", extra="ignore", populate_by_name=True)

    debridge_api_url: str = "https://api.dln.trade/v1.0"
    debridge_api_key: str = Field("", validation_alias="DEBRIDGE_API_KEY")
    layerzero_api_url: str = "https://stargate.finance/api/v1"
    layerzero_scan_url: str = "https://scan.layerzero-api.com/v1"
    across_api_url: str = "https://app.across.to/api"
    explorer_api_key: Optional[str] = Field(None, validation_alias="EXPLORER_API_KEY")


class ScoringSettings(BaseSettings):
    """Weights of the composite quote score"""

    model_config = SettingsConfigDict(env_prefix="SCORING_", extra="ignore")

    receive_weight: float = 0.4
    fee_weight: float = 0.3
    time_weight: float = 0.2
    slippage_weight: float = 0.1


class RiskSettings(BaseSettings):
    """Risk analysis thresholds (policy constants)"""

    model_config = SettingsConfigDict(env_prefix="RISK_", extra="ignore")

    safe_score_threshold: int = 30  # safe only when risk score is strictly below
    warning_score_threshold: int = 20

    large_amount: float = 100000.0
    large_amount_penalty: int = 20
    high_fee_percentage: float = 1.0
    high_fee_penalty: int = 10
    high_slippage_percent: float = 3.0
    high_slippage_penalty: int = 15
    long_time_seconds: int = 3600
    long_time_penalty: int = 5
    unknown_adapter_penalty: int = 10

    # Recommendations
    recommend_slippage_percent: float = 1.0
    recommend_fee_percentage: float = 0.5
    recommend_time_seconds: int = 1800

    # Quick security score (display only)
    score_unverified_contract_penalty: int = 20
    score_scam_recipient_penalty: int = 50
    score_large_amount: float = 10000.0
    score_large_amount_penalty: int = 10


class AppSettings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGEROUTE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Sub-settings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    risk: RiskSettings = Field(default_factory=RiskSettings)


# Global settings instance
settings = AppSettings()
