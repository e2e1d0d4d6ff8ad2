# src/core/config/settings.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from src.core.enums.oversell_policy import OverSellPolicy

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.
    Includes general app settings and ledger replay configuration.
    """
    # General App Settings
    APP_NAME: str = "Trade Ledger Engine API"
    APP_VERSION: str = "0.1.0"
    DEBUG_MODE: bool = False

    # API Specific Settings
    API_V1_STR: str = "/api/v1"

    # Logging Settings
    LOG_LEVEL: str = "INFO" # e.g., DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Ledger Settings
    DECIMAL_PRECISION: int = 28 # Digits used by the replay decimal context
    CURRENCY_SCALE: int = 2 # Fractional digits stored for money amounts
    RATIO_SCALE: int = 4 # Fractional digits stored for ratios and unit costs
    OVERSELL_POLICY: OverSellPolicy = OverSellPolicy.ZERO_COST

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

settings = Settings()
