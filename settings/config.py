from typing import Final, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

# Bulgarian currency board peg: 1 EUR = 1.95583 BGN. Fixed by law, never looked up.
EUR_BGN_FIXED_RATE: Final[float] = 1.95583

# Minor-unit quotes (pence, cents) are 1/100 of the major unit.
MINOR_UNIT_RATIO: Final[int] = 100

REPORTING_CURRENCIES: Final[Tuple[str, str]] = ("BGN", "EUR")


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TS_",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # Historical rates (Frankfurter / ECB reference rates)
    RATES_BASE_URL: str = "https://api.frankfurter.dev/v1"
    RATES_TIMEOUT_SECONDS: float = 10.0
    # Weekends and bank holidays have no fixing; look back this many days
    RATE_LOOKBACK_DAYS: int = 7
    RATE_CACHE_TTL_SECONDS: int = 24 * 60 * 60
    RATE_LOOKUP_CONCURRENCY: int = 4

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

settings = Settings()
