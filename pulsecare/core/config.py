from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List
from pydantic import field_validator
from pulsecare.core.exceptions import ConfigurationError


def parse_threshold_overrides(raw: str) -> Dict[str, int]:
    """
    Parse per-blood-group shortage thresholds from a string like "O-:8,AB+:3".
    Blood group names are validated later, when a ShortageConfig is built.
    """
    overrides: Dict[str, int] = {}
    for item in raw.split(','):
        item = item.strip()
        if not item:
            continue
        group, sep, value = item.rpartition(':')
        if not sep or not group.strip():
            raise ConfigurationError(f"Malformed threshold override '{item}' (expected GROUP:VALUE)")
        try:
            overrides[group.strip().upper()] = int(value)
        except ValueError as e:
            raise ConfigurationError(f"Threshold override for {group.strip()} is not an integer: '{value}'") from e
    return overrides


class Settings(BaseSettings):
    # Application
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    APP_NAME: str = "PulseCare Donor Engine"
    APP_VERSION: str = "1.0.0"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173,http://127.0.0.1:3000"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: str = "logs/pulsecare.log"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5
    ENGINE_LOG_LEVEL: str = ""  # level for pulsecare.services; empty = LOG_LEVEL

    # Eligibility rules (WHO whole-blood guidance)
    ELIGIBILITY_MIN_AGE: int = 18
    ELIGIBILITY_MAX_AGE: int = 60
    ELIGIBILITY_MIN_WEIGHT_KG: float = 50.0
    DONATION_INTERVAL_DAYS: int = 120

    # Critical shortage detection
    SHORTAGE_THRESHOLD: int = 5
    SHORTAGE_THRESHOLD_OVERRIDES: str = ""  # e.g. "O-:8,AB+:3"

    # Dashboard read-models
    DISTRIBUTION_PRECISION: int = 1  # decimal places for percentages
    REACTIVATION_WINDOW_DAYS: int = 30

    # Geography table (empty = bundled Bangladesh table)
    GEOGRAPHY_TABLE_PATH: str = ""

    @field_validator('DEBUG', mode='before')
    @classmethod
    def parse_bool(cls, v):
        """Parse boolean from string."""
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes")
        return bool(v)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Convert comma-separated strings after initialization
        self._cors_origins_list = [item.strip() for item in self.CORS_ORIGINS.split(',') if item.strip()]
        self._shortage_threshold_overrides = parse_threshold_overrides(self.SHORTAGE_THRESHOLD_OVERRIDES)

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS_ORIGINS as a list."""
        return self._cors_origins_list

    @property
    def shortage_threshold_overrides(self) -> Dict[str, int]:
        """Get SHORTAGE_THRESHOLD_OVERRIDES as a blood group -> threshold dict."""
        return dict(self._shortage_threshold_overrides)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
