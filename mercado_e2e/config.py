"""
Lightweight configuration for the mercado E2E suite
Values come from the environment (or a .env file) with safe defaults
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_BASE_URL = "https://api-desafio-qa.onrender.com"
MARKET_ENDPOINT = "/mercado"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class E2EConfig:
    """Mercado API testing configuration"""

    # API under test
    api_base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30.0

    # Test data
    missing_market_id: int = 99999
    bulk_create_count: int = 5
    faker_locale: str = "pt_BR"
    faker_seed: Optional[int] = None
    test_data_prefix: str = ""

    # Performance thresholds (seconds)
    create_operation_threshold: float = 10.0
    read_operation_threshold: float = 5.0

    # Reporting
    report_path: str = "reports/mercado-e2e-report.json"
    performance_db_path: Optional[str] = None

    # Run behaviour
    cleanup_after: bool = True
    require_api: bool = False
    log_level: str = "INFO"

    # Parse problems collected while reading the environment
    parse_errors: List[str] = field(default_factory=list, repr=False)

    @property
    def market_endpoint(self) -> str:
        return MARKET_ENDPOINT

    @classmethod
    def from_env(cls) -> "E2EConfig":
        """Build configuration from MERCADO_* environment variables"""
        errors: List[str] = []

        def number(name: str, default, cast):
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                errors.append(f"{name} must be a number, got {raw!r}")
                return default

        seed = number("MERCADO_FAKER_SEED", None, int)

        config = cls(
            api_base_url=os.getenv("MERCADO_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            request_timeout=number("MERCADO_TIMEOUT_SECONDS", 30.0, float),
            missing_market_id=number("MERCADO_MISSING_ID", 99999, int),
            bulk_create_count=number("MERCADO_BULK_COUNT", 5, int),
            faker_locale=os.getenv("MERCADO_FAKER_LOCALE", "pt_BR"),
            faker_seed=seed,
            test_data_prefix=os.getenv("MERCADO_TEST_DATA_PREFIX", ""),
            create_operation_threshold=number("MERCADO_CREATE_THRESHOLD", 10.0, float),
            read_operation_threshold=number("MERCADO_READ_THRESHOLD", 5.0, float),
            report_path=os.getenv("MERCADO_REPORT_PATH", "reports/mercado-e2e-report.json"),
            performance_db_path=os.getenv("MERCADO_PERF_DB") or None,
            cleanup_after=_env_bool("MERCADO_CLEANUP_AFTER", True),
            require_api=_env_bool("MERCADO_REQUIRE_API", False),
            log_level=os.getenv("MERCADO_LOG_LEVEL", "INFO").upper(),
        )
        config.parse_errors = errors
        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = list(self.parse_errors)

        parsed = urlparse(self.api_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"MERCADO_API_BASE_URL must be an http(s) URL, got {self.api_base_url!r}")

        if self.request_timeout <= 0:
            errors.append(f"MERCADO_TIMEOUT_SECONDS must be positive, got {self.request_timeout}")

        if self.bulk_create_count < 1:
            errors.append(f"MERCADO_BULK_COUNT must be >= 1, got {self.bulk_create_count}")

        if self.create_operation_threshold <= 0 or self.read_operation_threshold <= 0:
            errors.append("Performance thresholds must be positive")

        return errors

    def as_dict(self) -> Dict[str, object]:
        return {
            "api_base_url": self.api_base_url,
            "request_timeout": self.request_timeout,
            "missing_market_id": self.missing_market_id,
            "bulk_create_count": self.bulk_create_count,
            "faker_locale": self.faker_locale,
            "cleanup_after": self.cleanup_after,
        }


def get_config() -> E2EConfig:
    """Get validated test configuration"""
    config = E2EConfig.from_env()
    errors = config.validate()

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")

    return config
