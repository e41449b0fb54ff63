"""
Lightweight test data factory
Generates randomized market payloads and tracks created market ids for cleanup
"""

from typing import Dict, Any, List, Optional

from faker import Faker

from mercado_e2e.config import E2EConfig, get_config

CNPJ_LENGTH = 14
INVALID_CNPJ = "123"


class DataFactory:
    """Market payload generator"""

    def __init__(self, config: Optional[E2EConfig] = None):
        self.config = config or get_config()
        self.fake = Faker(self.config.faker_locale)
        if self.config.faker_seed is not None:
            self.fake.seed_instance(self.config.faker_seed)
        self.created_ids: List[str] = []

    def track_market(self, market_id: Any):
        """Track created market id for cleanup"""
        market_id = str(market_id)
        if market_id not in self.created_ids:
            self.created_ids.append(market_id)

    def untrack_market(self, market_id: Any):
        """Forget a market once it has been deleted"""
        market_id = str(market_id)
        if market_id in self.created_ids:
            self.created_ids.remove(market_id)

    def get_tracked_ids(self) -> List[str]:
        """Get all tracked market ids still believed to exist"""
        return list(self.created_ids)

    def generate_cnpj(self) -> str:
        # Digits only, first digit non-zero so the value never loses length as a number
        return self.fake.numerify("%" + "#" * (CNPJ_LENGTH - 1))

    def generate_name(self) -> str:
        name = self.fake.company()
        if self.config.test_data_prefix:
            return f"{self.config.test_data_prefix} {name}"
        return name

    def generate_market(self, **overrides) -> Dict[str, Any]:
        """Generate a valid market payload"""
        data = {
            "cnpj": self.generate_cnpj(),
            "endereco": self.fake.street_address(),
            "nome": self.generate_name(),
        }
        data.update(overrides)
        return data

    def generate_invalid_cnpj_market(self) -> Dict[str, Any]:
        return self.generate_market(cnpj=INVALID_CNPJ)

    def generate_unnamed_market(self) -> Dict[str, Any]:
        return self.generate_market(nome="")

    def generate_markets(self, count: int) -> List[Dict[str, Any]]:
        return [self.generate_market() for _ in range(count)]
