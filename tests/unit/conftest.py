"""
Offline fixtures: an in-memory stand-in for the mercado API served through httpx.MockTransport
"""

import json
import re
from typing import Any, Dict, List, Optional

import httpx
import pytest

from mercado_e2e.config import E2EConfig
from mercado_e2e.core.data_factory import DataFactory
from mercado_e2e.core.orchestrator import APITestOrchestrator
from mercado_e2e.core.rest_client import RestClient

BASE_URL = "http://mercado.test"
_ITEM_PATH = re.compile(r"^/mercado/([^/]+)$")


class FakeMercadoAPI:
    """Just enough of the mercado API to exercise the harness"""

    def __init__(self):
        self.markets: Dict[int, Dict[str, Any]] = {}
        self.next_id = 1
        self.requests: List[httpx.Request] = []
        self.forced_status: Optional[int] = None

    def seed(self, count: int):
        for i in range(count):
            self._store({"nome": f"Seed {i}", "endereco": f"Rua {i}", "cnpj": f"{10000000000000 + i}"})

    def _store(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        market = {"id": self.next_id, **payload}
        self.markets[self.next_id] = market
        self.next_id += 1
        return market

    @staticmethod
    def _invalid(payload: Dict[str, Any]) -> Optional[str]:
        cnpj = str(payload.get("cnpj", ""))
        if not (cnpj.isdigit() and len(cnpj) == 14):
            return "CNPJ inválido"
        if not str(payload.get("nome", "")).strip():
            return "Nome é obrigatório"
        return None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.forced_status is not None:
            return httpx.Response(self.forced_status, text="forced")

        path = request.url.path
        if path == "/mercado":
            if request.method == "GET":
                return httpx.Response(200, json=list(self.markets.values()))
            if request.method == "POST":
                payload = json.loads(request.content)
                error = self._invalid(payload)
                if error:
                    return httpx.Response(400, json={"error": error})
                market = self._store(payload)
                return httpx.Response(201, json={"message": "Mercado cadastrado", "mercadoCadastrado": market})
            return httpx.Response(405)

        match = _ITEM_PATH.match(path)
        if not match:
            return httpx.Response(404, json={"error": "Not found"})

        try:
            market_id = int(match.group(1))
        except ValueError:
            return httpx.Response(404, json={"error": "Mercado não encontrado"})

        if market_id not in self.markets:
            return httpx.Response(404, json={"error": "Mercado não encontrado"})

        if request.method == "GET":
            return httpx.Response(200, json=self.markets[market_id])
        if request.method == "PUT":
            payload = json.loads(request.content)
            error = self._invalid(payload)
            if error:
                return httpx.Response(400, json={"error": error})
            self.markets[market_id].update(payload)
            # The live API answers updates with an empty body
            return httpx.Response(200)
        if request.method == "DELETE":
            del self.markets[market_id]
            return httpx.Response(200, json={"message": "Mercado removido"})
        return httpx.Response(405)


@pytest.fixture
def unit_config(tmp_path) -> E2EConfig:
    return E2EConfig(
        api_base_url=BASE_URL,
        faker_seed=1234,
        report_path=str(tmp_path / "report.json"),
    )


@pytest.fixture
def fake_api() -> FakeMercadoAPI:
    return FakeMercadoAPI()


@pytest.fixture
def mock_client(unit_config, fake_api) -> RestClient:
    return RestClient(unit_config, transport=httpx.MockTransport(fake_api))


@pytest.fixture
def mock_orchestrator(unit_config, mock_client) -> APITestOrchestrator:
    return APITestOrchestrator(unit_config, mock_client, DataFactory(unit_config))
