"""
Lightweight API Test Orchestrator
Central coordination for mercado CRUD operations: execution, timing, id extraction
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from mercado_e2e.config import E2EConfig, MARKET_ENDPOINT, get_config
from mercado_e2e.core.data_factory import DataFactory
from mercado_e2e.core.response_validator import unwrap_market, validate_matches_payload
from mercado_e2e.core.rest_client import RestClient

logger = logging.getLogger(__name__)

RESOURCE = "mercado"


@dataclass
class OperationResult:
    """Outcome of a single API operation"""
    operation: str
    resource: str
    success: bool
    status_code: int
    duration: float
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    market_id: Optional[str] = None
    body: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class CRUDCycleResult:
    """Results from complete CRUD cycle"""
    market_id: str
    create_result: OperationResult
    read_result: OperationResult
    update_result: OperationResult
    updated_read_result: OperationResult
    delete_result: OperationResult
    verify_result: OperationResult
    total_duration: float


class APITestOrchestrator:
    """Lightweight coordinator for mercado API operations"""

    def __init__(self, config: Optional[E2EConfig] = None, rest_client: Optional[RestClient] = None,
                 data_factory: Optional[DataFactory] = None):
        self.config = config or get_config()
        self.rest_client = rest_client or RestClient(self.config)
        self.data_factory = data_factory or DataFactory(self.config)
        self.results: List[OperationResult] = []

    async def time_operation(self, operation_name: str, coro: Awaitable) -> Tuple[Any, float]:
        """Time an operation and return result + duration"""
        start_time = time.perf_counter()
        result = await coro
        duration = time.perf_counter() - start_time
        logger.debug("%s took %.3fs", operation_name, duration)
        return result, duration

    @staticmethod
    def _extract_id(response: Dict[str, Any]) -> Optional[str]:
        """Extract market id from a create response: mercadoCadastrado.id, then id, then data.id"""
        registered = response.get("mercadoCadastrado")
        if isinstance(registered, dict) and registered.get("id") is not None:
            return str(registered["id"])

        if response.get("id") is not None:
            return str(response["id"])

        data = response.get("data")
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])

        return None

    @staticmethod
    def _market_path(market_id: Any) -> str:
        return f"{MARKET_ENDPOINT}/{market_id}"

    def _build_result(self, operation: str, response: Dict[str, Any], duration: float,
                      market_id: Optional[str] = None) -> OperationResult:
        status_code = response.get("_status_code", 0)
        success = response.get("_success", False)
        errors = []

        if not success:
            error_detail = response.get("error", response.get("message", response.get("raw_response", "No error message")))
            errors.append(f"HTTP {status_code}: {error_detail}")

        body = {k: v for k, v in response.items() if not k.startswith("_")}
        result = OperationResult(operation, RESOURCE, success, status_code, duration, errors, [], market_id, body)
        self.results.append(result)
        return result

    async def execute_create(self, data: Dict[str, Any]) -> OperationResult:
        """Execute CREATE operation (POST /mercado)"""
        response, duration = await self.time_operation(
            "CREATE mercado",
            self.rest_client.request("POST", MARKET_ENDPOINT, data)
        )
        market_id = self._extract_id(response) if response.get("_success") else None
        result = self._build_result("CREATE", response, duration, market_id)

        if result.success:
            if market_id is None:
                result.warnings.append("Could not extract market id from response")
            else:
                self.data_factory.track_market(market_id)
                logger.info("Mercado registrado com ID: %s", market_id)
        return result

    async def execute_list(self) -> OperationResult:
        """Execute LIST operation (GET /mercado)"""
        response, duration = await self.time_operation(
            "LIST mercado",
            self.rest_client.request("GET", MARKET_ENDPOINT)
        )
        return self._build_result("LIST", response, duration)

    async def execute_read(self, market_id: Any) -> OperationResult:
        """Execute READ operation (GET /mercado/{id})"""
        response, duration = await self.time_operation(
            "READ mercado",
            self.rest_client.request("GET", self._market_path(market_id))
        )
        return self._build_result("READ", response, duration, str(market_id))

    async def execute_update(self, market_id: Any, data: Dict[str, Any]) -> OperationResult:
        """Execute UPDATE operation (PUT /mercado/{id})"""
        response, duration = await self.time_operation(
            "UPDATE mercado",
            self.rest_client.request("PUT", self._market_path(market_id), data)
        )
        result = self._build_result("UPDATE", response, duration, str(market_id))
        if result.success:
            logger.info("Mercado com ID %s atualizado com sucesso.", market_id)
        return result

    async def execute_delete(self, market_id: Any) -> OperationResult:
        """Execute DELETE operation (DELETE /mercado/{id})"""
        response, duration = await self.time_operation(
            "DELETE mercado",
            self.rest_client.request("DELETE", self._market_path(market_id))
        )
        result = self._build_result("DELETE", response, duration, str(market_id))
        if result.success or result.status_code == 404:
            self.data_factory.untrack_market(market_id)
        if result.success:
            logger.info("Mercado com ID %s excluído com sucesso.", market_id)
        return result

    async def execute_bulk_create(self, count: int) -> List[OperationResult]:
        """Fire `count` CREATE requests at once and wait for all of them (no ordering guarantee)"""
        payloads = self.data_factory.generate_markets(count)
        return list(await asyncio.gather(*(self.execute_create(payload) for payload in payloads)))

    async def execute_crud_cycle(self) -> CRUDCycleResult:
        """Execute complete CREATE → READ → UPDATE → READ → DELETE → READ(404) cycle"""
        cycle_start = time.perf_counter()

        create_data = self.data_factory.generate_market()
        create_result = await self.execute_create(create_data)
        if create_result.status_code != 201 or not create_result.market_id:
            raise AssertionError(f"CREATE failed: {create_result.errors or create_result.body}")
        market_id = create_result.market_id

        read_result = await self.execute_read(market_id)
        if read_result.status_code != 200:
            raise AssertionError(f"READ failed after CREATE: {read_result.errors}")
        if str(unwrap_market(read_result.body).get("id")) != market_id:
            raise AssertionError(f"READ returned another market: {read_result.body}")

        update_data = self.data_factory.generate_market()
        update_result = await self.execute_update(market_id, update_data)
        if update_result.status_code != 200:
            raise AssertionError(f"UPDATE failed: {update_result.errors}")

        updated_read_result = await self.execute_read(market_id)
        if updated_read_result.status_code != 200:
            raise AssertionError(f"READ failed after UPDATE: {updated_read_result.errors}")
        stored = validate_matches_payload(update_data, unwrap_market(updated_read_result.body))
        if not stored.valid:
            raise AssertionError(f"UPDATE not persisted: {stored.errors}")

        delete_result = await self.execute_delete(market_id)
        if delete_result.status_code != 200:
            raise AssertionError(f"DELETE failed: {delete_result.errors}")

        verify_result = await self.execute_read(market_id)
        if verify_result.status_code != 404:
            raise AssertionError(f"DELETE validation failed - market still exists: {verify_result.body}")

        return CRUDCycleResult(
            market_id=market_id,
            create_result=create_result,
            read_result=read_result,
            update_result=update_result,
            updated_read_result=updated_read_result,
            delete_result=delete_result,
            verify_result=verify_result,
            total_duration=time.perf_counter() - cycle_start,
        )

    async def cleanup_created(self) -> Dict[str, List[str]]:
        """Delete every tracked market still alive; 404 counts as already gone"""
        deleted, failed = [], []
        for market_id in self.data_factory.get_tracked_ids():
            result = await self.execute_delete(market_id)
            if result.success or result.status_code == 404:
                deleted.append(market_id)
            else:
                failed.append(market_id)
        return {"deleted": deleted, "failed": failed}

    def get_performance_summary(self) -> Dict[str, Any]:
        """Get per-operation timing summary"""
        by_operation: Dict[str, List[OperationResult]] = {}
        for result in self.results:
            by_operation.setdefault(result.operation, []).append(result)

        summary = {}
        for operation, results in by_operation.items():
            durations = [r.duration for r in results]
            summary[operation] = {
                "count": len(results),
                "avg_duration": sum(durations) / len(durations),
                "max_duration": max(durations),
                "success_rate": len([r for r in results if r.success]) / len(results),
            }
        return summary

    def get_success_summary(self) -> Dict[str, Any]:
        """Get success/failure summary"""
        total = len(self.results)
        successful = len([r for r in self.results if r.success])

        return {
            "total_operations": total,
            "successful": successful,
            "failed": total - successful,
            "success_rate": successful / total if total > 0 else 0,
        }
