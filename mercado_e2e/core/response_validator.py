"""
Response shape validation for market payloads
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

MARKET_FIELDS = ("id", "nome", "endereco", "cnpj")


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def fail(self, message: str):
        self.valid = False
        self.errors.append(message)


def _is_empty(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def unwrap_market(response: Dict[str, Any]) -> Dict[str, Any]:
    """Return the market object from a response, whatever wrapper the API used"""
    for key in ("mercadoCadastrado", "mercado", "data"):
        nested = response.get(key)
        if isinstance(nested, dict):
            return nested
    return {k: v for k, v in response.items() if not k.startswith("_")}


def market_items(response: Dict[str, Any]) -> Optional[List[Any]]:
    """Return the list of markets from a list response, or None if absent"""
    items = response.get("data")
    if isinstance(items, list):
        return items
    items = response.get("mercados")
    if isinstance(items, list):
        return items
    return None


def validate_market_shape(item: Any) -> ValidationResult:
    """Check that a market has every field and none of them is empty"""
    result = ValidationResult()

    if not isinstance(item, dict):
        result.fail(f"Market should be an object, got {type(item).__name__}: {item!r}")
        return result

    for name in MARKET_FIELDS:
        if name not in item:
            result.fail(f"Missing field: {name}")
        elif _is_empty(item[name]):
            result.fail(f"Empty field: {name}")

    extra = sorted(set(item) - set(MARKET_FIELDS))
    if extra:
        result.warnings.append(f"Unexpected fields: {', '.join(extra)}")

    return result


def complete_markets(items: List[Any]) -> List[Dict[str, Any]]:
    """Markets carrying every field with a non-empty value"""
    return [item for item in items if validate_market_shape(item).valid]


def validate_market_list(response: Dict[str, Any]) -> ValidationResult:
    """Validate a GET /mercado response

    The listing is shared with other clients, so it passes as long as at least
    one item has the full market shape. Incomplete items are reported as warnings.
    """
    result = ValidationResult()

    if response.get("_status_code", 200) >= 400:
        result.fail(f"HTTP error: {response.get('_status_code')}")
        return result

    items = market_items(response)
    if items is None:
        result.fail("List response is not an array")
        return result
    if not items:
        result.fail("List response is empty")
        return result

    for index, item in enumerate(items):
        item_result = validate_market_shape(item)
        result.warnings.extend(f"[{index}] {e}" for e in item_result.errors)
        result.warnings.extend(f"[{index}] {w}" for w in item_result.warnings)

    if not complete_markets(items):
        result.fail("No market in the list has every field filled")

    return result


def validate_matches_payload(payload: Dict[str, Any], item: Dict[str, Any]) -> ValidationResult:
    """Validate that stored data matches what was sent"""
    result = ValidationResult()
    for key, expected_value in payload.items():
        if key not in item:
            result.warnings.append(f"Field not returned: {key}")
            continue
        if str(item[key]) != str(expected_value):
            result.fail(f"{key} = {item[key]!r}, expected {expected_value!r}")
    return result
