from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..utils.naming import normalize_controller_name

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")

DEFINITIONS_REF_PREFIX = "#/definitions/"


def ref_to_name(ref: str) -> Optional[str]:
    """#/definitions/UserDTO -> UserDTO; чужие ссылки -> None"""
    if not isinstance(ref, str) or not ref.startswith(DEFINITIONS_REF_PREFIX):
        return None
    return ref[len(DEFINITIONS_REF_PREFIX) :] or None


def get_success_response(responses: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Успешный ответ: 200, 201, остальные 2xx, затем default"""
    if not isinstance(responses, dict):
        return None

    codes = [str(code) for code in responses.keys()]
    ordered = ["200", "201"]
    ordered += sorted(c for c in codes if c.startswith("2") and c not in ordered)
    ordered.append("default")

    for code in ordered:
        for original_code, response in responses.items():
            if str(original_code) == code and isinstance(response, dict):
                return response
    return None


@dataclass
class TypeDefinition:
    """Определение типа из definitions"""

    key: str
    original_name: str
    is_generic: bool = False
    generic_param_expr: Optional[str] = None
    generic_params: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    definition: Dict[str, Any] = field(default_factory=dict)

    @property
    def placeholders(self) -> List[str]:
        count = max(len(self.generic_params), 1)
        if count == 1:
            return ["T"]
        return [f"T{i}" for i in range(count)]


@dataclass
class ApiDefinition:
    """Выбранная операция и типы, от которых она зависит"""

    path: str
    method: str
    operation_id: str = ""
    summary: str = ""
    parameters: List[Dict[str, Any]] = field(default_factory=list)
    response_schema: Optional[Dict[str, Any]] = None
    tags: List[str] = field(default_factory=list)
    input_type_names: Set[str] = field(default_factory=set)
    output_type_names: Set[str] = field(default_factory=set)

    @property
    def api_key(self) -> str:
        return f"{self.path}::{self.method.lower()}"

    @property
    def all_referenced_type_names(self) -> Set[str]:
        return self.input_type_names | self.output_type_names

    @property
    def controller_key(self) -> str:
        return normalize_controller_name(self.tags[0] if self.tags else "default")

    @classmethod
    def from_operation(
        cls, path: str, method: str, operation: Dict[str, Any]
    ) -> "ApiDefinition":
        success = get_success_response(operation.get("responses", {}))
        response_schema = success.get("schema") if success else None

        return cls(
            path=path,
            method=method.lower(),
            operation_id=operation.get("operationId") or "",
            summary=operation.get("summary") or operation.get("description") or "",
            parameters=list(operation.get("parameters") or []),
            response_schema=response_schema or None,
            tags=list(operation.get("tags") or []),
        )
