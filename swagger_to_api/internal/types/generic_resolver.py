import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .definitions import TypeDefinition, ref_to_name

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = {
    "integer": "number",
    "int": "number",
    "long": "number",
    "float": "number",
    "double": "number",
    "number": "number",
    "Integer": "number",
    "Long": "number",
    "Float": "number",
    "Double": "number",
    "BigDecimal": "number",
    "string": "string",
    "String": "string",
    "boolean": "boolean",
    "Boolean": "boolean",
    "Void": "void",
    "void": "void",
    "file": "File",
    "object": "PlainObject",
    "Object": "PlainObject",
    "array": "any[]",
}

# Встроенные типы TypeScript никогда не квалифицируются пространством имен
BASIC_OUTPUT_TYPES = {"number", "string", "boolean", "void", "any", "any[]", "File"}

# Объявлены в начале types.ts, в пул типов не попадают
PRELUDE_TYPES = ("PlainObject", "Map", "BaseRequestDTO")
RESERVED_TYPE_NAMES = set(PRELUDE_TYPES) | {"List"}

LIST_NAMES = {"List", "Set", "Collection"}

DELIMITER_PAIRS = (("«", "»"), ("<", ">"), ("[", "]"))

ENVELOPE = "envelope"
PAGE = "page"

PAGE_PAYLOAD_FIELDS = ("records", "list", "rows", "items", "content", "data")


@dataclass(frozen=True)
class WrapperRule:
    """Правило разворачивания известной обертки ответа"""

    pattern: str
    kind: str
    payload_fields: Tuple[str, ...]

    def matches(self, key: str) -> bool:
        return re.fullmatch(self.pattern, key or "") is not None


# Фиксированный каталог оберток. Имена вне каталога считаются непрозрачными.
WRAPPER_CATALOG = (
    WrapperRule(r"Result", ENVELOPE, ("data",)),
    WrapperRule(r"ReplyEntity", ENVELOPE, ("data",)),
    WrapperRule(r"PageResult(?:DTO|Dto|VO|Vo)?", PAGE, PAGE_PAYLOAD_FIELDS),
    WrapperRule(r"(?:Base)?Page\w*RespDTO", PAGE, PAGE_PAYLOAD_FIELDS),
)


def find_wrapper_rule(key: str) -> Optional[WrapperRule]:
    for rule in WRAPPER_CATALOG:
        if rule.matches(key):
            return rule
    return None


def detect_delimiters(names: Iterable[str]) -> Tuple[str, str]:
    """Первая известная пара скобок, встречающаяся в именах definitions"""
    names = list(names)
    for open_delimiter, close_delimiter in DELIMITER_PAIRS:
        if any(open_delimiter in name for name in names):
            return open_delimiter, close_delimiter
    return DELIMITER_PAIRS[0]


class GenericNameResolver:
    """
    Разбор псевдо-generic имен вида Result«PageResult«Foo»»
    и перевод их в типы TypeScript.

    Без пула типов работает как чистая грамматика: любое имя считается
    ссылкой на тип. С пулом неизвестные имена превращаются в any.
    """

    def __init__(
        self,
        open_delimiter: str = "«",
        close_delimiter: str = "»",
        types_pool: Optional[Dict[str, TypeDefinition]] = None,
        definitions: Optional[Dict[str, Any]] = None,
    ):
        self.open = open_delimiter
        self.close = close_delimiter
        self.types_pool = types_pool
        self.definitions = definitions or {}

    def with_pool(
        self,
        types_pool: Dict[str, TypeDefinition],
        definitions: Optional[Dict[str, Any]] = None,
    ) -> "GenericNameResolver":
        return GenericNameResolver(
            self.open, self.close, types_pool, definitions or self.definitions
        )

    # ------------------------------------------------------------------
    # Грамматика
    # ------------------------------------------------------------------

    def extract_base_key(self, name: str) -> str:
        index = name.find(self.open)
        if index < 0:
            return name
        return name[:index]

    def extract_generic_param_expr(self, name: str) -> Optional[str]:
        start = name.find(self.open)
        if start < 0 or not name.endswith(self.close):
            return None
        return name[start + len(self.open) : len(name) - len(self.close)]

    def split_top_level_params(self, expr: str) -> List[str]:
        """Map«string,List«Foo»» -> ["string", "List«Foo»"]"""
        result = []
        current = ""
        depth = 0

        for char in expr:
            if char == self.open:
                depth += 1
            elif char == self.close:
                depth -= 1
            elif char == "," and depth == 0:
                result.append(current.strip())
                current = ""
                continue
            current += char

        if current.strip():
            result.append(current.strip())

        return result

    def list_inner(self, token: str) -> Optional[str]:
        """List«X» -> X"""
        if self.extract_base_key(token) not in LIST_NAMES:
            return None
        return self.extract_generic_param_expr(token)

    def extract_type_names(self, name: str) -> List[str]:
        """Все пользовательские типы внутри имени, включая базовые"""
        name = (name or "").strip()
        if not name or name in PRIMITIVE_TYPES:
            return []

        inner = self.list_inner(name)
        if inner is not None:
            return self.extract_type_names(inner)

        base = self.extract_base_key(name)
        names = [] if base in LIST_NAMES or base in PRIMITIVE_TYPES else [base]

        expr = self.extract_generic_param_expr(name)
        if expr:
            for param in self.split_top_level_params(expr):
                names.extend(self.extract_type_names(param))

        unique = []
        for item in names:
            if item not in unique:
                unique.append(item)
        return unique

    # ------------------------------------------------------------------
    # Перевод в TypeScript
    # ------------------------------------------------------------------

    @staticmethod
    def qualify(name: str, namespace: str = "") -> str:
        if not namespace or name in BASIC_OUTPUT_TYPES:
            return name
        return f"{namespace}.{name}"

    @staticmethod
    def array_of(type_expr: str) -> str:
        if " | " in type_expr or " & " in type_expr:
            return f"({type_expr})[]"
        return f"{type_expr}[]"

    def map_primitive(self, token: str, namespace: str = "") -> Optional[str]:
        mapped = PRIMITIVE_TYPES.get(token)
        if mapped is None:
            return None
        return self.qualify(mapped, namespace)

    def resolve_to_output_type(self, token: str, namespace: str = "") -> str:
        return self._resolve(token, namespace, frozenset())

    def _resolve(self, token: str, namespace: str, stack: frozenset) -> str:
        token = (token or "").strip()
        if not token:
            return "any"

        primitive = self.map_primitive(token, namespace)
        if primitive is not None:
            return primitive

        inner = self.list_inner(token)
        if inner is not None:
            return self.array_of(self._resolve(inner, namespace, stack))
        if token in LIST_NAMES:
            return "any[]"

        base = self.extract_base_key(token)
        expr = self.extract_generic_param_expr(token)

        if base == "Map":
            args = [
                self._resolve(p, namespace, stack)
                for p in self.split_top_level_params(expr or "")
            ]
            args = (args + ["string", "any"][len(args) :])[:2] if args else ["string", "any"]
            return f"{self.qualify('Map', namespace)}<{', '.join(args)}>"

        if self.types_pool is None:
            reference = self.qualify(base, namespace)
            if expr is None:
                return reference
            args = [
                self._resolve(p, namespace, stack)
                for p in self.split_top_level_params(expr)
            ]
            return f"{reference}<{', '.join(self._apply_wrapper_rule(base, args))}>"

        typedef = self.types_pool.get(base)
        if typedef is None:
            if base in PRELUDE_TYPES:
                return self.qualify(base, namespace)
            logger.debug("Ссылка на неизвестный тип %s заменена на any", token)
            return "any"

        reference = self.qualify(typedef.key, namespace)
        if not typedef.is_generic:
            return reference

        if token in stack:
            args = []
        elif expr is not None:
            args = [
                self._resolve(p, namespace, stack | {token})
                for p in self.split_top_level_params(expr)
            ]
        else:
            args = self._infer_payload_args(token, typedef, namespace, stack | {token})

        args = self._apply_wrapper_rule(typedef.key, args) if args else args
        placeholders = typedef.placeholders
        args = (args + ["void"] * len(placeholders))[: len(placeholders)]
        return f"{reference}<{', '.join(args)}>"

    def _apply_wrapper_rule(self, key: str, args: List[str]) -> List[str]:
        rule = find_wrapper_rule(key)
        if rule is None or rule.kind != PAGE or not args:
            return args
        first = args[0]
        if not first.endswith("[]") and first != "void":
            first = self.array_of(first)
        return [first] + args[1:]

    def _infer_payload_args(
        self, token: str, typedef: TypeDefinition, namespace: str, stack: frozenset
    ) -> List[str]:
        """Аргумент обертки без явных параметров берется из поля с данными"""
        rule = find_wrapper_rule(typedef.key)
        if rule is None:
            return []

        source = self.definitions.get(token)
        if source is None and typedef.original_name == token:
            source = typedef.definition
        properties = (source or {}).get("properties") or {}

        for field_name in rule.payload_fields:
            prop = properties.get(field_name)
            if not isinstance(prop, dict):
                continue
            name = ref_to_name(prop.get("$ref"))
            if name:
                return [self._resolve(name, namespace, stack)]
            items = prop.get("items")
            if prop.get("type") == "array" and isinstance(items, dict):
                item_name = ref_to_name(items.get("$ref"))
                if item_name:
                    return [self._resolve(item_name, namespace, stack)]
        return []

    def schema_to_type(self, schema: Any, namespace: str = "") -> str:
        """Тип TypeScript для произвольной схемы"""
        if not isinstance(schema, dict) or not schema:
            return "any"

        if "$ref" in schema:
            name = ref_to_name(schema["$ref"])
            return self.resolve_to_output_type(name, namespace) if name else "any"

        for union_key in ("anyOf", "oneOf"):
            branches = [
                b
                for b in schema.get(union_key) or []
                if isinstance(b, dict) and b.get("type") != "null"
            ]
            if len(branches) == 1:
                return self.schema_to_type(branches[0], namespace)
            if branches:
                return "any"

        all_of = [s for s in schema.get("allOf") or [] if isinstance(s, dict)]
        if all_of:
            parts = [self.schema_to_type(s, namespace) for s in all_of]
            return " & ".join(parts)

        enum = schema.get("enum")
        if isinstance(enum, list) and enum:
            return " | ".join(self._literal(value) for value in enum)

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            non_null = [t for t in schema_type if t != "null"]
            schema_type = non_null[0] if non_null else None

        if schema_type == "array":
            items = schema.get("items")
            if not isinstance(items, dict) or not items:
                return "any[]"
            return self.array_of(self.schema_to_type(items, namespace))

        if schema_type == "object" or (
            schema_type is None
            and ("properties" in schema or "additionalProperties" in schema)
        ):
            additional = schema.get("additionalProperties")
            if isinstance(additional, dict) and additional and not schema.get("properties"):
                return f"Record<string, {self.schema_to_type(additional, namespace)}>"
            return self.qualify("PlainObject", namespace)

        if schema_type:
            return self.map_primitive(schema_type, namespace) or "any"

        return "any"

    @staticmethod
    def _literal(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        if isinstance(value, (int, float)):
            return str(value)
        return json.dumps(str(value), ensure_ascii=False)

    # ------------------------------------------------------------------
    # Параметры generic-объявлений
    # ------------------------------------------------------------------

    def schema_signature(self, schema: Any) -> Optional[tuple]:
        if not isinstance(schema, dict):
            return None
        name = ref_to_name(schema.get("$ref"))
        if name:
            return ("ref", name)
        if schema.get("type") == "array":
            return ("array", self.schema_signature(schema.get("items")))
        if isinstance(schema.get("type"), str):
            return ("prim", PRIMITIVE_TYPES.get(schema["type"], schema["type"]))
        return None

    def param_signature(self, expr: str) -> tuple:
        inner = self.list_inner(expr)
        if inner is not None:
            return ("array", self.param_signature(inner))
        if expr in PRIMITIVE_TYPES:
            return ("prim", PRIMITIVE_TYPES[expr])
        return ("ref", expr)

    def is_catalog_generic(self, key: str, definition: Dict[str, Any]) -> bool:
        """Обертка из каталога без скобок, но с полем данных-ссылкой"""
        rule = find_wrapper_rule(key)
        if rule is None:
            return False
        properties = (definition or {}).get("properties") or {}
        for field_name in rule.payload_fields:
            signature = self.schema_signature(properties.get(field_name))
            if signature is None:
                continue
            if signature[0] == "ref":
                return True
            if signature[0] == "array" and signature[1] and signature[1][0] == "ref":
                return True
        return False

    def placeholder_for(
        self, typedef: TypeDefinition, prop_name: str, prop_schema: Any
    ) -> Optional[str]:
        """Тип-параметр для свойства generic-объявления или None"""
        if not typedef.is_generic:
            return None

        rule = find_wrapper_rule(typedef.key)
        if rule is not None and prop_name not in rule.payload_fields:
            return None

        prop_signature = self.schema_signature(prop_schema)
        if prop_signature is None:
            return None
        is_page = rule is not None and rule.kind == PAGE

        if typedef.generic_params:
            for placeholder, param in zip(typedef.placeholders, typedef.generic_params):
                param_signature = self.param_signature(param)
                if param_signature[0] == "prim" and rule is None:
                    continue
                if prop_signature == param_signature:
                    return placeholder
                if prop_signature == ("array", param_signature):
                    return placeholder if is_page else f"Array<{placeholder}>"
            return None

        if rule is None:
            return None
        if prop_signature[0] == "ref":
            return "T"
        if prop_signature[0] == "array" and prop_signature[1] and prop_signature[1][0] == "ref":
            return "T" if is_page else "Array<T>"
        return None
