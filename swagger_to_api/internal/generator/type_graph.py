import logging
from collections import defaultdict, deque
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..parser.spec_adapter import NormalizedSpec
from ..types.definitions import ApiDefinition, TypeDefinition, ref_to_name
from ..types.generic_resolver import (
    LIST_NAMES,
    PRIMITIVE_TYPES,
    RESERVED_TYPE_NAMES,
    GenericNameResolver,
    detect_delimiters,
)
from ..utils.naming import locale_sort_key

logger = logging.getLogger(__name__)


def collect_schema_refs(schema: Any, skip_properties: Iterable[str] = ()) -> List[str]:
    """Имена всех #/definitions/ ссылок внутри схемы"""
    names = []
    skip = set(skip_properties)

    def walk(node: Any, top: bool = False):
        if isinstance(node, list):
            for item in node:
                walk(item)
            return
        if not isinstance(node, dict):
            return

        name = ref_to_name(node.get("$ref"))
        if name and name not in names:
            names.append(name)

        walk(node.get("items"))
        if isinstance(node.get("additionalProperties"), dict):
            walk(node["additionalProperties"])
        for key in ("allOf", "anyOf", "oneOf"):
            walk(node.get(key))

        properties = node.get("properties")
        if isinstance(properties, dict):
            for prop_name, prop in properties.items():
                if top and prop_name in skip:
                    continue
                walk(prop)

    walk(schema, top=True)
    return names


class TypeGraphBuilder:
    """Пул типов, пул операций и замыкание нужных типов"""

    def __init__(
        self,
        spec: NormalizedSpec,
        resolver: Optional[GenericNameResolver] = None,
    ):
        self.spec = spec
        if resolver is None:
            resolver = GenericNameResolver(*detect_delimiters(spec.definitions.keys()))

        self.grammar = resolver
        self.types_pool = self.build_types_pool(spec.definitions)
        self.resolver = resolver.with_pool(self.types_pool, spec.definitions)

    # ------------------------------------------------------------------
    # Пул типов
    # ------------------------------------------------------------------

    def build_types_pool(self, definitions: Dict[str, Any]) -> Dict[str, TypeDefinition]:
        """
        Одно определение на ключ.

        Из нескольких определений с одним базовым именем выбирается
        generic с явными параметрами, затем обертка из каталога, затем
        обычный тип. Порядок definitions на результат не влияет.
        """
        candidates = defaultdict(list)

        for name, definition in definitions.items():
            key = self.grammar.extract_base_key(name)
            if (
                not key
                or key in RESERVED_TYPE_NAMES
                or key in LIST_NAMES
                or key in PRIMITIVE_TYPES
            ):
                continue
            candidates[key].append(self._make_definition(name, key, definition))

        return {
            key: min(items, key=self._preference)
            for key, items in sorted(candidates.items())
        }

    def _make_definition(self, name: str, key: str, definition: Any) -> TypeDefinition:
        definition = definition if isinstance(definition, dict) else {}
        expr = self.grammar.extract_generic_param_expr(name)
        params = self.grammar.split_top_level_params(expr) if expr else []
        forced = expr is None and self.grammar.is_catalog_generic(key, definition)

        return TypeDefinition(
            key=key,
            original_name=name,
            is_generic=expr is not None or forced,
            generic_param_expr=expr,
            generic_params=params,
            properties=definition.get("properties") or {},
            description=definition.get("description") or definition.get("title") or "",
            definition=definition,
        )

    def _preference(self, typedef: TypeDefinition) -> tuple:
        if typedef.generic_param_expr is not None:
            rank = 0
        elif typedef.is_generic:
            rank = 1
        else:
            rank = 2

        primitive_first = 0
        if typedef.generic_params:
            signature = self.grammar.param_signature(typedef.generic_params[0])
            primitive_first = 1 if signature[0] == "prim" else 0

        return (rank, primitive_first, typedef.original_name)

    # ------------------------------------------------------------------
    # Пул операций
    # ------------------------------------------------------------------

    def build_api_pool(
        self,
        paths: Optional[Dict[str, Any]] = None,
        selected_operations: Optional[Iterable[str]] = None,
    ) -> Dict[str, ApiDefinition]:
        """
        Операции по ключу path::method.

        Args:
            paths: Пути нормализованного документа
            selected_operations: Ключи выбранных операций, None - все
        """
        paths = self.spec.paths if paths is None else paths
        selected = None if selected_operations is None else set(selected_operations)
        pool = {}

        for path, path_item in paths.items():
            for method, operation in path_item.items():
                api = ApiDefinition.from_operation(path, method, operation)
                if selected is not None and api.api_key not in selected:
                    continue

                for parameter in api.parameters:
                    refs = collect_schema_refs(parameter.get("schema"))
                    refs += collect_schema_refs(parameter.get("items"))
                    for ref in refs:
                        api.input_type_names.update(self.grammar.extract_type_names(ref))

                for ref in collect_schema_refs(api.response_schema):
                    api.output_type_names.update(self.grammar.extract_type_names(ref))

                pool[api.api_key] = api

        return pool

    @staticmethod
    def api_refs(api: ApiDefinition) -> List[str]:
        """Сырые имена ссылок операции: сначала входные, затем выходные"""
        refs = []
        for parameter in api.parameters:
            refs += collect_schema_refs(parameter.get("schema"))
            refs += collect_schema_refs(parameter.get("items"))
        refs += collect_schema_refs(api.response_schema)
        return refs

    # ------------------------------------------------------------------
    # Замыкание
    # ------------------------------------------------------------------

    def _reference_targets(self, name: str) -> List[Tuple[str, bool]]:
        """
        Имена типов внутри ссылки.

        Второй элемент показывает, что тип указан без параметров
        и аргумент обертки придется выводить из ее полей.
        """
        name = (name or "").strip()
        if not name or name in PRIMITIVE_TYPES or name in LIST_NAMES:
            return []

        inner = self.grammar.list_inner(name)
        if inner is not None:
            return self._reference_targets(inner)

        expr = self.grammar.extract_generic_param_expr(name)
        if expr is None:
            return [(name, True)]

        targets = []
        base = self.grammar.extract_base_key(name)
        if base not in PRIMITIVE_TYPES:
            targets.append((base, False))
        for param in self.grammar.split_top_level_params(expr):
            targets.extend(self._reference_targets(param))
        return targets

    def _generic_refs(self, typedef: TypeDefinition) -> List[str]:
        """Ссылки из свойств generic-объявления, не ставших параметром"""
        placeholders = [
            prop_name
            for prop_name, prop in typedef.properties.items()
            if self.resolver.placeholder_for(typedef, prop_name, prop) is not None
        ]
        return collect_schema_refs(typedef.definition, skip_properties=placeholders)

    def collect_required_types(
        self,
        api_pool: Dict[str, ApiDefinition],
        types_pool: Optional[Dict[str, TypeDefinition]] = None,
    ) -> Set[str]:
        """
        Ключи типов, которые нужно объявить.

        Все generic-обертки объявляются всегда, остальные типы
        добавляются обходом в ширину от типов выбранных операций.
        """
        types_pool = self.types_pool if types_pool is None else types_pool
        required = set()
        queue = deque()
        enqueued = set()

        def enqueue(name: str, bare: bool):
            item = (name, bare)
            if item not in enqueued:
                enqueued.add(item)
                queue.append(item)

        for typedef in types_pool.values():
            if typedef.is_generic:
                enqueue(typedef.key, False)

        for api in api_pool.values():
            for ref in self.api_refs(api):
                for target, target_bare in self._reference_targets(ref):
                    enqueue(target, target_bare)

        while queue:
            name, bare = queue.popleft()
            typedef = types_pool.get(self.grammar.extract_base_key(name))
            if typedef is None:
                logger.debug("Тип %s не найден в definitions, будет any", name)
                continue

            required.add(typedef.key)

            if typedef.is_generic:
                refs = self._generic_refs(typedef)
                if bare and name in self.spec.definitions:
                    refs += collect_schema_refs(self.spec.definitions[name])
            else:
                refs = collect_schema_refs(typedef.definition)

            for ref in refs:
                for target, target_bare in self._reference_targets(ref):
                    enqueue(target, target_bare)

        return required

    def ordered_definitions(self, required: Iterable[str]) -> List[TypeDefinition]:
        """Сначала generic-обертки, затем остальные типы, по алфавиту"""
        definitions = [self.types_pool[key] for key in required if key in self.types_pool]
        return sorted(
            definitions,
            key=lambda d: (0 if d.is_generic else 1, locale_sort_key(d.key)),
        )
