import json
import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from ...exceptions import NothingSelectedError
from ..parser.spec_adapter import NormalizedSpec, SpecAdapter
from ..types.definitions import ApiDefinition, TypeDefinition
from ..types.models import Declaration, Method, Parameter, Project, doc_comment
from ..utils.naming import (
    api_sort_key,
    controller_const_name,
    locale_sort_key,
    normalize_controller_name,
    to_identifier,
    to_method_name,
)
from .templates import templates
from .type_graph import TypeGraphBuilder

logger = logging.getLogger(__name__)

TYPES_NAMESPACE = "Types"

PROPERTY_NAME_REGEX = re.compile(r"[A-Za-z_$][\w$]*")

# Методы, у которых request.ts отправляет payload телом запроса
BODY_METHODS = ("post", "put", "patch")


class ClientGenerator:
    """
    Генератор TypeScript клиента для одного документа.

    Создает три файла: types.ts с объявлениями типов и интерфейсами
    контроллеров, apis.ts с реализацией методов и index.ts.
    """

    def __init__(
        self,
        spec: NormalizedSpec,
        selected_apis: Dict[str, List[ApiDefinition]],
        base_path: Optional[str] = None,
        builder: Optional[TypeGraphBuilder] = None,
    ):
        self.spec = spec
        self.selected_apis = selected_apis
        self.builder = builder or TypeGraphBuilder(spec)
        self.resolver = self.builder.resolver
        self.base_path = (
            SpecAdapter.canonical_base_path(base_path) if base_path else spec.base_path
        )
        self.project = Project(name=spec.title or "api")

    def generate(self) -> Project:
        """Основная генерация"""
        controllers = self._group_controllers()
        if not controllers:
            raise NothingSelectedError()

        api_pool = {
            api.api_key: api for apis in controllers.values() for api in apis
        }
        required = self.builder.collect_required_types(api_pool)

        method_names = {
            key: self._method_names(apis) for key, apis in controllers.items()
        }

        self._generate_types(required, controllers, method_names)
        self._generate_apis(controllers, method_names)
        self.project.add_file(
            "index.ts", imports=templates.index.rstrip("\n").split("\n")
        )
        return self.project

    # ------------------------------------------------------------------
    # Группировка
    # ------------------------------------------------------------------

    def _group_controllers(self) -> Dict[str, List[ApiDefinition]]:
        """Контроллеры по алфавиту, методы в стабильном порядке"""
        grouped = defaultdict(dict)

        for controller, apis in self.selected_apis.items():
            key = normalize_controller_name(controller)
            for api in apis:
                grouped[key].setdefault(api.api_key, api)

        return {
            key: sorted(
                grouped[key].values(),
                key=lambda a: api_sort_key(a.operation_id, a.summary, a.path, a.method),
            )
            for key in sorted(grouped, key=locale_sort_key)
            if grouped[key]
        }

    @staticmethod
    def _method_names(apis: List[ApiDefinition]) -> Dict[str, str]:
        existing = set()
        return {
            api.api_key: to_method_name(api.operation_id, api.path, api.method, existing)
            for api in apis
        }

    # ------------------------------------------------------------------
    # types.ts
    # ------------------------------------------------------------------

    def _generate_types(
        self,
        required: set,
        controllers: Dict[str, List[ApiDefinition]],
        method_names: Dict[str, Dict[str, str]],
    ):
        types_file = self.project.add_file(
            "types.ts", imports=list(templates.banner) + [templates.axios_import]
        )

        for line in templates.types_prelude:
            name = re.match(r"export type ([\w$]+)", line).group(1)
            types_file.add_declaration(name, kind="type", lines=[line])

        for typedef in self.builder.ordered_definitions(required):
            types_file.add_declaration(self._render_type(typedef))

        for key, apis in controllers.items():
            members = [
                self._build_method(api, method_names[key][api.api_key], "").interface_member()
                for api in apis
            ]
            types_file.add_declaration(
                key,
                kind="controller",
                lines=[f"export interface {key} {{"],
                members=members,
                closing=["}"],
            )

    def _render_type(self, typedef: TypeDefinition) -> Declaration:
        definition = typedef.definition
        leading = doc_comment(typedef.description)

        if typedef.is_generic:
            header = f"export interface {typedef.key}<{', '.join(typedef.placeholders)}> {{"
            return Declaration(
                kind="interface",
                name=typedef.key,
                leading=leading,
                lines=[header] + self._render_properties(typedef, typedef.properties) + ["}"],
            )

        if isinstance(definition.get("enum"), list) and definition["enum"]:
            alias = self.resolver.schema_to_type(definition)
            return self._alias(typedef, leading, alias)

        all_of = [s for s in definition.get("allOf") or [] if isinstance(s, dict)]
        properties = dict(typedef.properties)
        extends = []
        for part in all_of:
            if "$ref" in part:
                parent = self.resolver.schema_to_type(part)
                if parent != "any" and parent not in extends:
                    extends.append(parent)
            else:
                properties.update(part.get("properties") or {})

        is_object = (
            definition.get("type") in (None, "object")
            and not definition.get("anyOf")
            and not definition.get("oneOf")
        )
        additional = definition.get("additionalProperties")
        if is_object and not properties and not extends and isinstance(additional, dict) and additional:
            return self._alias(typedef, leading, self.resolver.schema_to_type(definition))

        if not is_object:
            return self._alias(typedef, leading, self.resolver.schema_to_type(definition))

        header = f"export interface {typedef.key}"
        if extends:
            header += f" extends {', '.join(extends)}"
        header += " {"

        return Declaration(
            kind="interface",
            name=typedef.key,
            leading=leading,
            lines=[header] + self._render_properties(typedef, properties) + ["}"],
        )

    @staticmethod
    def _alias(typedef: TypeDefinition, leading: List[str], alias: str) -> Declaration:
        return Declaration(
            kind="type",
            name=typedef.key,
            leading=leading,
            lines=[f"export type {typedef.key} = {alias};"],
        )

    def _render_properties(
        self, typedef: TypeDefinition, properties: Dict[str, Any]
    ) -> List[str]:
        # required не переносится: все свойства необязательные
        lines = []
        for prop_name, prop in properties.items():
            prop_type = self.resolver.placeholder_for(typedef, prop_name, prop)
            if prop_type is None:
                prop_type = self.resolver.schema_to_type(prop)

            if isinstance(prop, dict):
                lines.extend(doc_comment(prop.get("description"), "  "))

            name = prop_name
            if not PROPERTY_NAME_REGEX.fullmatch(name):
                name = json.dumps(prop_name, ensure_ascii=False)
            lines.append(f"  {name}?: {prop_type};")
        return lines

    # ------------------------------------------------------------------
    # apis.ts
    # ------------------------------------------------------------------

    def _generate_apis(
        self,
        controllers: Dict[str, List[ApiDefinition]],
        method_names: Dict[str, Dict[str, str]],
    ):
        base_path = self.base_path.replace("\\", "\\\\").replace("'", "\\'")
        apis_file = self.project.add_file(
            "apis.ts",
            imports=list(templates.banner)
            + list(templates.apis_imports)
            + ["", f"const basePath = '{base_path}';"],
        )

        for key, apis in controllers.items():
            const_name = controller_const_name(key)
            members = [
                self._build_method(
                    api, method_names[key][api.api_key], TYPES_NAMESPACE
                ).object_member()
                for api in apis
            ]
            apis_file.add_declaration(
                const_name,
                kind="object",
                lines=[f"export const {const_name}: {TYPES_NAMESPACE}.{key} = {{"],
                members=members,
                closing=["};"],
            )

    # ------------------------------------------------------------------
    # Методы
    # ------------------------------------------------------------------

    @staticmethod
    def classify_parameters(
        parameters: List[Dict[str, Any]]
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """path, query и единственный body параметр"""
        path_params = [p for p in parameters if p.get("in") == "path"]
        query_params = [p for p in parameters if p.get("in") == "query"]
        body_params = [p for p in parameters if p.get("in") == "body"]
        return path_params, query_params, (body_params[0] if body_params else None)

    def parameter_type(self, parameter: Dict[str, Any], namespace: str = "") -> str:
        schema = parameter.get("schema")
        if isinstance(schema, dict):
            return self.resolver.schema_to_type(schema, namespace)

        inline = {
            key: value
            for key, value in parameter.items()
            if key in ("type", "format", "items", "enum")
        }
        if not inline.get("type") and not inline.get("enum"):
            return "any"
        return self.resolver.schema_to_type(inline, namespace)

    def return_type(self, api: ApiDefinition, namespace: str = "") -> str:
        if not api.response_schema:
            return "void"
        return self.resolver.schema_to_type(api.response_schema, namespace)

    def _build_method(self, api: ApiDefinition, name: str, namespace: str) -> Method:
        path_params, query_params, body = self.classify_parameters(api.parameters)

        arguments = []
        used_names = set()
        seen_optional = False

        def add_argument(parameter: Dict[str, Any], optional: bool, fallback: str) -> str:
            nonlocal seen_optional
            ident = to_identifier(parameter.get("name") or fallback)
            while ident in used_names or ident == "axiosConfig":
                ident += "_"
            used_names.add(ident)

            var_type = self.parameter_type(parameter, namespace)
            if not optional and seen_optional:
                var_type = f"{var_type} | undefined"
            seen_optional = seen_optional or optional

            arguments.append(Parameter(name=ident, var_type=var_type, optional=optional))
            return ident

        url_bindings = []
        for parameter in path_params:
            url_bindings.append((parameter.get("name") or "", add_argument(parameter, False, "param")))
        for parameter in query_params:
            optional = parameter.get("required") is not True
            url_bindings.append((parameter.get("name") or "", add_argument(parameter, optional, "param")))

        body_ident = None
        body_optional = False
        if body is not None:
            body_optional = body.get("required") is not True
            body_ident = add_argument(body, body_optional, "body")
            # обязательное тело после необязательного параметра тоже может быть undefined
            body_optional = body_optional or seen_optional

        arguments.append(
            Parameter(name="axiosConfig", var_type="AxiosRequestConfig", optional=True)
        )

        return_type = self.return_type(api, namespace)
        return Method(
            name=name,
            parameters=arguments,
            return_type=return_type,
            description=api.summary or None,
            body=self._method_body(
                api, body, body_ident, body_optional, url_bindings, return_type, namespace
            ),
        )

    def _method_body(
        self,
        api: ApiDefinition,
        body: Optional[Dict[str, Any]],
        body_ident: Optional[str],
        body_optional: bool,
        url_bindings: List[Tuple[str, str]],
        return_type: str,
        namespace: str,
    ) -> List[str]:
        request_dto = f"{namespace}.BaseRequestDTO" if namespace else "BaseRequestDTO"
        path = api.path.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
        lines = [f"const path = `${{basePath}}{path}`;"]

        url_object = "{}"
        if url_bindings:
            url_object = "{ " + ", ".join(
                ident if key == ident else f"{json.dumps(key, ensure_ascii=False)}: {ident}"
                for key, ident in url_bindings
            ) + " }"

        config = "axiosConfig"
        if body is None and api.method.lower() not in BODY_METHODS:
            payload_type = request_dto
            lines.append(f"const payload: {payload_type} = {url_object};")
        else:
            # у методов с телом path и query передаются через config.params
            if url_bindings:
                lines.append(f"const params: {request_dto} = {url_object};")
            if body is None:
                payload_type = "undefined"
                lines.append("const payload: undefined = undefined;")
            else:
                payload_type = self.parameter_type(body, namespace)
                declared = f"{payload_type} | undefined" if body_optional else payload_type
                lines.append(f"const payload: {declared} = {body_ident};")
            if url_bindings:
                lines.append(
                    "const config: AxiosRequestConfig = "
                    "{ ...axiosConfig, params: { ...axiosConfig?.params, ...params } };"
                )
                config = "config"

        lines.append(
            f"const ret = await $http.run<{payload_type}, {return_type}>"
            f"(path, '{api.method.lower()}', payload, {config});"
        )
        lines.append("return ret;")
        return lines
