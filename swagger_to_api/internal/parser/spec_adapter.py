import copy
import logging
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple, Union
from urllib.parse import urlparse

from pydantic import BaseModel

from ...exceptions import UnsupportedSpecVersion
from ..types.definitions import DEFINITIONS_REF_PREFIX, HTTP_METHODS
from ..utils.naming import CONTROLLER_SUFFIX

logger = logging.getLogger(__name__)

NORMALIZED_MARKER = "_normalized"

DEFAULT_TAG = "default"

COMPONENTS_SCHEMAS_PREFIX = "#/components/schemas/"

# Ссылки на переиспользуемые части, которые встраиваются по месту
INLINE_REF_PREFIXES = {
    "#/components/parameters/": ("components", "parameters"),
    "#/components/requestBodies/": ("components", "requestBodies"),
    "#/components/responses/": ("components", "responses"),
    "#/parameters/": ("parameters",),
    "#/responses/": ("responses",),
}

PREFERRED_MEDIA_TYPES = ("application/json", "*/*")


class NormalizedSpec(BaseModel):
    """Документ в едином внутреннем формате"""

    version: Literal["2.0", "3.x"]
    info: Dict[str, Any] = {}
    base_path: str = ""
    paths: Dict[str, Dict[str, Any]] = {}
    definitions: Dict[str, Any] = {}
    tags: List[Dict[str, Any]] = []

    @property
    def title(self) -> str:
        return str(self.info.get("title") or "")

    def to_dict(self) -> Dict[str, Any]:
        """Кешируемая форма с маркером нормализации"""
        return {
            NORMALIZED_MARKER: True,
            "version": self.version,
            "info": copy.deepcopy(self.info),
            "basePath": self.base_path,
            "paths": copy.deepcopy(self.paths),
            "definitions": copy.deepcopy(self.definitions),
            "tags": copy.deepcopy(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NormalizedSpec":
        return cls(
            version=data.get("version") or "2.0",
            info=data.get("info") or {},
            base_path=data.get("basePath") or data.get("base_path") or "",
            paths=data.get("paths") or {},
            definitions=data.get("definitions") or {},
            tags=data.get("tags") or [],
        )

    def iter_operations(self) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
        for path, path_item in self.paths.items():
            if not isinstance(path_item, dict):
                continue
            for method, operation in path_item.items():
                if method.lower() in HTTP_METHODS and isinstance(operation, dict):
                    yield path, method.lower(), operation

    def collect_tags(self) -> set:
        tags = set()
        for _, _, operation in self.iter_operations():
            tags.update(operation.get("tags") or [])
        return tags


class SpecAdapter:
    """
    Приведение Swagger 2.0 и OpenAPI 3.x к единому формату.

    Результат похож на Swagger 2.0: ссылки вида #/definitions/X,
    тело запроса лежит в параметре in=body, у ответа одно поле schema.
    Входной документ не изменяется.
    """

    @staticmethod
    def detect_version(doc: Dict[str, Any]) -> str:
        swagger = doc.get("swagger") if isinstance(doc, dict) else None
        openapi = doc.get("openapi") if isinstance(doc, dict) else None

        if isinstance(swagger, str) and swagger.startswith("2."):
            return "2.0"
        if isinstance(openapi, str) and openapi.startswith("3."):
            return "3.x"
        return "unknown"

    @classmethod
    def normalize(
        cls, doc: Union[Dict[str, Any], NormalizedSpec]
    ) -> NormalizedSpec:
        """Повторная нормализация уже нормализованных данных ничего не меняет"""
        if isinstance(doc, NormalizedSpec):
            return doc
        if isinstance(doc, dict) and doc.get(NORMALIZED_MARKER) is True:
            return NormalizedSpec.from_dict(doc)

        version = cls.detect_version(doc)
        if version == "unknown":
            marker = None
            if isinstance(doc, dict):
                marker = doc.get("openapi") or doc.get("swagger")
            raise UnsupportedSpecVersion(marker)

        adapter = cls(copy.deepcopy(doc), version)
        return adapter.build()

    def __init__(self, doc: Dict[str, Any], version: str):
        self.doc = doc
        self.version = version

    @property
    def is_openapi3(self) -> bool:
        return self.version == "3.x"

    def build(self) -> NormalizedSpec:
        if self.is_openapi3:
            definitions = (self.doc.get("components") or {}).get("schemas") or {}
            base_path = self._extract_server_base_path()
        else:
            definitions = self.doc.get("definitions") or {}
            base_path = self.doc.get("basePath") or ""

        normalized_definitions = {
            name: self.normalize_schema(schema) for name, schema in definitions.items()
        }
        paths = self._normalize_paths(self.doc.get("paths") or {})

        return NormalizedSpec(
            version=self.version,
            info=self.doc.get("info") or {},
            base_path=self.canonical_base_path(base_path),
            paths=paths,
            definitions=normalized_definitions,
            tags=self._normalize_tags(paths),
        )

    @staticmethod
    def canonical_base_path(base_path: Optional[str]) -> str:
        """'' или путь с ведущим слешем без завершающего"""
        base_path = (base_path or "").strip().rstrip("/")
        if not base_path:
            return ""
        if not base_path.startswith("/"):
            base_path = "/" + base_path
        return base_path

    def _extract_server_base_path(self) -> str:
        servers = self.doc.get("servers") or []
        if not servers or not isinstance(servers[0], dict):
            return ""

        url = servers[0].get("url") or ""
        parsed = urlparse(url)
        if parsed.scheme and parsed.netloc:
            return parsed.path
        return url

    # ------------------------------------------------------------------
    # Ссылки
    # ------------------------------------------------------------------

    def _resolve_inline_ref(self, value: Any, seen: Tuple[str, ...] = ()) -> Any:
        """Встраивает #/components/parameters/X и подобные ссылки"""
        if not isinstance(value, dict) or "$ref" not in value:
            return value

        ref = value["$ref"]
        for prefix, location in INLINE_REF_PREFIXES.items():
            if not isinstance(ref, str) or not ref.startswith(prefix):
                continue
            if ref in seen:
                logger.warning("Циклическая ссылка %s", ref)
                return {}

            target = self.doc
            for part in location:
                target = (target or {}).get(part) or {}
            resolved = target.get(ref[len(prefix) :])
            if not isinstance(resolved, dict):
                logger.debug("Ссылка %s не найдена", ref)
                return {}
            return self._resolve_inline_ref(copy.deepcopy(resolved), seen + (ref,))

        return value

    def normalize_schema(self, schema: Any) -> Any:
        if not isinstance(schema, dict):
            return schema

        if "$ref" in schema:
            ref = schema["$ref"]
            if isinstance(ref, str) and ref.startswith(COMPONENTS_SCHEMAS_PREFIX):
                ref = DEFINITIONS_REF_PREFIX + ref[len(COMPONENTS_SCHEMAS_PREFIX) :]
            return {"$ref": ref}

        normalized = dict(schema)

        any_of = schema.get("anyOf")
        if isinstance(any_of, list):
            non_null = [
                s for s in any_of if not (isinstance(s, dict) and s.get("type") == "null")
            ]
            if len(non_null) == 1:
                return self.normalize_schema(non_null[0])
            if non_null:
                normalized["anyOf"] = [self.normalize_schema(s) for s in non_null]
                normalized.pop("type", None)

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            non_null_types = [t for t in schema_type if t != "null"]
            if len(non_null_types) == 1:
                normalized["type"] = non_null_types[0]
            elif not non_null_types:
                normalized.pop("type")

        if isinstance(schema.get("items"), dict):
            normalized["items"] = self.normalize_schema(schema["items"])

        if isinstance(schema.get("properties"), dict):
            normalized["properties"] = {
                name: self.normalize_schema(value)
                for name, value in schema["properties"].items()
            }

        if isinstance(schema.get("additionalProperties"), dict):
            normalized["additionalProperties"] = self.normalize_schema(
                schema["additionalProperties"]
            )

        for key in ("allOf", "oneOf"):
            if isinstance(schema.get(key), list):
                normalized[key] = [self.normalize_schema(s) for s in schema[key]]

        return normalized

    # ------------------------------------------------------------------
    # Пути и операции
    # ------------------------------------------------------------------

    def _normalize_paths(self, paths: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {}

        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue

            shared_parameters = [
                self._resolve_inline_ref(p) for p in path_item.get("parameters") or []
            ]
            normalized[path] = {}

            for method, operation in path_item.items():
                if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                    continue
                normalized[path][method.lower()] = self._normalize_operation(
                    path, method.lower(), operation, shared_parameters
                )

        return normalized

    def _normalize_operation(
        self,
        path: str,
        method: str,
        operation: Dict[str, Any],
        shared_parameters: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        normalized = dict(operation)

        own_parameters = [
            self._resolve_inline_ref(p) for p in operation.get("parameters") or []
        ]
        own_keys = {(p.get("name"), p.get("in")) for p in own_parameters if isinstance(p, dict)}
        parameters = [
            p
            for p in shared_parameters
            if isinstance(p, dict) and (p.get("name"), p.get("in")) not in own_keys
        ] + [p for p in own_parameters if isinstance(p, dict)]

        parameters = [self._normalize_parameter(p) for p in parameters]

        if self.is_openapi3 and operation.get("requestBody"):
            body = self._request_body_to_parameter(operation["requestBody"])
            if body is not None:
                parameters.append(body)
        normalized.pop("requestBody", None)

        body_parameters = [p for p in parameters if p.get("in") == "body"]
        if len(body_parameters) > 1:
            logger.warning(
                "%s %s: несколько body параметров, используется первый (%s)",
                method.upper(),
                path,
                body_parameters[0].get("name"),
            )
            extra = body_parameters[1:]
            parameters = [p for p in parameters if not any(p is e for e in extra)]

        normalized["parameters"] = parameters
        normalized["responses"] = self._normalize_responses(operation.get("responses") or {})

        tags = [t for t in operation.get("tags") or [] if isinstance(t, str) and t]
        normalized["tags"] = [self._tag_name(t) for t in tags] or [self._tag_name(DEFAULT_TAG)]

        return normalized

    def _normalize_parameter(self, parameter: Dict[str, Any]) -> Dict[str, Any]:
        normalized = dict(parameter)
        if isinstance(parameter.get("schema"), dict):
            normalized["schema"] = self.normalize_schema(parameter["schema"])
        if isinstance(parameter.get("items"), dict):
            normalized["items"] = self.normalize_schema(parameter["items"])
        return normalized

    @staticmethod
    def _pick_media(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not isinstance(content, dict) or not content:
            return None
        for media_type in PREFERRED_MEDIA_TYPES:
            if isinstance(content.get(media_type), dict):
                return content[media_type]
        first = next(iter(content.values()))
        return first if isinstance(first, dict) else None

    def _request_body_to_parameter(self, request_body: Any) -> Optional[Dict[str, Any]]:
        request_body = self._resolve_inline_ref(request_body)
        if not isinstance(request_body, dict):
            return None

        media = self._pick_media(request_body.get("content"))
        if not media or not isinstance(media.get("schema"), dict):
            return None

        return {
            "in": "body",
            "name": "body",
            "required": bool(request_body.get("required", False)),
            "schema": self.normalize_schema(media["schema"]),
        }

    def _normalize_responses(self, responses: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {}

        for code, response in responses.items():
            response = self._resolve_inline_ref(response)
            if not isinstance(response, dict):
                continue

            result = {"description": response.get("description") or ""}

            if self.is_openapi3:
                media = self._pick_media(response.get("content"))
                schema = media.get("schema") if media else None
            else:
                schema = response.get("schema")

            # Пустая схема означает отсутствие тела ответа
            if isinstance(schema, dict) and schema:
                result["schema"] = self.normalize_schema(schema)

            normalized[str(code)] = result

        return normalized

    # ------------------------------------------------------------------
    # Теги
    # ------------------------------------------------------------------

    def _tag_name(self, name: str) -> str:
        if not self.is_openapi3:
            return name
        if name.lower().endswith(CONTROLLER_SUFFIX.lower()):
            return name
        return name + CONTROLLER_SUFFIX

    def _normalize_tags(self, paths: Dict[str, Any]) -> List[Dict[str, Any]]:
        tags = {}

        for tag in self.doc.get("tags") or []:
            if isinstance(tag, dict) and tag.get("name"):
                name = self._tag_name(tag["name"])
                tags[name] = {"name": name, "description": tag.get("description") or name}

        for path_item in paths.values():
            for operation in path_item.values():
                for name in operation.get("tags") or []:
                    tags.setdefault(name, {"name": name, "description": name})

        if not tags:
            name = self._tag_name(DEFAULT_TAG)
            tags[name] = {"name": name, "description": name}

        return list(tags.values())
