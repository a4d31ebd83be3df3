"""
Главный модуль генератора - чистый интерфейс
"""

import logging
import os
import re
import tempfile
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import GenerationSession
from .internal.generator.client_generator import ClientGenerator
from .internal.generator.merger import IncrementalMerger
from .internal.generator.templates import templates
from .internal.generator.type_graph import TypeGraphBuilder
from .internal.parser.spec_adapter import NormalizedSpec, SpecAdapter
from .internal.types.definitions import ApiDefinition
from .internal.types.models import Project
from .internal.utils.naming import normalize_controller_name

logger = logging.getLogger(__name__)

MERGED_FILES = ("types.ts", "apis.ts")
REQUEST_FILE = "request.ts"

SelectedApis = Dict[str, List[ApiDefinition]]


def operation_key(operation: str) -> str:
    """'GET /users/{id}' или '/users/{id}::get' -> '/users/{id}::get'"""
    operation = operation.strip()
    if "::" in operation:
        path, method = operation.rsplit("::", 1)
        return f"{path}::{method.lower()}"

    method, _, path = operation.partition(" ")
    return f"{path.strip()}::{method.lower()}"


def select_apis(
    spec: Union[Dict[str, Any], NormalizedSpec],
    tags: Optional[Iterable[str]] = None,
    operations: Optional[Iterable[str]] = None,
) -> SelectedApis:
    """
    Выбор операций для генерации, сгруппированных по контроллерам.

    Args:
        spec: Исходный или нормализованный документ
        tags: Теги или имена контроллеров
        operations: Операции вида "GET /path"

    Без фильтров выбираются все операции.
    """
    spec = SpecAdapter.normalize(spec)
    wanted_tags = {normalize_controller_name(t) for t in tags or []}
    wanted_operations = {operation_key(o) for o in operations or []}
    select_all = not wanted_tags and not wanted_operations

    selected = defaultdict(list)
    for path, method, operation in spec.iter_operations():
        api = ApiDefinition.from_operation(path, method, operation)
        if not (
            select_all
            or api.controller_key in wanted_tags
            or api.api_key in wanted_operations
        ):
            continue
        selected[api.controller_key].append(api)

    return dict(selected)


def output_dir_name(title: Optional[str]) -> str:
    """Имя папки документа из info.title"""
    name = re.sub(r'[\\/:*?"<>|]', "_", title or "").strip()
    return name or "api"


def write_atomic(path: str, text: str) -> None:
    """Запись через временный файл и os.replace"""
    directory = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class ApiClientGenerator:
    """Чистый интерфейс для генерации TypeScript клиентов"""

    def __init__(
        self,
        spec: Union[Dict[str, Any], NormalizedSpec],
        base_path: Optional[str] = None,
        session: Optional[GenerationSession] = None,
    ):
        self.spec = SpecAdapter.normalize(spec)
        self.base_path = base_path
        self.session = session or GenerationSession()
        self.builder = TypeGraphBuilder(self.spec)

    def generate(self, selected_apis: Optional[SelectedApis] = None) -> Project:
        """Генерация проекта клиента"""
        if selected_apis is None:
            selected_apis = select_apis(self.spec)

        generator = ClientGenerator(
            self.spec, selected_apis, base_path=self.base_path, builder=self.builder
        )
        return generator.generate()

    def render(
        self,
        selected_apis: Optional[SelectedApis] = None,
        previous: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """Тексты файлов после слияния с прежними версиями"""
        project = self.generate(selected_apis)
        merger = IncrementalMerger(self.session)
        previous = previous or {}

        result = {}
        for code_file in project.files:
            if code_file.file_name in MERGED_FILES:
                result[code_file.file_name] = merger.merge_text(
                    previous.get(code_file.file_name), code_file, code_file.file_name
                )
            else:
                result[code_file.file_name] = str(code_file)
        return result

    def output_dir(self, work_path: str) -> str:
        return os.path.join(work_path, output_dir_name(self.spec.title))

    def write(
        self, output_dir: str, selected_apis: Optional[SelectedApis] = None
    ) -> List[str]:
        """
        Запись файлов документа в output_dir.

        Ничего не пишется, если генерация завершилась ошибкой.
        request.ts создается уровнем выше, только если его еще нет.
        """
        previous = {}
        for file_name in MERGED_FILES:
            path = os.path.join(output_dir, file_name)
            if os.path.exists(path):
                with open(path, "r", encoding="utf-8") as f:
                    previous[file_name] = f.read()

        files = self.render(selected_apis, previous)

        os.makedirs(output_dir, exist_ok=True)
        written = []
        for file_name, text in files.items():
            path = os.path.join(output_dir, file_name)
            write_atomic(path, text)
            written.append(path)

        request_path = os.path.join(
            os.path.dirname(os.path.abspath(output_dir)), REQUEST_FILE
        )
        if not os.path.exists(request_path):
            write_atomic(request_path, templates.request)
            written.append(request_path)
            logger.info("Создан %s", request_path)

        return written


def generate_client(
    spec: Union[Dict[str, Any], NormalizedSpec],
    selected_apis: Optional[SelectedApis] = None,
    base_path: Optional[str] = None,
) -> Project:
    """Создание TypeScript клиента из документа"""
    generator = ApiClientGenerator(spec, base_path=base_path)
    return generator.generate(selected_apis)
