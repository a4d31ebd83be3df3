import logging
import re
from enum import Enum
from typing import List, Optional, Union

from ...config import GenerationSession
from ...exceptions import MergeParseError
from ..types.models import CHANGED_MARKER, CodeFile, Declaration

logger = logging.getLogger(__name__)

PREAMBLE_REGEX = re.compile(r"^(/\*.*\*/|import\s.*|const basePath = .*;)$")
TYPE_START_REGEX = re.compile(r"^export type ([\w$]+)\b")
INTERFACE_START_REGEX = re.compile(r"^export interface ([\w$]+)\b.*\{$")
OBJECT_START_REGEX = re.compile(r"^export const ([\w$]+)\s*:.*=\s*\{$")
OBJECT_MEMBER_REGEX = re.compile(r"^(\s+)async ([\w$]+)\(")
INTERFACE_MEMBER_REGEX = re.compile(r"^(\s+)([\w$]+)\(")

CONTROLLER_INTERFACE_SUFFIX = "Controller"


class State(str, Enum):
    SCANNING = "scanning"
    IN_DOC = "in_doc"
    IN_TYPE = "in_type"
    IN_BLOCK = "in_block"
    IN_CONTAINER = "in_container"
    IN_MEMBER = "in_member"


class GeneratedFileParser:
    """
    Построчный разбор ранее сгенерированного types.ts или apis.ts.

    Верхний уровень состоит из type, interface и объектов контроллеров.
    Интерфейсы и объекты контроллеров разбираются на методы. Строка,
    которую автомат не узнает, приводит к MergeParseError.
    """

    def __init__(self, file_name: str = ""):
        self.file_name = file_name

    def parse(self, text: str) -> CodeFile:
        self.code_file = CodeFile(file_name=self.file_name)
        self.state = State.SCANNING
        self.doc_return_state = State.SCANNING
        self.preamble_done = False
        self.leading: List[str] = []
        self.comments: List[str] = []
        self.block: Optional[Declaration] = None
        self.container: Optional[Declaration] = None
        self.member: Optional[Declaration] = None

        handlers = {
            State.SCANNING: self._scanning,
            State.IN_DOC: self._in_doc,
            State.IN_TYPE: self._in_type,
            State.IN_BLOCK: self._in_block,
            State.IN_CONTAINER: self._in_container,
            State.IN_MEMBER: self._in_member,
        }

        for number, line in enumerate(text.splitlines(), start=1):
            self.line_number = number
            handlers[self.state](line.rstrip())

        self._finish()
        return self.code_file

    def _error(self, line: str):
        raise MergeParseError(
            f"{self.file_name or 'файл'}: неизвестная конструкция",
            line_number=self.line_number,
            line=line,
        )

    # ------------------------------------------------------------------
    # Служебные операции
    # ------------------------------------------------------------------

    def _target(self) -> List[Declaration]:
        if self.container is not None:
            return self.container.members
        return self.code_file.declarations

    def _flush_comments(self):
        if self.comments:
            self._target().append(
                Declaration(
                    kind="comment",
                    name="\n".join(c.strip() for c in self.comments),
                    lines=self.comments,
                )
            )
            self.comments = []

    def _take_leading(self) -> List[str]:
        leading, self.leading = self.leading, []
        return leading

    def _emit_block(self):
        self.code_file.declarations.append(self.block)
        self.block = None
        self.state = State.SCANNING

    def _emit_member(self):
        self.container.members.append(self.member)
        self.member = None
        self.state = State.IN_CONTAINER

    def _emit_container(self):
        self.code_file.declarations.append(self.container)
        self.container = None
        self.state = State.SCANNING

    def _comment_or_doc(self, line: str) -> bool:
        """Маркер изменений, /** */ или обычный комментарий"""
        stripped = line.strip()

        if stripped == CHANGED_MARKER:
            self._flush_comments()
            self.leading.append(line)
            return True

        if stripped.startswith("/**"):
            self._flush_comments()
            self.leading.append(line)
            if not stripped.endswith("*/") or stripped == "/**":
                self.doc_return_state = self.state
                self.state = State.IN_DOC
            return True

        if stripped.startswith("//"):
            self.comments.append(line)
            return True

        return False

    # ------------------------------------------------------------------
    # Состояния
    # ------------------------------------------------------------------

    def _scanning(self, line: str):
        if not line.strip():
            self._flush_comments()
            return

        if not self.preamble_done and not self.leading:
            stripped = line.strip()
            if PREAMBLE_REGEX.match(stripped) and not stripped.startswith("/**"):
                self.code_file.imports.append(line)
                return
            if stripped.startswith("//") and stripped != CHANGED_MARKER:
                self.code_file.imports.append(line)
                return

        self.preamble_done = True

        if self._comment_or_doc(line):
            return

        self._flush_comments()

        match = TYPE_START_REGEX.match(line)
        if match:
            self.block = Declaration(
                kind="type", name=match.group(1), leading=self._take_leading(), lines=[line]
            )
            if line.endswith(";"):
                self._emit_block()
            else:
                self.state = State.IN_TYPE
            return

        match = INTERFACE_START_REGEX.match(line)
        if match:
            name = match.group(1)
            if name.endswith(CONTROLLER_INTERFACE_SUFFIX):
                self.container = Declaration(
                    kind="controller",
                    name=name,
                    leading=self._take_leading(),
                    lines=[line],
                    members=[],
                )
                self.state = State.IN_CONTAINER
            else:
                self.block = Declaration(
                    kind="interface", name=name, leading=self._take_leading(), lines=[line]
                )
                self.state = State.IN_BLOCK
            return

        match = OBJECT_START_REGEX.match(line)
        if match:
            self.container = Declaration(
                kind="object",
                name=match.group(1),
                leading=self._take_leading(),
                lines=[line],
                members=[],
            )
            self.state = State.IN_CONTAINER
            return

        self._error(line)

    def _in_doc(self, line: str):
        self.leading.append(line)
        if line.strip().endswith("*/"):
            self.state = self.doc_return_state

    def _in_type(self, line: str):
        self.block.lines.append(line)
        if line.endswith(";"):
            self._emit_block()

    def _in_block(self, line: str):
        self.block.lines.append(line)
        if line == "}":
            self._emit_block()

    def _in_container(self, line: str):
        stripped = line.strip()
        if not stripped:
            self._flush_comments()
            return

        closing = "};" if self.container.kind == "object" else "}"
        if line == closing:
            self._flush_comments()
            if self.leading:
                self.comments = self._take_leading()
                self._flush_comments()
            self.container.closing = [line]
            self._emit_container()
            return

        if self._comment_or_doc(line):
            return

        self._flush_comments()

        regex = OBJECT_MEMBER_REGEX if self.container.kind == "object" else INTERFACE_MEMBER_REGEX
        match = regex.match(line)
        if not match:
            self._error(line)

        self.member = Declaration(
            kind="member", name=match.group(2), leading=self._take_leading(), lines=[line]
        )
        self.state = State.IN_MEMBER
        if self._member_closed(line, first=True):
            self._emit_member()

    def _member_closed(self, line: str, first: bool = False) -> bool:
        if self.container.kind == "object":
            return not first and line == self.member.indent + "},"
        return line.endswith(";")

    def _in_member(self, line: str):
        self.member.lines.append(line)
        if self._member_closed(line):
            self._emit_member()

    def _finish(self):
        """Конец файла закрывает незавершенные блоки"""
        if self.member is not None:
            self._emit_member()
        if self.block is not None:
            self._emit_block()
        self._flush_comments()
        if self.leading:
            self.comments = self._take_leading()
            self._flush_comments()
        if self.container is not None:
            self._emit_container()


class IncrementalMerger:
    """
    Слияние свежего файла с ранее сгенерированным.

    Блоки, которых нет в свежем файле, переносятся без изменений.
    Совпадающие блоки сохраняют прежний текст, измененные заменяются
    свежими и получают маркер // [changed]. Новые блоки вставляются
    после ближайшего предыдущего блока свежего файла.
    """

    def __init__(self, session: Optional[GenerationSession] = None):
        self.session = session

    @staticmethod
    def parse(text: str, file_name: str = "") -> CodeFile:
        return GeneratedFileParser(file_name).parse(text)

    def merge(self, previous: CodeFile, fresh: CodeFile) -> CodeFile:
        return CodeFile(
            file_name=fresh.file_name,
            imports=list(fresh.imports),
            declarations=self._merge_units(previous.declarations, fresh.declarations),
        )

    def merge_text(
        self,
        previous_text: Optional[str],
        fresh: Union[CodeFile, str],
        file_name: str = "",
    ) -> str:
        """
        Итоговый текст файла.

        Если прежний файл не разбирается, возвращается свежий текст
        целиком, а предупреждение пишется один раз на файл.
        """
        fresh_text = str(fresh)
        if not previous_text or not previous_text.strip():
            return fresh_text

        file_name = file_name or (fresh.file_name if isinstance(fresh, CodeFile) else "")
        if isinstance(fresh, str):
            fresh = self.parse(fresh, file_name)

        try:
            previous = self.parse(previous_text, file_name)
        except MergeParseError as e:
            message = f"Файл {file_name} будет сгенерирован заново: {e}"
            if self.session is not None:
                self.session.notify_once(f"merge:{file_name}", message)
            else:
                logger.warning(message)
            return fresh_text

        return str(self.merge(previous, fresh))

    def _merge_units(
        self, previous: List[Declaration], fresh: List[Declaration]
    ) -> List[Declaration]:
        fresh_by_key = {unit.key: unit for unit in fresh}

        result = [
            self._merge_unit(unit, fresh_by_key[unit.key])
            if unit.key in fresh_by_key
            else unit
            for unit in previous
        ]

        anchor = None
        for unit in fresh:
            keys = [item.key for item in result]
            if unit.key in keys:
                anchor = unit.key
                continue

            index = keys.index(anchor) + 1 if anchor is not None else 0
            result.insert(index, unit)
            anchor = unit.key

        return result

    def _merge_unit(self, previous: Declaration, fresh: Declaration) -> Declaration:
        if previous.is_container and fresh.is_container:
            return fresh.model_copy(
                update={"members": self._merge_units(previous.members, fresh.members)}
            )

        if previous.comparable() == fresh.comparable() and not (
            previous.is_container or fresh.is_container
        ):
            return previous

        return fresh.marked()
