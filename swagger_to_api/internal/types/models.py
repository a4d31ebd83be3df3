from typing import Optional, Union

from pydantic import BaseModel

CHANGED_MARKER = "// [changed]"

# type и interface с одним именем - один и тот же блок
DECLARATION_KINDS = ("type", "interface")

INDENT = "  "


class Parameter(BaseModel):
    name: str

    var_type: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None

    def __str__(self):
        return (
            self.name
            + ("?" if self.optional and self.default is None else "")
            + (f": {self.var_type}" if self.var_type else "")
            + (f" = {self.default}" if self.default is not None else "")
        )


class Method(BaseModel):
    """Метод контроллера: сигнатура для интерфейса и реализация для объекта"""

    name: str
    parameters: list[Parameter] = []
    return_type: str = "void"

    description: Optional[str] = None
    body: list[str] = []

    def signature(self) -> str:
        return ", ".join(map(str, self.parameters))

    def interface_member(self) -> "Declaration":
        return Declaration(
            kind="member",
            name=self.name,
            leading=doc_comment(self.description, INDENT),
            lines=[f"{INDENT}{self.name}({self.signature()}): Promise<{self.return_type}>;"],
        )

    def object_member(self) -> "Declaration":
        return Declaration(
            kind="member",
            name=self.name,
            leading=doc_comment(self.description, INDENT),
            lines=(
                [f"{INDENT}async {self.name}({self.signature()}): Promise<{self.return_type}> {{"]
                + [f"{INDENT * 2}{line}" for line in self.body]
                + [f"{INDENT}}},"]
            ),
        )


class Declaration(BaseModel):
    """
    Именованный блок сгенерированного файла.

    Атомарный блок хранит весь текст в lines. У контейнера (интерфейс
    или объект контроллера) в lines только открывающая строка, методы
    лежат в members, закрывающая строка в closing.
    """

    kind: str
    name: str

    leading: list[str] = []
    lines: list[str] = []
    members: Optional[list["Declaration"]] = None
    closing: list[str] = []

    @property
    def is_container(self) -> bool:
        return self.members is not None

    @property
    def key(self) -> str:
        if self.kind in DECLARATION_KINDS:
            return f"decl:{self.name}"
        return f"{self.kind}:{self.name}"

    @property
    def indent(self) -> str:
        first = (self.lines or [""])[0]
        return first[: len(first) - len(first.lstrip())]

    def is_changed(self) -> bool:
        return any(line.strip() == CHANGED_MARKER for line in self.leading)

    def comparable(self) -> list[str]:
        """Текст блока без маркера изменений"""
        return [
            line for line in self.leading if line.strip() != CHANGED_MARKER
        ] + self.lines

    def marked(self) -> "Declaration":
        if self.is_changed():
            return self
        return self.model_copy(
            update={"leading": [self.indent + CHANGED_MARKER] + list(self.leading)}
        )

    def __str__(self):
        lines = list(self.leading) + list(self.lines)
        if self.members is not None:
            lines += [str(member) for member in self.members]
            lines += list(self.closing)
        return "\n".join(lines)


Declaration.model_rebuild()


class CodeFile(BaseModel):
    file_name: str

    imports: list[str] = []
    declarations: list[Declaration] = []

    def __str__(self):
        return (
            "\n\n".join(
                filter(
                    bool,
                    [
                        ("\n".join(self.imports) if self.imports else ""),
                        "\n\n".join(map(str, self.declarations)),
                    ],
                )
            )
            + "\n"
        )

    def add_declaration(
        self, declaration: Union["Declaration", str], **kwargs
    ) -> "Declaration":
        if isinstance(declaration, str):
            declaration = Declaration(name=declaration, **kwargs)

        self.declarations.append(declaration)
        return declaration

    def get_declaration(self, name: str) -> Optional["Declaration"]:
        for declaration in self.declarations:
            if declaration.name == name:
                return declaration
        return None


class Project(BaseModel):
    name: str
    files: list[CodeFile] = []

    def add_file(self, file_name: Union["CodeFile", str], **kwargs) -> "CodeFile":
        code_file = file_name
        if isinstance(file_name, str):
            code_file = CodeFile(file_name=file_name, **kwargs)

        self.files.append(code_file)
        return code_file

    def get_file(self, file_name: str) -> Optional["CodeFile"]:
        for code_file in self.files:
            if code_file.file_name == file_name:
                return code_file
        return None


def doc_comment(text: Optional[str], indent: str = "") -> list[str]:
    """Однострочный /** */ комментарий"""
    if not text:
        return []
    text = " ".join(str(text).split()).replace("*/", "*\\/")
    if not text:
        return []
    return [f"{indent}/** {text} */"]
