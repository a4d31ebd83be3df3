"""Утилиты для имен методов, контроллеров и параметров"""

import re
import unicodedata
from typing import Optional, Set, Tuple

# Суффиксы springfox: listUsingGET, saveUsingPOST_2
HTTP_METHOD_SUFFIX_REGEX = re.compile(
    r"Using(POST|GET|PUT|DELETE|PATCH|HEAD|OPTIONS)(_\d+)?$", re.IGNORECASE
)

CONTROLLER_SUFFIX = "Controller"

PATH_HASH_LENGTH = 6

# Слова, которые нельзя использовать как имя параметра в TypeScript
TS_RESERVED_WORDS = {
    "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends", "false",
    "finally", "for", "function", "if", "import", "in", "instanceof", "new",
    "null", "return", "super", "switch", "this", "throw", "true", "try",
    "typeof", "var", "void", "while", "with", "let", "static", "yield",
    "await", "implements", "interface", "package", "private", "protected",
    "public",
}


def strip_method_suffix(operation_id: str) -> str:
    """
    Убирает springfox-суффикс HTTP метода из operationId.

    Examples:
        >>> strip_method_suffix("listUsingGET")
        'list'
        >>> strip_method_suffix("saveUsingPOST_2")
        'save'
        >>> strip_method_suffix("UsingGET")
        'UsingGET'
    """
    if not operation_id:
        return ""
    return HTTP_METHOD_SUFFIX_REGEX.sub("", operation_id) or operation_id


def generate_path_hash(path: str) -> str:
    """
    Короткий стабильный хеш пути.

    Хеш вида h = h * 31 + code по кодовым единицам UTF-16 с приведением
    к знаковому 32-битному целому; модуль записывается в hex, берутся
    первые 6 символов и дополняются нулями слева.

    Examples:
        >>> generate_path_hash("/a")
        '000612'
        >>> generate_path_hash("")
        '000000'
    """
    value = 0
    units = (path or "").encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        value = (value * 31 + code) & 0xFFFFFFFF

    if value & 0x80000000:
        value -= 0x100000000

    return format(abs(value), "x")[:PATH_HASH_LENGTH].rjust(PATH_HASH_LENGTH, "0")


def _sanitize_method_base(name: str) -> str:
    name = re.sub(r"[^\w$]", "_", name)
    if name and name[0].isdigit():
        name = "_" + name
    return name


def method_base_name(operation_id: Optional[str], path: str, method: str) -> str:
    """Базовое имя метода без хеша"""
    if operation_id:
        return _sanitize_method_base(strip_method_suffix(operation_id))

    parts = [p for p in (path or "").split("/") if p]
    last_part = re.sub(r"[^\w$]", "", parts[-1]) if parts else ""
    last_part = last_part or "unknown"
    verb = (method or "get").lower()
    return _sanitize_method_base(f"{verb}{last_part[0].upper()}{last_part[1:]}")


def to_method_name(
    operation_id: Optional[str],
    path: str,
    method: str,
    existing_names: Optional[Set[str]] = None,
) -> str:
    """
    Имя метода вида {baseName}_{pathHash}.

    Если имя уже занято в existing_names (тот же путь и operationId,
    другой HTTP метод), перед хешем добавляется метод.
    """
    base_name = method_base_name(operation_id, path, method)
    path_hash = generate_path_hash(path)
    name = f"{base_name}_{path_hash}"

    if existing_names is not None:
        if name in existing_names:
            name = f"{base_name}_{(method or 'get').lower()}_{path_hash}"
        existing_names.add(name)

    return name


def parse_method_name_to_operation_id(method_name: str, path: str, method: str) -> str:
    """
    Восстанавливает operationId из сгенерированного имени метода.

    Args:
        method_name: Имя метода (например, "getUser_1a2b3c")
        path: Исходный путь операции
        method: HTTP метод

    Returns:
        Имя без хеш-суффикса (например, "getUser"). Метод, добавленный
        при совпадении имен ("save_put_1a2b3c"), тоже отбрасывается.
    """
    expected_suffix = f"_{generate_path_hash(path)}"
    if method_name.endswith(expected_suffix) and len(method_name) > len(expected_suffix):
        base_name = method_name[: -len(expected_suffix)]
        method_suffix = f"_{(method or 'get').lower()}"
        if base_name.endswith(method_suffix) and len(base_name) > len(method_suffix):
            base_name = base_name[: -len(method_suffix)]
        return base_name

    return strip_method_suffix(method_name)


def normalize_controller_name(name: str) -> str:
    """
    Ключ контроллера из имени тега.

    Examples:
        >>> normalize_controller_name("assistant-agenda-controller")
        'AssistantAgendaController'
        >>> normalize_controller_name("userController")
        'UserController'
    """
    clean = re.sub(CONTROLLER_SUFFIX + "$", "", name or "", flags=re.IGNORECASE)
    parts = [p for p in re.split(r"[\W_]+", clean) if p]
    if not parts:
        return "Default" + CONTROLLER_SUFFIX

    result = "".join(p[0].upper() + p[1:] for p in parts)
    if result[0].isdigit():
        result = "Api" + result
    return result + CONTROLLER_SUFFIX


def controller_const_name(controller_key: str) -> str:
    """UserController -> userController"""
    if not controller_key:
        return "controller"
    return controller_key[0].lower() + controller_key[1:]


def is_identifier(name: str) -> bool:
    return bool(re.fullmatch(r"[A-Za-z_$][\w$]*", name or "")) and (
        name not in TS_RESERVED_WORDS
    )


def to_identifier(name: str) -> str:
    """
    Безопасное имя параметра.

    Examples:
        >>> to_identifier("page.size")
        'pageSize'
        >>> to_identifier("default")
        'default_'
    """
    if is_identifier(name):
        return name

    parts = [p for p in re.split(r"[^\w$]+", name or "") if p]
    if not parts:
        return "param"

    ident = parts[0] + "".join(p[0].upper() + p[1:] for p in parts[1:])
    if ident[0].isdigit():
        ident = "_" + ident
    if ident in TS_RESERVED_WORDS:
        ident += "_"
    return ident


def locale_sort_key(text: Optional[str]) -> Tuple[str, str]:
    """Ключ сортировки без учета регистра и диакритики"""
    text = text or ""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return (base, text)


def api_sort_key(
    operation_id: Optional[str], summary: Optional[str], path: str, method: str
) -> tuple:
    """operationId -> summary -> последний сегмент пути; затем путь и метод"""
    primary = strip_method_suffix(operation_id) if operation_id else ""
    if not primary:
        primary = summary or ""
    if not primary:
        parts = (path or "").split("/")
        primary = parts[-1] if parts else ""
    return (locale_sort_key(primary), path or "", (method or "").lower())
