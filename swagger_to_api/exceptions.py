"""
Исключения генератора
"""


class SwaggerToApiError(Exception):
    """Базовая ошибка генерации"""


class UnsupportedSpecVersion(SwaggerToApiError):
    def __init__(self, version=None):
        self.version = version
        super().__init__(
            f"Неподдерживаемая версия спецификации: {version!r}"
            if version
            else "Неподдерживаемая версия спецификации"
        )


class NothingSelectedError(SwaggerToApiError):
    def __init__(self, message: str = "Не выбрано ни одной операции"):
        super().__init__(message)


class MergeParseError(SwaggerToApiError):
    """Ранее сгенерированный файл не удалось разобрать построчно"""

    def __init__(self, message, line_number=None, line=None):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"{message} (строка {line_number}: {line!r})"
        super().__init__(message)


class ContractConfigError(SwaggerToApiError):
    pass
