"""Утилиты для генератора"""

from .naming import (
    api_sort_key,
    controller_const_name,
    generate_path_hash,
    locale_sort_key,
    normalize_controller_name,
    parse_method_name_to_operation_id,
    strip_method_suffix,
    to_identifier,
    to_method_name,
)

__all__ = [
    "api_sort_key",
    "controller_const_name",
    "generate_path_hash",
    "locale_sort_key",
    "normalize_controller_name",
    "parse_method_name_to_operation_id",
    "strip_method_suffix",
    "to_identifier",
    "to_method_name",
]
