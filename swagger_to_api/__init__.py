from .exceptions import (
    ContractConfigError,
    MergeParseError,
    NothingSelectedError,
    SwaggerToApiError,
    UnsupportedSpecVersion,
)
from .generator import ApiClientGenerator, generate_client, select_apis

__all__ = [
    "ApiClientGenerator",
    "ContractConfigError",
    "MergeParseError",
    "NothingSelectedError",
    "SwaggerToApiError",
    "UnsupportedSpecVersion",
    "generate_client",
    "select_apis",
]
