"""
Конфигурация проекта: список зарегистрированных документов
"""

import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set

import toml

from .exceptions import ContractConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = "swagger-to-api.toml"

DEFAULT_DESCRIPTION = "Generated by swagger-to-api, do not edit or remove"


class GenerationSession:
    """Контекст одного запуска: какие предупреждения уже выводились"""

    def __init__(self):
        self.notified: Set[str] = set()

    def notify_once(self, key: str, message: str) -> bool:
        if key in self.notified:
            return False
        self.notified.add(key)
        logger.warning(message)
        return True


@dataclass
class ContractItem:
    """Зарегистрированный документ"""

    name: str
    url: str
    desc: str = ""
    base_path: Optional[str] = None
    uid: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if not self.base_path:
            data.pop("base_path")
        return data


@dataclass
class ContractConfig:
    """Конфигурация генератора"""

    description: str = DEFAULT_DESCRIPTION
    dir_by_root: str = "/src"
    work_dir: str = "services"
    contracts: List[ContractItem] = field(default_factory=list)

    @classmethod
    def from_file(
        cls,
        config_path: str = CONFIG_FILE,
        session: Optional[GenerationSession] = None,
    ) -> "ContractConfig":
        """
        Загрузка конфигурации из файла.

        Отсутствующий файл дает конфигурацию по умолчанию. Испорченный
        файл тоже, но с предупреждением (один раз за сессию).
        """
        if os.path.isdir(config_path):
            config_path = os.path.join(config_path, CONFIG_FILE)

        if not os.path.exists(config_path):
            return cls()

        try:
            config_data = toml.load(config_path)
            return cls.from_dict(config_data)
        except (toml.TomlDecodeError, TypeError, ValueError) as e:
            message = f"Не удалось прочитать {config_path}: {e}"
            if session is not None:
                session.notify_once(f"config:{os.path.abspath(config_path)}", message)
            else:
                logger.warning(message)
            return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractConfig":
        contracts = []
        for item in data.get("contracts") or []:
            if not isinstance(item, dict) or not item.get("name") or not item.get("url"):
                raise ValueError(f"Некорректная запись в contracts: {item!r}")
            contracts.append(
                ContractItem(
                    name=item["name"],
                    url=item["url"],
                    desc=item.get("desc") or "",
                    base_path=item.get("base_path") or None,
                    uid=item.get("uid") or uuid.uuid4().hex,
                )
            )

        return cls(
            description=data.get("description", DEFAULT_DESCRIPTION),
            dir_by_root=data.get("dir_by_root", "/src"),
            work_dir=data.get("work_dir", "services"),
            contracts=contracts,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "dir_by_root": self.dir_by_root,
            "work_dir": self.work_dir,
            "contracts": [c.to_dict() for c in self.contracts],
        }

    def save_to_file(self, config_path: str = CONFIG_FILE) -> None:
        """Сохранение конфигурации в файл"""
        if os.path.isdir(config_path):
            config_path = os.path.join(config_path, CONFIG_FILE)

        with open(config_path, "w", encoding="utf-8") as f:
            toml.dump(self.to_dict(), f)

    def add_contract(self, contract: ContractItem) -> ContractItem:
        if any(c.name == contract.name for c in self.contracts):
            raise ContractConfigError(f"Документ с именем {contract.name!r} уже существует")
        if any(c.url == contract.url for c in self.contracts):
            raise ContractConfigError(f"Адрес уже зарегистрирован: {contract.url}")

        self.contracts.append(contract)
        return contract

    def delete_contract(self, uid: str) -> bool:
        before = len(self.contracts)
        self.contracts = [c for c in self.contracts if c.uid != uid]
        return len(self.contracts) != before

    def update_base_path(self, uid: str, base_path: Optional[str]) -> ContractItem:
        contract = self.find(uid)
        if contract is None or contract.uid != uid:
            raise ContractConfigError(f"Документ с uid {uid} не найден")
        contract.base_path = base_path or None
        return contract

    def find(self, name_or_uid: str) -> Optional[ContractItem]:
        for contract in self.contracts:
            if name_or_uid in (contract.uid, contract.name):
                return contract
        return None

    def work_path(self, root: str = ".") -> str:
        """<root>/<dir_by_root>/<work_dir>"""
        return os.path.join(
            root, self.dir_by_root.strip("/\\"), self.work_dir.strip("/\\")
        )
