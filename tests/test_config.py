"""
Тесты для системы конфигурации
"""

import logging
import os
import tempfile

import pytest

from swagger_to_api import ContractConfigError
from swagger_to_api.config import (
    CONFIG_FILE,
    DEFAULT_DESCRIPTION,
    ContractConfig,
    ContractItem,
    GenerationSession,
)


class TestGenerationSession:
    """Тесты предупреждений, выводимых один раз"""

    def test_notify_once(self, caplog):
        session = GenerationSession()

        with caplog.at_level(logging.WARNING):
            assert session.notify_once("key", "первое") is True
            assert session.notify_once("key", "второе") is False
            assert session.notify_once("other", "третье") is True

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["первое", "третье"]

    def test_sessions_are_independent(self):
        first = GenerationSession()
        second = GenerationSession()

        first.notify_once("key", "сообщение")

        assert second.notify_once("key", "сообщение") is True


class TestContractConfig:
    """Тесты конфигурации документов"""

    def test_default_values(self):
        """Тест значений по умолчанию"""
        config = ContractConfig()

        assert config.description == DEFAULT_DESCRIPTION
        assert config.dir_by_root == "/src"
        assert config.work_dir == "services"
        assert config.contracts == []

    def test_config_save_and_load(self):
        """Тест сохранения и загрузки конфигурации"""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = ContractConfig(work_dir="api")
            config.add_contract(
                ContractItem(name="shop", url="http://shop/v2/api-docs", desc="Магазин")
            )
            config.add_contract(
                ContractItem(name="crm", url="http://crm/v3/api-docs", base_path="/crm")
            )
            config.save_to_file(temp_dir)

            assert os.path.exists(os.path.join(temp_dir, CONFIG_FILE))

            loaded = ContractConfig.from_file(temp_dir)

        assert loaded == config
        assert loaded.contracts[0].base_path is None
        assert loaded.contracts[1].base_path == "/crm"

    def test_empty_base_path_not_saved(self):
        item = ContractItem(name="shop", url="http://shop")

        assert "base_path" not in item.to_dict()
        assert item.to_dict()["uid"] == item.uid

    def test_config_file_not_exists(self):
        """Тест загрузки несуществующего конфига"""
        config = ContractConfig.from_file("nonexistent.toml")

        assert config == ContractConfig()

    def test_broken_file_warns_once(self, caplog):
        session = GenerationSession()

        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = os.path.join(temp_dir, CONFIG_FILE)
            with open(config_path, "w", encoding="utf-8") as f:
                f.write("this is not toml\n")

            with caplog.at_level(logging.WARNING):
                first = ContractConfig.from_file(config_path, session)
                second = ContractConfig.from_file(config_path, session)

        assert first == second == ContractConfig()
        assert len([r for r in caplog.records if CONFIG_FILE in r.getMessage()]) == 1

    def test_invalid_contract_entry(self):
        with pytest.raises(ValueError):
            ContractConfig.from_dict({"contracts": [{"name": "shop"}]})

    def test_duplicates_rejected(self):
        config = ContractConfig()
        config.add_contract(ContractItem(name="shop", url="http://shop"))

        with pytest.raises(ContractConfigError):
            config.add_contract(ContractItem(name="shop", url="http://other"))
        with pytest.raises(ContractConfigError):
            config.add_contract(ContractItem(name="other", url="http://shop"))

        assert len(config.contracts) == 1

    def test_delete_contract(self):
        config = ContractConfig()
        item = config.add_contract(ContractItem(name="shop", url="http://shop"))

        assert config.delete_contract("missing") is False
        assert config.delete_contract(item.uid) is True
        assert config.contracts == []

    def test_update_base_path(self):
        config = ContractConfig()
        item = config.add_contract(ContractItem(name="shop", url="http://shop"))

        config.update_base_path(item.uid, "/gateway")
        assert config.find("shop").base_path == "/gateway"

        config.update_base_path(item.uid, "")
        assert config.find(item.uid).base_path is None

        with pytest.raises(ContractConfigError):
            config.update_base_path("shop", "/x")

    def test_work_path(self):
        config = ContractConfig(dir_by_root="/src/", work_dir="services")

        assert config.work_path("/project") == os.path.join("/project", "src", "services")
