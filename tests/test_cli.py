"""
Тесты командной строки
"""

import json
import os

import httpx
import pytest

from swagger_to_api import cli
from swagger_to_api.config import CONFIG_FILE, ContractConfig


@pytest.fixture
def doc_file(swagger2_doc, tmp_path):
    path = tmp_path / "shop.json"
    path.write_text(json.dumps(swagger2_doc, ensure_ascii=False), encoding="utf-8")
    return str(path)


def run(*argv):
    cli.main(list(argv))


class TestContracts:
    """Тесты команд add, list, remove и set-base-path"""

    def test_add_and_list(self, tmp_path, capsys):
        run(
            "--root",
            str(tmp_path),
            "add",
            "--name",
            "shop",
            "--url",
            "http://shop/docs",
            "--desc",
            "Магазин",
        )

        config = ContractConfig.from_file(str(tmp_path / CONFIG_FILE))
        assert [c.name for c in config.contracts] == ["shop"]

        run("--root", str(tmp_path), "list")
        out = capsys.readouterr().out
        assert "shop: http://shop/docs" in out
        assert "Магазин" in out

    def test_list_empty(self, tmp_path, capsys):
        run("--root", str(tmp_path), "list")

        assert "Нет зарегистрированных документов" in capsys.readouterr().out

    def test_duplicate_add_fails(self, tmp_path, capsys):
        run("--root", str(tmp_path), "add", "--name", "shop", "--url", "http://shop/docs")

        with pytest.raises(SystemExit) as e:
            run("--root", str(tmp_path), "add", "--name", "shop", "--url", "http://other")

        assert e.value.code == 1
        assert "❌" in capsys.readouterr().out

    def test_set_base_path_and_remove(self, tmp_path):
        root = str(tmp_path)
        run("--root", root, "add", "--name", "shop", "--url", "http://shop/docs")

        run("--root", root, "set-base-path", "shop", "/gateway")
        assert ContractConfig.from_file(root).find("shop").base_path == "/gateway"

        run("--root", root, "set-base-path", "shop")
        assert ContractConfig.from_file(root).find("shop").base_path is None

        run("--root", root, "remove", "shop")
        assert ContractConfig.from_file(root).contracts == []

    def test_remove_unknown(self, tmp_path):
        with pytest.raises(SystemExit) as e:
            run("--root", str(tmp_path), "remove", "missing")

        assert e.value.code == 1


class TestGenerate:
    """Тесты команды generate"""

    def test_generate_from_file(self, tmp_path, doc_file, capsys):
        run("--root", str(tmp_path), "generate", "--source", doc_file)

        output_dir = tmp_path / "src" / "services" / "Shop API"
        assert sorted(os.listdir(output_dir)) == ["apis.ts", "index.ts", "types.ts"]
        assert (tmp_path / "src" / "services" / "request.ts").exists()
        assert "✅" in capsys.readouterr().out

    def test_generate_by_name_with_base_path(self, tmp_path, swagger2_doc, monkeypatch):
        requested = []

        def fake_get(url, **kwargs):
            requested.append(url)
            return httpx.Response(200, json=swagger2_doc, request=httpx.Request("GET", url))

        monkeypatch.setattr(httpx, "get", fake_get)
        root = str(tmp_path)
        run("--root", root, "add", "--name", "shop", "--url", "http://shop/docs", "--base-path", "/gw")
        run("--root", root, "generate", "--name", "shop", "--output", str(tmp_path / "out"))

        assert requested == ["http://shop/docs"]
        with open(tmp_path / "out" / "apis.ts", encoding="utf-8") as f:
            assert "const basePath = '/gw';" in f.read()

    def test_generate_selected_tag(self, tmp_path, doc_file):
        run(
            "--root",
            str(tmp_path),
            "generate",
            "--source",
            doc_file,
            "--tag",
            "widget-controller",
            "--output",
            str(tmp_path / "out"),
        )

        with open(tmp_path / "out" / "apis.ts", encoding="utf-8") as f:
            apis_ts = f.read()

        assert "export const widgetController" in apis_ts
        assert "defaultController" not in apis_ts

    def test_nothing_selected(self, tmp_path, doc_file, capsys):
        with pytest.raises(SystemExit) as e:
            run("--root", str(tmp_path), "generate", "--source", doc_file, "--tag", "missing")

        assert e.value.code == 1
        assert "⚠️" in capsys.readouterr().out

    def test_missing_source(self, tmp_path):
        with pytest.raises(SystemExit) as e:
            run("--root", str(tmp_path), "generate", "--source", str(tmp_path / "none.json"))

        assert e.value.code == 1

    def test_http_error(self, tmp_path, monkeypatch):
        def fake_get(url, **kwargs):
            return httpx.Response(404, request=httpx.Request("GET", url))

        monkeypatch.setattr(httpx, "get", fake_get)

        with pytest.raises(SystemExit) as e:
            run("--root", str(tmp_path), "generate", "--source", "http://shop/docs")

        assert e.value.code == 1

    def test_no_command(self, capsys):
        run()

        assert "swagger-to-api" in capsys.readouterr().out
