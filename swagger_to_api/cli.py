import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import httpx

from swagger_to_api.config import CONFIG_FILE, ContractConfig, ContractItem, GenerationSession
from swagger_to_api.exceptions import NothingSelectedError, SwaggerToApiError
from swagger_to_api.generator import ApiClientGenerator, select_apis


def load_document(source: str, timeout: float = 30.0) -> Dict[str, Any]:
    """Загрузка документа из локального файла или по URL"""
    if source.startswith(("http://", "https://")):
        response = httpx.get(source, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
        return response.json()

    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


def _config_path(root: str) -> str:
    return os.path.join(root, CONFIG_FILE)


def _load_config(root: str, session: GenerationSession) -> ContractConfig:
    return ContractConfig.from_file(_config_path(root), session=session)


def _generate(args, session: GenerationSession):
    config = _load_config(args.root, session)
    base_path = args.base_path

    if args.name:
        contract = config.find(args.name)
        if contract is None:
            raise SwaggerToApiError(f"Документ {args.name!r} не зарегистрирован в {CONFIG_FILE}")
        source = contract.url
        base_path = base_path or contract.base_path
    elif args.source:
        source = args.source
    else:
        raise SwaggerToApiError("Укажите --source или --name")

    print(f"📥 Загрузка документа из {source}")
    document = load_document(source)

    print("⚙️ Генерация кода...")
    generator = ApiClientGenerator(document, base_path=base_path, session=session)

    tags = None if args.all else args.tag
    operations = None if args.all else args.operation
    selected = select_apis(generator.spec, tags=tags, operations=operations)
    if not selected:
        raise NothingSelectedError()

    output_dir = args.output or generator.output_dir(config.work_path(args.root))
    written = generator.write(output_dir, selected)

    print(f"💾 Записано файлов: {len(written)}")
    for path in written:
        print(f"   {path}")
    print("✅ Генерация завершена успешно!")


def _add(args, session: GenerationSession):
    config = _load_config(args.root, session)
    contract = config.add_contract(
        ContractItem(
            name=args.name, url=args.url, desc=args.desc or "", base_path=args.base_path
        )
    )
    config.save_to_file(_config_path(args.root))
    print(f"✅ Добавлен документ {contract.name} ({contract.uid})")


def _remove(args, session: GenerationSession):
    config = _load_config(args.root, session)
    contract = config.find(args.contract)
    if contract is None or not config.delete_contract(contract.uid):
        raise SwaggerToApiError(f"Документ {args.contract!r} не найден")
    config.save_to_file(_config_path(args.root))
    print(f"🗑️ Удален документ {contract.name}")


def _list(args, session: GenerationSession):
    config = _load_config(args.root, session)
    if not config.contracts:
        print("📭 Нет зарегистрированных документов")
        return

    print(f"📦 Документы ({len(config.contracts)}):")
    for contract in config.contracts:
        print(f"[{contract.uid}] {contract.name}: {contract.url}")
        if contract.base_path:
            print(f"   basePath: {contract.base_path}")
        if contract.desc:
            print(f"   {contract.desc}")


def _set_base_path(args, session: GenerationSession):
    config = _load_config(args.root, session)
    contract = config.find(args.contract)
    if contract is None:
        raise SwaggerToApiError(f"Документ {args.contract!r} не найден")
    config.update_base_path(contract.uid, args.base_path)
    config.save_to_file(_config_path(args.root))
    print(f"💾 basePath для {contract.name}: {contract.base_path or '(из документа)'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swagger-to-api",
        description="Генерация TypeScript клиента из Swagger 2.0 / OpenAPI 3.x",
    )
    parser.add_argument("--root", default=".", help="Корень проекта с конфигом")
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный лог")
    commands = parser.add_subparsers(dest="command")

    generate = commands.add_parser("generate", help="Сгенерировать клиент")
    generate.add_argument("--source", help="Путь к JSON файлу или URL документа")
    generate.add_argument("--name", help="Имя или uid зарегистрированного документа")
    generate.add_argument("--tag", action="append", help="Тег или контроллер")
    generate.add_argument(
        "--operation", action="append", help='Операция вида "GET /users/{id}"'
    )
    generate.add_argument("--all", action="store_true", help="Все операции документа")
    generate.add_argument("--base-path", help="Переопределить basePath документа")
    generate.add_argument("--output", help="Папка для файлов документа")
    generate.set_defaults(handler=_generate)

    add = commands.add_parser("add", help="Зарегистрировать документ")
    add.add_argument("--name", required=True)
    add.add_argument("--url", required=True)
    add.add_argument("--desc")
    add.add_argument("--base-path")
    add.set_defaults(handler=_add)

    remove = commands.add_parser("remove", help="Удалить документ")
    remove.add_argument("contract", help="Имя или uid")
    remove.set_defaults(handler=_remove)

    list_command = commands.add_parser("list", help="Список документов")
    list_command.set_defaults(handler=_list)

    set_base_path = commands.add_parser("set-base-path", help="Изменить basePath")
    set_base_path.add_argument("contract", help="Имя или uid")
    set_base_path.add_argument("base_path", nargs="?", default=None)
    set_base_path.set_defaults(handler=_set_base_path)

    return parser


def main(argv: Optional[List[str]] = None):
    """Точка входа swagger-to-api"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not getattr(args, "handler", None):
        parser.print_help()
        return

    session = GenerationSession()
    try:
        args.handler(args, session)
    except NothingSelectedError as e:
        print(f"⚠️ {e}")
        sys.exit(1)
    except (SwaggerToApiError, OSError, ValueError, httpx.HTTPError) as e:
        print(f"❌ Ошибка: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
