import argparse
import logging
import sys
from pathlib import Path

from src.adapters.memory_store import InMemoryOptionStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.options_store import SQLiteOptionStore
from src.api.auth_utils import create_admin_token
from src.components.tokens import (
    KeyValueStorePort,
    ReconcileResult,
    TokenService,
    create_token_service,
)
from src.rules.loader import load_rules
from src.rules.models import Rules

logger = logging.getLogger("cli")

DATA_DIR = "data"
RULES_PATH = "rules.yaml"


def get_rules(rules_path: str) -> Rules:
    if not Path(rules_path).exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)
    return load_rules(Path(rules_path))


def get_backend(rules: Rules, data_dir: str) -> KeyValueStorePort:
    if rules.storage.backend == "memory":
        return InMemoryOptionStore()
    Path(data_dir).mkdir(parents=True, exist_ok=True)
    db_path = str(Path(data_dir) / rules.storage.db_filename)
    SQLiteMigrator(db_path).run_migrations()
    return SQLiteOptionStore(db_path)


def get_service(rules: Rules, data_dir: str) -> TokenService:
    return create_token_service(
        get_backend(rules, data_dir),
        option_key=rules.tokens.option_key,
        config=rules.tokens.to_config(),
    )


def _report(result: ReconcileResult) -> int:
    print(result.message)
    if result.stats is not None:
        s = result.stats
        print(f"added={s.added} replaced={s.replaced} skipped={s.skipped} invalid={s.invalid}")
    return 0 if result.success else 1


def handle_list(service: TokenService, args: argparse.Namespace) -> int:
    tokens = service.list_tokens()
    if not tokens:
        print("No tokens defined.")
        return 0
    for token in tokens:
        print(f"[{token.name}]\t{token.label}\t{token.value}")
    return 0


def handle_add(service: TokenService, args: argparse.Namespace) -> int:
    return _report(service.add(args.name, args.label, args.value))


def handle_set(service: TokenService, args: argparse.Namespace) -> int:
    result = service.set_value(args.name, args.value)
    if result is None:
        logger.error("Token %s not found.", args.name)
        return 1
    return _report(result)


def handle_remove(service: TokenService, args: argparse.Namespace) -> int:
    return _report(service.remove(args.name))


def handle_import(service: TokenService, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.exists():
        logger.error("Import file %s not found.", path)
        return 1
    content = path.read_text(encoding="utf-8")
    return _report(service.import_file(content, path.name, args.replace))


def handle_export(service: TokenService, args: argparse.Namespace) -> int:
    content = service.export_csv() if args.format == "csv" else service.export_json()
    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        logger.info("Exported tokens to %s", args.output)
    else:
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
    return 0


def handle_issue_token(rules: Rules, args: argparse.Namespace) -> int:
    token = create_admin_token(
        args.subject,
        [rules.admin.capability],
        ttl_minutes=args.ttl or rules.admin.token_ttl_minutes,
    )
    print(token)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Custom Tokens CLI")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    parser.add_argument("--data-dir", default=DATA_DIR, help="Data directory")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    subparsers.add_parser("list", help="List all tokens")

    # add
    add_parser = subparsers.add_parser("add", help="Add a token")
    add_parser.add_argument("name", help="Token name (letters, numbers, underscores)")
    add_parser.add_argument("label", help="Display label")
    add_parser.add_argument("value", nargs="?", default="", help="Substituted text")

    # set
    set_parser = subparsers.add_parser("set", help="Set the value of an existing token")
    set_parser.add_argument("name", help="Exact token name")
    set_parser.add_argument("value", help="New substituted text")

    # remove
    remove_parser = subparsers.add_parser("remove", help="Remove a token by exact name")
    remove_parser.add_argument("name")

    # import
    import_parser = subparsers.add_parser("import", help="Import tokens from JSON or CSV")
    import_parser.add_argument("file", help="Path to .json or .csv file")
    import_parser.add_argument(
        "--replace", action="store_true", help="Replace existing tokens with the same name"
    )

    # export
    export_parser = subparsers.add_parser("export", help="Export tokens")
    export_parser.add_argument("--format", choices=["json", "csv"], default="json")
    export_parser.add_argument("--output", help="Write to file instead of stdout")

    # issue-token
    issue_parser = subparsers.add_parser("issue-token", help="Issue an admin API token")
    issue_parser.add_argument("subject", help="Who the token is for")
    issue_parser.add_argument("--ttl", type=int, help="Lifetime in minutes")

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    rules = get_rules(args.rules)

    if args.command == "issue-token":
        return handle_issue_token(rules, args)

    service = get_service(rules, args.data_dir)
    handlers = {
        "list": handle_list,
        "add": handle_add,
        "set": handle_set,
        "remove": handle_remove,
        "import": handle_import,
        "export": handle_export,
    }
    return handlers[args.command](service, args)


if __name__ == "__main__":
    sys.exit(main())
