import argparse
import logging
import os
import sys
from pathlib import Path

from prettytable import PrettyTable

# Ensure project package root is on sys.path so imports work regardless of CWD
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.services import CurrencyPreferenceService, PreferencesService  # noqa: E402
from app.use_cases import (  # noqa: E402
    AddCategory,
    ChangeDefaultCurrency,
    CreateFixedEntry,
    CreateVariableEntry,
    DeleteFixedEntry,
    DeleteVariableEntry,
    GenerateMonthlyReport,
    ListEntries,
    RemoveCategory,
    ResetAllData,
    UpdateEntryNote,
)
from backup import default_export_name  # noqa: E402
from bootstrap import bootstrap_store  # noqa: E402
from config import EXPORT_DIR  # noqa: E402
from domain.categories import display_name  # noqa: E402
from domain.currency import CurrencyService  # noqa: E402
from domain.dates import format_datetime_dk  # noqa: E402
from domain.entries import VariableEntry  # noqa: E402
from domain.errors import DomainError  # noqa: E402
from domain.formatting import format_money, parse_money  # noqa: E402
from domain.money import normalize_currency  # noqa: E402
from domain.validation import parse_month  # noqa: E402
from utils.exporters import EXPORT_FORMATS, export_state  # noqa: E402

logger = logging.getLogger(__name__)


def _no_translation(key: str) -> str:
    return key


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="budgeto", description="Budgeto personal budget")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--sqlite", action="store_true", help="Use the SQLite store")
    parser.add_argument("--json-path", help="Path to the JSON store")
    parser.add_argument("--sqlite-path", help="Path to the SQLite store")
    parser.add_argument("--locale", choices=("da", "en"), help="Override display locale")
    sub = parser.add_subparsers(dest="command", required=True)

    entries = sub.add_parser("list", help="List entries")
    entries.add_argument("--kind", choices=("fixed", "variable"))

    report = sub.add_parser("report", help="Show the monthly summary")
    report.add_argument("--currency")
    report.add_argument("--month", help="YYYY-MM")
    report.add_argument("--by-category", action="store_true")

    for kind in ("fixed", "variable"):
        add = sub.add_parser(f"add-{kind}", help=f"Add a {kind} entry")
        add.add_argument("type", choices=("income", "expense"))
        add.add_argument("category")
        add.add_argument("amount", help="Amount as typed, e.g. '1.234,50 kr'")
        add.add_argument("--currency")
        add.add_argument("--subcategory")
        add.add_argument("--note")

    note = sub.add_parser("note", help="Change the note of an entry")
    note.add_argument("entry_id")
    note.add_argument("text", nargs="?")

    delete = sub.add_parser("delete", help="Delete an entry")
    delete.add_argument("kind", choices=("fixed", "variable"))
    delete.add_argument("entry_id")

    currency = sub.add_parser("set-currency", help="Change the default currency")
    currency.add_argument("code")

    sub.add_parser("currencies", help="List supported currencies")
    sub.add_parser("categories", help="List categories")

    add_category = sub.add_parser("add-category", help="Add a category")
    add_category.add_argument("category_id")
    add_category.add_argument("icon")
    add_category.add_argument("--name")
    add_category.add_argument("--color")
    add_category.add_argument("--sub", action="append", default=[])

    remove_category = sub.add_parser("remove-category", help="Remove an unused category")
    remove_category.add_argument("category_id")

    export = sub.add_parser("export", help="Export entries")
    export.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    export.add_argument("--output")

    convert = sub.add_parser("convert", help="Convert an amount between currencies")
    convert.add_argument("amount")
    convert.add_argument("source")
    convert.add_argument("target")

    preference = sub.add_parser("theme", help="Show or set the theme")
    preference.add_argument("value", nargs="?", choices=("light", "dark", "auto"))
    preference = sub.add_parser("locale", help="Show or set the locale preference")
    preference.add_argument("value", nargs="?", choices=("da", "en", "auto"))

    dev = sub.add_parser("dev-mode", help="Toggle mock data seeding")
    dev.add_argument("state", choices=("on", "off"))

    reset = sub.add_parser("reset", help="Delete all stored data")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")
    return parser


def _print_entries(entries, locale: str) -> None:
    table = PrettyTable()
    table.field_names = ["ID", "Kind", "Type", "Category", "Note", "Time", "Amount"]
    table.align["Amount"] = "r"
    for entry in entries:
        when = format_datetime_dk(entry.timestamp) if isinstance(entry, VariableEntry) else ""
        table.add_row(
            [
                entry.id,
                entry.kind,
                entry.type,
                entry.category_id,
                entry.note or "",
                when,
                format_money(entry.signed_money(), True, locale),
            ]
        )
    print(table)


def _run(args: argparse.Namespace) -> int:
    kwargs = {"use_sqlite": args.sqlite}
    if args.json_path:
        kwargs["json_path"] = args.json_path
    if args.sqlite_path:
        kwargs["sqlite_path"] = args.sqlite_path
    store = bootstrap_store(**kwargs)
    preferences = PreferencesService(store)
    locale = args.locale or preferences.effective_locale(os.environ.get("LANG"))

    if args.command == "list":
        _print_entries(ListEntries(store).execute(args.kind), locale)
    elif args.command == "report":
        month = parse_month(args.month) if args.month else None
        report = GenerateMonthlyReport(store).execute(currency=args.currency, month=month)
        print(report.category_table(locale) if args.by_category else report.as_table(locale))
    elif args.command in ("add-fixed", "add-variable"):
        use_case = CreateFixedEntry if args.command == "add-fixed" else CreateVariableEntry
        entry = use_case(store).execute(
            type=args.type,
            category_id=args.category,
            amount=args.amount,
            currency=args.currency,
            subcategory_id=args.subcategory,
            note=args.note,
        )
        print(f"Added {entry.kind} entry {entry.id}: {format_money(entry.money, True, locale)}")
    elif args.command == "note":
        if not UpdateEntryNote(store).execute(entry_id=args.entry_id, note=args.text):
            print(f"Entry not found: {args.entry_id}")
            return 1
    elif args.command == "delete":
        use_case = DeleteFixedEntry if args.kind == "fixed" else DeleteVariableEntry
        if not use_case(store).execute(args.entry_id):
            print(f"Entry not found: {args.entry_id}")
            return 1
        print(f"Deleted {args.entry_id}")
    elif args.command == "set-currency":
        if ChangeDefaultCurrency(store).execute(args.code):
            print(f"Default currency is now {normalize_currency(args.code)}")
        else:
            print("Currency unchanged")
    elif args.command == "currencies":
        service = CurrencyPreferenceService(store)
        table = PrettyTable()
        table.field_names = ["Code", "Symbol", "Position", "Digits", "Default"]
        current = service.current_currency()
        for info in service.supported_currencies():
            table.add_row(
                [
                    info.code,
                    info.symbol,
                    info.symbol_position,
                    info.minor_unit_digits,
                    "*" if info.code == current else "",
                ]
            )
        print(table)
    elif args.command == "categories":
        table = PrettyTable()
        table.field_names = ["ID", "Icon", "Name", "Subcategories"]
        table.align["Subcategories"] = "l"
        for category in store.load_initialized().categories:
            table.add_row(
                [
                    category.id,
                    category.icon,
                    display_name(category, _no_translation),
                    ", ".join(sub.id for sub in category.subcategories),
                ]
            )
        print(table)
    elif args.command == "add-category":
        category = AddCategory(store).execute(
            category_id=args.category_id,
            icon=args.icon,
            name=args.name,
            color=args.color,
            subcategory_ids=args.sub,
        )
        print(f"Added category {category.id}")
    elif args.command == "remove-category":
        if not RemoveCategory(store).execute(args.category_id):
            print(f"Category not found: {args.category_id}")
            return 1
        print(f"Removed category {args.category_id}")
    elif args.command == "export":
        output = args.output
        if not output:
            name = default_export_name()
            if args.format != "json":
                name = name[: -len(".json")] + f".{args.format}"
            output = os.path.join(EXPORT_DIR, name)
        state = store.load_initialized()
        report = GenerateMonthlyReport(store).execute()
        export_state(state, output, args.format, report=report, locale=locale)
        print(f"Exported to {output}")
    elif args.command == "convert":
        source = normalize_currency(args.source)
        money = parse_money(args.amount, source)
        if money is None:
            raise ValueError(f"Invalid amount: {args.amount!r}")
        converted = CurrencyService().convert(money, args.target)
        print(f"{format_money(money, True, locale)} = {format_money(converted, True, locale)}")
    elif args.command == "theme":
        if args.value:
            preferences.set_theme(args.value)
        print(preferences.get_theme())
    elif args.command == "locale":
        if args.value:
            preferences.set_locale(args.value)
        print(preferences.get_locale())
    elif args.command == "dev-mode":
        store.set_dev_mode(args.state == "on")
        print(f"Dev mode {args.state}")
    elif args.command == "reset":
        if not args.yes:
            print("Refusing to reset without --yes")
            return 1
        ResetAllData(store).execute()
        print("All data removed")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except (DomainError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
