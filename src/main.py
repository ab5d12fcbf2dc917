"""
Pokedex Roster - Command line front end.

Usage:
    python main.py list                     # Captured Pokémon
    python main.py list --page 2            # One page of 12
    python main.py capture 25 --level 12    # Capture Pikachu at level 12
    python main.py release 25
    python main.py metrics                  # Aggregate stats (reconciles first)
    python main.py recommend                # Two strong Pokémon from the catalog
    python main.py recommend --watch        # Rotate the pair until Ctrl-C
    python main.py export roster.json
    python main.py import roster.json
    python main.py --debug metrics          # Verbose logging
"""

import sys
import os
import json
import time
import logging
import argparse
from pathlib import Path

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import APP_VERSION, LOG_FILE, LOG_LEVEL, PAGE_SIZE
from pokedex import Pokedex, create_default_config
from roster_queries import SORT_FIELDS

logger = logging.getLogger("pokedex")


# ─── Output helpers ──────────────────────────────────

def _format_pokemon(p) -> str:
    types = "/".join(p.types) or "?"
    return (f"#{p.id:<5} {p.name:<14} lv {p.level:<3} {types:<16} "
            f"atk {p.atk:<4} def {p.defense:<4} spd {p.spd:<4} {p.captured_at}")


def _print_roster(roster) -> int:
    if not roster:
        print("No Pokémon captured.")
        return 0
    for p in roster:
        print(_format_pokemon(p))
    return 0


# ─── Commands ────────────────────────────────────────

def cmd_list(dex: Pokedex, args) -> int:
    if args.page is None:
        return _print_roster(dex.roster())
    page = dex.page(args.page, args.page_size)
    _print_roster(page.items)
    if page.total:
        print(f"Page {page.page}/{page.total_pages} ({page.total} captured)")
    return 0


def cmd_capture(dex: Pokedex, args) -> int:
    if dex.capture(args.id, level=args.level):
        p = next(p for p in dex.roster() if p.id == args.id)
        print(f"Captured {p.name} (lv {p.level})")
        return 0
    print(f"Could not capture #{args.id} (already captured or not in the catalog)")
    return 1


def cmd_release(dex: Pokedex, args) -> int:
    if dex.release(args.id):
        print(f"Released #{args.id}")
        return 0
    print(f"#{args.id} is not in the roster")
    return 1


def cmd_set_level(dex: Pokedex, args) -> int:
    if dex.update(args.id, {"level": args.level}):
        print(f"#{args.id} is now level {args.level}")
        return 0
    print(f"#{args.id} is not in the roster")
    return 1


def cmd_clear(dex: Pokedex, args) -> int:
    if dex.clear():
        print("Roster cleared")
        return 0
    print("Could not clear the roster (storage unavailable)")
    return 1


def cmd_reconcile(dex: Pokedex, args) -> int:
    return _print_roster(dex.reconcile())


def cmd_metrics(dex: Pokedex, args) -> int:
    m = dex.metrics()
    print(f"Captured:      {m.captured_count} / {m.pokedex_total} ({m.pokedex_pct:.1f}%)")
    print(f"Average level: {m.avg_level}")
    print(f"Favorite type: {m.favorite_type}")
    print(f"Total exp:     {m.total_exp}")
    if m.strongest:
        print(f"Strongest:     {m.strongest.name} (atk {m.strongest.atk})")
    else:
        print("Strongest:     -")
    return 0


def cmd_recent(dex: Pokedex, args) -> int:
    return _print_roster(dex.recent_captures(args.n))


def cmd_search(dex: Pokedex, args) -> int:
    return _print_roster(dex.search(args.query))


def cmd_sort(dex: Pokedex, args) -> int:
    return _print_roster(dex.sorted_by(args.field, "asc" if args.asc else "desc"))


def _print_recommendations(pair):
    for r in pair:
        print(f"#{r.id:<5} {r.name:<14} lv {r.level:<3} {'/'.join(r.types):<16} BST {r.bst}")


def cmd_recommend(dex: Pokedex, args) -> int:
    if not args.watch:
        _print_recommendations(dex.recommendations())
        return 0

    def show(pair):
        _print_recommendations(pair)
        print()

    dex.rotator.on_update(show)
    dex.rotator.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        dex.rotator.stop()
    return 0


def cmd_export(dex: Pokedex, args) -> int:
    doc = dex.export_document()
    if args.file:
        Path(args.file).write_text(doc, encoding="utf-8")
        print(f"Exported {len(dex.roster())} Pokémon to {args.file}")
    else:
        print(doc)
    return 0


def cmd_import(dex: Pokedex, args) -> int:
    try:
        text = Path(args.file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Could not read {args.file}: {e}")
        return 1
    result = dex.import_document(text)
    print(result.message)
    return 0 if result.success else 1


def cmd_stats(dex: Pokedex, args) -> int:
    print(json.dumps(dex.storage_stats(), indent=2))
    return 0


# ─── Entry Point ─────────────────────────────────────

def setup_logging(debug: bool = False, log_file: Path = LOG_FILE):
    """Configure logging.

    Console shows warnings and errors only so command output stays
    readable (INFO with --debug). The file gets INFO, or DEBUG with --debug.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.INFO if debug else logging.WARNING)
    console.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S"))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if debug else LOG_LEVEL)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else LOG_LEVEL)
    root_logger.addHandler(console)
    root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pokedex-roster",
        description=f"Pokedex Roster {APP_VERSION} - track captured Pokémon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pokedex-roster capture 6 --level 36
  pokedex-roster sort atk
  pokedex-roster --data-dir ./dex metrics
        """
    )
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Directory for the roster store and log")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Show the roster")
    p.add_argument("--page", type=int, help="Show one page of the roster")
    p.add_argument("--page-size", type=int, default=PAGE_SIZE, help="Entries per page")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("capture", help="Capture a Pokémon by catalog id")
    p.add_argument("id", type=int)
    p.add_argument("--level", type=int, default=None, help="Level (random 1-100 if omitted)")
    p.set_defaults(func=cmd_capture)

    p = sub.add_parser("release", help="Remove a Pokémon from the roster")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_release)

    p = sub.add_parser("set-level", help="Change a captured Pokémon's level")
    p.add_argument("id", type=int)
    p.add_argument("level", type=int)
    p.set_defaults(func=cmd_set_level)

    sub.add_parser("clear", help="Release everything").set_defaults(func=cmd_clear)
    sub.add_parser("reconcile", help="Fill missing stats from the catalog").set_defaults(func=cmd_reconcile)
    sub.add_parser("metrics", help="Aggregate statistics").set_defaults(func=cmd_metrics)

    p = sub.add_parser("recent", help="Most recent captures")
    p.add_argument("-n", type=int, default=4)
    p.set_defaults(func=cmd_recent)

    p = sub.add_parser("search", help="Search by name or type")
    p.add_argument("query")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("sort", help="Roster sorted by a field")
    p.add_argument("field", choices=SORT_FIELDS)
    p.add_argument("--asc", action="store_true", help="Ascending (default descending)")
    p.set_defaults(func=cmd_sort)

    p = sub.add_parser("recommend", help="Two strong Pokémon to look for")
    p.add_argument("--watch", action="store_true", help="Keep rotating the pair until Ctrl-C")
    p.set_defaults(func=cmd_recommend)

    p = sub.add_parser("export", help="Export the roster as JSON")
    p.add_argument("file", nargs="?", default=None, help="Output file (stdout if omitted)")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Merge an exported roster")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    sub.add_parser("stats", help="Storage statistics").set_defaults(func=cmd_stats)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = create_default_config(data_dir=args.data_dir)
    setup_logging(debug=args.debug, log_file=config.data_dir / LOG_FILE.name)

    try:
        dex = Pokedex(config)
        return args.func(dex, args)
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return 130
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
