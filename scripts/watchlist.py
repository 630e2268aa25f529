#!/usr/bin/env python3
"""Manage the meme watchlist stored in the scanner's SQLite database."""

import argparse
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from signalbot.persist.storage import SQLiteStorage


async def cmd_add(storage: SQLiteStorage, args: argparse.Namespace) -> None:
    """Handle add command."""
    tags = [tag.strip() for tag in args.tags.split(",") if tag.strip()] if args.tags else []
    item = await storage.add_watch_item(args.phrase, tags)
    print(f"✅ {item.id}: {item.phrase} {item.tags}")


async def cmd_remove(storage: SQLiteStorage, args: argparse.Namespace) -> None:
    """Handle remove command."""
    if await storage.remove_watch_item(args.key):
        print(f"✅ Removed {args.key}")
    else:
        print(f"❌ No watchlist item matches {args.key}", file=sys.stderr)
        sys.exit(1)


async def cmd_list(storage: SQLiteStorage, args: argparse.Namespace) -> None:
    """Handle list command."""
    items = await storage.load_watchlist()
    if not items:
        print("Watchlist is empty")
        return
    for item in items:
        tags = ", ".join(item.tags)
        print(f"{item.id}  {item.phrase}" + (f"  [{tags}]" if tags else ""))


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Manage the meme watchlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  watchlist.py add "sad penguin" --tags penguin,pengu
  watchlist.py list
  watchlist.py remove "sad penguin"
        """,
    )
    parser.add_argument(
        "--db",
        default="sqlite+aiosqlite:///./signalbot.sqlite",
        help="Database URL",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a phrase or mint address")
    add_parser.add_argument("phrase", help="Phrase or exact mint address")
    add_parser.add_argument("--tags", help="Comma separated extra keywords")
    add_parser.set_defaults(func=cmd_add)

    remove_parser = subparsers.add_parser("remove", help="Remove by id or phrase")
    remove_parser.add_argument("key", help="Item id or phrase")
    remove_parser.set_defaults(func=cmd_remove)

    list_parser = subparsers.add_parser("list", help="List watchlist items")
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    async def run() -> None:
        async with SQLiteStorage.from_url(args.db) as storage:
            await args.func(storage, args)

    try:
        asyncio.run(run())
    except Exception as e:
        print(f"❌ Watchlist command failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
