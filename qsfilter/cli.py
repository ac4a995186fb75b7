#!/usr/bin/env python3
"""
qsfilter - query-string filters for relational databases

Compile, inspect and run compact filter strings such as
``age__gte=18&status=active|status=trial&orderByDESC=created_at&limit=20``.
"""
import sys
import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Optional
from rich.console import Console
from rich.table import Table

from sqlalchemy import literal_column, select, table as sql_table
from sqlalchemy.dialects import sqlite

from qsfilter.config import init_config, get_config
from qsfilter.db import Database
from qsfilter.query import (
    FilterCompiler,
    FilterDescriptor,
    apply_descriptor,
)
from qsfilter.query.results import serialize_row

logger = logging.getLogger(__name__)


console = Console()


def compile_from_args(args) -> FilterDescriptor:
    """Compile the QUERY argument, honouring --strict and config."""
    config = get_config()
    strict = args.strict or config.strict_conditions

    def _report(fragment: str, reason: str):
        if not args.quiet:
            console.print(f"[yellow]Skipped {fragment!r}: {reason}[/yellow]")

    compiler = FilterCompiler(strict=strict, on_skip=_report)
    return compiler.compile(args.query)


def output_descriptor(descriptor: FilterDescriptor, format: str = "table"):
    """Output a descriptor in the specified format."""
    if format == "json":
        print(json.dumps(descriptor.to_dict(), indent=2))
        return

    table = Table(title="Filter")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    for key, value in descriptor.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        elif isinstance(value, dict):
            value = "; ".join(f"{k}({', '.join(v)})" for k, v in value.items())
        elif value is None:
            value = ""
        table.add_row(key, str(value))

    console.print(table)


def output_rows(rows: List[Any], format: str = "table", title: str = "Results"):
    """Output result rows in the specified format."""
    records = [serialize_row(row) for row in rows]

    if format == "json":
        print(json.dumps(records, indent=2, default=str))
        return

    table = Table(title=title)
    if records:
        for column in records[0].keys():
            table.add_column(str(column), style="cyan")
        for record in records:
            table.add_row(*(str(v) for v in record.values()))
    console.print(table)


def cmd_compile(args):
    """Compile a filter string and show the descriptor."""
    descriptor = compile_from_args(args)
    output_descriptor(descriptor, args.output)


def cmd_sql(args):
    """Show the SELECT statement a filter string produces."""
    descriptor = compile_from_args(args)
    stmt = select(literal_column("*")).select_from(sql_table(args.table))
    stmt = apply_descriptor(stmt, descriptor)
    compiled = stmt.compile(dialect=sqlite.dialect())

    if args.output == "json":
        print(json.dumps({"sql": str(compiled), "params": compiled.params}, indent=2, default=str))
        return

    console.print(str(compiled))
    if compiled.params:
        console.print(f"[dim]params: {compiled.params}[/dim]")


def cmd_run(args):
    """Run a filter string against a database table."""
    descriptor = compile_from_args(args)
    db = Database(path=args.db, url=args.url)

    try:
        target = db.reflect_table(args.table)
        with db.executor() as executor:
            if args.page or args.page_size or descriptor.uses_page_pagination:
                result = executor.paginate(target, descriptor, page=args.page, page_size=args.page_size)
                if args.output == "json":
                    print(json.dumps(result.to_dict(), indent=2, default=str))
                else:
                    output_rows(result.results, args.output, title=args.table)
                    console.print(
                        f"[dim]page {result.page}/{result.total_pages}, {result.count} rows[/dim]"
                    )
            else:
                rows = executor.all(target, descriptor)
                output_rows(rows, args.output, title=args.table)

            if descriptor.aggregates:
                aggregates = executor.aggregate(target, descriptor)
                if args.output == "json":
                    print(json.dumps(aggregates.to_dict(), indent=2, default=str))
                else:
                    agg_table = Table(title="Aggregates")
                    agg_table.add_column("Function", style="cyan")
                    agg_table.add_column("Field", style="green")
                    agg_table.add_column("Value", style="magenta")
                    for func_name, fields in aggregates.to_dict().items():
                        for field_name, value in fields.items():
                            agg_table.add_row(func_name, field_name, str(value))
                    console.print(agg_table)
    finally:
        db.close()


def cmd_config(args):
    """Manage configuration."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if not hasattr(config, args.key):
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            print(json.dumps(asdict(config), indent=2))

    elif args.action == "init":
        config_path = Path.home() / ".config" / "qsfilter" / "config.toml"
        config.save(config_path)
        console.print(f"[green]Created config at {config_path}[/green]")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qsfilter",
        description="qsfilter - compile query-string filters into parameterized queries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  qsfilter compile "age__gte=18&status=active|status=trial"
  qsfilter -o json compile "with_team|with_friends&limit=10"
  qsfilter sql "name=bob&orderByDESC=created_at" --table users
  qsfilter run "age__gt=30&agg__sum=balance" --table users --db app.db
  qsfilter run "status=active" --table users --page 2 --page-size 25

Configuration:
  Config file: ~/.config/qsfilter/config.toml or ./qsfilter.toml
  Environment: QSFILTER_DATABASE, QSFILTER_STRICT_CONDITIONS
        """
    )

    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json"], help="Output format")
    parser.add_argument("--strict", action="store_true",
                        help="Reject malformed conditions instead of skipping them")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    compile_parser = subparsers.add_parser("compile", help="Compile a filter string")
    compile_parser.add_argument("query", help="Filter string")
    compile_parser.set_defaults(func=cmd_compile)

    sql_parser = subparsers.add_parser("sql", help="Show the generated SQL")
    sql_parser.add_argument("query", help="Filter string")
    sql_parser.add_argument("--table", "-t", required=True, help="Table name")
    sql_parser.set_defaults(func=cmd_sql)

    run_parser = subparsers.add_parser("run", help="Run a filter against a database table")
    run_parser.add_argument("query", help="Filter string")
    run_parser.add_argument("--table", "-t", required=True, help="Table name")
    run_parser.add_argument("--db", help="SQLite database file (default: from config)")
    run_parser.add_argument("--url", help="SQLAlchemy database URL (overrides --db)")
    run_parser.add_argument("--page", type=int, help="Page number (enables pagination)")
    run_parser.add_argument("--page-size", type=int, help="Rows per page")
    run_parser.set_defaults(func=cmd_run)

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["show", "init"], help="Config action")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_args = {}
    if args.output:
        config_args["output_format"] = args.output
    if args.config:
        config_args["config_file"] = Path(args.config)

    config = init_config(**config_args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format='%(levelname)s: %(message)s'
    )

    if not args.output:
        args.output = config.output_format

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
