#!/usr/bin/env python3
"""
loglog command-line viewer

Reads the JSON-lines files written by the file transport and prints them as
a table.

Usage:
    loglog view logs/app.log --level error --filter timeout --tail 50
    loglog list --dir logs
"""

import argparse
import json
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table

from loglog.diagnostics import configure_diagnostics
from loglog.models import LogLevel


console = Console()

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "logs/app.log"

# Same palette as the console transport
LEVEL_STYLES = {
    LogLevel.DEBUG: "bright_black",
    LogLevel.INFO: "cyan",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
}


def read_log_file(path: Path) -> Tuple[List[Dict[str, Any]], int]:
    """
    Parse a JSON-lines log file.

    Returns:
        Tuple of (entries, number of malformed lines skipped)
    """
    entries: List[Dict[str, Any]] = []
    malformed = 0
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except ValueError:
                malformed += 1
                continue
            if not isinstance(record, dict) or "message" not in record:
                malformed += 1
                continue
            entries.append(record)
    return entries, malformed


def filter_entries(
    entries: List[Dict[str, Any]],
    level: Optional[str] = None,
    pattern: Optional[str] = None,
    tail: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Keep entries of exactly ``level`` whose message or data match ``pattern``, then the last ``tail``."""
    result = entries
    if level:
        wanted = LogLevel.parse(level).value
        result = [e for e in result if str(e.get("level", "")).lower() == wanted]
    if pattern:
        regex = re.compile(pattern, re.IGNORECASE)
        result = [
            e for e in result
            if regex.search(str(e.get("message", "")))
            or regex.search(json.dumps(e.get("data", {}), default=str))
        ]
    if tail:
        result = result[-tail:]
    return result


def find_log_files(directory: Path) -> List[Path]:
    """Active and rotated log files in ``directory``, newest first."""
    if not directory.is_dir():
        return []
    files = [p for p in directory.iterdir() if p.is_file() and ".log" in p.name]
    return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)


def _format_timestamp(value: Any) -> str:
    try:
        return datetime.fromisoformat(str(value)).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return str(value)


def build_table(entries: List[Dict[str, Any]], title: Optional[str] = None) -> Table:
    table = Table(title=title)
    table.add_column("Timestamp", style="dim")
    table.add_column("Level")
    table.add_column("Message")
    table.add_column("Data", style="dim")

    for entry in entries:
        level_name = str(entry.get("level", ""))
        try:
            style = LEVEL_STYLES[LogLevel.parse(level_name)]
        except ValueError:
            style = "white"
        data = entry.get("data")
        table.add_row(
            _format_timestamp(entry.get("timestamp", "")),
            f"[{style}]{level_name.upper()}[/{style}]",
            str(entry.get("message", "")),
            json.dumps(data, default=str) if data else "",
        )
    return table


def view_logs(path: Path, level: Optional[str], pattern: Optional[str], tail: Optional[int]) -> int:
    if not path.exists():
        console.print(f"[red]Log file not found: {path}[/red]")
        available = find_log_files(path.parent)
        if available:
            console.print("\n[yellow]Available log files:[/yellow]")
            for log_file in available:
                console.print(f"  • {log_file.name}")
        else:
            console.print(f"[dim]No log files found in {path.parent}[/dim]")
        return 1

    entries, malformed = read_log_file(path)
    shown = filter_entries(entries, level, pattern, tail)

    console.print(build_table(shown, title=str(path)))
    console.print(f"Showing [green]{len(shown)}[/green] of {len(entries)} log entries")
    if malformed:
        console.print(f"[yellow]Skipped {malformed} malformed lines[/yellow]")
    return 0


def list_logs(directory: Path) -> int:
    files = find_log_files(directory)
    if not files:
        console.print(f"[yellow]No log files found in {directory}[/yellow]")
        return 0

    table = Table(title=f"Log files in {directory}")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for log_file in files:
        stat = log_file.stat()
        table.add_row(
            log_file.name,
            f"{stat.st_size:,}",
            datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="loglog", description="View loglog JSON-lines log files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    view = subparsers.add_parser("view", help="Show entries of a log file")
    view.add_argument("path", nargs="?", default=DEFAULT_LOG_FILE, help="Log file (default: logs/app.log)")
    view.add_argument("--level", "-l", help="Only entries of this level")
    view.add_argument("--filter", "-f", dest="pattern", help="Case-insensitive regex on message and data")
    view.add_argument("--tail", "-n", type=int, help="Only the last N matching entries")

    list_cmd = subparsers.add_parser("list", help="List log files")
    list_cmd.add_argument("--dir", "-d", dest="directory", default=DEFAULT_LOG_DIR, help="Log directory")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_diagnostics()

    if args.command == "view":
        if args.level:
            try:
                LogLevel.parse(args.level)
            except ValueError as e:
                parser.error(str(e))
        if args.pattern:
            try:
                re.compile(args.pattern)
            except re.error as e:
                parser.error(f"Invalid filter pattern: {e}")
        return view_logs(Path(args.path), args.level, args.pattern, args.tail)
    return list_logs(Path(args.directory))


if __name__ == "__main__":
    sys.exit(main())
