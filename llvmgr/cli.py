"""Entry point for the llvmgr command line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .cache import Cache
from .config import Settings, load_settings
from .errors import LlvmgrError, SpawnError
from .formatting import format_bytes, format_installations
from .installer import install
from .shell import Installation, collect_env_vars, list_installations, render_exports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llvmgr",
        description="LLVM Manager downloads, compiles and installs LLVM tools for you.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Be verbose.")

    # Subcommands accept -v too; SUPPRESS keeps a flag given before the subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Be verbose.")

    commands = parser.add_subparsers(dest="command", metavar="<command>")
    commands.required = True

    install_cmd = commands.add_parser("install", parents=[common], help="Install LLVM tools", description="Install LLVM tools")
    install_cmd.add_argument("name", help="tool to install, e.g. llvm")
    install_cmd.add_argument("version", help="version to install, e.g. 16, 17 or 18")

    env_cmd = commands.add_parser(
        "env",
        parents=[common],
        help="Setup shell environment variables",
        description="Print export statements for every installed version",
    )
    env_cmd.add_argument("shell", help="shell dialect: bash, zsh, sh, fish or powershell")

    list_cmd = commands.add_parser("list", parents=[common], help="List installed versions", description="List installed versions")
    list_cmd.add_argument("--json", action="store_true", help="Output installations as JSON")
    list_cmd.add_argument("--ui", action="store_true", help="Render a rich table")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(verbose=args.verbose)
    configure_logging(settings)
    err_console = Console(stderr=True)

    try:
        if args.command == "install":
            _run_install(args, settings, err_console)
        elif args.command == "env":
            _run_env(args, settings)
        elif args.command == "list":
            _run_list(args, settings)
    except LlvmgrError as err:
        _render_error(err_console, err)
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/]")
        sys.exit(130)


def configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.effective_log_level)
    if not isinstance(level, int):
        level = logging.WARNING
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)
    logging.getLogger("httpx").setLevel(max(level, logging.INFO))
    logging.getLogger("httpcore").setLevel(max(level, logging.WARNING))


def _run_install(args: argparse.Namespace, settings: Settings, console: Console) -> None:
    try:
        prefix = install(args.name, args.version, settings)
    except LlvmgrError as err:
        wrapped = LlvmgrError(f"Unable to install {args.name} {args.version}", suggestion=err.suggestion)
        if isinstance(err, SpawnError) and err.output:
            console.print(Panel(escape(err.output), title="cmake output", style="dim"))
        raise wrapped from err
    console.print(Panel(f"Installed {escape(args.name)} into {escape(str(prefix))}", style="bold green"))
    console.print("Run [bold]eval \"$(llvmgr env bash)\"[/] to export its location.")


def _run_env(args: argparse.Namespace, settings: Settings) -> None:
    cache = Cache(settings.cache_root)
    for line in render_exports(collect_env_vars(cache), args.shell):
        print(line)


def _run_list(args: argparse.Namespace, settings: Settings) -> None:
    installations = list_installations(Cache(settings.cache_root))
    if args.json:
        print(json.dumps([asdict(i) for i in installations], indent=2))
        return
    if args.ui:
        Console().print(_rich_installations_table(installations))
        return
    print(format_installations(installations))


def _rich_installations_table(installations: List[Installation]) -> Table:
    table = Table(title="Installed LLVM versions", box=box.SIMPLE_HEAD)
    table.add_column("Version", style="bold")
    table.add_column("Variable")
    table.add_column("Prefix")
    table.add_column("Size", justify="right")

    if not installations:
        table.add_row("-", "No LLVM versions installed.", "-", "-")
        return table

    for item in installations:
        table.add_row(item.version, item.env_var, item.prefix, format_bytes(item.size_bytes))
    return table


def _render_error(console: Console, err: LlvmgrError) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(err))}")
    if err.suggestion:
        console.print(f"[cyan]Suggestion:[/] {escape(err.suggestion)}")


if __name__ == "__main__":
    main()
