#!/usr/bin/env python3
"""
Command Argus
=============

Save frequently-run shell commands, then launch them and inspect output.

Usage:
    python main.py list [--query dep]
    python main.py add --param target "Deploy" ./deploy.sh {target}
    python main.py add --tag fs "List" ls -- -la
    python main.py run <id> -p target=prod
    python main.py run <id> --shell
    python main.py --help
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from commands.model import (
    Command,
    CommandParameter,
    CreateCommandRequest,
    EnvironmentVariable,
    ParameterType,
    UpdateCommandRequest,
)
from core.errors import ArgusError, ErrorHandler, SpawnError
from core.service import CommandService, ServiceConfig
from infra.config import load_config
from infra.logging import configure_logging

console = Console()


def parse_pairs(values: Optional[List[str]], flag: str) -> Dict[str, str]:
    """Parse KEY=VALUE arguments."""
    pairs: Dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            raise argparse.ArgumentTypeError(f"{flag} expects KEY=VALUE, got '{item}'")
        key, value = item.split("=", 1)
        pairs[key] = value
    return pairs


def parse_parameters(
    params: Optional[List[str]],
    selects: Optional[List[str]],
) -> List[CommandParameter]:
    """
    --param NAME            required text parameter
    --param NAME=DEFAULT    optional text parameter with a default
    --select NAME=a,b,c     required select parameter
    """
    parameters = []
    for entry in params or []:
        name, _, default = entry.partition("=")
        parameters.append(CommandParameter(
            name=name,
            placeholder=name,
            parameter_type=ParameterType.TEXT,
            required=not default,
            default_value=default or None,
        ))
    for entry in selects or []:
        name, _, options = entry.partition("=")
        parameters.append(CommandParameter(
            name=name,
            placeholder=name,
            parameter_type=ParameterType.SELECT,
            required=True,
            options=[opt for opt in options.split(",") if opt],
        ))
    return parameters


def print_commands(commands: List[Command]) -> None:
    if not commands:
        console.print("[dim]No commands saved.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Command")
    table.add_column("Tags")
    table.add_column("Uses", justify="right")
    table.add_column("Last used")

    for cmd in commands:
        table.add_row(
            cmd.id,
            cmd.name,
            cmd.full_command(),
            ", ".join(cmd.tags),
            str(cmd.use_count),
            cmd.last_used_at.strftime("%Y-%m-%d %H:%M") if cmd.last_used_at else "-",
        )
    console.print(table)


def print_command(cmd: Command) -> None:
    lines = [
        f"[bold]{cmd.name}[/bold]  [dim]{cmd.id}[/dim]",
        f"Command: {cmd.full_command()}",
    ]
    if cmd.description:
        lines.append(f"Description: {cmd.description}")
    if cmd.working_directory:
        lines.append(f"Working directory: {cmd.working_directory}")
    for env in cmd.environment_variables:
        lines.append(f"Env: {env.key}={env.value}")
    for param in cmd.parameters:
        detail = param.parameter_type.value
        if param.options:
            detail += f" {param.options}"
        if param.default_value is not None:
            detail += f" default={param.default_value}"
        flag = "required" if param.required else "optional"
        lines.append(f"Param: {{{param.name}}} ({detail}, {flag})")
    if cmd.tags:
        lines.append(f"Tags: {', '.join(cmd.tags)}")
    if cmd.mise_enabled:
        lines.append("Launch: through mise")
    lines.append(f"Uses: {cmd.use_count}")
    console.print(Panel("\n".join(lines), border_style="blue"))


def prompt_parameters(
    service: CommandService,
    command_id: str,
    supplied: Dict[str, str],
) -> Dict[str, str]:
    """Ask for required parameters that were not given on the command line."""
    values = dict(supplied)
    for param in service.required_parameters(command_id):
        if values.get(param.name):
            continue
        label = param.placeholder or param.name
        if param.options:
            label += f" ({'/'.join(param.options)})"
        values[param.name] = console.input(f"[bold cyan]{label}:[/bold cyan] ").strip()
    return values


def run_command(service: CommandService, args: argparse.Namespace) -> int:
    supplied = parse_pairs(args.param, "--param")
    if sys.stdin.isatty():
        supplied = prompt_parameters(service, args.id, supplied)

    use_shell = True if args.shell else None
    try:
        result = service.execute_command(args.id, use_shell=use_shell, parameters=supplied)
    except SpawnError as e:
        console.print(f"[bold red]Could not start:[/bold red] {e.reason}")
        return 127

    if result.stdout:
        console.print(result.stdout, end="", markup=False, highlight=False)
    if result.stderr:
        console.print(result.stderr, end="", style="red", markup=False, highlight=False)

    style = "green" if result.success else "red"
    console.print(
        f"[{style}]exit {result.exit_code}[/{style}] "
        f"[dim]({result.execution_time_ms:.0f}ms)[/dim]"
    )
    return result.exit_code if result.exit_code >= 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command Argus - saved, parameterized shell commands"
    )
    parser.add_argument("--config", "-c", default="config.yaml", help="Path to configuration file")
    parser.add_argument("--storage", help="Registry file path (overrides config)")
    parser.add_argument(
        "--log-level", "-l",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    sub = parser.add_subparsers(dest="action", required=True)

    list_parser = sub.add_parser("list", help="List saved commands")
    list_parser.add_argument("--query", "-q", default="", help="Filter by name")

    tags_parser = sub.add_parser("tags", help="List commands carrying any of the tags")
    tags_parser.add_argument("tags", nargs="+")

    show_parser = sub.add_parser("show", help="Show one command")
    show_parser.add_argument("id")

    add_parser = sub.add_parser("add", help="Save a new command")
    add_parser.add_argument("name")
    add_parser.add_argument("command")
    # Options may follow the command; arguments starting with "-" go after "--"
    add_parser.add_argument("args", nargs="*")
    add_parser.add_argument("--description", "-d")
    add_parser.add_argument("--cwd", dest="working_directory")
    add_parser.add_argument("--env", "-e", action="append", help="KEY=VALUE")
    add_parser.add_argument("--tag", "-t", action="append")
    add_parser.add_argument("--param", action="append", help="NAME or NAME=DEFAULT")
    add_parser.add_argument("--select", action="append", help="NAME=opt1,opt2")
    add_parser.add_argument("--mise", action="store_true", help="Launch through mise")

    edit_parser = sub.add_parser("edit", help="Change fields of a saved command")
    edit_parser.add_argument("id")
    edit_parser.add_argument("--name")
    edit_parser.add_argument("--command")
    edit_parser.add_argument("--description", "-d")
    edit_parser.add_argument("--cwd", dest="working_directory")
    edit_parser.add_argument("--tag", "-t", action="append")
    edit_parser.add_argument("--mise", dest="mise_enabled", action="store_true", default=None)
    edit_parser.add_argument("--no-mise", dest="mise_enabled", action="store_false")

    delete_parser = sub.add_parser("delete", help="Delete a saved command")
    delete_parser.add_argument("id")

    run_parser = sub.add_parser("run", help="Execute a saved command")
    run_parser.add_argument("id")
    run_parser.add_argument("--param", "-p", action="append", help="NAME=VALUE")
    run_parser.add_argument("--shell", action="store_true", help="Run through the system shell")

    return parser


def dispatch(service: CommandService, args: argparse.Namespace) -> int:
    if args.action == "list":
        if args.query:
            print_commands(service.search_commands_by_name(args.query))
        else:
            print_commands(service.list_commands())
        return 0

    if args.action == "tags":
        print_commands(service.search_commands_by_tags(args.tags))
        return 0

    if args.action == "show":
        print_command(service.get_command(args.id))
        return 0

    if args.action == "add":
        env = parse_pairs(args.env, "--env")
        created = service.create_command(CreateCommandRequest(
            name=args.name,
            command=args.command,
            args=list(args.args),
            description=args.description,
            working_directory=args.working_directory,
            environment_variables=[EnvironmentVariable(key=k, value=v) for k, v in env.items()],
            tags=args.tag or [],
            parameters=parse_parameters(args.param, args.select),
            mise_enabled=args.mise,
        ))
        console.print(f"[green]Saved[/green] {created.name} [dim]{created.id}[/dim]")
        return 0

    if args.action == "edit":
        updated = service.update_command(args.id, UpdateCommandRequest(
            name=args.name,
            command=args.command,
            description=args.description,
            working_directory=args.working_directory,
            tags=args.tag,
            mise_enabled=args.mise_enabled,
        ))
        print_command(updated)
        return 0

    if args.action == "delete":
        service.delete_command(args.id)
        console.print(f"[yellow]Deleted[/yellow] {args.id}")
        return 0

    if args.action == "run":
        return run_command(service, args)

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.storage:
        config.storage_path = Path(args.storage)
    level = args.log_level or config.log_level
    configure_logging(level=level, log_dir=config.log_dir, file=config.log_dir is not None)
    logger = logging.getLogger("argus.main")

    service = CommandService(ServiceConfig.from_argus_config(config))

    try:
        return dispatch(service, args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
        return 2
    except ArgusError as e:
        message = ErrorHandler().handle(e)
        console.print(f"[bold red]Error:[/bold red] {message}")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
