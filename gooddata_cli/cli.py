"""
GoodData CLI - Command-line entry point.

Parses the global options, logs in when a user is given, then runs one
command (or the interactive shell when no command is named). It handles:
- Global option parsing and .env loading
- One-shot login before the command
- TTY detection for human vs machine error output
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from gooddata_cli.commands import COMMANDS, is_tty, json_output, login, run_command
from gooddata_cli.core.client import CLIError
from gooddata_cli.core.logging import get_logger, setup_logging
from gooddata_cli.sdk import GoodDataClient
from gooddata_cli.session import Session

DEFAULT_COMMAND = "shell"

logger = get_logger(__name__)


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    if is_tty():
        print(f"Error: {error.message}", file=sys.stderr)
    else:
        json_output(error.to_dict())
    sys.exit(1)


def create_parser() -> argparse.ArgumentParser:
    """Create the global argument parser."""
    parser = argparse.ArgumentParser(
        prog="gooddata",
        description="GoodData CLI - projects, reports, data models and data upload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  login, logout, lsprojects, rmproject, mkproject, project, lsreports,
  export, model, chmodel, upload, help, shell (default)

Run 'gooddata help <command>' for the options of a command.

Examples:
  gooddata --user jane@example.com lsprojects
  gooddata -u jane@example.com -p <project> export /gdc/md/<project>/obj/42 sales.xls
  gooddata -u jane@example.com chmodel --project <project> model.maql
  gooddata                       # interactive shell
""",
    )
    parser.add_argument("--user", "-u", help="Login name (or GOODDATA_USER)")
    parser.add_argument("--password", "-w", help="Password (prompted when omitted on a terminal)")
    parser.add_argument("--project", "-p", help="Project URI or ID to select (or GOODDATA_PROJECT)")
    parser.add_argument("--server", help="API base URL (or GOODDATA_SERVER)")
    parser.add_argument("--debug", action="store_true", help="Log HTTP traffic to stderr")
    parser.add_argument("command", nargs="?", help="Command to run (default: shell)")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Command arguments")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.debug else None)

    command = args.command or DEFAULT_COMMAND
    if command not in COMMANDS:
        parser.error(f"unknown command '{command}' (see 'gooddata help')")

    try:
        session = Session(client=GoodDataClient(base_url=args.server))
        session.select_project(args.project or os.environ.get("GOODDATA_PROJECT"))
        session.user = args.user or os.environ.get("GOODDATA_USER")
        session.password = args.password

        # 'login' handles its own credentials; read-only commands need none
        wants_login = COMMANDS[command].needs_login or command == DEFAULT_COMMAND
        if session.user and wants_login:
            login(session, session.user, session.password)

        run_command(session, command, args.args)
    except CLIError as e:
        logger.debug("Command failed", command=command, error=e.message)
        error_output(e)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
