"""
Command table and handlers.

Every command owns an argument parser (flags plus positional fallbacks) and
a handler that validates its inputs, calls one GoodDataClient method and
prints or saves the result. Handlers raise CLIError subclasses; the caller
decides whether that ends the process or just the current shell command.
"""

import argparse
import getpass
import json
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gooddata_cli.core.client import UsageError, ValidationError
from gooddata_cli.core.logging import get_logger
from gooddata_cli.core.types import last_segment
from gooddata_cli.sdk import EXPORT_FORMATS
from gooddata_cli.session import Session

DEFAULT_EXPORT_FORMAT = "pdf"
DEFAULT_MODEL_FILE = "model.png"

logger = get_logger(__name__)

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def stdin_is_tty() -> bool:
    """Check if stdin is an interactive terminal."""
    return sys.stdin.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def emit(message: str, data: dict[str, Any]) -> None:
    """Print a human line on a TTY, JSON otherwise."""
    if is_tty():
        print(message)
    else:
        json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    # Header
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line.rstrip())
    print("-" * len(header_line.rstrip()))

    # Rows
    for row in rows:
        row_line = "  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths))
        print(row_line.rstrip())


def _first(*values: str | None) -> str | None:
    """Return the first non-empty value (flag before positional before default)."""
    for value in values:
        if value:
            return value
    return None


def _fill_slots(flags: list[str | None], positionals: list[str | None]) -> list[str | None]:
    """
    Merge per-slot flags with positionals given in slot order.

    argparse fills optional positionals left to right, so with
    `--report URI out.xls` the file lands in the report slot. Positionals
    are moved onto the slots whose flag was not given.

    Raises:
        UsageError: More positionals than slots left open by the flags
    """
    given = [v for v in positionals if v is not None]
    open_slots = [i for i, flag in enumerate(flags) if not flag]
    if len(given) > len(open_slots):
        raise UsageError(f"unexpected argument: {given[len(open_slots)]}")

    values = list(flags)
    for slot, value in zip(open_slots, given):
        values[slot] = value
    return values


def _one_slot(flag: str | None, positional: str | None) -> str | None:
    return _fill_slots([flag], [positional])[0]


def _write_output(path: str, data: bytes) -> None:
    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise ValidationError(f"Cannot write {path}: {e.strerror or e}")


def _read_text(path: str, what: str) -> str:
    try:
        return Path(path).read_text()
    except OSError as e:
        raise ValidationError(f"Cannot read {what} {path}: {e.strerror or e}")


# =============================================================================
# Argument Parsing
# =============================================================================


class CommandParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting on bad input."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(f"{self.prog}: {message}", details={"usage": self.format_usage().strip()})


def _parser(name: str, description: str) -> CommandParser:
    return CommandParser(prog=name, description=description)


def _add_project_flag(parser: CommandParser) -> None:
    parser.add_argument("--project", "-p", dest="project_flag", help="Project URI or ID (default: current project)")


# =============================================================================
# Credentials
# =============================================================================


def read_password(user: str, password: str | None = None) -> str:
    """
    Resolve the password for a login.

    An explicit password wins. Otherwise the user is prompted without echo
    when stdin is a terminal, then GOODDATA_PASSWORD is used.
    """
    if password:
        return password
    if stdin_is_tty():
        password = getpass.getpass(f"Password for {user}: ")
    else:
        password = os.environ.get("GOODDATA_PASSWORD")
    if not password:
        raise ValidationError("password required (use --password or GOODDATA_PASSWORD)")
    return password


def login(session: Session, user: str, password: str | None = None) -> None:
    """Log the session in and remember the credentials."""
    password = read_password(user, password)
    session.client.login(user, password)
    session.user = user
    session.password = password


# =============================================================================
# Commands
# =============================================================================


def login_parser() -> CommandParser:
    parser = _parser("login", "Log in to GoodData")
    parser.add_argument("--user", "-u", dest="user_flag", help="Login name (e-mail)")
    parser.add_argument("--password", "-w", dest="password_flag", help="Password (prompted when omitted)")
    parser.add_argument("user", nargs="?", help="Login name (e-mail)")
    parser.add_argument("password", nargs="?", help="Password")
    return parser


def cmd_login(session: Session, args: argparse.Namespace) -> None:
    """Log in."""
    user, password = _fill_slots([args.user_flag, args.password_flag], [args.user, args.password])
    user = _first(user, session.user, os.environ.get("GOODDATA_USER"))
    if not user:
        raise ValidationError("user name required (use --user)")
    known_password = session.password if user == session.user else None
    login(session, user, _first(password, known_password))
    emit(f"Logged in as {user}", {"success": True, "user": user})


def logout_parser() -> CommandParser:
    return _parser("logout", "Log out of GoodData")


def cmd_logout(session: Session, _args: argparse.Namespace) -> None:
    """Log out."""
    user = session.user
    session.api.logout()
    session.clear_credentials()
    emit("Logged out", {"success": True, "user": user})


def lsprojects_parser() -> CommandParser:
    return _parser("lsprojects", "List available projects")


def cmd_lsprojects(session: Session, _args: argparse.Namespace) -> None:
    """List projects."""
    projects = session.api.projects()

    if is_tty():
        if not projects:
            print("No projects found.")
            return

        table_output(
            ["URI", "Title", "Updated"],
            [[p.uri, p.title, p.updated or ""] for p in projects],
            [36, 40, 20],
        )
    else:
        json_output(
            {
                "data": [
                    {
                        "uri": p.uri,
                        "title": p.title,
                        "summary": p.summary,
                        "created": p.created,
                        "updated": p.updated,
                    }
                    for p in projects
                ],
                "total_count": len(projects),
            }
        )


def rmproject_parser() -> CommandParser:
    parser = _parser("rmproject", "Delete a project")
    _add_project_flag(parser)
    parser.add_argument("project", nargs="?", help="Project URI or ID")
    return parser


def cmd_rmproject(session: Session, args: argparse.Namespace) -> None:
    """Delete a project."""
    uri = session.require_project(_one_slot(args.project_flag, args.project))
    session.api.delete_project(uri)
    if session.project == uri:
        session.select_project(None)
    emit(f"Project {uri} deleted", {"success": True, "uri": uri})


def mkproject_parser() -> CommandParser:
    parser = _parser("mkproject", "Create a project")
    parser.add_argument("--title", "-t", dest="title_flag", help="Project title")
    parser.add_argument("--summary", "-s", dest="summary_flag", help="Project summary")
    parser.add_argument("title", nargs="?", help="Project title")
    parser.add_argument("summary", nargs="?", help="Project summary")
    return parser


def cmd_mkproject(session: Session, args: argparse.Namespace) -> None:
    """Create a project."""
    title, summary = _fill_slots([args.title_flag, args.summary_flag], [args.title, args.summary])
    if not title:
        raise ValidationError("project title required (use --title)")
    uri = session.api.create_project(title, summary or "")
    emit(f"Project created: {uri}", {"success": True, "uri": uri, "title": title})


def project_parser() -> CommandParser:
    parser = _parser("project", "Show or select the current project")
    parser.add_argument("project", nargs="?", help="Project URI or ID to select")
    return parser


def cmd_project(session: Session, args: argparse.Namespace) -> None:
    """Show or select the current project."""
    if args.project:
        session.select_project(args.project)
        emit(f"Current project: {session.project}", {"project": session.project})
    elif session.project:
        emit(f"Current project: {session.project}", {"project": session.project})
    else:
        emit("No project selected.", {"project": None})


def lsreports_parser() -> CommandParser:
    parser = _parser("lsreports", "List reports in a project")
    _add_project_flag(parser)
    parser.add_argument("project", nargs="?", help="Project URI or ID")
    return parser


def cmd_lsreports(session: Session, args: argparse.Namespace) -> None:
    """List reports."""
    uri = session.require_project(_one_slot(args.project_flag, args.project))
    reports = session.api.reports(uri)

    if is_tty():
        if not reports:
            print("No reports found.")
            return

        table_output(
            ["URI", "Title", "Updated"],
            [[r.uri, r.title, r.updated or ""] for r in reports],
            [40, 40, 20],
        )
    else:
        json_output(
            {
                "data": [
                    {
                        "uri": r.uri,
                        "title": r.title,
                        "summary": r.summary,
                        "created": r.created,
                        "updated": r.updated,
                    }
                    for r in reports
                ],
                "total_count": len(reports),
            }
        )


def resolve_export_format(export_format: str | None, filename: str | None) -> str:
    """
    Pick the export format.

    An explicit format wins; otherwise the extension of a file name that
    contains a dot is used; otherwise the default (pdf).
    """
    if export_format:
        fmt = export_format.lower()
    elif filename and "." in Path(filename).name:
        fmt = Path(filename).name.rsplit(".", 1)[1].lower()
    else:
        fmt = DEFAULT_EXPORT_FORMAT

    if fmt not in EXPORT_FORMATS:
        raise ValidationError(
            f"unsupported export format '{fmt}'",
            details={"formats": list(EXPORT_FORMATS)},
        )
    return fmt


def export_parser() -> CommandParser:
    parser = _parser("export", "Export a report to a file")
    parser.add_argument("--report", "-r", dest="report_flag", help="Report URI")
    parser.add_argument("--format", "-f", dest="format", help=f"Export format ({', '.join(EXPORT_FORMATS)})")
    parser.add_argument("--output", "-o", dest="output_flag", help="Output file (default: <report id>.<format>)")
    parser.add_argument("report", nargs="?", help="Report URI")
    parser.add_argument("output", nargs="?", help="Output file")
    return parser


def cmd_export(session: Session, args: argparse.Namespace) -> None:
    """Export a report."""
    report_uri, output = _fill_slots([args.report_flag, args.output_flag], [args.report, args.output])
    if not report_uri:
        raise ValidationError("report URI required (use --report)")
    fmt = resolve_export_format(args.format, output)
    if not output:
        output = f"{last_segment(report_uri)}.{fmt}"

    data = session.api.export_report(report_uri, fmt)
    _write_output(output, data)
    emit(
        f"Report exported to {output} ({len(data)} bytes)",
        {"success": True, "report": report_uri, "format": fmt, "file": output, "size": len(data)},
    )


def model_parser() -> CommandParser:
    parser = _parser("model", "Save the project's data model diagram")
    _add_project_flag(parser)
    parser.add_argument("--output", "-o", dest="output_flag", help=f"Output PNG file (default: {DEFAULT_MODEL_FILE})")
    parser.add_argument("output", nargs="?", help="Output PNG file")
    return parser


def cmd_model(session: Session, args: argparse.Namespace) -> None:
    """Save the LDM picture."""
    uri = session.require_project(args.project_flag)
    output = _one_slot(args.output_flag, args.output) or DEFAULT_MODEL_FILE
    data = session.api.ldm_picture(uri)
    _write_output(output, data)
    emit(
        f"Model picture saved to {output}",
        {"success": True, "project": uri, "file": output, "size": len(data)},
    )


def chmodel_parser() -> CommandParser:
    parser = _parser("chmodel", "Change the data model with a MAQL script")
    _add_project_flag(parser)
    parser.add_argument("--maql", "-m", dest="maql_flag", help="MAQL script file")
    parser.add_argument("maql", nargs="?", help="MAQL script file")
    return parser


def cmd_chmodel(session: Session, args: argparse.Namespace) -> None:
    """Apply a MAQL script."""
    maql_file = _one_slot(args.maql_flag, args.maql)
    if not maql_file:
        raise ValidationError("MAQL script file required (use --maql)")
    uri = session.require_project(args.project_flag)
    script = _read_text(maql_file, "MAQL script")
    if not script.strip():
        raise ValidationError(f"MAQL script {maql_file} is empty")

    session.api.ldm_manage(uri, script)
    emit("Model updated", {"success": True, "project": uri, "maql": maql_file})


def upload_parser() -> CommandParser:
    parser = _parser("upload", "Upload data described by an SLI manifest")
    _add_project_flag(parser)
    parser.add_argument("--manifest", "-m", dest="manifest_flag", help="SLI manifest file")
    parser.add_argument("--data", "-d", dest="data", help="Data file (default: the file the manifest names)")
    parser.add_argument("manifest", nargs="?", help="SLI manifest file")
    return parser


def cmd_upload(session: Session, args: argparse.Namespace) -> None:
    """Upload data."""
    manifest = _one_slot(args.manifest_flag, args.manifest)
    if not manifest:
        raise ValidationError("SLI manifest file required (use --manifest)")
    uri = session.require_project(args.project_flag)

    status = session.api.upload(uri, manifest, args.data)
    emit("Data uploaded", {"success": True, "project": uri, "manifest": manifest, "status": status})


def help_parser() -> CommandParser:
    parser = _parser("help", "Show available commands")
    parser.add_argument("command", nargs="?", help="Command to describe")
    return parser


def cmd_help(_session: Session, args: argparse.Namespace) -> None:
    """Show help."""
    if args.command:
        command = COMMANDS.get(args.command)
        if command is None:
            raise ValidationError(f"Unknown command: {args.command}")
        print(command.parser().format_help().rstrip())
        return

    print("Commands:")
    width = max(len(name) for name in COMMANDS)
    for command in COMMANDS.values():
        print(f"  {command.name.ljust(width)}  {command.help}")
    print("\nUse 'help <command>' for command options.")


def shell_parser() -> CommandParser:
    return _parser("shell", "Start the interactive shell")


def cmd_shell(session: Session, _args: argparse.Namespace) -> None:
    """Start the interactive shell."""
    from gooddata_cli.shell import InteractiveShell

    if session.interactive:
        raise ValidationError("already in the shell")
    InteractiveShell(session).run()


# =============================================================================
# Command Table
# =============================================================================


@dataclass(frozen=True)
class Command:
    """A command word, its parser and its handler."""

    name: str
    help: str
    handler: Callable[[Session, argparse.Namespace], None]
    parser: Callable[[], CommandParser]
    needs_login: bool = False


COMMANDS: dict[str, Command] = {
    c.name: c
    for c in (
        Command("login", "Log in (prompts for the password)", cmd_login, login_parser),
        Command("logout", "Log out", cmd_logout, logout_parser, needs_login=True),
        Command("lsprojects", "List projects", cmd_lsprojects, lsprojects_parser, needs_login=True),
        Command("rmproject", "Delete a project", cmd_rmproject, rmproject_parser, needs_login=True),
        Command("mkproject", "Create a project", cmd_mkproject, mkproject_parser, needs_login=True),
        Command("project", "Show or select the current project", cmd_project, project_parser),
        Command("lsreports", "List reports in a project", cmd_lsreports, lsreports_parser, needs_login=True),
        Command("export", "Export a report to a file", cmd_export, export_parser, needs_login=True),
        Command("model", "Save the data model diagram", cmd_model, model_parser, needs_login=True),
        Command("chmodel", "Change the data model with MAQL", cmd_chmodel, chmodel_parser, needs_login=True),
        Command("upload", "Upload data using an SLI manifest", cmd_upload, upload_parser, needs_login=True),
        Command("help", "Show available commands", cmd_help, help_parser),
        Command("shell", "Start the interactive shell", cmd_shell, shell_parser),
    )
}


def run_command(session: Session, name: str, argv: list[str]) -> None:
    """
    Parse argv for a command and run its handler.

    Raises:
        UsageError: Unknown command or bad arguments
        ValidationError: Missing required input
        APIError: Failure reported by the API

    """
    command = COMMANDS.get(name)
    if command is None:
        raise UsageError(f"Unknown command: {name}")

    args = command.parser().parse_args(argv)
    logger.debug("Running command", command=name)
    command.handler(session, args)
