"""
Interactive Shell Mode.

Provides a REPL-style shell over the command table. Each line is split with
shell-word rules; the first word picks the command and the rest become its
arguments. Errors end the current command only.
"""

import shlex
import sys
from collections.abc import Callable

from gooddata_cli.commands import COMMANDS, run_command
from gooddata_cli.core.client import CLIError
from gooddata_cli.core.logging import get_logger
from gooddata_cli.core.types import project_id
from gooddata_cli.session import Session

PROMPT = "gooddata> "
EXIT_WORDS = frozenset({"quit", "exit"})

logger = get_logger(__name__)


class InteractiveShell:
    """
    Interactive shell for CLI commands.

    Usage:
        shell = InteractiveShell(session)
        shell.run()
    """

    def __init__(self, session: Session, input_func: Callable[[str], str] = input) -> None:
        self.session = session
        self.input_func = input_func
        self.running = False

    def prompt(self) -> str:
        if self.session.project:
            return f"gooddata [{project_id(self.session.project)}]> "
        return PROMPT

    def run(self) -> None:
        """Read and execute commands until end of input or quit."""
        self.running = True
        self.session.interactive = True

        try:
            while self.running:
                try:
                    line = self.input_func(self.prompt()).strip()
                except KeyboardInterrupt:
                    print("\nUse 'quit' or Ctrl-D to exit")
                    continue
                except EOFError:
                    print()
                    break

                if line:
                    self.execute(line)
        finally:
            self.session.interactive = False
            self.running = False

    def execute(self, line: str) -> None:
        """Execute one input line."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return
        if not parts:
            return

        command, args = parts[0], parts[1:]
        if command in EXIT_WORDS:
            self.running = False
            return
        if command not in COMMANDS:
            print(f"Unknown command: {command}", file=sys.stderr)
            print("Type 'help' for available commands.", file=sys.stderr)
            return

        try:
            run_command(self.session, command, args)
        except CLIError as e:
            print(f"Error: {e.message}", file=sys.stderr)
        except KeyboardInterrupt:
            print("\nInterrupted", file=sys.stderr)
        except SystemExit:
            pass  # --help inside a command must not end the shell
        logger.debug("Command finished", command=command)
