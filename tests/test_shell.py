import pytest

from gooddata_cli.core.types import LoginInfo
from gooddata_cli.sdk import GoodDataClient
from gooddata_cli.session import Session
from gooddata_cli.shell import PROMPT, InteractiveShell


def scripted(*lines):
    """Input function that replays lines, then signals end of input."""
    remaining = list(lines)
    prompts = []

    def read(prompt):
        prompts.append(prompt)
        if not remaining:
            raise EOFError
        line = remaining.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line

    read.prompts = prompts
    return read


def run_shell(session, *lines):
    read = scripted(*lines)
    InteractiveShell(session, input_func=read).run()
    return read


def test_unknown_command_warns_and_continues(session, tty, capsys):
    run_shell(session, "frobnicate now", "project")

    captured = capsys.readouterr()
    assert "Unknown command: frobnicate" in captured.err
    assert "No project selected." in captured.out


def test_end_of_input_ends_the_loop(session, tty):
    read = run_shell(session, "project")

    assert read.prompts == [PROMPT, PROMPT]
    assert session.interactive is False


def test_empty_lines_are_skipped(session, tty):
    run_shell(session, "", "   ", "project abc123")

    assert session.project == "/gdc/projects/abc123"


def test_command_error_does_not_end_the_loop(session, tty, capsys):
    run_shell(session, "rmproject", "mkproject Demo")

    captured = capsys.readouterr()
    assert "Error: project URI required" in captured.err
    assert session.client.calls == [("create_project", "Demo", "")]


def test_quit_stops_reading(session, tty):
    read = run_shell(session, "quit", "project abc123")

    assert session.project is None
    assert len(read.prompts) == 1


@pytest.mark.parametrize("word", ["quit", "exit"])
def test_exit_words(session, tty, word):
    read = run_shell(session, word)

    assert len(read.prompts) == 1


def test_lines_are_split_with_shell_quoting(session, tty):
    run_shell(session, 'mkproject "Sales Demo" \'Quarterly numbers\'')

    assert session.client.calls == [("create_project", "Sales Demo", "Quarterly numbers")]


def test_unbalanced_quotes_are_reported(session, tty, capsys):
    run_shell(session, 'mkproject "Sales Demo', "project")

    captured = capsys.readouterr()
    assert "Error: No closing quotation" in captured.err
    assert "No project selected." in captured.out
    assert session.client.calls == []


def test_help_flag_inside_shell_does_not_exit(session, tty, capsys):
    run_shell(session, "export --help", "project")

    out = capsys.readouterr().out
    assert "usage: export" in out
    assert "No project selected." in out


def test_bad_flag_inside_shell_is_reported(session, tty, capsys):
    run_shell(session, "lsprojects --bogus", "project")

    captured = capsys.readouterr()
    assert "unrecognized arguments: --bogus" in captured.err
    assert "No project selected." in captured.out


def test_nested_shell_is_rejected(session, tty, capsys):
    run_shell(session, "shell")

    assert "Error: already in the shell" in capsys.readouterr().err


def test_ctrl_c_at_prompt_continues(session, tty, capsys):
    run_shell(session, KeyboardInterrupt(), "project abc123")

    assert session.project == "/gdc/projects/abc123"
    assert "Use 'quit'" in capsys.readouterr().out


def test_prompt_shows_current_project(session, tty):
    read = run_shell(session, "project abc123")

    assert read.prompts == [PROMPT, "gooddata [abc123]> "]


def test_session_state_carries_between_commands(session, tty):
    run_shell(session, "project abc123", "lsreports")

    assert session.client.calls == [("reports", "/gdc/projects/abc123")]


def test_api_error_inside_shell(session, tty, capsys):
    session.client.logged_in = False

    run_shell(session, "lsprojects", "project")

    captured = capsys.readouterr()
    assert "Error: Not logged in" in captured.err
    assert "No project selected." in captured.out


def test_bad_manifest_ends_only_the_upload(tty, tmp_path, capsys):
    manifest = tmp_path / "list.json"
    manifest.write_text("[1, 2]")
    client = GoodDataClient(base_url="https://gd.example.com")
    client._client.login_info = LoginInfo(profile_uri="/gdc/account/profile/u1", state_uri="/gdc/account/login/u1")
    session = Session(client=client)

    run_shell(session, f"upload --project abc123 {manifest}", "project")

    captured = capsys.readouterr()
    assert "Error: Invalid SLI manifest" in captured.err
    assert "No project selected." in captured.out
