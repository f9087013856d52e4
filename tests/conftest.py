"""Pytest configuration - loads .env for smoke tests, provides a fake API client."""

from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from gooddata_cli.core.types import Project, Report
from gooddata_cli.session import Session

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

ISOLATED_ENV = ("GOODDATA_USER", "GOODDATA_PASSWORD", "GOODDATA_PROJECT", "GOODDATA_LOG_LEVEL")


class FakeClient:
    """Stands in for GoodDataClient and records every call."""

    def __init__(self, logged_in: bool = True, **_kwargs: Any):
        self.logged_in = logged_in
        self.calls: list[tuple] = []
        self.projects_result = [
            Project(
                uri="/gdc/projects/abc123",
                title="Sales",
                summary="Sales analytics",
                updated="2024-05-01 10:00:00",
            )
        ]
        self.reports_result = [
            Report(uri="/gdc/md/abc123/obj/42", title="Revenue by region", updated="2024-05-02 09:00:00")
        ]
        self.export_data = b"%PDF-1.4 fake"
        self.picture_data = b"\x89PNG fake"

    @property
    def is_logged_in(self) -> bool:
        return self.logged_in

    def login(self, user, password):
        self.calls.append(("login", user, password))
        self.logged_in = True

    def logout(self):
        self.calls.append(("logout",))
        self.logged_in = False

    def projects(self):
        self.calls.append(("projects",))
        return self.projects_result

    def create_project(self, title, summary=""):
        self.calls.append(("create_project", title, summary))
        return "/gdc/projects/new456"

    def delete_project(self, uri):
        self.calls.append(("delete_project", uri))
        return True

    def reports(self, project_uri):
        self.calls.append(("reports", project_uri))
        return self.reports_result

    def export_report(self, report_uri, export_format):
        self.calls.append(("export_report", report_uri, export_format))
        return self.export_data

    def ldm_picture(self, project_uri):
        self.calls.append(("ldm_picture", project_uri))
        return self.picture_data

    def ldm_manage(self, project_uri, maql_script):
        self.calls.append(("ldm_manage", project_uri, maql_script))
        return {"success": True}

    def upload(self, project_uri, manifest_file, data_file=None):
        self.calls.append(("upload", project_uri, manifest_file, data_file))
        return "OK"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer credentials from .env out of unit tests."""
    for name in ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def session(fake_client):
    return Session(client=fake_client)


@pytest.fixture
def tty(monkeypatch):
    """Pretend stdout is a terminal so commands print human output."""
    monkeypatch.setattr("gooddata_cli.commands.is_tty", lambda: True)


@pytest.fixture
def pipe(monkeypatch):
    """Pretend stdout is a pipe so commands print JSON."""
    monkeypatch.setattr("gooddata_cli.commands.is_tty", lambda: False)
