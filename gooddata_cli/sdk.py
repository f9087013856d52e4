"""
GoodData SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for the GoodData operations
the CLI drives. Built on top of the core APIClient.
"""

import builtins
import io
import uuid
import zipfile
from pathlib import Path
from typing import Any

from gooddata_cli.core.client import APIClient, APIError, ValidationError
from gooddata_cli.core.logging import get_logger
from gooddata_cli.core.types import LoginInfo, Project, Report, SLIManifest, project_id, project_uri

EXPORT_FORMATS = ("pdf", "png", "xls", "xlsx", "csv")
UPLOAD_ARCHIVE = "upload.zip"
UPLOAD_MANIFEST = "upload_info.json"

logger = get_logger(__name__)


class GoodDataClient:
    """
    High-level GoodData API client with typed methods.

    Example:
        client = GoodDataClient()
        client.login("jane@example.com", "secret")

        for project in client.projects():
            print(project.uri, project.title)

        pdf = client.export_report("/gdc/md/abc/obj/42", "pdf")

    """

    def __init__(
        self,
        base_url: str | None = None,
        webdav_url: str | None = None,
        timeout: int | None = None,
    ):
        """
        Initialize the GoodData client.

        Args:
            base_url: API base URL (or GOODDATA_SERVER env var)
            webdav_url: Upload staging URL (or GOODDATA_WEBDAV env var)
            timeout: Request timeout in seconds (or GOODDATA_TIMEOUT env var)

        """
        self._client = APIClient(base_url=base_url, webdav_url=webdav_url, timeout=timeout)

        # Sub-clients for different domains
        self.project_ops = ProjectOperations(self._client)
        self.report_ops = ReportOperations(self._client)
        self.model_ops = ModelOperations(self._client)
        self.upload_ops = UploadOperations(self._client)

    @property
    def is_logged_in(self) -> bool:
        """Check whether a login session is active."""
        return self._client.is_logged_in

    @property
    def base_url(self) -> str:
        """API base URL."""
        return self._client.base_url

    # =========================================================================
    # Interface used by the command layer
    # =========================================================================

    def login(self, user: str, password: str) -> LoginInfo:
        """Log in with user name and password."""
        return self._client.login(user, password)

    def logout(self) -> None:
        """Close the current login session."""
        self._client.logout()

    def projects(self) -> builtins.list[Project]:
        """List projects available to the logged-in user."""
        return self.project_ops.list()

    def project(self, uri: str) -> Project:
        """Get a single project."""
        return self.project_ops.get(uri)

    def create_project(self, title: str, summary: str = "") -> str:
        """Create a project and return its URI."""
        return self.project_ops.create(title, summary)

    def delete_project(self, uri: str) -> bool:
        """Delete a project."""
        return self.project_ops.delete(uri)

    def reports(self, project_uri: str) -> builtins.list[Report]:
        """List reports in a project."""
        return self.report_ops.list(project_uri)

    def export_report(self, report_uri: str, export_format: str) -> bytes:
        """Export a report and return the document bytes."""
        return self.report_ops.export(report_uri, export_format)

    def ldm_picture(self, project_uri: str) -> bytes:
        """Return the logical data model diagram as PNG bytes."""
        return self.model_ops.picture(project_uri)

    def ldm_manage(self, project_uri: str, maql_script: str) -> dict[str, Any]:
        """Apply a MAQL script to the project's data model."""
        return self.model_ops.manage(project_uri, maql_script)

    def upload(self, project_uri: str, manifest_file: str, data_file: str | None = None) -> str:
        """Upload data described by an SLI manifest; returns the final task status."""
        return self.upload_ops.upload(project_uri, manifest_file, data_file)


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for managing projects."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> builtins.list[Project]:
        """
        List projects available to the logged-in user.

        Returns:
            List of Projects

        """
        login = self._client.ensure_login()
        result = self._client.get(f"{login.profile_uri}/projects")
        return [Project.from_dict(p) for p in result.get("projects", [])]

    def get(self, uri: str) -> Project:
        """
        Get a project by URI or ID.

        Args:
            uri: The project URI or ID

        Returns:
            Project details

        """
        result = self._client.get(project_uri(uri))
        return Project.from_dict(result)

    def create(self, title: str, summary: str = "") -> str:
        """
        Create a new project.

        Args:
            title: Project title
            summary: Project summary

        Returns:
            URI of the new project

        """
        result = self._client.post(
            "/gdc/projects",
            {
                "project": {
                    "meta": {"title": title, "summary": summary},
                    "content": {"guidedNavigation": 1},
                }
            },
        )
        uri = result.get("uri")
        if not uri:
            raise APIError("Project creation returned no URI", details=result)
        logger.info("Project created", uri=uri)
        return uri

    def delete(self, uri: str) -> bool:
        """
        Delete a project.

        Args:
            uri: The project URI or ID

        Returns:
            True on success

        """
        self._client.delete(project_uri(uri))
        logger.info("Project deleted", uri=project_uri(uri))
        return True


# =============================================================================
# Report Operations
# =============================================================================


class ReportOperations:
    """Operations for listing and exporting reports."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, uri: str) -> builtins.list[Report]:
        """
        List reports in a project.

        Args:
            uri: The project URI or ID

        Returns:
            List of Reports

        """
        result = self._client.get(f"/gdc/md/{project_id(uri)}/query/reports")
        entries = (result.get("query") or {}).get("entries", [])
        return [Report.from_dict(e) for e in entries]

    def execute(self, report_uri: str) -> dict[str, Any]:
        """Execute a report and return the execution result reference."""
        result = self._client.post("/gdc/xtab2/executor3", {"report_req": {"report": report_uri}})
        exec_result = result.get("execResult")
        if exec_result is None:
            raise APIError("Report execution returned no result", details=result)
        return exec_result

    def export(
        self,
        report_uri: str,
        export_format: str = "pdf",
        poll_interval: float = 1.0,
        timeout: float = 300.0,
    ) -> bytes:
        """
        Export a report to a document.

        Args:
            report_uri: The report URI
            export_format: One of pdf, png, xls, xlsx, csv
            poll_interval: Seconds between result checks
            timeout: Maximum seconds to wait

        Returns:
            Raw document bytes

        """
        if export_format not in EXPORT_FORMATS:
            raise APIError(f"Unsupported export format '{export_format}'")

        exec_result = self.execute(report_uri)
        result = self._client.post(
            "/gdc/exporter/executor",
            {"result_req": {"format": export_format, "result": exec_result}},
        )
        result_uri = result.get("uri")
        if not result_uri:
            raise APIError("Export returned no result URI", details=result)

        logger.debug("Export started", report=report_uri, format=export_format)
        return self._client.poll_bytes(result_uri, poll_interval=poll_interval, timeout=timeout)


# =============================================================================
# Model Operations
# =============================================================================


def _task_links(result: dict[str, Any]) -> builtins.list[str]:
    """Status links returned by asynchronous metadata tasks."""
    return [
        entry["link"]
        for entry in result.get("entries", [])
        if isinstance(entry, dict) and entry.get("link") and entry.get("category") == "tasks-status"
    ]


def _ldm_task_status(result: dict[str, Any]) -> str:
    return (result.get("wTaskStatus") or {}).get("status", "")


class ModelOperations:
    """Operations on the logical data model."""

    def __init__(self, client: APIClient):
        self._client = client

    def picture(self, uri: str) -> bytes:
        """
        Fetch the data model diagram.

        Args:
            uri: The project URI or ID

        Returns:
            PNG image bytes

        """
        _status, payload = self._client.get_bytes(f"{project_uri(uri)}/ldm", accept="image/png")
        return payload

    def manage(self, uri: str, maql: str) -> dict[str, Any]:
        """
        Apply a MAQL script.

        Args:
            uri: The project URI or ID
            maql: MAQL DDL script

        Returns:
            Server response (final task status when the change runs asynchronously)

        Raises:
            APIError: When a task finishes with an error

        """
        result = self._client.post(f"/gdc/md/{project_id(uri)}/ldm/manage", {"manage": {"maql": maql}})

        for link in _task_links(result):
            status, result = self._client.poll_status(link, _ldm_task_status)
            if status != "OK":
                raise APIError(f"Model change failed (status: {status})", details=result)
        logger.info("Model updated", project=project_uri(uri))
        return result


# =============================================================================
# Upload Operations
# =============================================================================


def _pull_task_status(result: dict[str, Any]) -> str:
    return result.get("taskStatus", "")


class UploadOperations:
    """Operations for loading data into a project."""

    def __init__(self, client: APIClient):
        self._client = client

    @staticmethod
    def build_archive(manifest: SLIManifest, data_path: Path | None = None) -> bytes:
        """Pack the manifest and its data file into an upload archive."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(UPLOAD_MANIFEST, manifest.to_json())
            archive.write(data_path or manifest.data_path, arcname=manifest.data_file)
        return buffer.getvalue()

    def upload(self, uri: str, manifest_file: str, data_file: str | None = None) -> str:
        """
        Upload a data file described by an SLI manifest.

        Args:
            uri: The project URI or ID
            manifest_file: Path to the SLI manifest JSON
            data_file: Data file override (defaults to the file the manifest names)

        Returns:
            Final task status ("OK")

        Raises:
            APIError: When the load task fails

        """
        try:
            manifest = SLIManifest.load(manifest_file)
        except OSError as e:
            raise ValidationError(f"Cannot read SLI manifest {manifest_file}: {e.strerror or e}")
        except ValueError as e:
            raise ValidationError(f"Invalid SLI manifest {manifest_file}: {e}")

        data_path = Path(data_file) if data_file else manifest.data_path
        if not data_path.is_file():
            raise ValidationError(f"Data file not found: {data_path}")
        try:
            archive = self.build_archive(manifest, data_path)
        except OSError as e:
            raise ValidationError(f"Cannot read data file {data_path}: {e.strerror or e}")

        directory = uuid.uuid4().hex
        self._client.webdav_put(directory, UPLOAD_ARCHIVE, archive)

        result = self._client.post(f"/gdc/md/{project_id(uri)}/etl/pull", {"pullIntegration": directory})
        task_uri = (result.get("pullTask") or {}).get("uri")
        if not task_uri:
            raise APIError("Data load returned no task URI", details=result)

        status, result = self._client.poll_status(task_uri, _pull_task_status)
        if status != "OK":
            raise APIError(f"Data load failed (status: {status})", details=result)
        logger.info("Data uploaded", project=project_uri(uri), dataset=manifest.dataset)
        return status
