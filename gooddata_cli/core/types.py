"""
Core types for GoodData API resources.

These dataclasses provide type safety and IDE support for API responses.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

PROJECTS_PREFIX = "/gdc/projects/"


def last_segment(uri: str) -> str:
    """Return the last path segment of a URI (the object ID)."""
    return uri.rstrip("/").rsplit("/", 1)[-1]


def project_id(uri_or_id: str) -> str:
    """Return the bare project ID for a project URI or ID."""
    return last_segment(uri_or_id)


def project_uri(uri_or_id: str) -> str:
    """Return the canonical /gdc/projects/{id} URI for a project URI or ID."""
    return f"{PROJECTS_PREFIX}{project_id(uri_or_id)}"


# =============================================================================
# Account Types
# =============================================================================


@dataclass
class LoginInfo:
    """An active login session."""

    profile_uri: str
    state_uri: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoginInfo":
        """Create from API response dict."""
        login = data.get("userLogin") or {}
        return cls(
            profile_uri=login.get("profile", ""),
            state_uri=login.get("state", ""),
        )


# =============================================================================
# Project Types
# =============================================================================


@dataclass
class Project:
    """A GoodData project (workspace)."""

    uri: str
    title: str
    summary: str = ""
    created: str | None = None
    updated: str | None = None
    state: str | None = None
    author: str | None = None

    @property
    def id(self) -> str:
        """Project ID (last URI segment)."""
        return project_id(self.uri)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create from API response dict."""
        # Listings wrap each item as {"project": {...}}
        project = data.get("project", data)
        meta = project.get("meta") or {}
        links = project.get("links") or {}
        content = project.get("content") or {}
        return cls(
            uri=links.get("self") or meta.get("uri") or "",
            title=meta.get("title") or "",
            summary=meta.get("summary") or "",
            created=meta.get("created"),
            updated=meta.get("updated"),
            state=content.get("state"),
            author=meta.get("author"),
        )


# =============================================================================
# Report Types
# =============================================================================


@dataclass
class Report:
    """A report definition in a project's metadata."""

    uri: str
    title: str
    summary: str = ""
    created: str | None = None
    updated: str | None = None
    author: str | None = None

    @property
    def id(self) -> str:
        """Report object ID (last URI segment)."""
        return last_segment(self.uri)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Report":
        """Create from a query entry dict."""
        return cls(
            uri=data.get("link") or data.get("uri") or "",
            title=data.get("title") or "",
            summary=data.get("summary") or "",
            created=data.get("created"),
            updated=data.get("updated"),
            author=data.get("author"),
        )


# =============================================================================
# Data Upload Types
# =============================================================================


@dataclass
class SLIManifest:
    """An SLI manifest describing how a data file maps onto a dataset."""

    path: Path
    data_file: str
    dataset: str | None = None
    parts: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def data_path(self) -> Path:
        """Location of the data file, relative to the manifest."""
        return self.path.parent / self.data_file

    @classmethod
    def from_dict(cls, path: Path, data: Any) -> "SLIManifest":
        """Create from parsed manifest JSON."""
        if not isinstance(data, dict):
            raise ValueError("manifest must be a JSON object")
        manifest = data.get("dataSetSLIManifest")
        if not isinstance(manifest, dict):
            raise ValueError("missing 'dataSetSLIManifest' object")
        data_file = manifest.get("file")
        if not data_file:
            raise ValueError("manifest does not name a data file")
        return cls(
            path=path,
            data_file=data_file,
            dataset=manifest.get("dataSet"),
            parts=manifest.get("parts") or [],
            raw=data,
        )

    @classmethod
    def load(cls, path: str | Path) -> "SLIManifest":
        """Read and parse a manifest file."""
        manifest_path = Path(path)
        return cls.from_dict(manifest_path, json.loads(manifest_path.read_text()))

    def to_json(self) -> str:
        """Serialize the manifest for the upload archive."""
        return json.dumps(self.raw, indent=2)
