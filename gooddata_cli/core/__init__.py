"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses for GoodData API resources
- Low-level HTTP client with cookie auth and error handling
"""

from gooddata_cli.core.client import APIClient, APIError, CLIError, UsageError, ValidationError
from gooddata_cli.core.types import LoginInfo, Project, Report, SLIManifest, last_segment, project_id, project_uri

__all__ = [
    "APIClient",
    "APIError",
    "CLIError",
    "LoginInfo",
    "Project",
    "Report",
    "SLIManifest",
    "UsageError",
    "ValidationError",
    "last_segment",
    "project_id",
    "project_uri",
]
