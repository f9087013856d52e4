"""Session state shared by all command handlers."""

from dataclasses import dataclass, field

from gooddata_cli.core.client import APIError, ValidationError
from gooddata_cli.core.types import project_uri
from gooddata_cli.sdk import GoodDataClient


@dataclass
class Session:
    """Current user, password and selected project for one CLI run or shell."""

    client: GoodDataClient = field(default_factory=GoodDataClient)
    user: str | None = None
    password: str | None = None
    project: str | None = None
    interactive: bool = False

    @property
    def api(self) -> GoodDataClient:
        """The client, once a login session exists."""
        if not self.client.is_logged_in:
            raise APIError("Not logged in. Use 'login' or the --user flag first")
        return self.client

    def select_project(self, uri: str | None) -> None:
        """Make a project current (accepts a URI or a bare ID)."""
        self.project = project_uri(uri) if uri else None

    def require_project(self, uri: str | None = None) -> str:
        """Return the given project URI or the current one."""
        if uri:
            return project_uri(uri)
        if self.project:
            return self.project
        raise ValidationError("project URI required (use --project or select one with 'project <uri>')")

    def clear_credentials(self) -> None:
        """Forget the user and password after a logout."""
        self.user = None
        self.password = None
