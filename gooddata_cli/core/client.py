"""
Core HTTP client for the GoodData API.

Handles cookie-based authentication, request/response, task polling,
WebDAV staging uploads and error handling.
"""

import base64
import http.cookiejar
import json
import os
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from typing import Any

from gooddata_cli.core.logging import get_logger
from gooddata_cli.core.types import LoginInfo

# Configuration
DEFAULT_BASE_URL = "https://secure.gooddata.com"
DEFAULT_WEBDAV_URL = "https://secure-di.gooddata.com/uploads"
DEFAULT_TIMEOUT = 60
USER_AGENT = "gooddata-cli/0.1.0"

LOGIN_PATH = "/gdc/account/login"
TOKEN_PATH = "/gdc/account/token"

logger = get_logger(__name__)


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(CLIError):
    """API error with status code and message."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""


class UsageError(ValidationError):
    """Bad flags or arguments given to a command."""


def _error_message(error_data: Any, fallback: str) -> str:
    """Extract a readable message from a GoodData error body."""
    if not isinstance(error_data, dict):
        return fallback
    # Handle both {"error": "message"} and {"error": {"message": "...", "parameters": [...]}}
    error_field = error_data.get("error", {})
    if isinstance(error_field, str):
        return error_field
    if isinstance(error_field, dict):
        message = error_field.get("message")
        if not message:
            return fallback
        parameters = error_field.get("parameters") or []
        if parameters:
            try:
                return message % tuple(parameters)
            except (TypeError, ValueError):
                return message
        return message
    return fallback


class APIClient:
    """
    Low-level HTTP client for the GoodData API.

    Handles:
    - Authentication via the SST/TT cookie pair
    - HTTP methods (GET, POST, PUT, DELETE) with JSON or binary bodies
    - Error handling and response parsing
    - Polling of asynchronous server tasks
    """

    def __init__(
        self,
        base_url: str | None = None,
        webdav_url: str | None = None,
        timeout: int | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API base URL (or GOODDATA_SERVER env var)
            webdav_url: Upload staging URL (or GOODDATA_WEBDAV env var)
            timeout: Request timeout in seconds (or GOODDATA_TIMEOUT env var)

        """
        env_base_url = os.environ.get("GOODDATA_SERVER", DEFAULT_BASE_URL)
        self.base_url = (base_url or env_base_url).rstrip("/")
        env_webdav_url = os.environ.get("GOODDATA_WEBDAV", DEFAULT_WEBDAV_URL)
        self.webdav_url = (webdav_url or env_webdav_url).rstrip("/")
        if timeout is None:
            try:
                timeout = int(os.environ.get("GOODDATA_TIMEOUT", DEFAULT_TIMEOUT))
            except ValueError:
                raise ValidationError("GOODDATA_TIMEOUT must be a whole number of seconds")
        self.timeout = timeout

        self.cookies = http.cookiejar.CookieJar()
        self._opener = urllib.request.build_opener(urllib.request.HTTPCookieProcessor(self.cookies))
        self.login_info: LoginInfo | None = None
        self._credentials: tuple[str, str] | None = None

    @property
    def is_logged_in(self) -> bool:
        """Check whether a login session is active."""
        return self.login_info is not None

    def ensure_login(self) -> LoginInfo:
        """Ensure a login session exists."""
        if self.login_info is None:
            raise APIError("Not logged in. Use 'login' or the --user flag first")
        return self.login_info

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        if path.startswith("http"):
            return path
        return f"{self.base_url}{path}"

    def _send(
        self,
        method: str,
        path: str,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
        refresh: bool = True,
    ) -> tuple[int, bytes]:
        """
        Send a request and return the status code and raw body.

        An expired temporary token (401 on an authenticated session) is
        refreshed once before the request is repeated.

        Raises:
            APIError: On HTTP, connection and timeout errors

        """
        url = self._build_url(path)
        request_headers = {"User-Agent": USER_AGENT}
        request_headers.update(headers or {})
        request_timeout = timeout or self.timeout

        try:
            req = urllib.request.Request(url, data=body, headers=request_headers, method=method)
            with self._opener.open(req, timeout=request_timeout) as response:
                status = response.status
                payload = response.read()
            logger.debug("HTTP request", method=method, path=path, status=status)
            return status, payload

        except urllib.error.HTTPError as e:
            logger.debug("HTTP request", method=method, path=path, status=e.code)
            if e.code == 401 and refresh and self.login_info is not None and path != TOKEN_PATH:
                self.refresh_token()
                return self._send(method, path, body, headers, timeout, refresh=False)
            error_body = e.read().decode("utf-8", errors="replace")
            try:
                error_data = json.loads(error_body)
            except json.JSONDecodeError:
                raise APIError(str(e), status=e.code)
            message = _error_message(error_data, str(e))
            details = error_data if isinstance(error_data, dict) else {}
            raise APIError(message, status=e.code, details=details)

        except urllib.error.URLError as e:
            raise APIError(f"Connection error: {e.reason}")

        except TimeoutError:
            raise APIError(f"Request timed out after {request_timeout} seconds")

    def _make_request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """
        Make a JSON request to the API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path (e.g., /gdc/projects/{id})
            data: Request body for POST/PUT
            timeout: Request timeout override

        Returns:
            Parsed JSON response

        Raises:
            APIError: On HTTP or parsing errors

        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        body = json.dumps(data).encode("utf-8") if data is not None else None
        _status, payload = self._send(method, path, body, headers, timeout)

        response_data = payload.decode("utf-8")
        if not response_data:
            return {"success": True}
        try:
            return json.loads(response_data)
        except json.JSONDecodeError as e:
            raise APIError(f"Invalid JSON response: {e}")

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make a GET request."""
        if params:
            # Filter out None values and URL-encode
            filtered_params = {k: v for k, v in params.items() if v is not None}
            if filtered_params:
                query_string = urllib.parse.urlencode(filtered_params)
                separator = "&" if "?" in path else "?"
                path = f"{path}{separator}{query_string}"
        return self._make_request("GET", path)

    def post(self, path: str, data: dict | None = None) -> dict[str, Any]:
        """Make a POST request."""
        return self._make_request("POST", path, data)

    def put(self, path: str, data: dict | None = None) -> dict[str, Any]:
        """Make a PUT request."""
        return self._make_request("PUT", path, data)

    def delete(self, path: str) -> dict[str, Any]:
        """Make a DELETE request."""
        return self._make_request("DELETE", path)

    def get_bytes(self, path: str, accept: str = "*/*") -> tuple[int, bytes]:
        """Make a GET request and return the status with the raw body."""
        return self._send("GET", path, headers={"Accept": accept})

    # =========================================================================
    # Authentication
    # =========================================================================

    def login(self, user: str, password: str) -> LoginInfo:
        """
        Log in and obtain the temporary token.

        Args:
            user: Login name (e-mail)
            password: Account password

        Returns:
            LoginInfo with profile and login state URIs

        """
        result = self.post(
            LOGIN_PATH,
            {"postUserLogin": {"login": user, "password": password, "remember": 1}},
        )
        login_info = LoginInfo.from_dict(result)
        self.login_info = login_info
        self._credentials = (user, password)
        self.refresh_token()
        logger.info("Logged in", user=user, profile=login_info.profile_uri)
        return login_info

    def refresh_token(self) -> None:
        """Fetch a fresh temporary token using the long-lived session cookie."""
        self.ensure_login()
        self._send("GET", TOKEN_PATH, headers={"Accept": "application/json"}, refresh=False)

    def logout(self) -> None:
        """Close the login session and drop all cookies."""
        login_info = self.ensure_login()
        try:
            self.delete(login_info.state_uri)
        finally:
            self.login_info = None
            self._credentials = None
            self.cookies.clear()
        logger.info("Logged out")

    # =========================================================================
    # Polling
    # =========================================================================

    def poll_bytes(
        self,
        path: str,
        accept: str = "*/*",
        poll_interval: float = 1.0,
        timeout: float = 300.0,
    ) -> bytes:
        """
        Poll a URI until the server stops answering 202 Accepted.

        Returns:
            The body of the final response

        Raises:
            APIError: On timeout or error

        """
        start = time.time()
        while True:
            status, payload = self.get_bytes(path, accept=accept)
            if status != 202:
                return payload

            if time.time() - start > timeout:
                raise APIError(f"Timeout waiting for {path}", status=status)

            logger.debug("Waiting for result", path=path)
            time.sleep(poll_interval)

    def poll_status(
        self,
        path: str,
        extract_status: Callable[[dict[str, Any]], str],
        running: tuple[str, ...] = ("RUNNING", "PREPARED", "NEW", "SCHEDULED"),
        poll_interval: float = 1.0,
        timeout: float = 600.0,
    ) -> tuple[str, dict[str, Any]]:
        """
        Poll a task URI until its status leaves the running set.

        Args:
            path: Task status URI
            extract_status: Function returning the status string from a response
            running: Status values that mean "keep waiting"
            poll_interval: Seconds between status checks
            timeout: Maximum seconds to wait

        Returns:
            Tuple of the final status and the last response

        """
        start = time.time()
        while True:
            result = self.get(path)
            status = extract_status(result)

            if status not in running:
                return status, result

            if time.time() - start > timeout:
                raise APIError(
                    f"Timeout waiting for task (status: {status})",
                    details={"task": path},
                )

            logger.debug("Task running", path=path, status=status)
            time.sleep(poll_interval)

    # =========================================================================
    # WebDAV staging
    # =========================================================================

    def _webdav_headers(self) -> dict[str, str]:
        """Basic auth headers for the staging area."""
        if self._credentials is None:
            raise APIError("Not logged in. Use 'login' or the --user flag first")
        user, password = self._credentials
        token = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
        return {"Authorization": f"Basic {token}"}

    def webdav_put(self, directory: str, filename: str, data: bytes) -> str:
        """
        Upload a file into a fresh staging directory.

        Returns:
            The staging URL of the uploaded file

        """
        headers = self._webdav_headers()
        dir_url = f"{self.webdav_url}/{directory}/"
        self._send("MKCOL", dir_url, headers=headers, refresh=False)

        file_url = f"{dir_url}{filename}"
        put_headers = dict(headers)
        put_headers["Content-Type"] = "application/zip"
        self._send("PUT", file_url, body=data, headers=put_headers, refresh=False)
        logger.debug("Staged upload", url=file_url, size=len(data))
        return file_url
