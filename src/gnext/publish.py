"""Client for the extensions.gnome.org upload API.

Publishing is two requests:

1. ``POST /api/v1/accounts/login/`` with form fields ``login`` and
   ``password``; the JSON response carries a ``token`` (or an ``error``).
2. ``POST /api/v1/extensions`` as ``multipart/form-data`` with the zip as
   ``source`` and the two compliance flags, authorised with
   ``Authorization: Token <token>``. ``201 Created`` means accepted.

:class:`ExtensionsSiteClient` wraps :class:`httpx.Client` and must be used
as a context manager.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import httpx

from gnext.exceptions import PublishError

DEFAULT_BASE_URL = "https://extensions.gnome.org"
LOGIN_PATH = "/api/v1/accounts/login/"
UPLOAD_PATH = "/api/v1/extensions"


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class ExtensionsSiteClient:
    """Authenticate with and upload to extensions.gnome.org.

    Args:
        base_url: Site root; overridable for staging instances.
        timeout: Per-request timeout in seconds.
        transport: Optional custom transport (e.g.
            :class:`httpx.MockTransport` in tests).

    Example::

        with ExtensionsSiteClient() as site:
            token = site.login("user", "secret")
            site.upload(token, Path("build/clock@example.com.shell-extension-v1.0.0.zip"))
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> ExtensionsSiteClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError("ExtensionsSiteClient must be used as a context manager")
        return self._client

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for an API token.

        Raises:
            PublishError: On network failure, or when the response carries
                no token (the site's ``error`` text is used as message).
        """
        try:
            response = self.client.post(
                LOGIN_PATH, data={"login": username, "password": password}
            )
        except httpx.HTTPError as exc:
            raise PublishError(f"Failed to connect to {self._base_url}: {exc}") from exc

        data = _json_or_empty(response)
        token = data.get("token")
        if not token:
            raise PublishError(str(data.get("error") or "Authentication failed"))
        return str(token)

    def upload(self, token: str, archive_path: Path) -> None:
        """Upload *archive_path* for review.

        Raises:
            PublishError: On network failure or any status other than 201.
        """
        try:
            with archive_path.open("rb") as fh:
                response = self.client.post(
                    UPLOAD_PATH,
                    headers={"Authorization": f"Token {token}"},
                    data={"shell_license_compliant": "true", "tos_compliant": "true"},
                    files={"source": (archive_path.name, fh, "application/zip")},
                )
        except httpx.HTTPError as exc:
            raise PublishError(f"Upload request failed: {exc}") from exc

        if response.status_code == 201:
            return

        data = _json_or_empty(response)
        message = data.get("detail") or data.get("error") or "Upload failed"
        raise PublishError(f"{message} (HTTP {response.status_code})")
