"""skillpack registry client — search, publish, and list skills on a remote registry.

Registry protocol (HTTP, JSON responses):
    GET  /skills/search?q=&author=&keywords=&page=&limit=   -> search results
    GET  /users/me/skills                                  -> caller's skills (bearer auth)
    POST /skills/publish                                   -> multipart upload (bearer auth)

Published packages are the .skill archives written by the archiver.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
import uuid
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import __version__
from .archiver import read_archived_manifest
from .config import registry_url
from .errors import AuthenticationError, NotLoggedInError, PreconditionError, RegistryError

logger = logging.getLogger("skillpack.remote")

USER_AGENT = f"skillpack/{__version__}"
DEFAULT_TIMEOUT_S = 90
SEARCH_PAGE_SIZE = 20


class SearchResult(BaseModel):
    """A skill entry from registry search."""

    name: str
    author: str = ""
    description: str = ""
    latest_version: str = ""


class SearchResponse(BaseModel):
    """One page of search results."""

    data: list[SearchResult] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = SEARCH_PAGE_SIZE


class LatestVersion(BaseModel):
    """Review state of the newest version of a published skill."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    status: str
    review_notes: str = Field(default="", alias="reviewNotes")


class PublishedSkill(BaseModel):
    """A skill owned by the authenticated user."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = 0
    name: str
    description: str = ""
    license: str = ""
    latest_version: Optional[LatestVersion] = Field(default=None, alias="latestVersion")
    published_version_count: int = Field(default=0, alias="publishedVersionCount")
    total_versions: int = Field(default=0, alias="totalVersions")


class PublishResult(BaseModel):
    """Registry answer to a publish request."""

    skill: str
    version: str
    status: str


def encode_multipart(fields: dict[str, str], files: dict[str, tuple[str, bytes]]) -> tuple[bytes, str]:
    """Build a multipart/form-data body.

    Args:
        fields: Plain form fields.
        files: Field name -> (filename, content).

    Returns:
        tuple: (body bytes, Content-Type header value).
    """
    boundary = uuid.uuid4().hex
    chunks: list[bytes] = []
    for field_name, (filename, content) in files.items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
        )
        chunks.append(content)
        chunks.append(b"\r\n")
    for field_name, value in fields.items():
        chunks.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{field_name}"\r\n\r\n'.encode()
        )
        chunks.append(value.encode("utf-8"))
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


class RegistryClient:
    """Client for the skill registry API.

    Args:
        base_url: Registry API root (default: SKILLPACK_REGISTRY_URL or the public registry).
        api_key: Bearer token for authenticated calls.
        timeout: Overall request timeout in seconds.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.base_url = (base_url or registry_url()).rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, str]] = None,
        data: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        auth: bool = False,
    ) -> Any:
        """Perform an HTTP request and return parsed JSON.

        Raises:
            ConnectionError: If the registry cannot be reached.
            AuthenticationError: On HTTP 401.
            RegistryError: On any other error status or a non-JSON body.
        """
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"

        request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        request_headers.update(headers or {})
        if auth:
            request_headers["Authorization"] = f"Bearer {self.api_key}"

        req = urllib.request.Request(url, data=data, headers=request_headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            if exc.code == 401:
                raise AuthenticationError("Authentication failed: invalid API key", status=401) from exc
            raise RegistryError(f"API error ({exc.code}): {detail}", status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise ConnectionError(f"Failed to reach {url}: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ConnectionError(f"Request to {url} timed out after {self.timeout}s") from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise RegistryError(f"Failed to parse response from {url}: {exc}") from exc

    def _require_key(self, action: str) -> None:
        if not self.api_key:
            raise NotLoggedInError(f"An API key is required for {action}. Run 'skillpack login' first.")

    def search(
        self,
        query: str,
        author: Optional[str] = None,
        keywords: Optional[list[str]] = None,
    ) -> SearchResponse:
        """Search the registry. No API key needed.

        Args:
            query: Free-text query.
            author: Restrict to one author's username.
            keywords: Restrict to skills tagged with these keywords.
        """
        params: dict[str, str] = {}
        if query:
            params["q"] = query
        if author:
            params["author"] = author
        if keywords:
            params["keywords"] = ",".join(keywords)
        params["page"] = "1"
        params["limit"] = str(SEARCH_PAGE_SIZE)

        data = self._request("GET", "/skills/search", query=params)
        try:
            return SearchResponse.model_validate(data)
        except ValidationError as exc:
            raise RegistryError(f"Unexpected search response: {exc}") from exc

    def list_mine(self) -> list[PublishedSkill]:
        """List every skill published by the authenticated user."""
        self._require_key("listing your skills")
        data = self._request("GET", "/users/me/skills", auth=True)
        if not isinstance(data, list):
            raise RegistryError("Unexpected response: expected a list of skills")
        try:
            return [PublishedSkill.model_validate(item) for item in data]
        except ValidationError as exc:
            raise RegistryError(f"Unexpected skills response: {exc}") from exc

    def publish(self, archive_path: Path) -> PublishResult:
        """Upload a packaged .skill archive.

        The manifest is read out of the archive and sent alongside it.

        Raises:
            NotLoggedInError: If no API key is configured.
            PreconditionError: If the archive is missing or has no skill.json.
        """
        self._require_key("publishing")
        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise PreconditionError(f"Skill package not found at '{archive_path}'")

        manifest_text = read_archived_manifest(archive_path)
        body, content_type = encode_multipart(
            fields={"manifest": manifest_text},
            files={"file": (archive_path.name, archive_path.read_bytes())},
        )
        logger.info("Publishing %s (%d bytes)", archive_path, len(body))

        data = self._request(
            "POST",
            "/skills/publish",
            data=body,
            headers={"Content-Type": content_type},
            auth=True,
        )
        try:
            return PublishResult.model_validate(data)
        except ValidationError as exc:
            raise RegistryError(f"Unexpected publish response: {exc}") from exc
