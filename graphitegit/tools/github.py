"""GitHub REST client: the only path through which remote state is changed."""

import base64
import binascii
import time
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union
from urllib.parse import quote

import requests
from pydantic import BaseModel, ConfigDict

from graphitegit.constants import (
    DEFAULT_PAGE_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_ACCEPT,
    GITHUB_API_BASE,
    MAX_SCAN_PAGES,
    PAGE_SIZE,
    RATE_LIMIT_STATUSES,
)
from graphitegit.errors import (
    RateLimitError,
    RemoteAuthError,
    RemoteConflictError,
    RemoteError,
    RemoteForbiddenError,
    RemoteNotFoundError,
)


@dataclass(frozen=True)
class RemoteFileHandle:
    """A file at a known remote version.

    ``version_token`` is the blob sha; it goes stale as soon as any write
    under the same path succeeds.
    """

    path: str
    version_token: str
    is_binary: bool = False


class RemoteFile(BaseModel):
    """A contents API entry (file, dir, symlink or submodule)."""

    model_config = ConfigDict(extra="ignore")

    name: str
    path: str
    sha: str
    size: int = 0
    type: Literal["file", "dir", "symlink", "submodule"] = "file"
    content: Optional[str] = None
    encoding: Optional[str] = None
    html_url: Optional[str] = None
    download_url: Optional[str] = None

    def raw_bytes(self) -> bytes:
        """Decode the base64 payload (empty for listings and empty files)."""
        if not self.content:
            return b""
        try:
            return base64.b64decode("".join(self.content.split()))
        except (binascii.Error, ValueError) as e:
            raise RemoteError(f"Malformed content for {self.path}: {e}")

    @property
    def is_binary(self) -> bool:
        try:
            self.raw_bytes().decode("utf-8")
        except UnicodeDecodeError:
            return True
        return False

    def text(self) -> str:
        """Content as UTF-8 text.

        Raises:
            UnicodeDecodeError: If the file is binary
        """
        return self.raw_bytes().decode("utf-8")

    def handle(self) -> RemoteFileHandle:
        return RemoteFileHandle(path=self.path, version_token=self.sha, is_binary=self.is_binary)

    def summary(self) -> dict[str, Any]:
        """Listing entry as shown to the engine."""
        return {"name": self.name, "path": self.path, "type": self.type, "size": self.size}


FileOrListing = Union[RemoteFile, list[RemoteFile]]


def encode_path(path: str) -> str:
    """Percent-encode each segment of a repository path."""
    return "/".join(quote(segment, safe="") for segment in path.strip("/").split("/"))


class GitHubClient:
    """Thin, stateless wrapper over the GitHub REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_BASE,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
        page_delay_ms: int = DEFAULT_PAGE_DELAY_MS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            token: Personal access token
            base_url: API root
            timeout: Per-request timeout in seconds
            page_delay_ms: Pause between pages of a bulk scan
            session: Optional preconfigured session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_delay_ms = page_delay_ms
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": GITHUB_ACCEPT,
        })

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make an API request and return parsed JSON.

        Raises:
            RemoteError: Or one of its subclasses, by status code
        """
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteError(f"Network error: {e}")

        if not resp.ok:
            raise self._error_for(resp)

        if resp.status_code in (204, 205) or not resp.content:
            return {}
        return resp.json()

    @staticmethod
    def _error_for(resp: requests.Response) -> RemoteError:
        status = resp.status_code
        try:
            detail = resp.json().get("message", "")
        except ValueError:
            detail = resp.text
        detail = detail or resp.reason or ""

        if status == 401:
            return RemoteAuthError("Unauthorized: Invalid Token", status)
        if status == 403:
            return RemoteForbiddenError(f"Forbidden: Check Token Scopes ({detail})", status)
        if status == 404:
            return RemoteNotFoundError(f"Not Found: {detail}", status)
        if status == 409 or (status == 422 and "sha" in detail.lower()):
            return RemoteConflictError(
                f"Conflict: the file changed remotely, read it again before writing ({detail})",
                status,
            )
        if status == 429:
            return RateLimitError(f"Rate limited: {detail}", status)
        return RemoteError(f"GitHub API Error: {detail} ({status})", status)

    # --- Contents ---

    def get_content(self, owner: str, repo: str, path: str = "") -> FileOrListing:
        """Fetch a file or a directory listing.

        Raises:
            RemoteNotFoundError: If nothing exists at ``path``
        """
        data = self._request("GET", f"/repos/{owner}/{repo}/contents/{encode_path(path)}")
        if isinstance(data, list):
            return [RemoteFile.model_validate(item) for item in data]
        return RemoteFile.model_validate(data)

    def put_content(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        expected_version_token: Optional[str],
        commit_message: str,
    ) -> str:
        """Create or update a file.

        Without ``expected_version_token`` the file is created; with it, the
        write only succeeds if the remote file is still at that version.

        Returns:
            The new version token

        Raises:
            RemoteConflictError: If the token is stale
        """
        body = {
            "message": commit_message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if expected_version_token:
            body["sha"] = expected_version_token

        data = self._request(
            "PUT", f"/repos/{owner}/{repo}/contents/{encode_path(path)}", json=body
        )
        return (data.get("content") or {}).get("sha", "")

    def delete_content(
        self, owner: str, repo: str, path: str, version_token: str, commit_message: str
    ) -> None:
        self._request(
            "DELETE",
            f"/repos/{owner}/{repo}/contents/{encode_path(path)}",
            json={"message": commit_message, "sha": version_token},
        )

    # --- Account ---

    def get_authenticated_user(self) -> dict:
        return self._request("GET", "/user")

    def get_user_repos(self, sort: str = "updated", direction: str = "desc") -> list[dict]:
        return self._request(
            "GET",
            "/user/repos",
            params={"per_page": PAGE_SIZE, "sort": sort, "direction": direction},
        )

    # --- Bulk scans ---

    def get_all_followers(self) -> list[dict]:
        return self._paginate_users("/user/followers")

    def get_all_following(self) -> list[dict]:
        return self._paginate_users("/user/following")

    def get_non_followers(self) -> list[dict]:
        """Accounts the user follows that do not follow back.

        Built from two full scans, so a rate limit in either one can leave
        the audit incomplete.
        """
        followers = {user.get("login") for user in self.get_all_followers()}
        return [user for user in self.get_all_following() if user.get("login") not in followers]

    def _paginate_users(self, endpoint: str, limit_pages: int = MAX_SCAN_PAGES) -> list[dict]:
        """Read every page of a user list, sequentially and paced.

        A rate-limit signal mid-scan ends the scan with the pages read so far.
        """
        results: list[dict] = []
        page = 1

        while page <= limit_pages:
            try:
                data = self._request(
                    "GET", endpoint, params={"per_page": PAGE_SIZE, "page": page}
                )
            except RemoteError as e:
                if e.status in RATE_LIMIT_STATUSES:
                    break
                raise

            if not data:
                break
            results.extend(data)
            page += 1

            if page <= limit_pages and self.page_delay_ms:
                time.sleep(self.page_delay_ms / 1000)

        return results
