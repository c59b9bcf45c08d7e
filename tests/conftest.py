"""Pytest configuration and fixtures."""

import base64
import hashlib
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from graphitegit.config import Config
from graphitegit.context import ContextState, RepositoryRef
from graphitegit.errors import RemoteConflictError, RemoteNotFoundError
from graphitegit.llm import EngineResponse, ProposedCall
from graphitegit.tools.executor import ToolExecutor
from graphitegit.tools.github import RemoteFile
from graphitegit.utils.logging import SessionLogger


class FakeRepository:
    """In-memory stand-in for the GitHub contents API.

    Files are keyed by path; each write produces a new sha, and writes with
    a stale sha are refused the way GitHub refuses them.
    """

    def __init__(self, files: Optional[dict[str, Union[str, bytes]]] = None):
        self.files: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple] = []
        self._writes = 0
        for path, content in (files or {}).items():
            self.seed(path, content)

    def seed(self, path: str, content: Union[str, bytes]) -> str:
        data = content.encode("utf-8") if isinstance(content, str) else content
        self._writes += 1
        sha = hashlib.sha1(data + str(self._writes).encode()).hexdigest()
        self.files[path] = (data, sha)
        return sha

    def text(self, path: str) -> str:
        return self.files[path][0].decode("utf-8")

    def sha(self, path: str) -> str:
        return self.files[path][1]

    @property
    def mutating_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in ("put", "delete")]

    def _entry(self, path: str) -> RemoteFile:
        data, sha = self.files[path]
        return RemoteFile(
            name=path.rsplit("/", 1)[-1],
            path=path,
            sha=sha,
            size=len(data),
            type="file",
            content=base64.b64encode(data).decode("ascii"),
            encoding="base64",
        )

    def get_content(self, owner, repo, path=""):
        self.calls.append(("get", owner, repo, path))
        path = path.strip("/")
        if path in self.files:
            return self._entry(path)

        prefix = f"{path}/" if path else ""
        children: dict[str, RemoteFile] = {}
        for file_path in sorted(self.files):
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            head = rest.split("/", 1)[0]
            if "/" in rest:
                children.setdefault(head, RemoteFile(
                    name=head, path=prefix + head, sha="tree-" + head, type="dir"
                ))
            else:
                data, sha = self.files[file_path]
                children[head] = RemoteFile(
                    name=head, path=file_path, sha=sha, size=len(data), type="file"
                )

        if not children and path:
            raise RemoteNotFoundError(f"Not Found: {path}", 404)
        return list(children.values())

    def put_content(self, owner, repo, path, content, expected_version_token, commit_message):
        self.calls.append(("put", owner, repo, path, expected_version_token, commit_message))
        current = self.files.get(path)
        if current is None and expected_version_token:
            raise RemoteNotFoundError(f"Not Found: {path}", 404)
        if current is not None and current[1] != expected_version_token:
            raise RemoteConflictError(f"Conflict: {path} does not match", 409)
        return self.seed(path, content)

    def delete_content(self, owner, repo, path, version_token, commit_message):
        self.calls.append(("delete", owner, repo, path, version_token, commit_message))
        current = self.files.get(path)
        if current is None:
            raise RemoteNotFoundError(f"Not Found: {path}", 404)
        if current[1] != version_token:
            raise RemoteConflictError(f"Conflict: {path} does not match", 409)
        del self.files[path]


class ScriptedEngine:
    """Reasoning engine that replays prepared responses and records each call."""

    def __init__(self, *responses: Union[EngineResponse, Exception]):
        self.responses = list(responses)
        self.calls: list[dict] = []
        self.on_converse: Optional[Callable[[], None]] = None

    def converse(self, history, context, model, api_key):
        self.calls.append({
            "history": list(history),
            "context": context,
            "model": model,
            "api_key": api_key,
        })
        if self.on_converse:
            self.on_converse()
        if not self.responses:
            return EngineResponse(text="Done.")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def reply(text: str = "", *calls: tuple) -> EngineResponse:
    """Build an engine response from (name, args) pairs."""
    return EngineResponse(
        text=text,
        proposed_calls=[ProposedCall(name=name, args=args) for name, args in calls],
    )


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for testing."""
    return Path(tmp_path)


@pytest.fixture
def fake_repo():
    """Create an in-memory repository with a few files."""
    return FakeRepository({
        "README.md": "# Demo\n",
        "src/main.py": "def hello():\n    # TODO\n    return 'world'\n",
        "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\xff\xfe",
    })


@pytest.fixture
def repo_context():
    """Context with octo/demo open at the repository root."""
    return ContextState(
        active_view="repository",
        current_repository=RepositoryRef(owner="octo", name="demo"),
        current_path="",
    )


@pytest.fixture
def logger(temp_dir):
    """Create a session logger under the temp directory."""
    return SessionLogger(temp_dir, run_id="test_run")


@pytest.fixture
def executor(fake_repo, logger):
    """Create a tool executor backed by the fake repository."""
    return ToolExecutor(fake_repo, logger=logger)


@pytest.fixture
def mock_config(temp_dir):
    """Create a mock configuration."""
    return Config(
        anthropic_api_key="test_key",
        github_token="test_token",
        home_dir=temp_dir,
    )
