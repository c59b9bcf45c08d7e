"""Tool execution against the remote repository."""

import json
from dataclasses import dataclass
from typing import Optional, Protocol

from pydantic import ValidationError

from graphitegit.constants import (
    EMPTY_FILE_MESSAGE,
    MISSING_CONTEXT_MESSAGE,
    MUTATING_TOOLS,
    NO_SERVICE_MESSAGE,
    TOOL_CREATE_OR_UPDATE_FILE,
    TOOL_DELETE_FILE,
    TOOL_LIST_FILES,
    TOOL_READ_FILE,
    TOOL_REPLACE_IN_FILE,
)
from graphitegit.context import ContextState
from graphitegit.conversation import ToolInvocation
from graphitegit.errors import (
    GraphiteError,
    RemoteError,
    RemoteNotFoundError,
    ToolResolutionError,
)
from graphitegit.events import MutationCounter
from graphitegit.tools.github import FileOrListing, RemoteFile
from graphitegit.tools.schemas import (
    ARGS_MODELS,
    CreateOrUpdateFileArgs,
    DeleteFileArgs,
    ListFilesArgs,
    ReadFileArgs,
    ReplaceInFileArgs,
    ToolArgs,
)
from graphitegit.utils.diffs import create_patch, diff_stats, replace_exact
from graphitegit.utils.logging import SessionLogger


class RemoteRepository(Protocol):
    """Content operations the executor needs from the hosting provider."""

    def get_content(self, owner: str, repo: str, path: str = "") -> FileOrListing: ...

    def put_content(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        expected_version_token: Optional[str],
        commit_message: str,
    ) -> str: ...

    def delete_content(
        self, owner: str, repo: str, path: str, version_token: str, commit_message: str
    ) -> None: ...


@dataclass
class ToolResult:
    """Result of executing one tool call."""

    result: str
    success: bool
    tool_name: str = ""


@dataclass
class Target:
    owner: str
    repo: str
    path: str


class ToolExecutor:
    """Maps tool invocations onto remote repository operations.

    ``execute`` never raises: every failure is folded into the result string
    so it can be handed back to the engine.
    """

    def __init__(
        self,
        repository: Optional[RemoteRepository],
        mutations: Optional[MutationCounter] = None,
        logger: Optional[SessionLogger] = None,
    ):
        """Initialize executor.

        Args:
            repository: Remote repository adapter (None when not connected)
            mutations: Counter bumped after each successful mutation
            logger: Optional session logger for diffs
        """
        self.repository = repository
        self.mutations = mutations or MutationCounter()
        self.logger = logger
        self._handlers = {
            TOOL_LIST_FILES: self._list_files,
            TOOL_READ_FILE: self._read_file,
            TOOL_CREATE_OR_UPDATE_FILE: self._create_or_update_file,
            TOOL_REPLACE_IN_FILE: self._replace_in_file,
            TOOL_DELETE_FILE: self._delete_file,
        }

    def execute(self, invocation: ToolInvocation, context: ContextState) -> ToolResult:
        """Run a tool call.

        Args:
            invocation: The approved invocation
            context: Context used to infer owner/repo/path

        Returns:
            ToolResult; ``result`` starts with "Error:" on failure
        """
        name = invocation.name
        handler = self._handlers.get(name)
        if handler is None:
            return self._failure(name, f"Unknown tool: {name}.")

        if self.repository is None:
            return self._failure(name, NO_SERVICE_MESSAGE)

        try:
            args = ARGS_MODELS[name].model_validate(invocation.args or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}"
                for err in e.errors()
            )
            return self._failure(name, f"Invalid arguments for {name}: {problems}")

        try:
            target = self.resolve(args, context)
            result = handler(args, target)
        except GraphiteError as e:
            return self._failure(name, str(e))
        except UnicodeDecodeError:
            return self._failure(name, "File is binary and cannot be handled as text.")
        except Exception as e:
            return self._failure(name, f"Unexpected error: {e}")

        if name in MUTATING_TOOLS:
            self.mutations.bump()
        return ToolResult(result=result, success=True, tool_name=name)

    @staticmethod
    def resolve(args: ToolArgs, context: ContextState) -> Target:
        """Fill owner/repo/path from the context where the engine left them out.

        Raises:
            ToolResolutionError: If owner or repo cannot be determined
        """
        current = context.current_repository
        owner = args.owner or (current.owner if current else None)
        repo = args.repo or (current.name if current else None)
        path = getattr(args, "path", None) or context.current_path or ""

        if not owner or not repo:
            raise ToolResolutionError(MISSING_CONTEXT_MESSAGE)
        return Target(owner=owner, repo=repo, path=path.strip("/"))

    def _failure(self, name: str, message: str) -> ToolResult:
        return ToolResult(result=f"Error: {message}", success=False, tool_name=name)

    # --- Tools ---

    def _list_files(self, args: ListFilesArgs, target: Target) -> str:
        listing = self.repository.get_content(target.owner, target.repo, target.path)
        if isinstance(listing, RemoteFile):
            listing = [listing]
        return json.dumps([entry.summary() for entry in listing], indent=2)

    def _read_file(self, args: ReadFileArgs, target: Target) -> str:
        remote = self.repository.get_content(target.owner, target.repo, target.path)
        if isinstance(remote, list) or not remote.content:
            return EMPTY_FILE_MESSAGE
        if remote.is_binary:
            raise RemoteError(f"{target.path} is a binary file and cannot be read as text.")
        return remote.text()

    def _fetch_file(self, target: Target) -> RemoteFile:
        remote = self.repository.get_content(target.owner, target.repo, target.path)
        if isinstance(remote, list):
            raise RemoteError(f"{target.path or '/'} is a directory, not a file.")
        return remote

    def _create_or_update_file(self, args: CreateOrUpdateFileArgs, target: Target) -> str:
        # Discover the current version first; absence means create.
        existing: Optional[RemoteFile]
        try:
            existing = self._fetch_file(target)
        except RemoteNotFoundError:
            existing = None

        patch = ""
        if existing is not None and not existing.is_binary:
            patch = create_patch(existing.text(), args.content, target.path)

        token = existing.sha if existing else None
        self.repository.put_content(
            target.owner, target.repo, target.path, args.content, token, args.message
        )
        self._log_patch(target, patch)

        if existing is not None:
            return f"Success: File updated: {target.path}"
        return f"Success: File created: {target.path}"

    def _replace_in_file(self, args: ReplaceInFileArgs, target: Target) -> str:
        remote = self._fetch_file(target)
        if remote.is_binary:
            raise RemoteError(f"{target.path} is a binary file and cannot be patched.")

        current = remote.text()
        updated, occurrences = replace_exact(current, args.search, args.replace)
        patch = create_patch(current, updated, target.path)
        stats = diff_stats(patch)

        self.repository.put_content(
            target.owner, target.repo, target.path, updated, remote.sha, args.message
        )
        self._log_patch(target, patch)

        plural = "occurrence" if occurrences == 1 else "occurrences"
        return (
            f"Success: Content replaced in {target.path} "
            f"({occurrences} {plural}, {stats} lines)."
        )

    def _delete_file(self, args: DeleteFileArgs, target: Target) -> str:
        try:
            handle = self._fetch_file(target).handle()
        except RemoteNotFoundError:
            raise RemoteNotFoundError(
                f"Cannot delete file. File not found: {target.path}", 404
            )

        self.repository.delete_content(
            target.owner, target.repo, handle.path, handle.version_token, args.message
        )
        return f"Success: File deleted: {target.path}"

    def _log_patch(self, target: Target, patch: str) -> None:
        if self.logger is None or not patch:
            return
        try:
            self.logger.save_diff(f"{target.owner}_{target.repo}_{target.path}", patch)
        except OSError:
            pass  # Ignore log write errors
