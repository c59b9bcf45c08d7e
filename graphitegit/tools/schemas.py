"""Tool declarations for the reasoning engine and argument validation models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from graphitegit.constants import (
    TOOL_CREATE_OR_UPDATE_FILE,
    TOOL_DELETE_FILE,
    TOOL_LIST_FILES,
    TOOL_READ_FILE,
    TOOL_REPLACE_IN_FILE,
)

_OWNER = {
    "type": "string",
    "description": "Repository owner (optional, inferred from the current repository if not provided)",
}
_REPO = {
    "type": "string",
    "description": "Repository name (optional, inferred from the current repository if not provided)",
}
_MESSAGE = {"type": "string", "description": "Commit message"}


# Wire contract with the engine: names and required sets must stay stable.
TOOL_DEFINITIONS = [
    {
        "type": "function",
        "function": {
            "name": TOOL_LIST_FILES,
            "description": "List files in a repository directory.",
            "parameters": {
                "type": "object",
                "properties": {
                    "owner": _OWNER,
                    "repo": _REPO,
                    "path": {
                        "type": "string",
                        "description": "Directory path (default: current path, or the repository root)",
                    },
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_READ_FILE,
            "description": "Read the content of a file in the repository.",
            "parameters": {
                "type": "object",
                "properties": {
                    "owner": _OWNER,
                    "repo": _REPO,
                    "path": {"type": "string", "description": "File path"},
                },
                "required": ["path"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_CREATE_OR_UPDATE_FILE,
            "description": "Create a new file or update an existing file with its FULL content.",
            "parameters": {
                "type": "object",
                "properties": {
                    "owner": _OWNER,
                    "repo": _REPO,
                    "path": {"type": "string", "description": "File path"},
                    "content": {"type": "string", "description": "Full file content"},
                    "message": _MESSAGE,
                },
                "required": ["path", "content", "message"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_REPLACE_IN_FILE,
            "description": (
                "Replace every occurrence of an exact string in a file. Use this for small "
                "edits like comments or refactors. The search text must match the file exactly."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "owner": _OWNER,
                    "repo": _REPO,
                    "path": {"type": "string", "description": "File path"},
                    "search": {
                        "type": "string",
                        "description": "The exact string or code block to find",
                    },
                    "replace": {
                        "type": "string",
                        "description": "The new string or code block to replace it with",
                    },
                    "message": _MESSAGE,
                },
                "required": ["path", "search", "replace", "message"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_DELETE_FILE,
            "description": "Delete a file from the repository.",
            "parameters": {
                "type": "object",
                "properties": {
                    "owner": _OWNER,
                    "repo": _REPO,
                    "path": {"type": "string", "description": "File path"},
                    "message": _MESSAGE,
                },
                "required": ["path", "message"],
            },
        },
    },
]


class ToolArgs(BaseModel):
    """Arguments shared by every tool."""

    model_config = ConfigDict(extra="ignore")

    owner: Optional[str] = Field(None, description="Repository owner")
    repo: Optional[str] = Field(None, description="Repository name")


class ListFilesArgs(ToolArgs):
    path: Optional[str] = None


class ReadFileArgs(ToolArgs):
    path: str


class CreateOrUpdateFileArgs(ToolArgs):
    path: str
    content: str
    message: str


class ReplaceInFileArgs(ToolArgs):
    path: str
    search: str
    replace: str
    message: str


class DeleteFileArgs(ToolArgs):
    path: str
    message: str


ARGS_MODELS: dict[str, type[ToolArgs]] = {
    TOOL_LIST_FILES: ListFilesArgs,
    TOOL_READ_FILE: ReadFileArgs,
    TOOL_CREATE_OR_UPDATE_FILE: CreateOrUpdateFileArgs,
    TOOL_REPLACE_IN_FILE: ReplaceInFileArgs,
    TOOL_DELETE_FILE: DeleteFileArgs,
}
