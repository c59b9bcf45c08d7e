"""Workspace context and the disclosure policy that filters it for the engine."""

from dataclasses import dataclass, replace
from typing import Any, Optional

DisclosedContext = dict[str, Any]


@dataclass(frozen=True)
class RepositoryRef:
    """The repository the user is currently browsing."""

    owner: str
    name: str
    default_branch: Optional[str] = None

    @classmethod
    def parse(cls, full_name: str) -> "RepositoryRef":
        """Parse an ``owner/name`` string.

        Raises:
            ValueError: If the string is not of the form owner/name
        """
        owner, sep, name = full_name.strip().strip("/").partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Expected owner/name, got: {full_name!r}")
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> dict:
        data = {"owner": self.owner, "name": self.name, "full_name": self.full_name}
        if self.default_branch:
            data["default_branch"] = self.default_branch
        return data


@dataclass(frozen=True)
class OpenFile:
    """Metadata about the file open in the viewer."""

    path: str
    version_token: Optional[str] = None
    is_binary: bool = False
    size: Optional[int] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"path": self.path, "is_binary": self.is_binary}
        if self.version_token:
            data["sha"] = self.version_token
        if self.size is not None:
            data["size"] = self.size
        return data


@dataclass
class ContextState:
    """What the user is looking at right now.

    Updated by the presentation layer whenever the user navigates. The agent
    only ever reads it, through ``project``.
    """

    active_view: str = "dashboard"
    current_repository: Optional[RepositoryRef] = None
    current_path: Optional[str] = None
    current_file: Optional[OpenFile] = None
    file_content: Optional[str] = None
    current_selection: Optional[str] = None

    def merged(self, **changes: Any) -> "ContextState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ContextDisclosurePolicy:
    """User-controlled switches for what the engine gets to see."""

    include_repo_map: bool = True
    include_file_content: bool = True
    include_selection: bool = True

    def merged(self, **changes: bool) -> "ContextDisclosurePolicy":
        return replace(self, **changes)


# policy flag -> ContextState fields it governs
POLICY_FIELDS = {
    "include_repo_map": ("current_repository", "current_path"),
    "include_file_content": ("current_file", "file_content"),
    "include_selection": ("current_selection",),
}


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def project(state: ContextState, policy: ContextDisclosurePolicy) -> DisclosedContext:
    """Compute the subset of the context disclosed to the reasoning engine.

    ``active_view`` is always disclosed; every other field is disclosed only
    when its policy flag is on. Unset fields are omitted.

    Args:
        state: Current workspace context
        policy: Disclosure switches

    Returns:
        JSON-serializable dict
    """
    disclosed: DisclosedContext = {"active_view": state.active_view}

    for flag, fields in POLICY_FIELDS.items():
        if not getattr(policy, flag):
            continue
        for name in fields:
            value = getattr(state, name)
            if value is not None:
                disclosed[name] = _serialize(value)

    return disclosed

