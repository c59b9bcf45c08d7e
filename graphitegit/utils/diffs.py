"""Utilities for exact text replacement and diff bookkeeping."""

import difflib
from dataclasses import dataclass

from unidiff import PatchSet

from graphitegit.constants import PATCH_MISMATCH_MESSAGE
from graphitegit.errors import PatchMismatchError


@dataclass
class DiffStats:
    """Line counts of a single-file unified diff."""

    added: int = 0
    removed: int = 0

    def __str__(self) -> str:
        return f"+{self.added} -{self.removed}"


def replace_exact(content: str, search: str, replace: str) -> tuple[str, int]:
    """Replace every occurrence of ``search`` in ``content``.

    Plain substring matching, never a regex. An absent (or empty) search
    string is an error rather than a no-op.

    Args:
        content: Current file content
        search: Exact text to find
        replace: Replacement text

    Returns:
        Tuple of (new_content, occurrences_replaced)

    Raises:
        PatchMismatchError: If ``search`` is empty or not found
    """
    if not search:
        raise PatchMismatchError(PATCH_MISMATCH_MESSAGE)

    occurrences = content.count(search)
    if occurrences == 0:
        raise PatchMismatchError(PATCH_MISMATCH_MESSAGE)

    return content.replace(search, replace), occurrences


def _as_lines(text: str) -> list[str]:
    # unidiff needs every line newline-terminated
    return [line + "\n" for line in normalize_line_endings(text).splitlines()]


def create_patch(original: str, modified: str, filename: str = "file") -> str:
    """Create a unified diff patch.

    Args:
        original: Original file content
        modified: Modified file content
        filename: Filename to use in patch header

    Returns:
        Unified diff string (empty if contents are equal)
    """
    diff = difflib.unified_diff(
        _as_lines(original) if original else [],
        _as_lines(modified) if modified else [],
        fromfile=f"a/{filename}",
        tofile=f"b/{filename}",
    )
    return "".join(diff)


def diff_stats(patch_str: str) -> DiffStats:
    """Count added and removed lines in a unified diff."""
    if not patch_str:
        return DiffStats()

    patchset = PatchSet(patch_str)
    return DiffStats(
        added=sum(patched_file.added for patched_file in patchset),
        removed=sum(patched_file.removed for patched_file in patchset),
    )


def normalize_line_endings(content: str) -> str:
    """Normalize line endings to LF.

    Args:
        content: Content with potentially mixed line endings

    Returns:
        Content with normalized line endings
    """
    return content.replace("\r\n", "\n").replace("\r", "\n")
