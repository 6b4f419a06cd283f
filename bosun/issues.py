"""Issue identifiers: extraction, resolution and picker ordering."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

from bosun.actions import resolve_status
from bosun.config import ConfigError, Settings
from bosun.schema import LIFECYCLE_STATUS_KEYS

__all__ = [
    "Issue",
    "BoardColumn",
    "IssueNotSpecified",
    "extract_issue",
    "build_status_index",
    "sort_issues",
    "sort_issues_by_board",
    "sort_issues_by_status",
    "build_column_name_index",
    "display_status",
    "resolve_issue",
]

# Matches common tracker IDs such as PROJ-123 or CS-42.
_ISSUE_PATTERN = re.compile(r"[A-Z][A-Z0-9]+-[0-9]+")


@dataclass(frozen=True)
class Issue:
    """An issue as reported by the tracker."""

    key: str
    title: str = ""
    status: str = ""
    status_id: str = ""
    type: str = ""
    url: str = ""


@dataclass(frozen=True)
class BoardColumn:
    """A board column and the status IDs it holds, left to right."""

    name: str
    status_ids: tuple[str, ...] = ()


class IssueNotSpecified(Exception):
    """Raised when no issue identifier can be determined."""

    def __init__(
        self,
        message: str = "issue not specified: use --issue, set BOSUN_ISSUE, or run from a workspace",
    ) -> None:
        super().__init__(message)


def extract_issue(s: str) -> str:
    """Return the first issue ID found in ``s``, or ""."""
    match = _ISSUE_PATTERN.search(s or "")
    return match.group(0) if match else ""


def build_status_index(settings: Optional[Settings] = None) -> dict[str, int]:
    """Map lower-cased status names to their lifecycle position."""
    if settings is None:
        settings = Settings(env={})
    index: dict[str, int] = {}
    for position, key in enumerate(LIFECYCLE_STATUS_KEYS):
        try:
            name = resolve_status(settings, key)
        except ConfigError:
            continue
        if name:
            index[name.lower()] = position
    return index


def sort_issues(
    issues: Iterable[Issue],
    columns: Optional[Sequence[BoardColumn]] = None,
    settings: Optional[Settings] = None,
) -> list[Issue]:
    """Order issues by board column when columns are given, else by lifecycle."""
    if columns:
        return sort_issues_by_board(issues, columns)
    return sort_issues_by_status(issues, settings)


def sort_issues_by_board(
    issues: Iterable[Issue], columns: Sequence[BoardColumn]
) -> list[Issue]:
    """Order issues by the position of their status ID on the board.

    Unknown status IDs go last; equal positions keep their order.
    """
    index: dict[str, int] = {}
    position = 0
    for column in columns:
        for status_id in column.status_ids:
            index[status_id] = position
            position += 1
    end = position
    return sorted(issues, key=lambda issue: index.get(issue.status_id, end))


def sort_issues_by_status(
    issues: Iterable[Issue], settings: Optional[Settings] = None
) -> list[Issue]:
    """Order issues by lifecycle status, case-insensitively.

    Unknown statuses go last; equal positions keep their order.
    """
    issues = list(issues)
    index = build_status_index(settings)
    if not index:
        return issues
    end = len(index)
    return sorted(issues, key=lambda issue: index.get(issue.status.lower(), end))


def build_column_name_index(
    columns: Optional[Sequence[BoardColumn]],
) -> Optional[dict[str, str]]:
    """Map each status ID to the name of its column; None without columns."""
    if not columns:
        return None
    return {
        status_id: column.name
        for column in columns
        for status_id in column.status_ids
    }


def display_status(issue: Issue, col_names: Optional[Mapping[str, str]]) -> str:
    """Return the board column name for the issue, else its raw status."""
    if col_names and issue.status_id in col_names:
        return col_names[issue.status_id]
    return issue.status


def resolve_issue(
    flag: Optional[str] = None,
    settings: Optional[Settings] = None,
    workspace_name: Optional[str] = None,
    branch: Optional[str] = None,
    prompt: Optional[Callable[[], str]] = None,
) -> str:
    """Determine the issue to operate on.

    Tried in order: the flag, the ``issue`` setting (BOSUN_ISSUE), an ID
    in the workspace name or path, an ID in the branch name, then the
    prompt. Raises IssueNotSpecified when none yields an issue.
    """
    if flag:
        return flag
    if settings is not None:
        configured = settings.get("issue")
        if configured:
            return configured
    if workspace_name:
        found = extract_issue(workspace_name)
        if found:
            return found
    if branch:
        found = extract_issue(branch)
        if found:
            return found
    if prompt is not None:
        answered = prompt()
        if answered:
            return answered
    raise IssueNotSpecified()