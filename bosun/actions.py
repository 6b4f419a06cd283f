"""Plan actions: assess what would change, confirm, then apply."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

from bosun.config import ConfigError, Settings
from bosun.prompt import Cancelled
from bosun.schema import find_config_key

__all__ = [
    "ActionState",
    "PlanOp",
    "Action",
    "PlanOpts",
    "ConfirmationRequired",
    "default_plan_opts",
    "is_auto_approve",
    "resolve_status",
    "status_action",
    "run_plan",
]


class ActionState(enum.Enum):
    """Outcome of assessing an action."""

    NEEDED = "needed"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class PlanOp(enum.Enum):
    """How an action appears in a plan."""

    CREATE = "create"
    MODIFY = "modify"
    DESTROY = "destroy"
    NO_CHANGE = "no-change"
    DETAIL = "detail"


Assess = Callable[[], "tuple[ActionState, str]"]
Apply = Callable[[], Any]


@dataclass
class Action:
    """One plan step: ``assess`` decides whether it is needed, ``apply`` does it."""

    op: PlanOp
    action: str
    kind: str
    name: str
    assess: Assess
    apply: Optional[Apply] = None
    state: Optional[ActionState] = field(default=None, init=False)
    detail: str = field(default="", init=False)

    @property
    def is_change(self) -> bool:
        """True once assessed as needed and there is something to apply."""
        return self.state is ActionState.NEEDED and self.apply is not None


@dataclass(frozen=True)
class PlanOpts:
    """Whether to ask for confirmation and whether to apply at all."""

    confirm: bool = True
    apply: bool = True


class ConfirmationRequired(Exception):
    """Raised when a plan needs confirmation that cannot be asked for."""

    def __init__(
        self,
        message: str = "confirmation required (pass --yes to approve, or --dry-run to preview)",
    ) -> None:
        super().__init__(message)


class StatusTracker(Protocol):
    def set_status(self, issue_key: str, status: str) -> Any: ...


def default_plan_opts(dry_run: bool) -> PlanOpts:
    """Options for lifecycle commands: confirm, and apply unless a dry run."""
    return PlanOpts(confirm=True, apply=not dry_run)


def is_auto_approve(yes: bool = False, force: bool = False) -> bool:
    """True when either --yes or --force was given."""
    return bool(yes or force)


def resolve_status(settings: Settings, key: str) -> str:
    """Return the tracker status name mapped to a lifecycle key."""
    name = settings.get(f"statuses.{key}")
    if name:
        return name
    found = find_config_key(f"statuses.{key}")
    if found is not None and found[0].default:
        return found[0].default
    raise ConfigError(f"status {key!r} not configured (set statuses.{key} in config)")


def status_action(
    tracker: Optional[StatusTracker],
    settings: Settings,
    issue_key: str,
    current_status: str,
    target_status_key: str,
) -> Optional[Action]:
    """Build the action moving an issue to a lifecycle status.

    Returns None when there is no tracker or the status cannot be resolved.
    """
    if tracker is None:
        return None
    try:
        status_name = resolve_status(settings, target_status_key)
    except ConfigError:
        return None

    def assess() -> tuple[ActionState, str]:
        if current_status and current_status.casefold() == status_name.casefold():
            return ActionState.COMPLETED, current_status
        if current_status:
            return ActionState.NEEDED, f"{current_status} → {status_name}"
        return ActionState.NEEDED, f"→ {status_name}"

    def apply() -> Any:
        return tracker.set_status(issue_key, status_name)

    return Action(PlanOp.MODIFY, "status", "issue", issue_key, assess, apply)


def run_plan(
    actions: Sequence[Action],
    opts: PlanOpts,
    confirm: Optional[Callable[[list[Action]], bool]] = None,
    interactive: bool = True,
) -> list[Action]:
    """Assess every action, confirm if required, then apply the needed ones.

    Returns the applied actions in order. Raises Cancelled on a dry run
    or when confirmation is refused, ConfirmationRequired when it cannot
    be asked for, and the first error raised while applying.
    """
    for item in actions:
        item.state, item.detail = item.assess()

    planned = [item for item in actions if item.state is not ActionState.SKIPPED]
    if not planned or not any(item.is_change for item in planned):
        return []

    if not opts.apply:
        raise Cancelled()

    if opts.confirm:
        if confirm is None or not interactive:
            raise ConfirmationRequired()
        if not confirm(planned):
            raise Cancelled()

    applied: list[Action] = []
    for item in planned:
        if item.is_change:
            assert item.apply is not None
            item.apply()
            applied.append(item)
    return applied