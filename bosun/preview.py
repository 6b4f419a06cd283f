"""Actions that deploy, adopt and tear down preview environments."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence

from bosun.actions import Action, ActionState, PlanOp
from bosun.config import Settings
from bosun.preview_resolve import PreviewResolution, stage_input_name

__all__ = [
    "WorkflowTarget",
    "TriggerRequest",
    "PullRequest",
    "AffectedResult",
    "RepoPR",
    "adopt_action",
    "current_action",
    "build_teardown_actions",
    "build_deploy_actions",
    "build_workflow_inputs",
    "build_image_overrides",
]

log = logging.getLogger(__name__)

_DEPLOY_REF = "main"


@dataclass(frozen=True)
class WorkflowTarget:
    """A workflow in a repository that a stage triggers."""

    label: str
    owner: str
    repo: str
    workflow: str


@dataclass(frozen=True)
class TriggerRequest:
    """A request to dispatch a CI/CD workflow."""

    owner: str
    repository: str
    workflow: str
    ref: str
    inputs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PullRequest:
    """A pull request on the code host; number 0 means none."""

    number: int = 0
    url: str = ""
    body: str = ""


@dataclass(frozen=True)
class AffectedResult:
    """Services affected by the changes on a repository's branch."""

    repo_name: str
    repo_path: str
    branch: str
    services: tuple[str, ...] = ()
    has_changes: bool = False


@dataclass(frozen=True)
class RepoPR:
    """A repository paired with its pull request."""

    repo_name: str
    branch: str
    owner: str
    repo: str
    pr: PullRequest


class Pipeline(Protocol):
    def trigger_workflow(self, request: TriggerRequest) -> Any: ...


class PropertyWriter(Protocol):
    def set_property(self, issue_key: str, properties: Mapping[str, str]) -> Any: ...


class CodeHost(Protocol):
    def get_pr_for_branch(self, owner: str, repo: str, branch: str) -> PullRequest: ...


ParseRemote = Callable[[str], "tuple[str, str]"]


def adopt_action(tracker: Optional[PropertyWriter], issue_key: str, name: str) -> Action:
    """Record an existing, untracked environment on the issue without deploying."""

    def assess() -> tuple[ActionState, str]:
        return ActionState.NEEDED, "reachable"

    def apply() -> Any:
        if tracker is None:
            return None
        return tracker.set_property(issue_key, {"preview_name": name})

    return Action(PlanOp.NO_CHANGE, "adopt", "env", name, assess, apply)


def current_action(name: str) -> Action:
    """A no-op item for a tracked environment that is already alive."""

    def assess() -> tuple[ActionState, str]:
        return ActionState.COMPLETED, "current"

    return Action(PlanOp.NO_CHANGE, "deploy", "env", name, assess)


def _teardown_action(
    pipeline: Pipeline,
    target: WorkflowTarget,
    name: str,
    name_key: str,
    issue_input_key: str,
    issue_key: str,
) -> Action:
    def assess() -> tuple[ActionState, str]:
        return ActionState.NEEDED, name

    def apply() -> Any:
        if not name.strip():
            raise ValueError("preview down: refusing to trigger without an env name")
        inputs = {name_key: name}
        if issue_input_key:
            inputs[issue_input_key] = issue_key
        return pipeline.trigger_workflow(
            TriggerRequest(target.owner, target.repo, target.workflow, _DEPLOY_REF, inputs)
        )

    return Action(PlanOp.DESTROY, "teardown", "repo", target.label, assess, apply)


def build_teardown_actions(
    pipeline: Optional[Pipeline],
    settings: Settings,
    targets: Sequence[WorkflowTarget],
    name: str,
    issue_key: str,
) -> list[Action]:
    """Actions that tear down the preview environment ``name``.

    Returns no actions when the name is blank, no workflow or pipeline
    is available, or the workflow's name input is not configured (a
    teardown without a name may clean up everything).
    """
    stage = "preview.down"
    if not name.strip():
        log.error("preview down: refusing to trigger without an env name")
        return []
    if not targets:
        log.info("preview down: no workflow configured")
        return []
    if pipeline is None:
        log.info("preview down: CI/CD not available")
        return []

    name_key = stage_input_name(settings, stage, "name")
    if not name_key:
        log.error(
            "preview down: github_actions.workflows.preview.down.inputs.name is not configured"
        )
        return []
    issue_input_key = stage_input_name(settings, stage, "issue")

    return [
        _teardown_action(pipeline, target, name, name_key, issue_input_key, issue_key)
        for target in targets
    ]


def _deploy_action(
    pipeline: Pipeline,
    tracker: Optional[PropertyWriter],
    target: WorkflowTarget,
    op: PlanOp,
    inputs: dict[str, str],
    issue_key: str,
    preview_name: str,
) -> Action:
    def assess() -> tuple[ActionState, str]:
        return ActionState.NEEDED, f"{_DEPLOY_REF} → {target.workflow}"

    def apply() -> Any:
        result = pipeline.trigger_workflow(
            TriggerRequest(target.owner, target.repo, target.workflow, _DEPLOY_REF, dict(inputs))
        )
        if tracker is not None and preview_name:
            try:
                tracker.set_property(issue_key, {"preview_name": preview_name})
            except Exception as exc:  # metadata is best-effort
                log.debug("could not store preview name: %s", exc)
        return result

    return Action(op, "deploy", "repo", target.label, assess, apply)


def _detail_action(repo_pr: RepoPR) -> Action:
    tag = f"pr-{repo_pr.pr.number}"

    def assess() -> tuple[ActionState, str]:
        return ActionState.NEEDED, tag

    return Action(PlanOp.DETAIL, "deploy", "repo", repo_pr.repo_name, assess)


def build_deploy_actions(
    pipeline: Optional[Pipeline],
    tracker: Optional[PropertyWriter],
    settings: Settings,
    targets: Sequence[WorkflowTarget],
    issue_key: str,
    resolution: PreviewResolution,
    inputs: Optional[Mapping[str, str]] = None,
    pr_data: Sequence[RepoPR] = (),
) -> list[Action]:
    """Actions that trigger the preview deploy workflow for each target.

    The deploy name goes into the configured name input; each pull
    request is listed as a detail line under every target.
    """
    if pipeline is None:
        return []
    if not targets:
        log.info("preview up: no workflow configured")
        return []

    workflow_inputs = dict(inputs or {})
    name_key = stage_input_name(settings, "preview.up", "name")
    if name_key:
        workflow_inputs[name_key] = resolution.deploy_name

    op = PlanOp.MODIFY if resolution.is_redeploy else PlanOp.CREATE

    actions: list[Action] = []
    for target in targets:
        actions.append(
            _deploy_action(
                pipeline, tracker, target, op, workflow_inputs, issue_key, resolution.preview_name
            )
        )
        actions.extend(_detail_action(repo_pr) for repo_pr in pr_data)
    return actions


def build_workflow_inputs(
    settings: Settings,
    stage: str,
    issue: str,
    services: Sequence[str] = (),
    affected: Iterable[AffectedResult] = (),
) -> dict[str, str]:
    """Build the dispatch inputs for a stage's workflow.

    Explicit ``services`` override the services found in ``affected``.
    """
    inputs: dict[str, str] = {}

    issue_input = stage_input_name(settings, stage, "issue")
    if issue_input:
        inputs[issue_input] = issue

    services_input = stage_input_name(settings, stage, "services")
    if not services_input:
        return inputs

    if services:
        inputs[services_input] = ",".join(services)
        return inputs

    found: list[str] = []
    for result in affected:
        if result.has_changes:
            log.info("%s: %s", result.repo_name, ", ".join(result.services) or "no services")
        found.extend(result.services)
    if found:
        inputs[services_input] = ",".join(found)
    return inputs


def build_image_overrides(
    host: Optional[CodeHost],
    results: Iterable[AffectedResult],
    parse_remote: ParseRemote,
) -> tuple[str, list[RepoPR]]:
    """Map each affected service to its branch's pull-request image tag.

    Returns the overrides as compact JSON (e.g. ``{"svc":"pr-123"}``,
    "" when there are none) and the pull requests that were found.
    Repositories whose remote or pull request cannot be found are skipped.
    """
    changed = [r for r in results if r.has_changes and r.services]
    if not changed:
        return "", []
    if host is None:
        raise RuntimeError("code host (needed for image overrides): not configured")

    overrides: dict[str, str] = {}
    prs: list[RepoPR] = []
    for result in changed:
        try:
            owner, repo = parse_remote(result.repo_path)
        except Exception as exc:
            log.error("%s: %s", result.repo_name, exc)
            continue
        try:
            pr = host.get_pr_for_branch(owner, repo, result.branch)
        except Exception as exc:
            log.error("%s: %s", result.repo_name, exc)
            continue
        if pr is None or not pr.number:
            log.info("%s: no PR for branch %r, skipping", result.repo_name, result.branch)
            continue

        tag = f"pr-{pr.number}"
        for service in result.services:
            overrides[service] = tag
        prs.append(RepoPR(result.repo_name, result.branch, owner, repo, pr))
        log.info("%s: PR #%d → %s", result.repo_name, pr.number, tag)

    if not overrides:
        return "", prs
    return json.dumps(overrides, sort_keys=True, separators=(",", ":")), prs