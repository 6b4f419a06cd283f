import pytest

from bosun.actions import (
    Action,
    ActionState,
    ConfirmationRequired,
    PlanOp,
    PlanOpts,
    default_plan_opts,
    is_auto_approve,
    resolve_status,
    run_plan,
    status_action,
)
from bosun.config import ConfigError, Settings
from bosun.prompt import Cancelled


class FakeTracker:
    def __init__(self):
        self.calls = []

    def set_status(self, issue_key, status):
        self.calls.append((issue_key, status))


def settings(values=None):
    return Settings(values=values, env={})


def make_action(name, state=ActionState.NEEDED, log=None, op=PlanOp.CREATE, with_apply=True):
    def apply():
        if log is not None:
            log.append(name)

    return Action(op, "deploy", "repo", name, lambda: (state, name), apply if with_apply else None)


def test_default_plan_opts():
    assert default_plan_opts(False) == PlanOpts(confirm=True, apply=True)
    assert default_plan_opts(True) == PlanOpts(confirm=True, apply=False)


@pytest.mark.parametrize("yes,force,expected", [(False, False, False), (True, False, True), (False, True, True)])
def test_is_auto_approve(yes, force, expected):
    assert is_auto_approve(yes, force) is expected


def test_resolve_status_default():
    assert resolve_status(settings(), "done") == "Done"
    assert resolve_status(settings(), "preview") == "In Preview Env"


def test_resolve_status_configured():
    assert resolve_status(settings({"statuses": {"done": "Closed"}}), "done") == "Closed"


def test_resolve_status_unknown_raises():
    with pytest.raises(ConfigError):
        resolve_status(settings(), "nonexistent")


def test_status_action_without_tracker():
    assert status_action(None, settings(), "PROJ-1", "", "done") is None


def test_status_action_unknown_status():
    assert status_action(FakeTracker(), settings(), "PROJ-1", "", "nonexistent") is None


def test_status_action_already_there_case_insensitive():
    action = status_action(FakeTracker(), settings(), "PROJ-1", "done", "done")
    assert action.assess() == (ActionState.COMPLETED, "done")
    assert action.op is PlanOp.MODIFY
    assert action.name == "PROJ-1"


def test_status_action_transition_detail():
    action = status_action(FakeTracker(), settings(), "PROJ-1", "Review", "done")
    assert action.assess() == (ActionState.NEEDED, "Review → Done")


def test_status_action_unknown_current():
    action = status_action(FakeTracker(), settings(), "PROJ-1", "", "done")
    assert action.assess() == (ActionState.NEEDED, "→ Done")


def test_status_action_apply_calls_tracker():
    tracker = FakeTracker()
    action = status_action(tracker, settings(), "PROJ-1", "", "review")
    action.apply()
    assert tracker.calls == [("PROJ-1", "Review")]


def test_run_plan_empty():
    assert run_plan([], PlanOpts()) == []


def test_run_plan_nothing_to_change():
    log = []
    actions = [make_action("a", ActionState.COMPLETED, log)]
    assert run_plan(actions, PlanOpts(), confirm=lambda items: True) == []
    assert log == []
    assert actions[0].state is ActionState.COMPLETED


def test_run_plan_dry_run_cancels_without_applying():
    log = []
    with pytest.raises(Cancelled):
        run_plan([make_action("a", log=log)], PlanOpts(apply=False))
    assert log == []


def test_run_plan_needs_confirmation_when_not_interactive():
    log = []
    with pytest.raises(ConfirmationRequired, match="--yes"):
        run_plan([make_action("a", log=log)], PlanOpts(), confirm=lambda items: True, interactive=False)
    assert log == []


def test_run_plan_refused_confirmation():
    log = []
    with pytest.raises(Cancelled):
        run_plan([make_action("a", log=log)], PlanOpts(), confirm=lambda items: False)
    assert log == []


def test_run_plan_confirm_receives_planned_items():
    seen = []
    actions = [make_action("a"), make_action("b", ActionState.SKIPPED), make_action("c", ActionState.COMPLETED)]

    def confirm(items):
        seen.extend(item.name for item in items)
        return True

    applied = run_plan(actions, PlanOpts(), confirm=confirm)
    assert seen == ["a", "c"]
    applied_names = [item.name for item in applied]
    assert "a" in applied_names
    assert "b" not in applied_names


def test_run_plan_applies_in_order_without_confirm():
    log = []
    actions = [
        make_action("a", log=log),
        make_action("b", ActionState.SKIPPED, log),
        make_action("c", log=log),
        make_action("d", log=log, op=PlanOp.DETAIL, with_apply=False),
    ]
    applied = run_plan(actions, PlanOpts(confirm=False))
    assert log == ["a", "c"]
    assert [item.name for item in applied] == ["a", "c"]
    assert actions[0].detail == "a"


def test_run_plan_stops_at_first_error():
    log = []

    def boom():
        raise RuntimeError("failed")

    actions = [
        make_action("a", log=log),
        Action(PlanOp.CREATE, "deploy", "repo", "b", lambda: (ActionState.NEEDED, ""), boom),
        make_action("c", log=log),
    ]
    with pytest.raises(RuntimeError, match="failed"):
        run_plan(actions, PlanOpts(confirm=False))
    assert log == ["a"]


def test_run_plan_no_change_op_with_apply_still_runs():
    log = []
    actions = [make_action("adopt", log=log, op=PlanOp.NO_CHANGE)]
    run_plan(actions, PlanOpts(confirm=False))
    assert log == ["adopt"]