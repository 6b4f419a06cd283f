import pytest

from bosun.schema import (
    CONFIG_SCHEMA,
    LIFECYCLE_STATUS_KEYS,
    ConfigKey,
    SourceOption,
    find_config_key,
    full_key,
    lookup_group,
    register_source,
)


@pytest.fixture
def restore_board_source():
    yield
    register_source("jira", "board_id", None)


def test_full_key_nested_group():
    key = ConfigKey("base_url", "base URL")
    assert full_key("jira", key) == "jira.base_url"


def test_full_key_top_level_group_uses_key_as_is():
    key = ConfigKey("issue_tracker", "provider")
    assert full_key("issue_tracker", key) == "issue_tracker"


def test_full_key_empty_group_name():
    key = ConfigKey("workspace_root", "workspace root")
    assert full_key("", key) == "workspace_root"


def test_find_config_key_known():
    found = find_config_key("jira.base_url")
    assert found is not None
    config_key, group_name = found
    assert group_name == "jira"
    assert config_key.label == "base URL"
    assert config_key.required is True


def test_find_config_key_top_level():
    found = find_config_key("issue_tracker")
    assert found is not None
    config_key, group_name = found
    assert group_name == "issue_tracker"
    assert config_key.options == ("jira",)


def test_find_config_key_unknown():
    assert find_config_key("jira.nonexistent") is None
    assert find_config_key("") is None


def test_every_schema_key_round_trips_through_find():
    for group_name, group in CONFIG_SCHEMA.items():
        for config_key in group.keys:
            found = find_config_key(full_key(group_name, config_key))
            assert found == (config_key, group_name)


def test_lookup_group():
    group = lookup_group("jira")
    assert group is not None
    assert group.label == "jira"
    assert [k.key for k in group.keys] == ["base_url", "email", "token", "project", "board_id"]
    assert lookup_group("not-a-group") is None


def test_lifecycle_keys_order():
    found = [find_config_key(f"statuses.{key}") for key in LIFECYCLE_STATUS_KEYS]
    assert [config_key.key for config_key, _ in found] == [
        "ready",
        "in_progress",
        "blocked",
        "review",
        "preview",
        "ready_for_release",
        "acceptance",
    ]


def test_lifecycle_keys_have_status_mappings():
    group = lookup_group("statuses")
    assert group is not None
    statuses = {k.key for k in group.keys}
    assert set(LIFECYCLE_STATUS_KEYS) <= statuses
    assert "done" in statuses


def test_status_defaults():
    assert find_config_key("statuses.in_progress")[0].default == "In Progress"
    assert find_config_key("statuses.preview")[0].default == "In Preview Env"
    assert find_config_key("statuses.ready_for_release")[0].default == "Ready for Release"


def test_secret_keys_come_from_env():
    for group in CONFIG_SCHEMA.values():
        for config_key in group.keys:
            if config_key.secret:
                assert config_key.env_var


def test_register_source_sets_and_clears(restore_board_source):
    def source():
        return [SourceOption("My Board (scrum, id: 42)", "42")]

    register_source("jira", "board_id", source)
    config_key, _ = find_config_key("jira.board_id")
    assert config_key.source is source
    assert config_key.source()[0].value == "42"

    other, _ = find_config_key("jira.project")
    assert other.source is None

    register_source("jira", "board_id", None)
    assert find_config_key("jira.board_id")[0].source is None


def test_register_source_unknown_group_is_ignored():
    register_source("nope", "board_id", lambda: [])
    assert lookup_group("nope") is None