import pytest

from bosun.config import (
    MANUAL_ENTRY,
    ConfigError,
    ConfigResolver,
    Settings,
    config_path_for_scope,
)
from bosun.prompt import Cancelled, Prompter
from bosun.schema import CONFIG_SCHEMA, ConfigGroup, ConfigKey, SourceOption
import io


def make_prompter(answers="", interactive=True):
    return Prompter(stdin=io.StringIO(answers), stdout=io.StringIO(), interactive=interactive)


def make_resolver(answers="", interactive=True, values=None, env=None, save=None):
    settings = Settings(values=values, env={} if env is None else env)
    resolver = ConfigResolver(settings, make_prompter(answers, interactive), save=save)
    return settings, resolver


# --- Settings ---


def test_settings_nested_lookup():
    settings = Settings(values={"jira": {"base_url": "https://jira.example.com"}}, env={})
    assert settings.get("jira.base_url") == "https://jira.example.com"
    assert settings.get("JIRA.Base_URL") == "https://jira.example.com"
    assert settings.get("jira.missing") == ""


def test_settings_flat_dotted_key_inside_group():
    settings = Settings(values={"branch": {"categories.story": "feature"}}, env={})
    assert settings.get("branch.categories.story") == "feature"


def test_settings_env_overrides_values():
    env = {"BOSUN_ISSUE": "PROJ-789"}
    settings = Settings(values={"issue": "PROJ-1"}, env=env)
    assert settings.get("issue") == "PROJ-789"


def test_settings_empty_env_is_ignored():
    settings = Settings(values={"issue": "PROJ-1"}, env={"BOSUN_ISSUE": ""})
    assert settings.get("issue") == "PROJ-1"


def test_settings_set_overrides_env():
    settings = Settings(env={"BOSUN_ISSUE": "PROJ-ENV"})
    settings.set("issue", "PROJ-SET")
    assert settings.get("issue") == "PROJ-SET"


def test_settings_is_set():
    settings = Settings(values={"pull_request": {"self_assign": False}}, env={})
    assert settings.is_set("pull_request.self_assign")
    assert not settings.is_set("pull_request.base")


@pytest.mark.parametrize(
    "raw,expected",
    [("true", True), ("1", True), ("T", True), ("false", False), ("0", False), ("junk", False), (True, True)],
)
def test_settings_get_bool(raw, expected):
    settings = Settings(values={"flag": raw}, env={})
    assert settings.get_bool("flag") is expected


def test_settings_get_bool_unset_is_false():
    assert Settings(env={}).get_bool("missing") is False


def test_settings_get_list_from_list_and_string():
    settings = Settings(values={"a": ["x", "y"], "b": "x  y z"}, env={})
    assert settings.get_list("a") == ["x", "y"]
    assert settings.get_list("b") == ["x", "y", "z"]
    assert settings.get_list("c") == []


def test_settings_bool_renders_as_string():
    settings = Settings(values={"flag": True}, env={})
    assert settings.get("flag") == "true"


# --- require ---


def test_require_skips_set_known_key():
    settings, resolver = make_resolver(interactive=False, values={"jira": {"base_url": "https://a.example.com"}})
    resolver.require("jira.base_url")
    assert settings.get("jira.base_url") == "https://a.example.com"


def test_require_unknown_key_non_interactive_raises():
    _, resolver = make_resolver(interactive=False)
    with pytest.raises(ConfigError, match="custom.thing not configured"):
        resolver.require("custom.thing")


def test_require_unknown_key_prompts_and_sets():
    settings, resolver = make_resolver(answers="hello\n")
    resolver.require("custom.thing")
    assert settings.get("custom.thing") == "hello"


def test_require_unknown_key_blank_answer_raises():
    _, resolver = make_resolver(answers="\n")
    with pytest.raises(ConfigError, match="is required"):
        resolver.require("custom.thing")


def test_require_group_applies_defaults_non_interactive():
    settings, resolver = make_resolver(interactive=False)
    resolver.require("statuses")
    assert settings.get("statuses.done") == "Done"
    assert settings.get("statuses.ready") == "Ready"


def test_require_known_missing_key_non_interactive_raises():
    _, resolver = make_resolver(interactive=False)
    with pytest.raises(ConfigError, match="base URL not configured"):
        resolver.require("jira.base_url")


# --- resolve_config_key ---


def test_resolve_config_key_non_interactive_env_var_message():
    _, resolver = make_resolver(interactive=False)
    key = CONFIG_SCHEMA["jira"].keys[2]
    with pytest.raises(ConfigError) as info:
        resolver.resolve_config_key("jira", key)
    assert "BOSUN_JIRA_TOKEN" in str(info.value)
    assert "jira.token" in str(info.value)


def test_resolve_config_key_secret_goes_to_env():
    env = {}
    settings, resolver = make_resolver(answers="token\n", env=env)
    key = CONFIG_SCHEMA["jira"].keys[2]
    resolver.resolve_config_key("jira", key)
    assert env["BOSUN_JIRA_TOKEN"] == "token"
    assert settings.get("jira.token") == "token"


def test_resolve_config_key_secret_blank_raises():
    _, resolver = make_resolver(answers="\n")
    key = CONFIG_SCHEMA["github"].keys[0]
    with pytest.raises(ConfigError, match="personal access token is required"):
        resolver.resolve_config_key("github", key)


def test_resolve_config_key_select_option():
    saved = []
    settings, resolver = make_resolver(answers="1\n", save=lambda k, v: saved.append((k, v)))
    key = CONFIG_SCHEMA["issue_tracker"].keys[0]
    resolver.resolve_config_key("issue_tracker", key)
    assert settings.get("issue_tracker") == "jira"
    assert saved == [("issue_tracker", "jira")]


def test_resolve_config_key_blank_accepts_default():
    settings, resolver = make_resolver(answers="\n")
    key = CONFIG_SCHEMA["pull_request"].keys[0]
    resolver.resolve_config_key("pull_request", key)
    assert settings.get("pull_request.base") == "main"


def test_resolve_config_key_save_failure_keeps_value():
    def failing_save(key, value):
        raise OSError("read-only")

    settings, resolver = make_resolver(answers="PROJ\n", save=failing_save)
    key = CONFIG_SCHEMA["jira"].keys[3]
    resolver.resolve_config_key("jira", key)
    assert settings.get("jira.project") == "PROJ"


def test_resolve_config_key_eof_cancels():
    _, resolver = make_resolver(answers="")
    key = CONFIG_SCHEMA["jira"].keys[3]
    with pytest.raises(Cancelled):
        resolver.resolve_config_key("jira", key)


# --- groups ---


def test_resolve_group_skips_set_keys():
    group = ConfigGroup("demo", [ConfigKey("name", "name", required=True)])
    settings, resolver = make_resolver(interactive=False, values={"demo": {"name": "kept"}})
    resolver.resolve_group("demo", group)
    assert settings.get("demo.name") == "kept"


def test_resolve_group_optional_failures_are_ignored():
    group = ConfigGroup("demo", [ConfigKey("opt", "optional")])
    settings, resolver = make_resolver(interactive=False)
    resolver.resolve_group("demo", group)
    assert settings.get("demo.opt") == ""


def test_resolve_group_required_failure_raises():
    group = ConfigGroup("demo", [ConfigKey("req", "needed", required=True)])
    _, resolver = make_resolver(interactive=False)
    with pytest.raises(ConfigError, match="needed not configured"):
        resolver.resolve_group("demo", group)


def test_resolve_group_reconfigure_prompts_set_keys():
    group = ConfigGroup("demo", [ConfigKey("name", "name", default="x")])
    settings, resolver = make_resolver(answers="changed\n", values={"demo": {"name": "old"}})
    resolver.resolve_group_reconfigure("demo", group)
    assert settings.get("demo.name") == "changed"


def test_resolve_group_uses_source_pick():
    source = lambda: [SourceOption("Board A", "42"), SourceOption("Board B", "43")]
    group = ConfigGroup("demo", [ConfigKey("board", "board", source=source)])
    settings, resolver = make_resolver(answers="2\n")
    resolver.resolve_group("demo", group)
    assert settings.get("demo.board") == "43"


def test_resolve_group_failing_source_falls_back_for_required():
    def source():
        raise RuntimeError("api down")

    group = ConfigGroup("demo", [ConfigKey("board", "board", required=True, source=source)])
    settings, resolver = make_resolver(answers="77\n")
    resolver.resolve_group("demo", group)
    assert settings.get("demo.board") == "77"


def test_resolve_group_failing_source_skips_optional():
    def source():
        raise RuntimeError("api down")

    group = ConfigGroup("demo", [ConfigKey("board", "board", source=source)])
    settings, resolver = make_resolver(answers="77\n")
    resolver.resolve_group("demo", group)
    assert settings.get("demo.board") == ""


# --- pick_from_source ---


def test_pick_from_source_manual_entry_returns_blank():
    key = ConfigKey("board", "board", source=lambda: [SourceOption("Board A", "42")])
    _, resolver = make_resolver(answers="2\n")
    assert resolver.pick_from_source(key) == ""
    assert MANUAL_ENTRY == "__manual__"


def test_pick_from_source_empty_returns_blank():
    key = ConfigKey("board", "board", source=lambda: [])
    _, resolver = make_resolver()
    assert resolver.pick_from_source(key) == ""


def test_pick_from_source_propagates_error():
    def source():
        raise ValueError("bad")

    key = ConfigKey("board", "board", source=source)
    _, resolver = make_resolver()
    with pytest.raises(ValueError):
        resolver.pick_from_source(key)


# --- config_path_for_scope ---


def test_config_path_project_scope(tmp_path):
    path = config_path_for_scope(False, project_root=tmp_path, global_dir=tmp_path / "g")
    assert path == tmp_path / ".bosun" / "config.yaml"


def test_config_path_global_scope_creates_dir(tmp_path):
    global_dir = tmp_path / "global"
    path = config_path_for_scope(True, project_root=tmp_path, global_dir=global_dir)
    assert path == global_dir / "config.yaml"
    assert global_dir.is_dir()


def test_config_path_without_project_falls_back_to_global(tmp_path):
    global_dir = tmp_path / "global"
    path = config_path_for_scope(False, project_root=None, global_dir=global_dir)
    assert path == global_dir / "config.yaml"