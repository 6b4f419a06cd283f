"""Registry of known configuration keys and their grouping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

__all__ = [
    "SourceOption",
    "ConfigKey",
    "ConfigGroup",
    "LIFECYCLE_STATUS_KEYS",
    "CONFIG_SCHEMA",
    "register_source",
    "lookup_group",
    "full_key",
    "find_config_key",
]


@dataclass(frozen=True)
class SourceOption:
    """One option offered by a dynamic config value source."""

    label: str
    value: str


SourceFunc = Callable[[], "list[SourceOption]"]


@dataclass
class ConfigKey:
    """Description of a single configuration value."""

    key: str
    label: str
    example: str = ""
    default: str = ""
    options: tuple[str, ...] = ()
    env_var: str = ""
    secret: bool = False
    required: bool = False
    source: Optional[SourceFunc] = field(default=None, compare=False)


@dataclass
class ConfigGroup:
    """A related set of configuration values."""

    label: str
    keys: list[ConfigKey]


# Canonical ordering of lifecycle stages; drives status sort order.
LIFECYCLE_STATUS_KEYS: tuple[str, ...] = (
    "ready",
    "in_progress",
    "blocked",
    "review",
    "preview",
    "ready_for_release",
    "acceptance",
)


CONFIG_SCHEMA: dict[str, ConfigGroup] = {
    "issue_tracker": ConfigGroup(
        "issue tracker",
        [ConfigKey("issue_tracker", "provider", options=("jira",), required=True)],
    ),
    "jira": ConfigGroup(
        "jira",
        [
            ConfigKey("base_url", "base URL", example="https://mycompany.atlassian.net", required=True),
            ConfigKey("email", "email", required=True),
            ConfigKey("token", "API token", env_var="BOSUN_JIRA_TOKEN", secret=True, required=True),
            ConfigKey("project", "project key", example="PROJ"),
            ConfigKey("board_id", "board ID", example="123"),
        ],
    ),
    "statuses": ConfigGroup(
        "status mappings",
        [
            ConfigKey("ready", "ready", default="Ready"),
            ConfigKey("in_progress", "in progress", default="In Progress"),
            ConfigKey("blocked", "blocked", default="Blocked"),
            ConfigKey("review", "review", default="Review"),
            ConfigKey("preview", "in preview env", default="In Preview Env"),
            ConfigKey("ready_for_release", "ready for release", default="Ready for Release"),
            ConfigKey("acceptance", "acceptance", default="Acceptance"),
            ConfigKey("done", "done", default="Done"),
        ],
    ),
    "branch": ConfigGroup(
        "branch naming",
        [
            ConfigKey("template", "branch template", default="{{.Category}}/{{.IssueNumber}}_{{.IssueSlug}}"),
            ConfigKey("categories.story", "story category", default="feature"),
            ConfigKey("categories.bug", "bug category", default="fix"),
            ConfigKey("categories.task", "task category", default="chore"),
        ],
    ),
    "workspace": ConfigGroup(
        "workspace",
        [ConfigKey("workspace_root", "workspace root", example=".workspaces")],
    ),
    "code_host": ConfigGroup(
        "code host",
        [ConfigKey("code_host", "provider", options=("github",), required=True)],
    ),
    "github": ConfigGroup(
        "GitHub",
        [
            ConfigKey(
                "token",
                "personal access token",
                env_var="GITHUB_TOKEN",
                secret=True,
                required=True,
            )
        ],
    ),
    "pull_request": ConfigGroup(
        "pull request",
        [
            ConfigKey("base", "base branch", default="main"),
            ConfigKey("title_template", "PR title template", default="[{{.IssueKey}}] {{.IssueTitle}}"),
            ConfigKey("body_template", "PR body template"),
            ConfigKey("reviewers", "reviewers (GitHub usernames)"),
            ConfigKey("team_reviewers", "team reviewers (GitHub team slugs)"),
            ConfigKey("assignees", "assignees (GitHub usernames)"),
            ConfigKey("self_assign", "auto-assign PR author", default="true"),
        ],
    ),
    "notification": ConfigGroup(
        "notification",
        [ConfigKey("notification", "provider", options=("slack",))],
    ),
    "slack": ConfigGroup(
        "slack",
        [
            ConfigKey("auth", "auth method", options=("token", "local"), default="token"),
            ConfigKey("token", "API token", env_var="BOSUN_SLACK_TOKEN", secret=True),
            ConfigKey("workspace", "workspace name", example="mycompany"),
            ConfigKey("channel_review", "review channel", example="bb-prs"),
            ConfigKey("channel_release", "release channel", example="release_coordination"),
        ],
    ),
    "cicd": ConfigGroup(
        "CI/CD",
        [ConfigKey("cicd", "provider", options=("github_actions",))],
    ),
    "github_actions": ConfigGroup(
        "GitHub Actions",
        [
            ConfigKey(
                "workflows.preview.url_template",
                "preview URL template",
                example="https://host-ui-{{.Name}}.example.dev",
            ),
            ConfigKey(
                "workflows.preview.up.target",
                "preview up workflow",
                example="org/repo/.github/workflows/deploy-preview.yml",
            ),
            ConfigKey(
                "workflows.preview.up.inputs.services",
                "preview up services input",
                default="services-to-deploy",
            ),
            ConfigKey("workflows.preview.up.inputs.name", "preview up name input"),
            ConfigKey(
                "workflows.preview.down.target",
                "preview down workflow",
                example="org/repo/.github/workflows/teardown-preview.yml",
            ),
            ConfigKey("workflows.preview.down.inputs.name", "preview down name input"),
            ConfigKey(
                "workflows.release.target",
                "release workflow",
                example="org/repo/.github/workflows/deploy.yml",
            ),
            ConfigKey(
                "workflows.release.inputs.services",
                "release services input",
                default="services-to-deploy",
            ),
            ConfigKey("workflows.release.inputs.issue", "release issue input"),
        ],
    ),
    "color_mode": ConfigGroup(
        "color mode",
        [
            ConfigKey(
                "color_mode",
                "color mode",
                options=("truecolor", "ansi", "none"),
                default="truecolor",
            )
        ],
    ),
    "display_mode": ConfigGroup(
        "display mode",
        [
            ConfigKey(
                "display_mode",
                "display mode",
                options=("compact", "comfy"),
                default="compact",
            )
        ],
    ),
}


def register_source(group: str, key: str, source: Optional[SourceFunc]) -> None:
    """Attach a dynamic value source to a key within a group."""
    config_group = CONFIG_SCHEMA.get(group)
    if config_group is None:
        return
    for config_key in config_group.keys:
        if config_key.key == key:
            config_key.source = source


def lookup_group(name: str) -> Optional[ConfigGroup]:
    """Return the config group with the given name, or None."""
    return CONFIG_SCHEMA.get(name)


def full_key(group_name: str, key: ConfigKey) -> str:
    """Return the fully-qualified settings key for a group key.

    Top-level groups whose key equals the group name use the key as-is;
    nested groups prefix it, e.g. ``jira.base_url``.
    """
    if key.key == group_name or not group_name:
        return key.key
    return f"{group_name}.{key.key}"


def find_config_key(key: str) -> Optional[tuple[ConfigKey, str]]:
    """Find a fully-qualified key in the schema.

    Returns ``(config_key, group_name)`` or None when the key is unknown.
    """
    for group_name, group in CONFIG_SCHEMA.items():
        for config_key in group.keys:
            if full_key(group_name, config_key) == key:
                return config_key, group_name
    return None