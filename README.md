# bosun

Library pieces for automating lifecycle tasks around issues, pull requests,
releases and preview environments. It has no dependencies beyond the
standard library.

## Modules

- `bosun.schema`: the registry of known configuration keys (`ConfigKey`,
  `ConfigGroup`, `SourceOption`, `CONFIG_SCHEMA`, `LIFECYCLE_STATUS_KEYS`),
  with `lookup_group`, `full_key`, `find_config_key`, and `register_source`
  for attaching a dynamic option source to a key.
- `bosun.prompt`: `Prompter`, which reads answers line by line from a text
  stream (`required`, `confirm`, `value`, `with_default`, `select`,
  `secret`). When input is not interactive, `required`, `confirm`, `value`
  and `with_default` return their fallback, while `select` and `secret`
  raise `RuntimeError`. `Cancelled` is raised when input ends or is
  interrupted. `is_interactive` tells whether a stream is a terminal.
- `bosun.config`: `Settings`, a case-insensitive dotted-key store layering
  runtime overrides over `BOSUN_`-prefixed environment variables over the
  values it was given; and `ConfigResolver`, which fills in missing keys or
  whole groups of the schema by prompting, then hands each value to an
  optional `save` callback. `config_path_for_scope` returns the project
  (`<root>/.bosun/config.yaml`) or global config file path. Missing values
  that cannot be obtained raise `ConfigError`.
- `bosun.actions`: `Action`, `PlanOp`, `ActionState`, `PlanOpts` and
  `run_plan`, which assesses every action, raises `Cancelled` on a dry run
  or a refused confirmation, raises `ConfirmationRequired` when
  confirmation is needed but no interactive `confirm` callback is
  available, and applies the needed actions in order. `status_action`
  builds an issue status transition; `resolve_status` maps a lifecycle key
  to a status name; `default_plan_opts` and `is_auto_approve` cover the
  dry-run and `--yes`/`--force` switches.
- `bosun.issues`: `Issue`, `BoardColumn`, `extract_issue`,
  `resolve_issue` (flag, then the `issue` setting, then workspace name,
  branch name and an optional prompt; `IssueNotSpecified` otherwise), and
  stable ordering of issues by board column (`sort_issues_by_board`) or
  lifecycle status (`sort_issues_by_status`), with
  `build_column_name_index` and `display_status` for labels.
- `bosun.preview_resolve`: `validate_preview_name`,
  `classify_probe_status`, `http_probe` (HEAD, GET on 405, certificates not
  verified), `render_stage_url`, `stage_input_name`, `probe_preview_name`
  and `PreviewResolver`, which combines a requested name with the name
  stored on the issue and returns a `PreviewResolution` saying whether to
  deploy, redeploy, adopt, keep or tear down.
- `bosun.preview`: builders for the deploy, teardown, adopt and current
  actions of a preview deployment (`build_deploy_actions`,
  `build_teardown_actions`, `adopt_action`, `current_action`), for
  workflow inputs (`build_workflow_inputs`) and for the image-override JSON
  (`build_image_overrides`).

## Examples

```python
from bosun.issues import extract_issue

extract_issue("feature/PROJ-123_add-widget")  # "PROJ-123"
extract_issue("main")                         # ""
```

```python
from bosun.issues import Issue, sort_issues_by_status

issues = [Issue("P-1", status="Done"), Issue("P-2", status="In Progress")]
[i.key for i in sort_issues_by_status(issues)]  # ["P-2", "P-1"]
```

```python
from bosun.config import Settings

settings = Settings(values={"jira": {"base_url": "https://tracker.example.com"}}, env={})
settings.get("jira.base_url")  # "https://tracker.example.com"

Settings(env={"BOSUN_ISSUE": "PROJ-7"}).get("issue")  # "PROJ-7"
```

```python
from bosun.preview_resolve import validate_preview_name

validate_preview_name("brave-falcon")   # passes
validate_preview_name("BraveFalcon")    # raises ValueError
```

## What it does not do

There is no command-line program here: nothing parses arguments or runs a
lifecycle command end to end. It holds no clients for an issue tracker,
code host, CI/CD service, chat service or git; those are passed in as
objects with the few methods the builders call (`set_status`,
`get_property`, `delete_property`, `set_property`, `trigger_workflow`,
`get_pr_for_branch`). It does not read or write configuration files either:
`Settings` takes its values as a mapping, and `ConfigResolver` persists
through the `save` callback you supply.

## Tests

```
pip install -e ".[test]"
pytest
```