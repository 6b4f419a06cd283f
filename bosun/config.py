"""Layered settings and just-in-time resolution of configuration values."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Optional, Union

from bosun.prompt import Prompter
from bosun.schema import ConfigGroup, ConfigKey, find_config_key, full_key, lookup_group

__all__ = [
    "Settings",
    "ConfigError",
    "ConfigResolver",
    "config_path_for_scope",
    "MANUAL_ENTRY",
]

log = logging.getLogger(__name__)

MANUAL_ENTRY = "__manual__"

_MISSING = object()
_TRUE_WORDS = {"1", "t", "true"}
_FALSE_WORDS = {"0", "f", "false"}


class ConfigError(Exception):
    """Raised when a configuration value is missing or cannot be resolved."""


def _find(node: Any, parts: list[str]) -> Any:
    """Look up a dotted path in nested mappings, case-insensitively."""
    if not parts:
        return node
    if not isinstance(node, Mapping):
        return _MISSING
    lowered = {str(k).lower(): v for k, v in node.items()}
    # Longest prefix first, so flat dotted keys like "categories.story" match.
    for split in range(len(parts), 0, -1):
        head = ".".join(parts[:split])
        if head in lowered:
            found = _find(lowered[head], parts[split:])
            if found is not _MISSING:
                return found
    return _MISSING


def _to_str(value: Any) -> str:
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


class Settings:
    """Configuration values with overrides, environment and file layers.

    Lookup order: values set at runtime, then environment variables
    (``<PREFIX>_<KEY>`` with dots replaced by underscores, empty values
    ignored), then the loaded configuration values. Keys are
    case-insensitive.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        env: Optional[MutableMapping[str, str]] = None,
        env_prefix: str = "BOSUN",
    ) -> None:
        self._values: Mapping[str, Any] = values or {}
        self.env: MutableMapping[str, str] = os.environ if env is None else env
        self._prefix = env_prefix
        self._overrides: dict[str, Any] = {}

    def _env_name(self, key: str) -> str:
        name = key.upper().replace(".", "_")
        return f"{self._prefix}_{name}" if self._prefix else name

    def _lookup(self, key: str) -> Any:
        key = key.lower()
        if key in self._overrides:
            return self._overrides[key]
        env_value = self.env.get(self._env_name(key), "")
        if env_value:
            return env_value
        return _find(self._values, key.split("."))

    def get(self, key: str) -> str:
        """Return the value as a string, or "" when unset."""
        return _to_str(self._lookup(key))

    def set(self, key: str, value: Any) -> None:
        """Override a value for the rest of this session."""
        self._overrides[key.lower()] = value

    def is_set(self, key: str) -> bool:
        """Return True if any layer provides the key."""
        return self._lookup(key) is not _MISSING

    def get_bool(self, key: str) -> bool:
        """Return the value as a boolean; unparseable values are False."""
        value = self._lookup(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        return False

    def get_list(self, key: str) -> list[str]:
        """Return the value as a list of strings.

        A plain string is split on whitespace.
        """
        value = self._lookup(key)
        if isinstance(value, (list, tuple)):
            return [_to_str(item) for item in value]
        if isinstance(value, str):
            return value.split()
        return []


def _default_global_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "bosun"


def config_path_for_scope(
    global_scope: bool,
    project_root: Union[str, Path, None] = None,
    global_dir: Union[str, Path, None] = None,
) -> Path:
    """Return the config file path for the project or global scope.

    Without a project root the global file is used. The global
    directory is created when needed.
    """
    if global_scope or not project_root:
        directory = Path(global_dir) if global_dir else _default_global_dir()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / "config.yaml"
    return Path(project_root) / ".bosun" / "config.yaml"


SaveFunc = Callable[[str, str], None]


class ConfigResolver:
    """Ensures configuration values are present, prompting when allowed.

    ``save`` persists a resolved value under its full key; when it is
    missing or fails, the value is kept for this session only.
    """

    def __init__(
        self,
        settings: Settings,
        prompter: Prompter,
        save: Optional[SaveFunc] = None,
    ) -> None:
        self._settings = settings
        self._prompter = prompter
        self._save = save

    def require(self, *args: str) -> None:
        """Ensure each key or group name is populated."""
        for key in args:
            group = lookup_group(key)
            if group is not None:
                self.resolve_group(key, group)
                continue

            found = find_config_key(key)
            if found is not None:
                config_key, group_name = found
                if self._settings.get(full_key(group_name, config_key)):
                    continue
                self.resolve_config_key(group_name, config_key)
                continue

            if self._settings.get(key):
                continue
            if not self._prompter.interactive:
                raise ConfigError(f"{key} not configured")
            value = self._prompter.value(key, "")
            if not value:
                raise ConfigError(f"{key} is required")
            self._settings.set(key, value)

    def resolve_group(self, group_name: str, group: ConfigGroup) -> None:
        """Resolve the missing keys of a group; set keys are left alone."""
        self._resolve_group(group_name, group, force_prompt=False)

    def resolve_group_reconfigure(self, group_name: str, group: ConfigGroup) -> None:
        """Prompt for every key of a group, offering current values."""
        self._resolve_group(group_name, group, force_prompt=True)

    def _resolve_group(self, group_name: str, group: ConfigGroup, force_prompt: bool) -> None:
        for config_key in group.keys:
            fk = full_key(group_name, config_key)

            if not force_prompt and self._settings.get(fk):
                continue

            if config_key.source is not None and self._prompter.interactive:
                try:
                    picked = self.pick_from_source(config_key)
                except Exception as exc:  # a failing source falls back to a prompt
                    log.debug("source for %s failed: %s", fk, exc)
                    picked = ""
                if picked:
                    self._persist(fk, config_key.label, picked, quiet_failure=True)
                    continue
                if not config_key.required:
                    continue

            if not force_prompt and config_key.default and not config_key.required:
                self._settings.set(fk, config_key.default)
                continue

            try:
                self.resolve_config_key(group_name, config_key)
            except ConfigError:
                if config_key.required:
                    raise

    def resolve_config_key(self, group_name: str, key: ConfigKey) -> None:
        """Obtain one key's value by prompting, then save it.

        Secrets backed by an environment variable go into the
        environment for this session and are never written to a file.
        """
        fk = full_key(group_name, key)

        if not self._prompter.interactive:
            if key.default:
                self._settings.set(fk, key.default)
                return
            if key.env_var:
                raise ConfigError(
                    f"{key.label} not set (set {fk} in config or {key.env_var} env var)"
                )
            raise ConfigError(f"{key.label} not configured (set {fk} in config)")

        if key.secret and key.env_var:
            value = self._prompter.secret(key.label)
            if not value:
                raise ConfigError(f"{key.label} is required")
            self._settings.env[key.env_var] = value
            self._settings.set(fk, value)
            log.info("%s: (set for this session)", key.label)
            return

        current = self._settings.get(fk)
        default_value = current or key.default or key.example

        if key.options:
            value = self._prompter.select(key.label, [(o, o) for o in key.options])
        else:
            value = self._prompter.with_default(key.label, default_value)

        if not value:
            if key.required:
                raise ConfigError(f"{key.label} is required")
            return

        self._persist(fk, key.label, value, quiet_failure=False)

    def pick_from_source(self, key: ConfigKey) -> str:
        """Offer the options from a key's source and return the chosen value.

        Returns "" when the source has no options or manual entry is
        chosen. Errors raised by the source propagate.
        """
        if key.source is None:
            return ""
        items = list(key.source())
        if not items:
            return ""
        options = [(item.label, item.value) for item in items]
        options.append(("Enter manually...", MANUAL_ENTRY))
        selected = self._prompter.select(key.label, options)
        return "" if selected == MANUAL_ENTRY else selected

    def _persist(self, fk: str, label: str, value: str, quiet_failure: bool) -> None:
        self._settings.set(fk, value)
        if self._save is None:
            return
        try:
            self._save(fk, value)
        except (OSError, ConfigError) as exc:
            if not quiet_failure:
                log.warning("could not save %s: %s", fk, exc)
            return
        log.info("%s: %s", label, value)