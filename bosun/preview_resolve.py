"""Resolution of the preview environment name against stored metadata."""

from __future__ import annotations

import enum
import json
import logging
import random
import re
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from bosun.config import Settings
from bosun.prompt import Cancelled, Prompter
from bosun.schema import find_config_key

__all__ = [
    "ProbeOutcome",
    "AdoptChoice",
    "PreviewResolution",
    "PreviewResolver",
    "validate_preview_name",
    "classify_probe_status",
    "http_probe",
    "render_stage_url",
    "stage_input_name",
    "probe_preview_name",
]

log = logging.getLogger(__name__)

# Approximates k8s subdomain rules: lowercase letter start, lowercase
# alphanumerics or hyphens, alphanumeric end, at most 63 characters.
_PREVIEW_NAME_RE = re.compile(r"[a-z]([a-z0-9-]{0,61}[a-z0-9])?")
_NAME_PLACEHOLDER_RE = re.compile(r"\{\{\s*\.Name\s*\}\}")

_ADJECTIVES = (
    "brave", "calm", "eager", "fancy", "gentle", "happy", "jolly", "keen",
    "lively", "mighty", "nimble", "proud", "quick", "silent", "swift", "witty",
)
_NOUNS = (
    "badger", "crane", "eagle", "falcon", "fox", "heron", "lynx", "marten",
    "otter", "owl", "panda", "raven", "seal", "tiger", "walrus", "wolf",
)


class ProbeOutcome(enum.Enum):
    """Result of an environment existence check.

    UNKNOWN means no probe was possible (no name or no URL template).
    """

    UNKNOWN = "unknown"
    ALIVE = "alive"
    DEAD = "dead"


class AdoptChoice(enum.Enum):
    """The user's decision when an environment already exists."""

    ADOPT_EXISTING = "adopt"
    CHOOSE_ANOTHER = "another"
    CANCEL = "cancel"


@dataclass
class PreviewResolution:
    """What the preview plan should do.

    ``deploy_name``/``teardown_name`` drive workflow triggers (empty means
    skip); ``is_adopt`` and ``is_current`` replace the deploy with a
    no-op item; ``is_redeploy`` marks a deploy to an environment known
    to exist.
    """

    preview_name: str = ""
    preview_url: str = ""
    deploy_name: str = ""
    teardown_name: str = ""
    is_adopt: bool = False
    is_current: bool = False
    is_redeploy: bool = False


class PropertyTracker(Protocol):
    def get_property(self, issue_key: str) -> Any: ...

    def delete_property(self, issue_key: str) -> Any: ...


Probe = Callable[[str], bool]


def validate_preview_name(name: str) -> None:
    """Raise ValueError unless ``name`` is a valid environment name."""
    if not name:
        raise ValueError("name is empty")
    if not _PREVIEW_NAME_RE.fullmatch(name):
        raise ValueError(
            f"invalid name {name!r}: must be lowercase letters, digits, and hyphens; "
            "start with a letter, end alphanumeric, max 63 chars"
        )


def classify_probe_status(status: int) -> tuple[bool, bool]:
    """Map an HTTP status to ``(alive, definitive)``.

    404 is a definitive miss, 5xx is indefinite, any other 2xx-4xx is
    alive (auth-gated hosts answer 401/403).
    """
    if status == 404:
        return False, True
    if 500 <= status < 600:
        return False, False
    if 200 <= status < 500:
        return True, True
    return False, False


def http_probe(url: str, timeout: float = 3.0, attempts: int = 2) -> bool:
    """Probe ``url`` with HEAD (GET on 405) and report whether it is alive.

    Certificates are not verified. Raises RuntimeError when no attempt
    gives a definitive answer.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=context))

    def request(method: str) -> int:
        req = urllib.request.Request(url, method=method)
        try:
            with opener.open(req, timeout=timeout) as response:
                return response.status
        except urllib.error.HTTPError as exc:
            exc.close()
            return exc.code

    last_error: Optional[BaseException] = None
    for _ in range(attempts):
        try:
            status = request("HEAD")
            if status == 405:
                status = request("GET")
        except (urllib.error.URLError, OSError, ValueError) as exc:
            last_error = exc
            continue
        alive, definitive = classify_probe_status(status)
        if definitive:
            return alive
    if last_error is not None:
        raise RuntimeError(str(last_error)) from last_error
    raise RuntimeError("indeterminate response after retry")


def render_stage_url(settings: Settings, stage: str, name: str) -> str:
    """Render the stage's URL template for ``name``; "" when not possible."""
    if not name:
        return ""
    template = settings.get(f"github_actions.workflows.{stage}.url_template")
    if not template:
        return ""
    return _NAME_PLACEHOLDER_RE.sub(lambda _: name, template)


def stage_input_name(settings: Settings, stage: str, input_name: str) -> str:
    """Return the workflow input parameter configured for a stage, or ""."""
    key = f"github_actions.workflows.{stage}.inputs.{input_name}"
    value = settings.get(key)
    if value:
        return value
    found = find_config_key(key)
    if found is not None:
        return found[0].default
    return ""


def probe_preview_name(
    settings: Settings,
    stage: str,
    name: str,
    force: bool = False,
    probe: Optional[Probe] = None,
) -> tuple[ProbeOutcome, str]:
    """Check whether the environment for ``name`` exists.

    Returns the outcome and, when a failed probe was tolerated because
    of ``force``, the URL that could not be verified.
    """
    if not name:
        return ProbeOutcome.UNKNOWN, ""
    url = render_stage_url(settings, stage, name)
    if not url:
        return ProbeOutcome.UNKNOWN, ""
    probe = probe or http_probe
    try:
        alive = probe(url)
    except Exception as exc:
        if force:
            return ProbeOutcome.DEAD, url
        raise RuntimeError(f"verifying {url}: {exc}") from exc
    return (ProbeOutcome.ALIVE if alive else ProbeOutcome.DEAD), ""


def _generate_name() -> str:
    return f"{random.choice(_ADJECTIVES)}-{random.choice(_NOUNS)}"


def _stored_name(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray, str)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return ""
    if not isinstance(raw, Mapping):
        return ""
    value = raw.get("preview_name", "")
    return value if isinstance(value, str) else ""


class PreviewResolver:
    """Combines a requested name with the name stored on the issue.

    Probes both environments, clears stale metadata at once, prompts
    on conflicts and returns a PreviewResolution. Setting ``interactive``
    to true asks for a name even when one would be generated.
    """

    def __init__(
        self,
        settings: Settings,
        prompter: Prompter,
        tracker: Optional[PropertyTracker] = None,
        issue_key: str = "",
        stage: str = "preview",
        force: bool = False,
        name_generator: Optional[Callable[[], str]] = None,
        probe: Optional[Probe] = None,
    ) -> None:
        self._settings = settings
        self._prompter = prompter
        self._tracker = tracker
        self._issue_key = issue_key
        self._stage = stage
        self._force = force
        self._generate = name_generator or _generate_name
        self._probe = probe

    def _stored_preview_name(self) -> str:
        if self._tracker is None:
            return ""
        try:
            raw = self._tracker.get_property(self._issue_key)
        except Exception:
            return ""
        return _stored_name(raw).strip()

    def _probe_name(self, name: str) -> tuple[ProbeOutcome, str]:
        return probe_preview_name(self._settings, self._stage, name, self._force, self._probe)

    def _url(self, name: str) -> str:
        return render_stage_url(self._settings, self._stage, name)

    def _enforce_valid_name(self, name: str) -> str:
        while True:
            try:
                validate_preview_name(name)
                return name
            except ValueError as exc:
                log.error("%s", exc)
                if not self._prompter.interactive:
                    raise
            name = self._prompter.with_default("preview name", self._generate()).strip()
            if not name:
                raise Cancelled()

    def _prompt_adopt(self, name: str) -> tuple[AdoptChoice, str]:
        if not self._prompter.interactive:
            raise RuntimeError(
                f"environment {name!r} already exists; pass --force to redeploy or run interactively"
            )
        selected = self._prompter.select(
            f"environment {name!r} already exists",
            [
                ("adopt existing (skip deploy)", AdoptChoice.ADOPT_EXISTING.value),
                ("choose another name", AdoptChoice.CHOOSE_ANOTHER.value),
                ("cancel", AdoptChoice.CANCEL.value),
            ],
        )
        choice = AdoptChoice(selected)
        if choice is AdoptChoice.CHOOSE_ANOTHER:
            new_name = self._prompter.with_default("preview name", self._generate())
            return choice, new_name.strip()
        return choice, ""

    def _handle_conflict(self, name: str) -> PreviewResolution:
        choice, new_name = self._prompt_adopt(name)
        if choice is AdoptChoice.ADOPT_EXISTING:
            return PreviewResolution(
                preview_name=name, preview_url=self._url(name), is_adopt=True
            )
        if choice is AdoptChoice.CHOOSE_ANOTHER:
            return self.resolve(new_name)
        raise Cancelled()

    def resolve(self, flag_name: str = "") -> PreviewResolution:
        """Resolve the requested name (possibly empty) into a plan outline."""
        flag_name = (flag_name or "").strip()
        if flag_name:
            flag_name = self._enforce_valid_name(flag_name)

        meta_name = self._stored_preview_name()

        meta_probe, meta_force_url = self._probe_name(meta_name)
        flag_probe, flag_force_url = self._probe_name(flag_name)

        for url in (meta_force_url, flag_force_url):
            if url:
                log.warning("couldn't verify %s, proceeding (--force)", url)

        if meta_probe is ProbeOutcome.DEAD and meta_name and self._tracker is not None:
            try:
                self._tracker.delete_property(self._issue_key)
            except Exception as exc:
                log.error("couldn't clear stale metadata: %s", exc)
            else:
                log.info("cleared stale metadata: %s", meta_name)
            meta_name = ""
            meta_probe = ProbeOutcome.UNKNOWN

        res = PreviewResolution()

        if not flag_name and not meta_name:
            name = self._generate()
            if self._settings.get_bool("interactive") and self._prompter.interactive:
                name = self._prompter.with_default("preview name", name).strip()
            res.preview_name = name
            res.deploy_name = name

        elif flag_name and not meta_name:
            res.preview_name = flag_name
            if flag_probe is ProbeOutcome.ALIVE:
                if not self._force:
                    return self._handle_conflict(flag_name)
                res.deploy_name = flag_name
                res.is_redeploy = True
            else:
                res.deploy_name = flag_name

        elif not flag_name or flag_name == meta_name:
            res.preview_name = meta_name
            if meta_probe is ProbeOutcome.ALIVE:
                if self._force:
                    res.deploy_name = meta_name
                    res.is_redeploy = True
                else:
                    res.is_current = True
            elif meta_probe is ProbeOutcome.UNKNOWN:
                res.deploy_name = meta_name
                res.is_redeploy = True

        else:
            res.preview_name = flag_name
            if meta_probe is ProbeOutcome.ALIVE:
                res.teardown_name = meta_name
            if flag_probe is ProbeOutcome.ALIVE:
                if not self._force:
                    conflict = self._handle_conflict(flag_name)
                    if res.teardown_name:
                        conflict.teardown_name = res.teardown_name
                    return conflict
                res.deploy_name = flag_name
                res.is_redeploy = True
            else:
                res.deploy_name = flag_name

        res.preview_url = self._url(res.preview_name)
        return res