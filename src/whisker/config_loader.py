"""Load WhiskerConfig from whisker.yaml / whisker.toml if present.

Merges file config with CLI kwargs.  CLI overrides file; there is no deeper
merging: an overriding value replaces the file value outright.

The file may use whisker's own snake_case keys or the camelCase keys of a
browser-sync config (``reloadDelay``, ``watchOptions.ignored``, ``files``
entries with ``match``/``fn``), so an existing setup ports over directly::

    proxy: localhost:8080
    files:
      - match: ["public/css/styles.css"]
        fn: inject:*.css
      - templates/**/*.gohtml
      - public/js/*.js
    reloadDelay: 100
    reloadDebounce: 250
    watchOptions:
      ignored: [node_modules, tmp]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from whisker._errors import ConfigError
from whisker.config import ALL_WATCH_EVENTS, FileRule, WhiskerConfig
from whisker.observability.console import LEVELS

CONFIG_NAMES = ("whisker.yaml", "whisker.yml", "whisker.toml")

# browser-sync spellings accepted in files.
_KEY_ALIASES: dict[str, str] = {
    "reloadDelay": "reload_delay",
    "reloadDebounce": "reload_debounce",
    "reloadMaxWait": "reload_max_wait",
    "logLevel": "log_level",
    "logPrefix": "log_prefix",
    "watchEvents": "watch_events",
    "usePolling": "use_polling",
    "heartbeatInterval": "heartbeat_interval",
    "clientTimeout": "client_timeout",
}

_EVENT_ALIASES: dict[str, str] = {
    "add": "created",
    "change": "modified",
    "unlink": "removed",
    "addDir": "dir_created",
    "unlinkDir": "dir_removed",
}

_LOG_LEVEL_ALIASES: dict[str, str] = {"warning": "warn", "silent": "silent", "off": "silent"}

_KNOWN_KEYS = frozenset(
    {
        "host", "port", "proxy", "files", "watch_roots", "ignored", "watch_events",
        "reload_delay", "reload_debounce", "reload_max_wait", "use_polling",
        "notify", "open", "log_level", "log_prefix", "heartbeat_interval",
        "client_timeout", "client_queue_size",
    }
)


def load_config(root: Path, **overrides: object) -> WhiskerConfig:
    """Load WhiskerConfig from root, optionally merging a config file.

    Looks for whisker.yaml, whisker.yml, or whisker.toml in root.  If found,
    loads and merges with overrides.  Overrides that are ``None`` are
    ignored so unset CLI flags do not mask file values.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.

    """
    file_config = read_config_file(root)
    given = {k: v for k, v in overrides.items() if v is not None}
    merged = {**file_config, **normalize(given)}
    return build_config(root, merged)


def read_config_file(root: Path) -> dict[str, object]:
    """Read whisker config from yaml/toml if present.  Empty dict otherwise."""
    for name in ("whisker.yaml", "whisker.yml"):
        path = root / name
        if path.is_file():
            return normalize(_parse_yaml(path))
    toml_path = root / "whisker.toml"
    if toml_path.is_file():
        return normalize(_parse_toml(toml_path))
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    import yaml

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        msg = f"{path.name}: invalid YAML: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name}: expected a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_whisker_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"{path.name}: invalid TOML: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_whisker_section(data)


def _flatten_whisker_section(data: dict[str, object]) -> dict[str, object]:
    """Extract whisker.* keys into top-level config; top-level keys lose."""
    result = {k: v for k, v in data.items() if k != "whisker"}
    section = data.get("whisker")
    if isinstance(section, dict):
        result.update(section)
    return result


def normalize(raw: dict[str, object]) -> dict[str, object]:
    """Map camelCase / browser-sync keys onto WhiskerConfig field names."""
    result: dict[str, object] = {}
    for key, value in raw.items():
        if key == "watchOptions" and isinstance(value, dict):
            if "ignored" in value:
                result["ignored"] = value["ignored"]
            if "usePolling" in value:
                result["use_polling"] = value["usePolling"]
            continue
        name = _KEY_ALIASES.get(key, key)
        if name in _KNOWN_KEYS:
            result[name] = value
    return result


def build_config(root: Path, values: dict[str, object]) -> WhiskerConfig:
    """Validate *values* and construct the frozen config.

    Raises:
        ConfigError: On a value of the wrong shape.

    """
    kwargs: dict[str, Any] = dict(values)

    if "files" in kwargs:
        kwargs["files"] = tuple(_parse_rule(entry) for entry in _as_list(kwargs["files"], "files"))
    if "ignored" in kwargs:
        kwargs["ignored"] = tuple(str(item) for item in _as_list(kwargs["ignored"], "ignored"))
    if "watch_roots" in kwargs:
        kwargs["watch_roots"] = tuple(
            Path(str(item)) for item in _as_list(kwargs["watch_roots"], "watch_roots")
        )
    if "watch_events" in kwargs:
        kwargs["watch_events"] = _parse_watch_events(kwargs["watch_events"])
    if "log_level" in kwargs:
        kwargs["log_level"] = _parse_log_level(kwargs["log_level"])

    for name in ("port", "reload_delay", "reload_debounce", "reload_max_wait", "client_queue_size"):
        if name in kwargs:
            kwargs[name] = _non_negative(kwargs[name], name, int)
    for name in ("heartbeat_interval", "client_timeout"):
        if name in kwargs:
            kwargs[name] = _non_negative(kwargs[name], name, float)
    max_wait = kwargs.get("reload_max_wait", 0)
    delay = kwargs.get("reload_delay", 0)
    if 0 < max_wait < delay:
        msg = f"reload_max_wait ({max_wait}ms) must not be shorter than reload_delay ({delay}ms)"
        raise ConfigError(msg)
    if "proxy" in kwargs and kwargs["proxy"] is not None:
        kwargs["proxy"] = str(kwargs["proxy"])

    return WhiskerConfig(root=root, **kwargs)


def _as_list(value: object, name: str) -> list[object]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    msg = f"{name}: expected a list, got {type(value).__name__}"
    raise ConfigError(msg)


def _parse_rule(entry: object) -> FileRule:
    """A ``files`` entry: a glob string or ``{match, fn|reaction, root}``."""
    if isinstance(entry, str):
        return FileRule(match=(entry,))
    if isinstance(entry, dict):
        match = entry.get("match")
        if match is None:
            msg = f"files entry {entry!r} has no 'match'"
            raise ConfigError(msg)
        reaction = entry.get("reaction", entry.get("fn"))
        scope_root = entry.get("root")
        return FileRule(
            match=tuple(str(p) for p in _as_list(match, "files.match")),
            reaction=None if reaction is None else str(reaction),
            scope_root=None if scope_root is None else str(scope_root),
        )
    msg = f"files entry must be a glob or a mapping, got {type(entry).__name__}"
    raise ConfigError(msg)


def _parse_watch_events(value: object) -> frozenset[str]:
    events = {_EVENT_ALIASES.get(str(item), str(item)) for item in _as_list(value, "watch_events")}
    unknown = events - ALL_WATCH_EVENTS
    if unknown:
        msg = f"watch_events: unknown event(s) {', '.join(sorted(unknown))}"
        raise ConfigError(msg)
    return frozenset(events)


def _parse_log_level(value: object) -> str:
    level = _LOG_LEVEL_ALIASES.get(str(value).lower(), str(value).lower())
    if level not in LEVELS:
        msg = f"log_level: unknown level {value!r}"
        raise ConfigError(msg)
    return level


def _non_negative(value: object, name: str, kind: type[int] | type[float]) -> int | float:
    if isinstance(value, bool):
        msg = f"{name}: expected a number, got {value!r}"
        raise ConfigError(msg)
    try:
        number = kind(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"{name}: expected a number, got {value!r}"
        raise ConfigError(msg) from exc
    if number < 0:
        msg = f"{name}: must not be negative"
        raise ConfigError(msg)
    return number


DEFAULT_CONFIG = """\
# whisker — live-reload proxy configuration
proxy: localhost:8080
port: 3000

files:
  # Stylesheets are injected in place, no page reload.
  - match: ["**/*.css"]
    fn: inject:*.css
  - "templates/**/*.html"
  - "**/*.js"

reload_delay: 0
reload_debounce: 250

ignored:
  - node_modules
  - .git
"""


def write_default_config(root: Path) -> Path:
    """Write a starter whisker.yaml into *root*.

    Raises:
        ConfigError: If a config file already exists.

    """
    for name in CONFIG_NAMES:
        if (root / name).exists():
            msg = f"{root / name} already exists"
            raise ConfigError(msg)
    path = root / "whisker.yaml"
    path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    return path
