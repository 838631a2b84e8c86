"""Settings loading.

Precedence, lowest first: built-in defaults, the TOML config file, the
environment, explicit overrides from the command line.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError

CONFIG_ENV_VAR = "QUADERNO_CONFIG"
GRAPH_ENV_VAR = "QUADERNO_GRAPH"
DEFAULT_CONFIG_PATH = Path("~/.config/quaderno/config.toml")

DEFAULT_EXCLUDED_NAMES = (
    "TODO",
    "DOING",
    "DONE",
    "LATER",
    "NOW",
    "WAITING",
    "CANCELED",
    "Journal",
    "Journals",
    "Notes",
    "Logseq",
)

TRANSCRIPTION_PROMPT = (
    "extract the content from the image and provide me only with the transcription "
    "encoded in Markdown using the block syntax used by Roam and Logseq. Do not extract "
    "text from the figures in the text. If the text is written in Upper case, transform "
    "it appropriately. If a sentence is split into multiple lines due to the note layout "
    "and form, format it in the correct order to keep the flow of the sentence. The answer "
    "i am expecting is just the transcribed text and nothing else. Do not explain the "
    "output and do not include the output into a codeblock"
)


@dataclass(frozen=True)
class Thresholds:
    """Time windows, in seconds."""

    grace_seconds: float = 5.0
    run_lock_stale_seconds: float = 600.0
    debounce_seconds: float = 30.0


@dataclass(frozen=True)
class LinkingSettings:
    excluded_names: tuple[str, ...] = DEFAULT_EXCLUDED_NAMES
    reserved_sigil: str = "@"
    highlights_marker: str = "(highlights)"


@dataclass(frozen=True)
class NoteSettings:
    tag: str = "QuadernoNote"
    style: str = "logseq"  # "logseq" properties or YAML "frontmatter"


@dataclass(frozen=True)
class OcrSettings:
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o"
    api_key_ref: str = "env:OPENAI_API_KEY"
    prompt: str = TRANSCRIPTION_PROMPT
    max_tokens: int = 4096
    timeout_seconds: float = 120.0


@dataclass(frozen=True)
class RasterSettings:
    density: int = 150
    quality: int = 70


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one invocation."""

    graph_path: Path
    pages_dir: Path
    journals_dir: Path
    state_dir: Path
    inbox: Path | None = None
    thresholds: Thresholds = field(default_factory=Thresholds)
    linking: LinkingSettings = field(default_factory=LinkingSettings)
    notes: NoteSettings = field(default_factory=NoteSettings)
    ocr: OcrSettings = field(default_factory=OcrSettings)
    raster: RasterSettings = field(default_factory=RasterSettings)
    config_path: Path | None = None

    @property
    def index_path(self) -> Path:
        return self.state_dir / "index.json"

    @property
    def lock_dir(self) -> Path:
        return self.state_dir / "locks"

    @classmethod
    def for_graph(cls, graph_path: Path, **kwargs: Any) -> "Settings":
        """Default layout for a Logseq graph rooted at `graph_path`."""
        graph_path = graph_path.expanduser().resolve()
        return cls(
            graph_path=graph_path,
            pages_dir=kwargs.pop("pages_dir", graph_path / "pages"),
            journals_dir=kwargs.pop("journals_dir", graph_path / "journals"),
            state_dir=kwargs.pop("state_dir", graph_path / ".quaderno"),
            **kwargs,
        )


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _number(section: dict[str, Any], key: str, default: float, *, where: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}.{key} must be a number")
    if value < 0:
        raise ConfigError(f"{where}.{key} must not be negative")
    return float(value)


def _string(section: dict[str, Any], key: str, default: str, *, where: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string")
    return value


def _path(value: Any, base: Path, *, key: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty path string")
    p = Path(value).expanduser()
    if not p.is_absolute():
        p = base / p
    return p.resolve()


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Locate the config file: --config, then $QUADERNO_CONFIG, then the default."""
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        p = Path(env_value).expanduser()
        if not p.is_file():
            raise ConfigError(f"{CONFIG_ENV_VAR} points to a missing file: {p}")
        return p

    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.is_file() else None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a TOML config file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e


def settings_from_mapping(
    data: dict[str, Any],
    *,
    base_dir: Path,
    graph_override: Path | None = None,
    config_path: Path | None = None,
) -> Settings:
    """
    Build Settings from parsed config data.

    Relative paths in the file resolve against `base_dir` (the config file's
    directory). The graph path comes from the override, then
    $QUADERNO_GRAPH, then the file.
    """
    if graph_override is not None:
        graph_path = graph_override.expanduser().resolve()
    elif os.environ.get(GRAPH_ENV_VAR):
        graph_path = Path(os.environ[GRAPH_ENV_VAR]).expanduser().resolve()
    elif "graph_path" in data:
        graph_path = _path(data["graph_path"], base_dir, key="graph_path")
    else:
        raise ConfigError(
            f"No Logseq graph configured. Pass --graph, set {GRAPH_ENV_VAR}, "
            "or add graph_path to the config file."
        )

    layout: dict[str, Path] = {}
    for key in ("pages_dir", "journals_dir", "state_dir"):
        if key in data:
            layout[key] = _path(data[key], graph_path, key=key)

    inbox = _path(data["inbox"], base_dir, key="inbox") if "inbox" in data else None

    t = _coerce_dict(data.get("thresholds"))
    thresholds = Thresholds(
        grace_seconds=_number(t, "grace_seconds", Thresholds.grace_seconds, where="thresholds"),
        run_lock_stale_seconds=_number(
            t, "run_lock_stale_seconds", Thresholds.run_lock_stale_seconds, where="thresholds"
        ),
        debounce_seconds=_number(t, "debounce_seconds", Thresholds.debounce_seconds, where="thresholds"),
    )

    lk = _coerce_dict(data.get("linking"))
    excluded = lk.get("excluded_names", list(DEFAULT_EXCLUDED_NAMES))
    if not isinstance(excluded, list) or not all(isinstance(x, str) for x in excluded):
        raise ConfigError("linking.excluded_names must be a list of strings")
    linking = LinkingSettings(
        excluded_names=tuple(excluded),
        reserved_sigil=_string(lk, "reserved_sigil", LinkingSettings.reserved_sigil, where="linking"),
        highlights_marker=_string(lk, "highlights_marker", LinkingSettings.highlights_marker, where="linking"),
    )

    n = _coerce_dict(data.get("notes"))
    style = _string(n, "style", NoteSettings.style, where="notes")
    if style not in ("logseq", "frontmatter"):
        raise ConfigError("notes.style must be 'logseq' or 'frontmatter'")
    notes = NoteSettings(tag=_string(n, "tag", NoteSettings.tag, where="notes"), style=style)

    o = _coerce_dict(data.get("ocr"))
    ocr = OcrSettings(
        endpoint=_string(o, "endpoint", OcrSettings.endpoint, where="ocr"),
        model=_string(o, "model", OcrSettings.model, where="ocr"),
        api_key_ref=_string(o, "api_key_ref", OcrSettings.api_key_ref, where="ocr"),
        prompt=_string(o, "prompt", OcrSettings.prompt, where="ocr"),
        max_tokens=int(_number(o, "max_tokens", OcrSettings.max_tokens, where="ocr")),
        timeout_seconds=_number(o, "timeout_seconds", OcrSettings.timeout_seconds, where="ocr"),
    )

    r = _coerce_dict(data.get("raster"))
    raster = RasterSettings(
        density=int(_number(r, "density", RasterSettings.density, where="raster")),
        quality=int(_number(r, "quality", RasterSettings.quality, where="raster")),
    )

    return Settings.for_graph(
        graph_path,
        inbox=inbox,
        thresholds=thresholds,
        linking=linking,
        notes=notes,
        ocr=ocr,
        raster=raster,
        config_path=config_path,
        **layout,
    )


def load_settings(config_path: Path | None = None, *, graph: Path | None = None) -> Settings:
    """Resolve settings for this invocation."""
    path = find_config_file(config_path)
    if path is None:
        return settings_from_mapping({}, base_dir=Path.cwd(), graph_override=graph)

    data = read_config_file(path)
    return settings_from_mapping(
        data,
        base_dir=path.parent.resolve(),
        graph_override=graph,
        config_path=path,
    )


def with_thresholds(settings: Settings, **changes: float) -> Settings:
    """Copy of `settings` with some thresholds replaced."""
    return replace(settings, thresholds=replace(settings.thresholds, **changes))
