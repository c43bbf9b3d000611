from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from workctx_core.types import ManagerConfig


def _load_toml(path: Path) -> dict:
    """Load a TOML file, returning empty dict if missing or unreadable."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base (1 level deep for TOML sections)."""
    merged = dict(base)
    for key, val in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(val, dict)
        ):
            merged[key] = {**merged[key], **val}
        else:
            merged[key] = val
    return merged


def state_dir() -> Path:
    """Per-installation state directory (``~/.workctx``)."""
    return Path.home() / ".workctx"


@dataclass(frozen=True, slots=True)
class WorkingContextConfig:
    enabled: bool = True
    max_entries: int = 20
    default_ttl_minutes: int = 120
    max_injected_tokens: int = 2000
    auto_capture: bool = True


@dataclass(frozen=True, slots=True)
class BackendConfig:
    tier: str = "sqlite"  # sqlite | memory
    sqlite_path: str = "~/.workctx/working-context/context.db"

    def resolved_sqlite_path(self) -> Path:
        return Path(self.sqlite_path).expanduser()


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True, slots=True)
class WorkctxConfig:
    """Top-level configuration, parsed from workctx.toml."""
    working_context: WorkingContextConfig = field(
        default_factory=WorkingContextConfig
    )
    backend: BackendConfig = field(default_factory=BackendConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def manager_config(self) -> ManagerConfig:
        """Settings handed to the WorkingContextManager."""
        return ManagerConfig(
            db_path=str(self.backend.resolved_sqlite_path()),
            max_entries=self.working_context.max_entries,
            default_ttl_minutes=self.working_context.default_ttl_minutes,
        )

    @classmethod
    def from_toml(
        cls, path: Path | str = "workctx.toml"
    ) -> WorkctxConfig:
        path = Path(path)
        raw = _load_toml(path)
        return cls._from_raw(raw)

    @classmethod
    def load(
        cls, project_dir: Path | str | None = None
    ) -> WorkctxConfig:
        """Load config with global → project layering.

        Resolution order (later wins):
        1. Built-in defaults
        2. ~/.workctx/config.toml (global)
        3. .workctx/config.toml or workctx.toml (project)
        """
        global_path = state_dir() / "config.toml"

        project_dir = (
            Path.cwd() if project_dir is None else Path(project_dir)
        )

        project_path = project_dir / ".workctx" / "config.toml"
        if not project_path.exists():
            project_path = project_dir / "workctx.toml"

        merged = _deep_merge(
            _load_toml(global_path), _load_toml(project_path)
        )
        return cls._from_raw(merged)

    @classmethod
    def _from_raw(cls, raw: dict) -> WorkctxConfig:
        """Build WorkctxConfig from a raw TOML dict.

        Unknown keys are ignored so older binaries tolerate newer files.
        """
        def _pick(section: dict, dc: type) -> dict:
            fields = dc.__dataclass_fields__
            return {
                k: v for k, v in section.items() if k in fields
            }

        return cls(
            working_context=WorkingContextConfig(
                **_pick(raw.get("working_context", {}), WorkingContextConfig)
            ),
            backend=BackendConfig(
                **_pick(raw.get("backend", {}), BackendConfig)
            ),
            logging=LoggingConfig(
                **_pick(raw.get("logging", {}), LoggingConfig)
            ),
        )
