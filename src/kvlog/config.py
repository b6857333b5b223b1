"""KVConfig: optional project-local settings for the kvlog CLI.

Looked up by walking upward from the working directory (or --config DIR):

    kvlog.toml

kvlog.toml example:

    [store]
    codec = "json"        # codec registry name
    repair_tail = false   # truncate a partial trailing line on open
    sync = false          # fsync after every append

    [log]
    level = "WARNING"

Store itself never reads this file; the CLI turns it into Store.open() arguments.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kvlog.codec import get_codec

if TYPE_CHECKING:
    from kvlog.codec import ValueCodec

_CONFIG_FILENAME = "kvlog.toml"
_DEFAULT_CODEC = "json"
_DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class StoreConfig:
    codec: str = _DEFAULT_CODEC
    repair_tail: bool = False
    sync: bool = False


@dataclass
class LogConfig:
    level: str = _DEFAULT_LOG_LEVEL

    @property
    def level_number(self) -> int:
        level = logging.getLevelName(self.level.upper())
        return level if isinstance(level, int) else logging.WARNING


@dataclass
class KVConfig:
    """Resolved configuration."""

    root: Path                      # directory searched from (or containing kvlog.toml)
    path: Path | None = None        # kvlog.toml that was loaded, if any
    store: StoreConfig = field(default_factory=StoreConfig)
    log: LogConfig = field(default_factory=LogConfig)

    def make_codec(self) -> ValueCodec[Any]:
        """Look up the configured codec. Raises ValueError for unknown names."""
        return get_codec(self.store.codec)


def load_config(root: Path | str | None = None) -> KVConfig:
    """Load kvlog.toml from root (or search upward from cwd if root is None)."""
    start = Path(root) if root else Path.cwd()
    config_path = _find_config(start.resolve())

    raw: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    store_section = raw.get("store", {})
    log_section = raw.get("log", {})

    return KVConfig(
        root=config_path.parent if config_path else start,
        path=config_path,
        store=StoreConfig(
            codec=str(store_section.get("codec", _DEFAULT_CODEC)),
            repair_tail=bool(store_section.get("repair_tail", False)),
            sync=bool(store_section.get("sync", False)),
        ),
        log=LogConfig(
            level=str(log_section.get("level", _DEFAULT_LOG_LEVEL)),
        ),
    )


def _find_config(start: Path) -> Path | None:
    """Walk upward from start looking for kvlog.toml."""
    for directory in (start, *start.parents):
        candidate = directory / _CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None
