"""kvlog CLI — key-value store backed by one append-only log file.

Commands:
    kvlog DB_PATH set KEY VALUE    append KEY with VALUE (a JSON literal by default)
    kvlog DB_PATH unset KEY        append a tombstone for KEY
    kvlog DB_PATH get KEY          print the value, or an empty line if absent
    kvlog DB_PATH has KEY          print true / false
    kvlog DB_PATH dump             print the folded map as key,value lines

Global options go before DB_PATH:
    kvlog --repair-tail -v state.log get boot:stage
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from kvlog.config import KVConfig, load_config
from kvlog.errors import StoreError
from kvlog.store import Store

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("kvlog.cli")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(config_dir: str | None) -> KVConfig:
    try:
        return load_config(config_dir)
    except Exception as exc:
        raise click.ClickException(f"Cannot load config: {exc}") from exc


@contextlib.contextmanager
def _store_errors() -> Iterator[None]:
    """Turn store failures into a diagnostic on stderr and exit code 1."""
    try:
        yield
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc


def _store(ctx: click.Context) -> Store[Any]:
    return ctx.ensure_object(dict)["store"]


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="kvlog")
@click.option(
    "--config",
    "config_dir",
    default=None,
    type=click.Path(file_okay=False, exists=True),
    help="Directory to search upward from for kvlog.toml (default: cwd)",
)
@click.option("--repair-tail", is_flag=True, help="Drop a partial trailing record left by a crash")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
@click.argument("db_path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def cli(ctx: click.Context, config_dir: str | None, repair_tail: bool, verbose: bool, db_path: Path) -> None:
    """kvlog — append-only key-value store."""
    cfg = _load_cfg(config_dir)
    logging.basicConfig(
        level=logging.DEBUG if verbose else cfg.log.level_number,
        format="%(asctime)s %(name)s %(message)s",
    )
    if cfg.path is not None:
        logger.debug("config loaded from %s", cfg.path)

    try:
        codec = cfg.make_codec()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        store = Store.open(
            db_path,
            codec,
            repair_tail=repair_tail or cfg.store.repair_tail,
            sync=cfg.store.sync,
        )
    except OSError as exc:
        raise click.ClickException(f"Cannot open {db_path}: {exc}") from exc

    ctx.ensure_object(dict)["store"] = store
    ctx.call_on_close(store.close)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@cli.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_(ctx: click.Context, key: str, value: str) -> None:
    """Set KEY to VALUE, parsed with the store's codec (JSON by default)."""
    store = _store(ctx)
    try:
        parsed = store.codec.decode(value)
    except (TypeError, ValueError) as exc:
        raise click.ClickException(f"Invalid value literal {value!r}: {exc}") from exc
    with _store_errors():
        store.set(key, parsed)


@cli.command()
@click.argument("key")
@click.pass_context
def unset(ctx: click.Context, key: str) -> None:
    """Remove KEY by appending a tombstone."""
    with _store_errors():
        _store(ctx).unset(key)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("key")
@click.pass_context
def get(ctx: click.Context, key: str) -> None:
    """Print the value of KEY (empty line if absent)."""
    store = _store(ctx)
    with _store_errors():
        value = store.get(key)
    click.echo("" if value is None else store.codec.encode(value))


@cli.command()
@click.argument("key")
@click.pass_context
def has(ctx: click.Context, key: str) -> None:
    """Print whether KEY is present."""
    with _store_errors():
        present = _store(ctx).contains(key)
    click.echo("true" if present else "false")


@cli.command()
@click.pass_context
def dump(ctx: click.Context) -> None:
    """Print every live key as a key,value line."""
    store = _store(ctx)
    with _store_errors():
        mapping = store.load_map()
    for key, value in mapping.items():
        click.echo(f"{key},{store.codec.encode(value)}")
