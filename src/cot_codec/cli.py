"""Click CLI for the CoT codec.

Entry point registered in ``pyproject.toml`` as ``cot-codec``.

Subcommands::

    cot-codec decode FILE...            # NDJSON record per buffer
    cot-codec reencode FILE [--pretty]  # decode then encode
    cot-codec ack FILE                  # add acknowledgment="ack" to <status>
    cot-codec patch FILE --lat X [--ack]
    cot-codec track FILE                # JSON of the <track> sub-schema

``-`` reads from stdin wherever a FILE is expected.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import BinaryIO, Optional

import click
import orjson

from cot_codec import __version__, codec
from cot_codec.config import (
    CONFIG_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    AppConfig,
    LogFileConfig,
    load_config,
)
from cot_codec.errors import Result
from cot_codec.models import GeoPoint, Message
from cot_codec.output import FileSink, StdoutSink
from cot_codec.transform import Transformer

logger = logging.getLogger("cot_codec")

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


# ── structured JSON log formatter ───────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON to stderr."""

    def format(self, record: logging.LogRecord) -> str:
        obj = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            obj["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(obj).decode()


def _setup_logging(
    level: str,
    fmt: str = "json",
    log_file_config: Optional[LogFileConfig] = None,
) -> None:
    """Configure the root logger with output on stderr + optional file."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))

    # Drop handlers from an earlier invocation in the same process.
    for handler in list(root.handlers):
        if getattr(handler, "_cot_codec", False):
            root.removeHandler(handler)
            handler.close()

    formatter = (
        _JsonFormatter()
        if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler._cot_codec = True
    root.addHandler(stderr_handler)

    if log_file_config and log_file_config.enabled:
        from logging.handlers import RotatingFileHandler

        log_dir = Path(log_file_config.path).parent
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_file_config.path,
            maxBytes=log_file_config.max_size_bytes,
            backupCount=log_file_config.backup_count,
        )
        file_handler.setFormatter(formatter)
        file_handler._cot_codec = True
        root.addHandler(file_handler)


def _fail(result: Result) -> None:
    click.echo(f"Error: {result}", err=True)
    raise SystemExit(1)


def _read(stream: BinaryIO) -> bytes:
    return stream.read()


# ── main CLI group ──────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.option("-c", "--config", "config_path", default=None, envvar=CONFIG_ENV_VAR,
              type=click.Path(dir_okay=False), help="Config file path.")
@click.option("--log-level", default=None, envvar=LOG_LEVEL_ENV_VAR,
              type=click.Choice(LOG_LEVELS), help="Log verbosity.")
@click.option("--validate-config", "validate_only", is_flag=True,
              help="Validate config and exit.")
@click.version_option(__version__)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[str],
    log_level: Optional[str],
    validate_only: bool,
) -> None:
    """CoT codec: decode, re-encode, patch and acknowledge CoT XML."""
    try:
        cfg = load_config(config_path)
    except Exception as exc:
        click.echo(f"Config error: {exc}", err=True)
        raise SystemExit(1) from exc

    _setup_logging(log_level or cfg.logging.level, cfg.logging.format, cfg.logging.file)

    if validate_only:
        click.echo("Configuration is valid.", err=True)
        raise SystemExit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.obj = cfg


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.File("rb"))
@click.option("-o", "--output", "output_path", default=None,
              help="Append records to this file instead of the configured sink.")
@click.pass_obj
def decode(cfg: AppConfig, files: tuple[BinaryIO, ...], output_path: Optional[str]) -> None:
    """Decode each FILE and write one NDJSON record per buffer."""
    xform = Transformer(max_raw_payload_bytes=cfg.codec.max_raw_payload_bytes)
    if output_path or cfg.output.mode == "file":
        sink = FileSink(output_path or cfg.output.path)
    else:
        sink = StdoutSink()

    failures = 0
    try:
        for stream in files:
            raw = _read(stream)
            name = getattr(stream, "name", "-")
            result = codec.decode(raw)
            if not result.is_success:
                failures += 1
                logger.warning("Failed to decode %s: %s", name, result)
            try:
                sink.write(xform.transform(result, raw, path=name))
            except BrokenPipeError:
                break
    finally:
        sink.close()

    logger.info("Decoded %d buffer(s), %d failed", len(files), failures)
    if failures:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.File("rb"))
@click.option("--pretty/--compact", default=None, help="Indent the output XML.")
@click.pass_obj
def reencode(cfg: AppConfig, file: BinaryIO, pretty: Optional[bool]) -> None:
    """Decode FILE and print it re-encoded in normalized form."""
    decoded = codec.decode(_read(file))
    if not decoded.is_success:
        _fail(decoded)
    encoded = codec.encode(decoded.value, pretty=cfg.codec.pretty if pretty is None else pretty)
    if not encoded.is_success:
        _fail(encoded)
    click.echo(encoded.value)


@main.command()
@click.argument("file", type=click.File("rb"))
@click.pass_obj
def ack(cfg: AppConfig, file: BinaryIO) -> None:
    """Print FILE with an acknowledgment added to its <status>."""
    result = codec.acknowledge(_read(file), ack_value=cfg.codec.ack_value)
    if not result.ok:
        _fail(result)
    if not result.value.changed:
        logger.info("Nothing to acknowledge")
    click.echo(result.value.buffer, nl=False)


@main.command()
@click.argument("file", type=click.File("rb"))
@click.option("--lat", "latitude", type=float, default=None, help="New point latitude.")
@click.option("--ack", "acknowledge", is_flag=True, help="Also acknowledge <status>.")
@click.pass_obj
def patch(cfg: AppConfig, file: BinaryIO, latitude: Optional[float], acknowledge: bool) -> None:
    """Print FILE with its point latitude replaced."""
    update = Message(point=GeoPoint(latitude=latitude))
    result = codec.apply_patch(
        _read(file), update, ack=acknowledge, ack_value=cfg.codec.ack_value
    )
    if not result.ok:
        _fail(result)
    if not result.value.changed:
        logger.info("Patch made no modification")
    click.echo(result.value.buffer, nl=False)


@main.command()
@click.argument("file", type=click.File("rb"))
@click.pass_obj
def track(cfg: AppConfig, file: BinaryIO) -> None:
    """Print the <track> of FILE as JSON."""
    result = codec.decode_track(_read(file))
    if not result.is_success:
        _fail(result)
    xform = Transformer(max_raw_payload_bytes=cfg.codec.max_raw_payload_bytes)
    StdoutSink().write(xform.transform_track(result.value))
