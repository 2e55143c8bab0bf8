"""Command-line access to the analyzer.

Lists capture devices and runs a terminal band meter against any source, which
is the quickest way to check that a device or file actually produces signal.
"""

import asyncio
import json
import sys
import time
from pathlib import Path

import click

from audioscope.audio.errors import AudioAnalyzerError
from audioscope.audio.models import (
    AudioSource,
    CaptureDevice,
    DecodedBuffer,
    DefaultCaptureDevice,
    FrequencyFrame,
    RemoteUrl,
)
from audioscope.audio.session import AnalyzerSession
from audioscope.config import AudioscopeConfig, ConfigManager
from audioscope.utils.structlog_configurator import configure_structlog

METER_WIDTH = 20
BAND_LABELS = (
    ("bass", "BASS"),
    ("low_mid", "LMID"),
    ("mid", "MID"),
    ("high_mid", "HMID"),
    ("treble", "TREB"),
)


def render_meters(frame: FrequencyFrame, width: int = METER_WIDTH) -> str:
    """Render one line of band meters for ``frame``."""
    cells = []
    for name, label in BAND_LABELS:
        level = getattr(frame, name)
        filled = round(level * width)
        cells.append(f"{label} {'#' * filled}{'.' * (width - filled)} {level * 100:3.0f}%")
    return " | ".join(cells)


def select_source(device: str | None, file: Path | None, url: str | None) -> AudioSource:
    """Build the AudioSource named by the mutually exclusive CLI options."""
    chosen = [option for option in (device, file, url) if option is not None]
    if len(chosen) > 1:
        raise click.UsageError("Use only one of --device, --file or --url")
    if device is not None:
        return CaptureDevice(device)
    if file is not None:
        return DecodedBuffer(file.read_bytes())
    if url is not None:
        return RemoteUrl(url)
    return DefaultCaptureDevice()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to audioscope.yaml (default: $AUDIOSCOPE_CONFIG or ~/.config/audioscope)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Audioscope spectral analyzer.

    Examples:
      # List capture devices
      audioscope devices

      # Meter the default microphone for ten seconds
      audioscope monitor --duration 10

      # Meter a local file (plays it as well)
      audioscope monitor --file song.flac
    """
    ctx.ensure_object(dict)
    config = ConfigManager(config_path).load()
    configure_structlog(config)
    ctx.obj["config"] = config


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print descriptors as JSON")
@click.pass_context
def devices(ctx: click.Context, as_json: bool) -> None:
    """List audio input devices."""
    session = AnalyzerSession(ctx.obj["config"])
    try:
        descriptors = asyncio.run(session.list_input_devices())
    except AudioAnalyzerError as e:
        click.echo(click.style(f"✗ {e}", fg="red"), err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return

    for descriptor in descriptors:
        marker = "*" if descriptor.is_default else " "
        click.echo(f"{marker} {descriptor.id}  {descriptor.label}")


async def _run_monitor(
    session: AnalyzerSession, source: AudioSource, fps: float, duration: float | None
) -> int:
    interval = 1.0 / fps
    frames = 0
    try:
        await session.start(source)
        deadline = None if duration is None else time.monotonic() + duration
        while deadline is None or time.monotonic() < deadline:
            frame = session.get_frequency_data()
            if frame is not None:
                click.echo("\r" + render_meters(frame), nl=False)
                frames += 1
            await asyncio.sleep(interval)
    finally:
        await session.close()
        click.echo()
    return frames


@cli.command()
@click.option("--device", help="Capture device id (see 'audioscope devices')")
@click.option(
    "--file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Audio file"
)
@click.option("--url", help="Remote audio URL")
@click.option(
    "--fps",
    type=click.FloatRange(min=0, min_open=True),
    help="Meter refresh rate (default: config monitor_fps)",
)
@click.option("--duration", type=click.FloatRange(min=0), help="Stop after this many seconds")
@click.pass_context
def monitor(
    ctx: click.Context,
    device: str | None,
    file: Path | None,
    url: str | None,
    fps: float | None,
    duration: float | None,
) -> None:
    """Print live band meters for a source."""
    config: AudioscopeConfig = ctx.obj["config"]
    source = select_source(device, file, url)
    session = AnalyzerSession(config)
    try:
        asyncio.run(_run_monitor(session, source, fps or config.monitor_fps, duration))
    except AudioAnalyzerError as e:
        click.echo(click.style(f"✗ {e}", fg="red"), err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("Stopped.")


def main() -> None:
    """Entry point for the audioscope console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
