"""Main entry point for the Intonation Coach CLI."""

import argparse
import asyncio
import sys
from typing import List, Optional

from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import IntonationAnalysisResult
from ..note_utils import parse_note_name
from ..audio.sources import SoundDeviceSource
from ..core.config import ConfigManager
from ..core.errors import DeviceUnavailableError
from ..core.factory import ComponentFactory
from ..detection.pure_intonation import get_pure_intonation_suggestions

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_DEVICE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Intonation Coach - real-time intonation analysis for violin practice"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config-dir", type=str, default=None, help="Configuration directory"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    practice_parser = subparsers.add_parser(
        "practice", help="Analyze live playing from the microphone"
    )
    practice_parser.add_argument(
        "--duration", type=float, default=30.0, help="Session length in seconds"
    )
    practice_parser.add_argument(
        "--device", type=int, default=None, help="Audio input device ID"
    )
    practice_parser.add_argument(
        "--record", type=str, default=None, help="Save the session audio to this WAV file"
    )

    analyze_parser = subparsers.add_parser(
        "analyze", help="Analyze a recorded audio file in real time"
    )
    analyze_parser.add_argument("path", type=str, help="Audio file to analyze")
    analyze_parser.add_argument(
        "--max-duration", type=float, default=None, help="Stop after this many seconds"
    )

    double_stop_parser = subparsers.add_parser(
        "double-stop", help="Pure-intonation advice for two simultaneous notes"
    )
    double_stop_parser.add_argument("lower", type=str, help="Lower note (e.g. G3 or 55)")
    double_stop_parser.add_argument("upper", type=str, help="Upper note (e.g. D4 or 62)")

    subparsers.add_parser("devices", help="List audio input devices")
    return parser


def format_report(result: IntonationAnalysisResult) -> str:
    """Render an analysis snapshot as plain text."""
    lines = [
        f"Overall accuracy: {result.overall_accuracy:.0f}%",
        f"Average deviation: {result.average_deviation:.1f} cents",
    ]
    if not result.note_reports:
        lines.append("No notes detected.")
        return "\n".join(lines)

    lines.append("")
    lines.append("Note   Avg(c)  Stability  Samples  Vibrato")
    for report in result.note_reports:
        vibrato = "-"
        if report.vibrato.present:
            vibrato = (
                f"{report.vibrato.rate:.1f}Hz {report.vibrato.width:.0f}c "
                f"({report.vibrato.quality.value})"
            )
        lines.append(
            f"{report.note:<6} {report.average_cents:+6.1f}  {report.stability:9.0f}  "
            f"{report.samples:7d}  {vibrato}"
        )

    if result.problematic_notes:
        lines.append("")
        lines.append("Problematic notes: " + ", ".join(result.problematic_notes))
    if result.suggestions:
        lines.append("")
        lines.append("Suggestions:")
        lines.extend(f"  - {s}" for s in result.suggestions)
    return "\n".join(lines)


async def run_practice(factory: ComponentFactory, duration: float, device: Optional[int], record: Optional[str]) -> IntonationAnalysisResult:
    """Listen for ``duration`` seconds, or until cancelled, and return the report.

    Ctrl+C cancels the running task; that ends the session early but still
    produces the report and saves the recording.
    """
    source = factory.create_source("sounddevice", device_id=device)
    session = factory.create_session(source)
    await session.start(record=record is not None)
    try:
        print(f"Listening for {duration:.0f} seconds... (Ctrl+C to stop)")
        await asyncio.sleep(duration)
    except asyncio.CancelledError:
        print("\nStopping...")
    finally:
        result = session.stop()

    if record and session.recording is not None:
        session.recording.save(record)
        print(f"Saved recording to {record}")
    return result


async def run_file_analysis(factory: ComponentFactory, path: str, max_duration: Optional[float]) -> IntonationAnalysisResult:
    source = factory.create_source("wav", file_path=path)
    session = factory.create_session(source)
    await session.start()
    elapsed = 0.0
    try:
        while not source.finished:
            if max_duration is not None and elapsed >= max_duration:
                break
            await asyncio.sleep(0.1)
            elapsed += 0.1
    finally:
        result = session.stop()
    return result


def list_devices() -> int:
    devices = SoundDeviceSource.list_input_devices()
    if not devices:
        print("No input devices found.")
        return EXIT_OK
    for device_id, device in devices:
        print(
            f"{device_id:3d}: {device['name']} "
            f"({device['max_input_channels']} ch, {device['default_samplerate']:.0f} Hz)"
        )
    return EXIT_OK


def double_stop(lower: str, upper: str) -> int:
    try:
        lower_midi = parse_note_name(lower)
        upper_midi = parse_note_name(upper)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    suggestions = get_pure_intonation_suggestions(lower_midi, upper_midi)
    if not suggestions:
        print("No pure-intonation adjustment to suggest for this interval.")
    for suggestion in suggestions:
        print(suggestion.reason)
    return EXIT_OK


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    setup_logging(level="DEBUG" if parsed_args.debug else None)

    if parsed_args.command == "double-stop":
        return double_stop(parsed_args.lower, parsed_args.upper)
    if parsed_args.command is None:
        parser.print_help()
        return EXIT_USAGE

    try:
        if parsed_args.command == "devices":
            return list_devices()

        factory = ComponentFactory(ConfigManager(parsed_args.config_dir))
        if parsed_args.command == "practice":
            result = asyncio.run(
                run_practice(factory, parsed_args.duration, parsed_args.device, parsed_args.record)
            )
        else:
            result = asyncio.run(
                run_file_analysis(factory, parsed_args.path, parsed_args.max_duration)
            )
    except DeviceUnavailableError as e:
        logger.error(f"Audio device unavailable: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DEVICE
    except KeyboardInterrupt:
        print("\nStopped.")
        return EXIT_OK

    print(format_report(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
