"""Command-line front end: edit settings, transcribe and write exo files."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from whau.config import Settings, config_path_for, read_config, write_config
from whau.exo import AudioClip, ExoError, output_exo_file
from whau.transcriber import (
    Toolchain,
    Transcriber,
    TranscriberError,
    build_extract_command,
    run_command,
)

SLIDER_COUNT_CHOICES = range(11)
"""Valid slider count selections, from none up to the largest choice."""

_STRING_OPTIONS = (
    ("--task", "task"),
    ("--language", "language"),
    ("--japanese-mode", "japanese_mode"),
    ("--model", "model"),
    ("--diarize", "diarize"),
    ("--ff", "ff"),
    ("--vad-method", "vad_method"),
    ("--vad-speech-pad-ms", "vad_speech_pad_ms"),
    ("--additional-command", "additional_command"),
    ("--start-margin", "start_margin"),
    ("--end-margin", "end_margin"),
)

_INT_OPTIONS = (
    ("--token-layer-offset", "token_layer_offset"),
    ("--segment-layer-offset", "segment_layer_offset"),
)

_EXO_OPTIONS = (
    ("--video-w", "video_w"),
    ("--video-h", "video_h"),
    ("--video-rate", "video_rate"),
    ("--video-scale", "video_scale"),
    ("--audio-rate", "audio_rate"),
    ("--audio-ch", "audio_ch"),
)

_FLAG_OPTIONS = (
    ("--token-item", "create_token_item"),
    ("--segment-item", "create_segment_item"),
    ("--psdtoolkit-item", "create_psdtoolkit_item"),
    ("--lip-sync", "use_lip_sync"),
    ("--subtitle", "use_subtitle"),
    ("--all-in-one", "all_in_one"),
)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the command line."""
    parser = argparse.ArgumentParser(
        prog="whau",
        description="Transcribe audio and turn the transcript into an exo timeline.",
    )
    parser.add_argument("--config", type=Path, help="settings file (default: next to the program)")
    parser.add_argument("--origin", type=Path, help="folder holding the transcriber toolchain")
    parser.add_argument("--save", action="store_true", help="store the resulting settings")

    paths = parser.add_argument_group("paths")
    paths.add_argument("--audio-file", type=Path, dest="audio_file_path")
    paths.add_argument("--interim-folder", type=Path, dest="interim_folder_path")
    paths.add_argument("--json-file", type=Path, dest="json_file_path")
    paths.add_argument("--wav-folder", type=Path, dest="wav_folder_path")

    options = parser.add_argument_group("settings")
    for flag, dest in _STRING_OPTIONS:
        options.add_argument(flag, dest=dest)
    for flag, dest in _INT_OPTIONS:
        options.add_argument(flag, dest=dest, type=int)
    for flag, dest in _EXO_OPTIONS:
        options.add_argument(flag, dest=f"exo_{dest}", type=int)
    for flag, dest in _FLAG_OPTIONS:
        options.add_argument(flag, dest=dest, action=argparse.BooleanOptionalAction, default=None)
    options.add_argument("--slider-count", type=int, choices=SLIDER_COUNT_CHOICES)

    commands = parser.add_subparsers(dest="action", required=True)
    commands.add_parser("command", help="print the transcriber command line")
    transcribe = commands.add_parser("transcribe", help="run the transcriber")
    transcribe.add_argument(
        "--install", action="store_true", help="install the transcriber if it is missing"
    )
    commands.add_parser("install", help="download and unpack the transcriber")
    exo = commands.add_parser("exo", help="write the exo file")
    exo.add_argument("--output", type=Path, help="exo file to write (default: next to the json file)")
    exo.add_argument("--no-extract", action="store_true", help="do not cut out wav clips")
    commands.add_parser("save", help="only store the settings")
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> None:
    if args.audio_file_path is not None:
        settings.audio_file_path = args.audio_file_path
        settings.apply_default_paths()
    if args.interim_folder_path is not None:
        settings.interim_folder_path = args.interim_folder_path
        settings.json_file_path = settings.default_json_file_path()
    if args.json_file_path is not None:
        settings.json_file_path = args.json_file_path
    if args.wav_folder_path is not None:
        settings.wav_folder_path = args.wav_folder_path

    for _, dest in (*_STRING_OPTIONS, *_INT_OPTIONS, *_FLAG_OPTIONS):
        value = getattr(args, dest)
        if value is not None:
            setattr(settings, dest, value)
    for _, dest in _EXO_OPTIONS:
        value = getattr(args, f"exo_{dest}")
        if value is not None:
            setattr(settings.exo, dest, value)
    if args.slider_count is not None:
        settings.slider_count = args.slider_count


def _log(message: str) -> None:
    print(message, flush=True)


def _run(args: argparse.Namespace, settings: Settings, config_path: Path) -> int:
    origin = args.origin if args.origin is not None else Path(sys.argv[0]).absolute().parent
    toolchain = Toolchain.from_origin(origin)
    transcriber = Transcriber(toolchain)
    settings.actual_command = transcriber.build_command(settings)

    if args.save or args.action == "save":
        write_config(settings, config_path)

    if args.action == "command":
        print(settings.actual_command)
        return 0
    if args.action == "install":
        transcriber.install(_log)
        return 0
    if args.action == "transcribe":
        if not transcriber.is_available() and args.install:
            transcriber.install(_log)
            return 0
        return transcriber.execute(settings, None, _log)
    if args.action == "exo":
        extract = None
        if not args.no_extract:
            def extract(clip: AudioClip) -> int:
                return run_command(
                    build_extract_command(
                        toolchain.ffmpeg_path,
                        settings.audio_file_path,
                        clip.start,
                        clip.duration,
                        clip.path,
                    ),
                    clip.path.parent,
                )
        output_exo_file(settings, args.output, extract, _log)
        return 0
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    args = build_parser().parse_args(argv)
    config_path = args.config if args.config is not None else config_path_for(sys.argv[0])
    settings = read_config(config_path)
    _apply_overrides(settings, args)
    try:
        return _run(args, settings, config_path)
    except (TranscriberError, ExoError, OSError) as error:
        print(error, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())