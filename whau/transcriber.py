"""Building and running the speech-to-text command line."""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from whau.config import Settings
from whau.textutil import is_arg_valid

ARCHIVE_NAME = "Faster-Whisper-XXL_r245.2_windows.7z"
"""File name of the transcriber archive that is downloaded on install."""

DOWNLOAD_URL_ENV = "WHAU_DOWNLOAD_URL"
"""Environment variable holding the URL the transcriber archive is fetched from."""

USAGE_FILE = Path("assets") / "docs" / "usage-faster-whisper-xxl.txt"

Log = Callable[[str], None]


class TranscriberError(RuntimeError):
    """Raised when the transcriber cannot be installed or started."""


@dataclass
class Toolchain:
    """Locations of the external programs the application drives."""

    origin: Path
    download_url: str | None
    download_path: Path
    whisper_path: Path
    ffmpeg_path: Path

    @classmethod
    def from_origin(cls, origin: str | Path) -> Toolchain:
        """Lay out the toolchain below *origin*, the application's folder."""
        origin = Path(os.path.normpath(origin))
        download_path = Path(ARCHIVE_NAME)
        folder = origin / download_path.stem / "Faster-Whisper-XXL"
        return cls(
            origin=origin,
            download_url=os.environ.get(DOWNLOAD_URL_ENV) or None,
            download_path=download_path,
            whisper_path=folder / "faster-whisper-xxl.exe",
            ffmpeg_path=folder / "ffmpeg.exe",
        )


def run_command(command: str, cwd: str | Path) -> int:
    """Run *command* in *cwd*, wait for it and return its exit code."""
    args: str | list[str] = command if os.name == "nt" else shlex.split(command)
    try:
        completed = subprocess.run(args, cwd=cwd, check=False)
    except OSError as error:
        raise TranscriberError(f"cannot run command: {command}") from error
    return completed.returncode


def build_extract_command(
    ffmpeg_path: str | Path,
    audio_path: str | Path,
    start: float,
    duration: float,
    wav_path: str | Path,
) -> str:
    """Return the command that cuts a mono 16 kHz wav clip out of an audio file."""
    return (
        f'"{ffmpeg_path}" -i "{Path(audio_path).absolute()}"'
        f" -ss {start:.2f} -t {duration:.2f}"
        f' -ar 16000 -ac 1 -c:a pcm_s16le -y "{wav_path}"'
    )


class Transcriber:
    """Drives the external transcriber program."""

    def __init__(self, toolchain: Toolchain) -> None:
        self.toolchain = toolchain
        self._busy = threading.Lock()

    def build_command(self, settings: Settings) -> str:
        """Return the transcriber command line for *settings*."""
        parts = [f'"{self.toolchain.whisper_path}" "{settings.audio_file_path}"']
        options = (
            ("--task {}", settings.task),
            ("-l {}", settings.language),
            ("-m {}", settings.model),
            ("--diarize {}", settings.diarize),
            ("--vad_method {}", settings.vad_method),
            ("--{}", settings.ff),
            ("--japanese {}", settings.japanese_mode),
        )
        parts.extend(" " + template.format(value) for template, value in options if is_arg_valid(value))
        if settings.vad_speech_pad_ms:
            parts.append(f" --vad_speech_pad_ms {settings.vad_speech_pad_ms}")
        parts.append(" " + settings.additional_command)
        parts.append(
            f' --beep_off --print_progress --output_format all -o "{settings.interim_folder_path}"'
        )
        return "".join(parts)

    def is_available(self) -> bool:
        """Return True if the transcriber program is installed."""
        return self.toolchain.whisper_path.exists()

    def _acquire(self) -> None:
        if not self._busy.acquire(blocking=False):
            raise TranscriberError("サブスレッドを実行中です")

    def install(self, log: Log) -> None:
        """Download and unpack the transcriber, then save its help text."""
        toolchain = self.toolchain
        if not toolchain.download_url:
            raise TranscriberError(
                f"no download URL configured; set {DOWNLOAD_URL_ENV}"
            )
        self._acquire()
        try:
            log("文字起こしアプリの導入を開始します")
            run_command(
                "PowerShell -NoProfile -ExecutionPolicy Bypass -Command "
                f'"Start-BitsTransfer -Source {toolchain.download_url} -Destination {toolchain.download_path}"',
                toolchain.origin,
            )
            run_command(
                f"7za x {toolchain.download_path} -aoa -o{toolchain.download_path.stem}",
                toolchain.origin,
            )
            usage_path = USAGE_FILE.absolute()
            usage_path.parent.mkdir(parents=True, exist_ok=True)
            run_command(
                f'cmd /c "{toolchain.whisper_path}" --help > {usage_path}',
                toolchain.origin,
            )
            log(f"{usage_path}を作成しました")
            log("文字起こしアプリの導入が完了しました")
        finally:
            self._busy.release()

    def execute(
        self,
        settings: Settings,
        interim_folder_path: str | Path | None,
        log: Log,
    ) -> int:
        """Run the transcriber for *settings* and return its exit code.

        The command line is also saved next to the json file as ``.command.txt``.
        """
        if not self.is_available():
            raise TranscriberError("文字起こしアプリが存在しません")
        self._acquire()
        try:
            if not settings.audio_file_path.exists():
                raise TranscriberError("音声ファイルが無効です")
            folder = Path(
                settings.interim_folder_path if interim_folder_path is None else interim_folder_path
            ).absolute()
            folder.mkdir(parents=True, exist_ok=True)

            command = self.build_command(settings)
            command_file_path = settings.json_file_path.absolute().with_suffix(".command.txt")
            command_file_path.parent.mkdir(parents=True, exist_ok=True)
            command_file_path.write_bytes(command.encode("utf-8"))

            log("文字起こしを開始します")
            code = run_command(command, self.toolchain.origin)
            log("文字起こしが完了しました")
            return code
        finally:
            self._busy.release()