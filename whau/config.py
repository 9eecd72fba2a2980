"""Application settings and their INI file representation."""

from __future__ import annotations

import configparser
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path

from whau.textutil import UNSPECIFIED


@dataclass
class ExoSettings:
    """Project properties written to the head of an exo file."""

    video_w: int = 1920
    video_h: int = 1080
    video_rate: int = 60
    video_scale: int = 1
    audio_rate: int = 48000
    audio_ch: int = 2


def _strip_suffix(path: Path) -> Path:
    return path.with_suffix("") if path.name else path


def _replace_suffix(path: Path, suffix: str) -> Path:
    return path.with_suffix(suffix) if path.name else path / suffix


@dataclass
class Settings:
    """Everything the user can configure."""

    # Transcriber options.
    audio_file_path: Path = field(default_factory=lambda: Path("assets") / "samples" / "電車.wav")
    interim_folder_path: Path = field(default_factory=Path)
    task: str = UNSPECIFIED
    language: str = "ja"
    model: str = "large-v2"
    diarize: str = "pyannote_v3.1"
    vad_method: str = "pyannote_v3"
    vad_speech_pad_ms: str = ""
    ff: str = UNSPECIFIED
    japanese_mode: str = "blend"
    additional_command: str = ""
    actual_command: str = ""

    exo: ExoSettings = field(default_factory=ExoSettings)

    # Timeline item options.
    json_file_path: Path = field(default_factory=Path)
    create_token_item: bool = True
    create_segment_item: bool = True
    create_psdtoolkit_item: bool = True
    token_layer_offset: int = 1
    segment_layer_offset: int = 1
    start_margin: str = "0.0"
    end_margin: str = "0.0"

    # PSDToolKit options.
    wav_folder_path: Path = field(default_factory=Path)
    use_lip_sync: bool = True
    use_subtitle: bool = True
    slider_count: int = 0
    all_in_one: bool = True

    choose_folder_on_transcribe: bool = False
    choose_file_on_output_exo_file: bool = False

    def default_interim_folder_path(self) -> Path:
        """The audio file's path without extension, plus a ``whau`` folder."""
        return _strip_suffix(self.audio_file_path) / "whau"

    def default_json_file_path(self) -> Path:
        """The audio file's name with a ``.json`` extension inside the interim folder."""
        name = self.audio_file_path.name
        base = self.interim_folder_path / name if name else self.interim_folder_path
        return _replace_suffix(base, ".json")

    def default_exo_file_path(self) -> Path:
        """The json file's path with an ``.exo`` extension."""
        return _replace_suffix(self.json_file_path, ".exo")

    def default_wav_folder_path(self) -> Path:
        """The audio file's path without extension."""
        return _strip_suffix(self.audio_file_path)

    def apply_default_paths(self) -> None:
        """Reset the derived paths from the audio file path, in dependency order."""
        self.interim_folder_path = self.default_interim_folder_path()
        self.json_file_path = self.default_json_file_path()
        self.wav_folder_path = self.default_wav_folder_path()


class _Kind(Enum):
    STRING = "string"
    PATH = "path"
    INT = "int"
    FLAG = "flag"


# (section, key, nested group or None, kind); the key is also the field name.
_FIELDS: tuple[tuple[str, str, str | None, _Kind], ...] = (
    ("Faster-Whisper", "audio_file_path", None, _Kind.PATH),
    ("Faster-Whisper", "interim_folder_path", None, _Kind.PATH),
    ("Faster-Whisper", "task", None, _Kind.STRING),
    ("Faster-Whisper", "language", None, _Kind.STRING),
    ("Faster-Whisper", "japanese_mode", None, _Kind.STRING),
    ("Faster-Whisper", "model", None, _Kind.STRING),
    ("Faster-Whisper", "diarize", None, _Kind.STRING),
    ("Faster-Whisper", "ff", None, _Kind.STRING),
    ("Faster-Whisper", "vad_method", None, _Kind.STRING),
    ("Faster-Whisper", "vad_speech_pad_ms", None, _Kind.STRING),
    ("Faster-Whisper", "additional_command", None, _Kind.STRING),
    ("exo", "video_w", "exo", _Kind.INT),
    ("exo", "video_h", "exo", _Kind.INT),
    ("exo", "video_rate", "exo", _Kind.INT),
    ("exo", "video_scale", "exo", _Kind.INT),
    ("exo", "audio_rate", "exo", _Kind.INT),
    ("exo", "audio_ch", "exo", _Kind.INT),
    ("AviUtl", "json_file_path", None, _Kind.PATH),
    ("AviUtl", "create_token_item", None, _Kind.FLAG),
    ("AviUtl", "create_segment_item", None, _Kind.FLAG),
    ("AviUtl", "create_psdtoolkit_item", None, _Kind.FLAG),
    ("AviUtl", "token_layer_offset", None, _Kind.INT),
    ("AviUtl", "segment_layer_offset", None, _Kind.INT),
    ("AviUtl", "start_margin", None, _Kind.STRING),
    ("AviUtl", "end_margin", None, _Kind.STRING),
    ("PSDToolKit", "wav_folder_path", None, _Kind.PATH),
    ("PSDToolKit", "use_lip_sync", None, _Kind.FLAG),
    ("PSDToolKit", "use_subtitle", None, _Kind.FLAG),
    ("PSDToolKit", "slider_count", None, _Kind.INT),
    ("PSDToolKit", "all_in_one", None, _Kind.FLAG),
    ("etc", "choose_folder_on_transcribe", None, _Kind.FLAG),
    ("etc", "choose_file_on_output_exo_file", None, _Kind.FLAG),
)

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def config_path_for(executable: str | Path) -> Path:
    """Return the INI file that sits next to *executable*."""
    return Path(executable).with_suffix(".ini")


def _parse_int(raw: str) -> int:
    match = _INT_PREFIX.match(raw)
    return int(match.group(1)) if match else 0


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _parser(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    if path.is_file():
        parser.read(path, encoding="utf-8")
    return parser


def _section_names(parser: configparser.ConfigParser) -> dict[str, str]:
    return {name.lower(): name for name in parser.sections()}


def _target(values: dict, group: str | None) -> dict:
    return values[group] if group else values


def read_config(path: str | Path) -> Settings:
    """Load settings from *path*; keys that are absent keep their defaults."""
    base = Settings()
    base.apply_default_paths()
    values = asdict(base)

    parser = _parser(Path(path))
    sections = _section_names(parser)
    for section, key, group, kind in _FIELDS:
        real = sections.get(section.lower())
        if real is None or not parser.has_option(real, key):
            continue
        raw = parser.get(real, key)
        if kind is _Kind.STRING:
            value = _unquote(raw)
        elif kind is _Kind.PATH:
            value = Path(_unquote(raw))
        elif kind is _Kind.INT:
            value = _parse_int(raw)
        else:
            value = _parse_int(raw) != 0
        _target(values, group)[key] = value

    exo_values = values.pop("exo")
    return Settings(**values, exo=ExoSettings(**exo_values))


def write_config(settings: Settings, path: str | Path) -> None:
    """Store *settings* in *path*, keeping any other content already there."""
    path = Path(path)
    parser = _parser(path)
    sections = _section_names(parser)
    values = asdict(settings)
    for section, key, group, kind in _FIELDS:
        real = sections.get(section.lower())
        if real is None:
            parser.add_section(section)
            sections[section.lower()] = real = section
        value = _target(values, group)[key]
        if kind is _Kind.FLAG:
            text = "1" if value else "0"
        elif kind is _Kind.INT:
            text = str(int(value))
        else:
            text = str(value)
        parser.set(real, key, text)
    with path.open("w", encoding="utf-8", newline="") as stream:
        parser.write(stream, space_around_delimiters=False)