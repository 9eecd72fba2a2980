"""Turning a transcript json file into an exo timeline file."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from whau.config import Settings
from whau.exo_items import (
    ENCODING,
    ExoDocument,
    write_all_in_one_item,
    write_audio_file_item,
    write_lip_sync_item,
    write_slider_item,
    write_subtitle_item,
    write_text_item,
)
from whau.textutil import truncate_stem

MAX_STEM_LENGTH = 16
"""Longest file stem, in characters, used for extracted wav clips."""

NO_SEGMENTS_MESSAGE = "exoファイルの作成に失敗しました\n原因：セグメントが存在しませんでした"

Log = Callable[[str], None]

_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class ExoError(RuntimeError):
    """Raised when an exo file cannot be produced."""


@dataclass(frozen=True)
class Word:
    """One recognised token with its time span in seconds."""

    start: float
    end: float
    word: str


@dataclass(frozen=True)
class Segment:
    """One recognised segment with its time span in seconds and its tokens."""

    start: float
    end: float
    text: str
    words: tuple[Word, ...] = ()


@dataclass(frozen=True)
class AudioClip:
    """A piece of the source audio to be cut out into its own wav file."""

    path: Path
    start: float
    duration: float


@dataclass
class ExoBuild:
    """The finished timeline and the audio clips its items refer to."""

    document: ExoDocument
    clips: list[AudioClip] = field(default_factory=list)


def _number(value: object, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ExoError(f"{what} is not a number")
    return float(value)


def _string(value: object, what: str) -> str:
    if not isinstance(value, str):
        raise ExoError(f"{what} is not a string")
    return value


def _parse_words(raw: object) -> tuple[Word, ...]:
    """Read tokens up to the first one that is malformed."""
    if not isinstance(raw, list):
        return ()
    words: list[Word] = []
    for item in raw:
        try:
            if not isinstance(item, dict):
                break
            words.append(
                Word(
                    _number(item["start"], "word start"),
                    _number(item["end"], "word end"),
                    _string(item["word"], "word"),
                )
            )
        except (KeyError, ExoError):
            break
    return tuple(words)


def _parse_segment(raw: object) -> Segment:
    if not isinstance(raw, dict):
        raise ExoError("segment is not an object")
    try:
        return Segment(
            _number(raw["start"], "segment start"),
            _number(raw["end"], "segment end"),
            _string(raw["text"], "segment text"),
            _parse_words(raw.get("words")),
        )
    except KeyError as error:
        raise ExoError(f"segment has no {error.args[0]}") from error


def load_segments(path: str | Path) -> list[Segment]:
    """Read the segments of a transcript json file."""
    try:
        with Path(path).open(encoding="utf-8") as stream:
            root = json.load(stream)
    except OSError as error:
        raise ExoError(f"cannot read {path}") from error
    except ValueError as error:
        raise ExoError(f"{path} is not valid json") from error
    if not isinstance(root, dict):
        raise ExoError(f"{path} does not hold a json object")
    raw_segments = root.get("segments")
    if not raw_segments:
        raise ExoError(NO_SEGMENTS_MESSAGE)
    if not isinstance(raw_segments, list):
        raise ExoError("segments is not an array")
    return [_parse_segment(raw) for raw in raw_segments]


def to_frame(seconds: float, rate: int, scale: int) -> int:
    """Convert a time in seconds to a frame number, truncating toward zero."""
    if scale == 0:
        raise ExoError("video scale must not be zero")
    return int(seconds * rate / scale)


def _parse_margin(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


def adjust_segment_times(
    segments: Sequence[Segment], start_margin: float, end_margin: float
) -> list[tuple[float, float]]:
    """Widen each segment by the margins without running into its neighbours.

    A segment that already overlaps its neighbour is probably another speaker,
    so it may be widened freely; otherwise it stops at the neighbour's edge.
    """
    next_starts = [segment.start for segment in segments[1:]]
    next_starts.append(segments[-1].end if segments else 0.0)

    times: list[tuple[float, float]] = []
    prev_end = 0.0
    for segment, next_start in zip(segments, next_starts):
        if segment.start < prev_end:
            start = max(segment.start - start_margin, 0.0)
        else:
            start = max(segment.start - start_margin, prev_end)
        if segment.end > next_start:
            end = segment.end + end_margin
        else:
            end = min(segment.end + end_margin, next_start)
        prev_end = end
        times.append((start, end))
    return times


class LayerAllocator:
    """Places items on the first row of layers where they overlap nothing."""

    def __init__(self, layer_offset: int, layer_begin: int = 0) -> None:
        self.layer_offset = layer_offset
        self.layer_begin = layer_begin
        self._rows: list[list[tuple[int, int]]] = []

    @staticmethod
    def _intersects(a: tuple[int, int], b: tuple[int, int]) -> bool:
        return a[1] >= b[0] and a[0] <= b[1]

    def place(self, frame_begin: int, frame_end: int) -> int:
        """Reserve room for the frame span and return the layer index it gets."""
        item = (frame_begin, frame_end)
        for row_index, row in enumerate(self._rows):
            if not any(self._intersects(placed, item) for placed in row):
                row.append(item)
                return row_index * self.layer_offset + self.layer_begin
        self._rows.append([item])
        return (len(self._rows) - 1) * self.layer_offset + self.layer_begin


def compute_layer_offset(settings: Settings) -> int:
    """Return how many layers one segment's stack of items takes up."""
    offset = 0
    if settings.create_token_item:
        offset += 1 + settings.token_layer_offset
    if settings.create_segment_item:
        offset += 1 + settings.segment_layer_offset
    if settings.create_psdtoolkit_item:
        offset += 1
        if settings.all_in_one:
            offset += 1
        else:
            offset += sum(
                (
                    bool(settings.use_lip_sync),
                    settings.slider_count != 0,
                    bool(settings.use_subtitle),
                )
            )
    return offset


def wav_file_name(index: int, text: str) -> str:
    """Return the file name of the wav clip for the *index*-th segment."""
    return f"{index:03d}_{truncate_stem(text, MAX_STEM_LENGTH)}.wav"


def _write_exedit(doc: ExoDocument, settings: Settings, length: int) -> None:
    exo = settings.exo
    doc.section("exedit")
    for key, value in (
        ("width", exo.video_w),
        ("height", exo.video_h),
        ("rate", exo.video_rate),
        ("scale", exo.video_scale),
        ("length", length),
        ("audio_rate", exo.audio_rate),
        ("audio_ch", exo.audio_ch),
    ):
        doc.property(key, value)


def build_exo(
    settings: Settings,
    segments: Sequence[Segment],
    wav_folder_path: str | Path,
    log: Log,
) -> ExoBuild:
    """Lay the segments out on a timeline according to *settings*."""
    if not segments:
        raise ExoError(NO_SEGMENTS_MESSAGE)

    rate, scale = settings.exo.video_rate, settings.exo.video_scale

    def frame(seconds: float) -> int:
        return to_frame(seconds, rate, scale)

    doc = ExoDocument()
    _write_exedit(doc, settings, frame(segments[-1].end))
    build = ExoBuild(doc)

    allocator = LayerAllocator(compute_layer_offset(settings))
    wav_folder = Path(wav_folder_path)
    times = adjust_segment_times(
        segments, _parse_margin(settings.start_margin), _parse_margin(settings.end_margin)
    )

    group_id = 1
    item_index = 0
    total = len(segments)
    for number, (segment, (start, end)) in enumerate(zip(segments, times), start=1):
        log(f'segment {number}/{total} [{segment.start:.2f} --> {segment.end:.2f}] "{segment.text}"')

        frame_begin, frame_end = frame(start), frame(end) - 1
        layer = allocator.place(frame_begin, frame_end)

        if settings.create_token_item:
            word_total = len(segment.words)
            for word_number, word in enumerate(segment.words, start=1):
                log(f'token {word_number}/{word_total} [{word.start:.2f} --> {word.end:.2f}] "{word.word}"')
                write_text_item(
                    doc, item_index, layer, group_id, frame(word.start), frame(word.end) - 1, word.word
                )
                item_index += 1
            layer += 1 + settings.token_layer_offset
            group_id += 1

        if settings.create_segment_item:
            write_text_item(doc, item_index, layer, 0, frame_begin, frame_end, segment.text)
            item_index += 1
            layer += 1 + settings.segment_layer_offset

        if settings.create_psdtoolkit_item:
            wav_path = wav_folder / wav_file_name(number, segment.text)
            build.clips.append(AudioClip(wav_path, start, end - start))

            write_audio_file_item(doc, item_index, layer, group_id, wav_path, frame_begin, frame_end)
            item_index += 1
            layer += 1

            if settings.all_in_one:
                write_all_in_one_item(
                    doc, item_index, layer, group_id, wav_path, frame_begin, frame_end,
                    segment.text, settings.use_lip_sync, settings.slider_count,
                )
                item_index += 1
                layer += 1
            else:
                if settings.use_lip_sync:
                    write_lip_sync_item(doc, item_index, layer, group_id, wav_path, frame_begin, frame_end)
                    item_index += 1
                    layer += 1
                if settings.slider_count != 0:
                    write_slider_item(
                        doc, item_index, layer, group_id, frame_begin, frame_end, settings.slider_count
                    )
                    item_index += 1
                    layer += 1
                if settings.use_subtitle:
                    write_subtitle_item(
                        doc, item_index, layer, group_id, frame_begin, frame_end, segment.text
                    )
                    item_index += 1
                    layer += 1
            group_id += 1

    return build


def _clear_wav_folder(folder: Path) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    for entry in folder.iterdir():
        if entry.suffix == ".wav" and entry.is_file():
            entry.unlink()


def output_exo_file(
    settings: Settings,
    exo_path: str | Path | None,
    extract_audio: Callable[[AudioClip], object] | None,
    log: Log,
) -> Path:
    """Write the exo file for *settings* and return where it was written.

    Without *exo_path* the default next to the json file is used. Each audio
    clip the timeline needs is handed to *extract_audio* when one is given.
    """
    log("exoファイル出力を開始します")
    target = Path(settings.default_exo_file_path() if exo_path is None else exo_path).absolute()
    log(f"exo_path = {target}")

    segments = load_segments(settings.json_file_path.absolute())
    wav_folder = settings.wav_folder_path.absolute()

    try:
        if settings.create_psdtoolkit_item:
            _clear_wav_folder(wav_folder)

        build = build_exo(settings, segments, wav_folder, log)

        if extract_audio is not None:
            for clip in build.clips:
                extract_audio(clip)

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(build.document.render().encode(ENCODING, errors="replace"))
    except OSError as error:
        raise ExoError(str(error)) from error

    log("exoファイル出力が完了しました")
    return target