"""Timeline items of an exo file and the document they are written into."""

from __future__ import annotations

from pathlib import Path

from whau.textutil import escape_backslashes, to_hex_string

ENCODING = "cp932"
"""Encoding the editor expects exo files to be stored in."""

LINE_END = "\r\n"

_SUBTITLE_TEMPLATE = (
    "<?s=[==[" "\r\n"
    "{}" "\r\n"
    '\u005d==];require("PSDToolKit").subtitle:set(s,obj,true);s=nil?>'
)

_ALL_IN_ONE_TEMPLATE = (
    "<?s=[==[" "\r\n"
    "{}" "\r\n"
    '\u005d==];require("PSDToolKit").prep.init('
    "{{ls_mgl=0,ls_mgr=0,st_mgl=0,st_mgr=0,sl_mgl=0,sl_mgr=0,}},obj,s)?>"
)

_LIP_SYNC_NAME = "口パク準備@PSDToolKit"
_SLIDER_NAME = "多目的スライダー@PSDToolKit"


class ExoDocument:
    """An exo file under construction: sections and their properties, in order."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def section(self, name: str | int) -> None:
        """Start a new section called *name*."""
        self._lines.append(f"[{name}]")

    def property(self, key: str, value: str | int) -> None:
        """Add ``key=value`` to the current section."""
        self._lines.append(f"{key}={value}")

    def render(self) -> str:
        """Return the document text, every line ended by CR LF."""
        return "".join(line + LINE_END for line in self._lines)


def to_text(text: str) -> str:
    """Encode *text* the way text objects store their content."""
    return to_hex_string(text)


def _write_header(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    frame_begin: int,
    frame_end: int,
    *,
    audio: bool = False,
) -> None:
    doc.section(index)
    doc.property("start", frame_begin + 1)
    doc.property("end", frame_end + 1)
    doc.property("layer", layer + 1)
    if group:
        doc.property("group", group)
    doc.property("overlay", "1")
    if audio:
        doc.property("audio", "1")
    else:
        doc.property("camera", "0")


def _write_text_object(doc: ExoDocument, section: str, encoded_text: str) -> None:
    doc.section(section)
    for key, value in (
        ("_name", "テキスト"),
        ("サイズ", "34"),
        ("表示速度", "0.0"),
        ("文字毎に個別オブジェクト", "0"),
        ("移動座標上に表示する", "0"),
        ("自動スクロール", "0"),
        ("B", "0"),
        ("I", "0"),
        ("type", "0"),
        ("autoadjust", "0"),
        ("soft", "1"),
        ("monospace", "0"),
        ("align", "0"),
        ("spacing_x", "0"),
        ("spacing_y", "0"),
        ("precision", "1"),
        ("color", "ffffff"),
        ("color2", "000000"),
        ("font", "MS UI Gothic"),
        ("text", encoded_text),
    ):
        doc.property(key, value)


def _write_standard_draw(doc: ExoDocument, section: str) -> None:
    doc.section(section)
    for key, value in (
        ("_name", "標準描画"),
        ("X", "0.0"),
        ("Y", "0.0"),
        ("Z", "0.0"),
        ("拡大率", "100.00"),
        ("透明度", "0.0"),
        ("回転", "0.00"),
        ("blend", "0"),
    ):
        doc.property(key, value)


def _write_script(doc: ExoDocument, section: str, kind: str, name: str, param: str) -> None:
    doc.section(section)
    doc.property("_name", kind)
    for track in range(4):
        doc.property(f"track{track}", "0.00")
    doc.property("check0", "0")
    doc.property("type", "0")
    doc.property("filter", "2")
    doc.property("name", name)
    doc.property("param", param)


def _lip_sync_param(audio_file_path: str | Path) -> str:
    return f'file="{escape_backslashes(str(audio_file_path))}"'


def write_text_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    frame_begin: int,
    frame_end: int,
    text: str,
) -> None:
    """Write a plain text item showing *text*."""
    _write_header(doc, index, layer, group, frame_begin, frame_end)
    _write_text_object(doc, f"{index}.0", to_text(text))
    _write_standard_draw(doc, f"{index}.1")


def write_audio_file_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    audio_file_path: str | Path,
    frame_begin: int,
    frame_end: int,
) -> None:
    """Write an audio item that plays *audio_file_path*."""
    _write_header(doc, index, layer, group, frame_begin, frame_end, audio=True)
    doc.section(f"{index}.0")
    doc.property("_name", "音声ファイル")
    doc.property("再生位置", "0.00")
    doc.property("再生速度", "100.0")
    doc.property("ループ再生", "0")
    doc.property("動画ファイルと連携", "0")
    doc.property("file", str(audio_file_path))
    doc.section(f"{index}.1")
    doc.property("_name", "標準再生")
    doc.property("音量", "100.0")
    doc.property("左右", "0.0")


def write_lip_sync_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    audio_file_path: str | Path,
    frame_begin: int,
    frame_end: int,
) -> None:
    """Write a lip-sync preparation item bound to *audio_file_path*."""
    _write_header(doc, index, layer, group, frame_begin, frame_end)
    _write_script(
        doc, f"{index}.0", "カスタムオブジェクト", _LIP_SYNC_NAME, _lip_sync_param(audio_file_path)
    )
    _write_standard_draw(doc, f"{index}.1")


def write_slider_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    frame_begin: int,
    frame_end: int,
    slider_count: int,
) -> None:
    """Write a multi-purpose slider item with *slider_count* extra slider effects."""
    _write_header(doc, index, layer, group, frame_begin, frame_end)
    sub = 0
    _write_script(doc, f"{index}.{sub}", "カスタムオブジェクト", _SLIDER_NAME, "")
    sub += 1
    for _ in range(slider_count):
        _write_script(doc, f"{index}.{sub}", "アニメーション効果", _SLIDER_NAME, "")
        sub += 1
    _write_standard_draw(doc, f"{index}.{sub}")


def write_subtitle_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    frame_begin: int,
    frame_end: int,
    text: str,
) -> None:
    """Write a subtitle preparation item carrying *text*."""
    _write_header(doc, index, layer, group, frame_begin, frame_end)
    _write_text_object(doc, f"{index}.0", to_text(_SUBTITLE_TEMPLATE.format(text)))
    _write_standard_draw(doc, f"{index}.1")


def write_all_in_one_item(
    doc: ExoDocument,
    index: int,
    layer: int,
    group: int,
    audio_file_path: str | Path,
    frame_begin: int,
    frame_end: int,
    text: str,
    use_lip_sync: bool,
    slider_count: int,
) -> None:
    """Write one item that prepares subtitle, lip sync and sliders together."""
    _write_header(doc, index, layer, group, frame_begin, frame_end)
    sub = 0
    _write_text_object(doc, f"{index}.{sub}", to_text(_ALL_IN_ONE_TEMPLATE.format(text)))
    sub += 1
    if use_lip_sync:
        _write_script(
            doc, f"{index}.{sub}", "アニメーション効果", _LIP_SYNC_NAME, _lip_sync_param(audio_file_path)
        )
        sub += 1
    if slider_count != 0:
        for _ in range(slider_count + 1):
            _write_script(doc, f"{index}.{sub}", "アニメーション効果", _SLIDER_NAME, "")
            sub += 1
    _write_standard_draw(doc, f"{index}.{sub}")