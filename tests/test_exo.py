import json
from pathlib import Path

import pytest

from whau.config import Settings
from whau.exo import (
    AudioClip,
    ExoError,
    LayerAllocator,
    Segment,
    Word,
    adjust_segment_times,
    build_exo,
    compute_layer_offset,
    load_segments,
    output_exo_file,
    to_frame,
    wav_file_name,
)


def _sections(text: str) -> dict[str, dict[str, str]]:
    sections: dict[str, dict[str, str]] = {}
    current: dict[str, str] = {}
    for line in text.split("\r\n"):
        if line.startswith("[") and line.endswith("]"):
            current = sections.setdefault(line[1:-1], {})
        elif "=" in line:
            key, value = line.split("=", 1)
            current[key] = value
    return sections


def _item_names(text: str) -> list[str]:
    return [name for name in _sections(text) if name != "exedit" and "." not in name]


def _write_json(path: Path, segments: list[dict]) -> Path:
    path.write_text(json.dumps({"segments": segments}, ensure_ascii=False), encoding="utf-8")
    return path


SEGMENTS = [
    Segment(0.0, 1.0, "こんにちは", (Word(0.0, 0.5, "こん"), Word(0.5, 1.0, "にちは"))),
    Segment(2.0, 3.0, "さようなら"),
]


def test_to_frame_scales_by_rate():
    assert to_frame(1.0, 60, 1) == 60
    assert to_frame(2.0, 60, 2) == 60
    assert to_frame(0.0, 60, 1) == 0


def test_to_frame_zero_scale_raises():
    with pytest.raises(ExoError):
        to_frame(1.0, 60, 0)


def test_adjust_without_margins_keeps_times():
    segs = [Segment(1.0, 2.0, "a"), Segment(3.0, 4.0, "b")]
    assert adjust_segment_times(segs, 0.0, 0.0) == [(1.0, 2.0), (3.0, 4.0)]


def test_adjust_stops_at_neighbours():
    segs = [Segment(1.0, 2.0, "a"), Segment(3.0, 4.0, "b")]
    times = adjust_segment_times(segs, 0.5, 0.5)
    assert times[0][0] == pytest.approx(0.5)
    assert times[1][0] == pytest.approx(times[0][1])
    assert times[1][1] == pytest.approx(4.0)
    assert times[0][1] <= 3.0


def test_adjust_overlapping_segments_widen_freely():
    segs = [Segment(1.0, 3.0, "a"), Segment(2.0, 4.0, "b")]
    times = adjust_segment_times(segs, 0.5, 0.5)
    assert times[0][1] == pytest.approx(3.5)
    assert times[1][0] == pytest.approx(1.5)
    assert times[1][0] < times[0][1]


def test_adjust_start_never_negative():
    times = adjust_segment_times([Segment(0.2, 1.0, "a")], 1.0, 0.0)
    assert times[0][0] == 0.0


def test_layer_allocator_reuses_free_rows():
    allocator = LayerAllocator(3, 0)
    assert allocator.place(0, 10) == 0
    assert allocator.place(5, 15) == 3
    assert allocator.place(11, 20) == 0
    assert allocator.place(0, 30) == 2 * 3


def test_layer_allocator_touching_items_conflict():
    allocator = LayerAllocator(4, 7)
    assert allocator.place(0, 10) == 7
    assert allocator.place(10, 20) == 7 + 4


def test_layer_offset_all_disabled_is_zero():
    settings = Settings(create_token_item=False, create_segment_item=False, create_psdtoolkit_item=False)
    assert compute_layer_offset(settings) == 0


def test_layer_offset_counts_psdtoolkit_items():
    base = dict(create_token_item=False, create_segment_item=False, create_psdtoolkit_item=True)
    all_in_one = compute_layer_offset(Settings(all_in_one=True, **base))
    separate = compute_layer_offset(
        Settings(all_in_one=False, use_lip_sync=True, use_subtitle=True, slider_count=2, **base)
    )
    bare = compute_layer_offset(
        Settings(all_in_one=False, use_lip_sync=False, use_subtitle=False, slider_count=0, **base)
    )
    assert separate - bare == 3
    assert all_in_one - bare == 1


def test_layer_offset_uses_layer_offsets():
    small = compute_layer_offset(Settings(token_layer_offset=0, create_psdtoolkit_item=False))
    large = compute_layer_offset(Settings(token_layer_offset=5, create_psdtoolkit_item=False))
    assert large - small == 5


def test_wav_file_name_pads_index():
    assert wav_file_name(12, "abc") == "012_abc.wav"


def test_wav_file_name_truncates_long_text():
    name = wav_file_name(1, "x" * 40)
    stem = name[len("001_"):-len(".wav")]
    assert len(stem) == 16
    assert stem.endswith("…")


def test_load_segments_reads_words(tmp_path):
    path = _write_json(
        tmp_path / "t.json",
        [{"start": 0.5, "end": 1.5, "text": "hi", "words": [{"start": 0.5, "end": 1.0, "word": "h"}]}],
    )
    segments = load_segments(path)
    assert segments == [Segment(0.5, 1.5, "hi", (Word(0.5, 1.0, "h"),))]


def test_load_segments_without_words(tmp_path):
    path = _write_json(tmp_path / "t.json", [{"start": 0, "end": 1, "text": "a"}])
    assert load_segments(path)[0].words == ()


def test_load_segments_stops_at_bad_word(tmp_path):
    path = _write_json(
        tmp_path / "t.json",
        [{"start": 0, "end": 2, "text": "ab", "words": [
            {"start": 0, "end": 1, "word": "a"},
            {"start": 1, "word": "b"},
            {"start": 1.5, "end": 2, "word": "c"},
        ]}],
    )
    assert [w.word for w in load_segments(path)[0].words] == ["a"]


@pytest.mark.parametrize("content", ['{"segments": []}', "{}", "not json", "[1, 2]"])
def test_load_segments_rejects_bad_files(tmp_path, content):
    path = tmp_path / "t.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ExoError):
        load_segments(path)


def test_load_segments_missing_file(tmp_path):
    with pytest.raises(ExoError):
        load_segments(tmp_path / "absent.json")


def test_load_segments_segment_without_text(tmp_path):
    path = _write_json(tmp_path / "t.json", [{"start": 0, "end": 1}])
    with pytest.raises(ExoError):
        load_segments(path)


def test_build_exo_header(tmp_path):
    build = build_exo(Settings(), SEGMENTS, tmp_path, lambda line: None)
    header = _sections(build.document.render())["exedit"]
    assert header["width"] == "1920"
    assert header["height"] == "1080"
    assert header["length"] == str(to_frame(3.0, 60, 1))


def test_build_exo_items_are_numbered_contiguously(tmp_path):
    build = build_exo(Settings(), SEGMENTS, tmp_path, lambda line: None)
    names = _item_names(build.document.render())
    assert names == [str(i) for i in range(len(names))]


def test_build_exo_token_items_follow_words(tmp_path):
    with_tokens = build_exo(Settings(), SEGMENTS, tmp_path, lambda line: None)
    without = build_exo(Settings(create_token_item=False), SEGMENTS, tmp_path, lambda line: None)
    words = sum(len(s.words) for s in SEGMENTS)
    assert len(_item_names(with_tokens.document.render())) - len(
        _item_names(without.document.render())
    ) == words


def test_build_exo_clips(tmp_path):
    build = build_exo(Settings(), SEGMENTS, tmp_path, lambda line: None)
    assert [clip.path for clip in build.clips] == [
        tmp_path / wav_file_name(1, "こんにちは"),
        tmp_path / wav_file_name(2, "さようなら"),
    ]
    assert build.clips[1].start == pytest.approx(2.0)
    assert build.clips[1].duration == pytest.approx(1.0)


def test_build_exo_groups_and_layers(tmp_path):
    build = build_exo(Settings(), SEGMENTS, tmp_path, lambda line: None)
    sections = _sections(build.document.render())
    assert sections["0"]["group"] == "1"
    assert sections["0"]["layer"] == "1"
    assert sections["2"]["_name" if "_name" in sections["2"] else "layer"] == sections["2"].get("layer")
    assert "group" not in sections["2"]
    assert sections["3"]["group"] == "2"
    assert sections["3"]["audio"] == "1"


def test_build_exo_without_psdtoolkit_has_no_clips(tmp_path):
    build = build_exo(Settings(create_psdtoolkit_item=False), SEGMENTS, tmp_path, lambda line: None)
    assert build.clips == []


def test_build_exo_logs_segments_and_tokens(tmp_path):
    lines: list[str] = []
    build_exo(Settings(), SEGMENTS, tmp_path, lines.append)
    assert lines[0] == 'segment 1/2 [0.00 --> 1.00] "こんにちは"'
    assert 'token 2/2 [0.50 --> 1.00] "にちは"' in lines


def test_build_exo_empty_raises(tmp_path):
    with pytest.raises(ExoError):
        build_exo(Settings(), [], tmp_path, lambda line: None)


def test_output_exo_file_writes_and_cleans(tmp_path):
    json_path = _write_json(
        tmp_path / "t.json",
        [{"start": 0, "end": 1, "text": "a"}, {"start": 1, "end": 2, "text": "b"}],
    )
    wav_folder = tmp_path / "wav"
    wav_folder.mkdir()
    (wav_folder / "stale.wav").write_bytes(b"")
    (wav_folder / "keep.txt").write_text("x")

    settings = Settings(json_file_path=json_path, wav_folder_path=wav_folder)
    clips: list[AudioClip] = []
    lines: list[str] = []
    exo_path = output_exo_file(settings, tmp_path / "out.exo", clips.append, lines.append)

    assert exo_path == (tmp_path / "out.exo").absolute()
    assert not (wav_folder / "stale.wav").exists()
    assert (wav_folder / "keep.txt").exists()
    assert len(clips) == 2
    text = exo_path.read_bytes().decode("cp932")
    assert text.startswith("[exedit]\r\n")
    assert lines[0] == "exoファイル出力を開始します"
    assert lines[-1] == "exoファイル出力が完了しました"


def test_output_exo_file_default_path(tmp_path):
    json_path = _write_json(tmp_path / "t.json", [{"start": 0, "end": 1, "text": "a"}])
    settings = Settings(json_file_path=json_path, create_psdtoolkit_item=False)
    exo_path = output_exo_file(settings, None, None, lambda line: None)
    assert exo_path == (tmp_path / "t.exo").absolute()
    assert exo_path.is_file()


def test_output_exo_file_missing_json(tmp_path):
    settings = Settings(json_file_path=tmp_path / "none.json")
    with pytest.raises(ExoError):
        output_exo_file(settings, tmp_path / "o.exo", None, lambda line: None)