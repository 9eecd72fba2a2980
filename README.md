# whau

whau drives the Faster-Whisper XXL transcriber on an audio or video file and
turns the resulting JSON transcript into an AviUtl `.exo` timeline.

For every transcribed segment the timeline can hold:

- one text item per word (token),
- one text item for the whole segment,
- PSDToolKit items: an audio file item playing the segment cut out as a
  16 kHz mono WAV clip, plus lip-sync preparation, multi-purpose slider and
  subtitle preparation items, or instead a single combined "all in one" item.

Segments that overlap in time are placed on separate rows of layers, so no
two items collide. Start and end margins widen each segment, but only up to
its neighbour unless the two already overlap.

## Installation

```
pip install .
```

No third-party libraries are needed. Running a transcription and cutting WAV
clips needs the Faster-Whisper XXL standalone build and the `ffmpeg.exe`
bundled with it, laid out as
`<origin>/Faster-Whisper-XXL_r245.2_windows/Faster-Whisper-XXL/`.

## Command line

```
whau [global options] ACTION [action options]
```

Actions:

- `command` – print the transcriber command line built from the settings.
- `transcribe` – run the transcriber and wait for it; the exit status is the
  transcriber's. The command line is also saved next to the JSON file with
  the extension `.command.txt`. With `--install`, a missing transcriber is
  installed instead.
- `install` – download the transcriber archive, unpack it with `7za` and
  save its help text to `assets/docs/usage-faster-whisper-xxl.txt`. The
  download URL is taken from the `WHAU_DOWNLOAD_URL` environment variable;
  without it installing fails.
- `exo` – write the exo file from the JSON transcript. `--output FILE`
  chooses where (default: the JSON file's path with `.exo`); `--no-extract`
  skips cutting WAV clips with ffmpeg. When PSDToolKit items are enabled,
  existing `.wav` files in the WAV folder are deleted first. The file is
  written in cp932 with CR LF line ends.
- `save` – only store the settings.

Global options:

- `--config FILE` – settings file (default: the program's path with `.ini`).
- `--origin DIR` – folder holding the transcriber toolchain (default: the
  program's folder).
- `--save` – store the resulting settings before running the action.
- Paths: `--audio-file`, `--interim-folder`, `--json-file`, `--wav-folder`.
  Setting the audio file resets the other three to their defaults; setting
  the interim folder resets the JSON file.
- Transcriber options: `--task`, `--language`, `--japanese-mode`, `--model`,
  `--diarize`, `--ff`, `--vad-method`, `--vad-speech-pad-ms`,
  `--additional-command`.
- Timeline options: `--start-margin`, `--end-margin`, `--token-layer-offset`,
  `--segment-layer-offset`, `--slider-count` (0–10), and the switches
  `--[no-]token-item`, `--[no-]segment-item`, `--[no-]psdtoolkit-item`,
  `--[no-]lip-sync`, `--[no-]subtitle`, `--[no-]all-in-one`.
- Project properties: `--video-w`, `--video-h`, `--video-rate`,
  `--video-scale`, `--audio-rate`, `--audio-ch`.

Errors are printed to standard error and the exit status is 1.

## Configuration

Settings are kept in an INI file with these sections and keys:

- `[Faster-Whisper]`: `audio_file_path`, `interim_folder_path`, `task`,
  `language`, `japanese_mode`, `model`, `diarize`, `ff`, `vad_method`,
  `vad_speech_pad_ms`, `additional_command`
- `[exo]`: `video_w`, `video_h`, `video_rate`, `video_scale`,
  `audio_rate`, `audio_ch`
- `[AviUtl]`: `json_file_path`, `create_token_item`, `create_segment_item`,
  `create_psdtoolkit_item`, `token_layer_offset`, `segment_layer_offset`,
  `start_margin`, `end_margin`
- `[PSDToolKit]`: `wav_folder_path`, `use_lip_sync`, `use_subtitle`,
  `slider_count`, `all_in_one`
- `[etc]`: `choose_folder_on_transcribe`, `choose_file_on_output_exo_file`

Missing keys keep their defaults. Writing keeps any other content of the file.
A value of `指定なし` ("not specified") for a transcriber option leaves that
option off the command line.

Unless set explicitly, paths follow from the audio file: for `talk.wav` the
interim folder is `talk/whau`, the transcript is `talk/whau/talk.json`, the
exo file is `talk/whau/talk.exo` and the WAV clips go to `talk/`.

## Using it from Python

```python
from pathlib import Path

from whau.config import read_config, write_config
from whau.exo import output_exo_file
from whau.transcriber import Toolchain, Transcriber

settings = read_config(Path("whau.ini"))
settings.audio_file_path = Path("talk.wav")
settings.apply_default_paths()

transcriber = Transcriber(Toolchain.from_origin(Path.cwd()))
print(transcriber.build_command(settings))

output_exo_file(settings, None, None, print)
write_config(settings, Path("whau.ini"))
```

- `whau.config`: `Settings`, `ExoSettings`, `read_config`, `write_config`,
  `config_path_for`.
- `whau.transcriber`: `Toolchain`, `Transcriber` (`build_command`,
  `is_available`, `install`, `execute`), `build_extract_command`,
  `run_command`, `TranscriberError`.
- `whau.exo`: `load_segments`, `adjust_segment_times`, `to_frame`,
  `LayerAllocator`, `compute_layer_offset`, `wav_file_name`, `build_exo`,
  `output_exo_file`, `ExoError`.
- `whau.exo_items`: `ExoDocument` and the `write_*_item` functions for
  each kind of timeline item.

## What it does not do

whau is a command-line tool only; it has no window or dialog. It never asks
for a file or folder interactively, so `choose_folder_on_transcribe` and
`choose_file_on_output_exo_file` are read and written but have no effect.
Transcription runs in the foreground and blocks until it finishes. No
download URL for the transcriber is built in.