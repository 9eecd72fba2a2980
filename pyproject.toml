[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "whau"
version = "0.1.0"
description = "Transcribe audio with Faster-Whisper and turn the transcript into AviUtl exo timelines"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "whisper",
    "faster-whisper",
    "transcription",
    "speech-to-text",
    "aviutl",
    "exo",
    "psdtoolkit",
    "subtitles",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Japanese",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
    "Topic :: Multimedia :: Video :: Non-Linear Editor",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
whau = "whau.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["whau"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
