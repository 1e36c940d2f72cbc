[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtmpwire"
version = "0.1.0"
description = "RTMP wire format: handshake packets, chunks, raw messages, AMF0 and typed protocol messages"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtmp", "streaming", "amf0", "chunk", "handshake", "video", "protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtmpwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
