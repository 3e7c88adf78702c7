import sys
from pathlib import Path

import numpy as np
import pytest

# Add repository root to sys.path so 'ascii_video' imports without installing
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ascii_video.errors import FrameDecodeError, FrameEncodeError, SourceOpenError  # noqa: E402


class FakeSource:
    """In-memory stand-in for OpenCVVideoSource."""

    def __init__(self, frames, width=None, height=None, fps=25.0, frame_count=None, fail_at=None):
        self.frames = list(frames)
        first = self.frames[0] if self.frames else None
        self.width = width if width is not None else first.shape[1]
        self.height = height if height is not None else first.shape[0]
        self.fps = fps
        self.frame_count = len(self.frames) if frame_count is None else frame_count
        self.fail_at = fail_at
        self.reads = 0
        self.released = False

    def read(self):
        if self.fail_at is not None and self.reads == self.fail_at:
            raise FrameDecodeError("corrupt packet")
        if self.reads >= len(self.frames):
            return None
        frame = self.frames[self.reads]
        self.reads += 1
        return frame

    def release(self):
        self.released = True


class RecordingSink:
    def __init__(self, path, fps, size, codecs, fail_at=None):
        self.path = path
        self.fps = fps
        self.size = size
        self.codecs = codecs
        self.fail_at = fail_at
        self.frames = []
        self.closed = False
        self.released = False

    def write(self, frame):
        if self.fail_at is not None and len(self.frames) == self.fail_at:
            raise FrameEncodeError("disk full")
        assert frame.shape[:2] == (self.size[1], self.size[0])
        self.frames.append(frame.copy())

    def close(self):
        self.closed = True

    def release(self):
        self.released = True


class Harness:
    """Injects fake I/O into a ConversionPipeline and records what it saw."""

    def __init__(self, source=None, source_error=None, sink_fail_at=None):
        self.source = source
        self.source_error = source_error
        self.sink_fail_at = sink_fail_at
        self.sink = None
        self.sink_open_calls = 0

    def open_source(self, path):
        if self.source_error is not None:
            raise self.source_error
        return self.source

    def open_sink(self, path, fps, size, codecs):
        self.sink_open_calls += 1
        self.sink = RecordingSink(path, fps, size, codecs, fail_at=self.sink_fail_at)
        return self.sink


def solid_frames(n, width=64, height=48, color=(40, 120, 200)):
    frame = np.empty((height, width, 3), dtype=np.uint8)
    frame[:] = color
    return [frame.copy() for _ in range(n)]


@pytest.fixture
def harness_factory():
    def make(**kwargs):
        return Harness(**kwargs)
    return make


@pytest.fixture
def missing_source():
    return Harness(source_error=SourceOpenError("Cannot open video file: missing.mp4"))
