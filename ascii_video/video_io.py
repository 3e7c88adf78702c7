"""OpenCV / ffmpeg wrappers used as the decode and encode ends of a conversion."""

import shutil
import subprocess

import cv2
import numpy as np

from .config import FFMPEG_CODEC
from .errors import FrameDecodeError, FrameEncodeError, SinkOpenError, SourceOpenError


class OpenCVVideoSource:
    """Sequential frame reader over ``cv2.VideoCapture``.

    Frames come back as (H, W, 3) uint8 arrays in OpenCV's BGR order.
    """

    def __init__(self, path):
        self.path = str(path)
        self._cap = cv2.VideoCapture(self.path)
        if not self._cap.isOpened():
            self._cap.release()
            raise SourceOpenError(f"Cannot open video file: {self.path}")
        self.fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        self.frame_count = max(0, int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)))
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if self.width <= 0 or self.height <= 0:
            self._cap.release()
            raise SourceOpenError(
                f"Video reports invalid dimensions {self.width}x{self.height}: {self.path}"
            )

    def read(self):
        """Next BGR frame, or None at end of stream."""
        try:
            ret, frame = self._cap.read()
        except cv2.error as exc:
            raise FrameDecodeError(f"Failed to decode frame from {self.path}: {exc}") from exc
        if not ret or frame is None:
            return None
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.ndim == 3 and frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        if frame.ndim != 3 or frame.shape[2] != 3 or frame.dtype != np.uint8 or frame.size == 0:
            raise FrameDecodeError(
                f"Decoder returned an unusable frame (shape={frame.shape}, dtype={frame.dtype})"
            )
        return frame

    def release(self):
        self._cap.release()


class OpenCVVideoSink:
    """``cv2.VideoWriter`` for a single FourCC. Check ``is_opened()`` after construction."""

    def __init__(self, path, codec, fps, size):
        self.path = str(path)
        self.codec = codec
        self.size = tuple(size)
        self._writer = cv2.VideoWriter(self.path, cv2.VideoWriter_fourcc(*codec), fps, self.size)

    def is_opened(self):
        return self._writer.isOpened()

    def write(self, frame):
        _check_frame_size(frame, self.size)
        try:
            self._writer.write(frame)
        except cv2.error as exc:
            raise FrameEncodeError(f"Failed to encode frame with {self.codec}: {exc}") from exc

    def close(self):
        self.release()

    def release(self):
        self._writer.release()


class FfmpegVideoSink:
    """Pipes raw BGR frames into an ``ffmpeg`` process (libx264, yuv420p)."""

    codec = FFMPEG_CODEC

    def __init__(self, path, fps, size):
        self.path = str(path)
        self.size = tuple(size)
        self.proc = None
        if shutil.which("ffmpeg") is None:
            return
        ow, oh = self.size
        cmd = [
            "ffmpeg",
            "-y",
            "-f", "rawvideo",
            "-pix_fmt", "bgr24",
            "-s", f"{ow}x{oh}",
            "-r", str(fps),
            "-i", "-",
            "-an",
            "-c:v", "libx264",
            "-pix_fmt", "yuv420p",
            self.path,
        ]
        try:
            self.proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                bufsize=10**8,
            )
        except OSError:
            self.proc = None

    def is_opened(self):
        return self.proc is not None and self.proc.poll() is None

    def write(self, frame):
        _check_frame_size(frame, self.size)
        if not self.is_opened():
            raise FrameEncodeError(f"ffmpeg exited before all frames were written to {self.path}")
        try:
            self.proc.stdin.write(np.ascontiguousarray(frame).tobytes())
        except OSError as exc:
            raise FrameEncodeError(f"Failed to pipe frame to ffmpeg: {exc}") from exc

    def _finish(self):
        try:
            self.proc.stdin.close()
        except OSError:
            # broken pipe: ffmpeg already gone, wait() below reaps it
            pass
        code = self.proc.wait()
        self.proc = None
        return code

    def close(self):
        """Flush the encoder and fail if ffmpeg did not exit cleanly."""
        if self.proc is None:
            return
        code = self._finish()
        if code != 0:
            raise FrameEncodeError(f"ffmpeg exited with status {code} while writing {self.path}")

    def release(self):
        if self.proc is not None:
            self._finish()


def _check_frame_size(frame, size):
    w, h = size
    if frame.shape[:2] != (h, w):
        raise FrameEncodeError(
            f"Frame is {frame.shape[1]}x{frame.shape[0]}, sink expects {w}x{h}"
        )


def make_sink(path, codec, fps, size):
    if codec == FFMPEG_CODEC:
        return FfmpegVideoSink(path, fps, size)
    return OpenCVVideoSink(path, codec, fps, size)


def open_sink(path, fps, size, codecs, factory=make_sink):
    """Open the first candidate codec that works, in preference order."""
    tried = []
    for codec in codecs:
        sink = factory(path, codec, fps, size)
        if sink.is_opened():
            return sink
        sink.release()
        tried.append(codec)
    raise SinkOpenError(f"Cannot create output video {path}; tried codecs: {', '.join(tried)}")
