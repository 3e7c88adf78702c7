import enum
import numbers
from dataclasses import dataclass

import cv2
from tqdm import tqdm

from .config import ConversionConfig
from .errors import ConfigurationError, InvalidDimensionsError
from .rasterizer import CellTracer, FrameRasterizer
from .video_io import OpenCVVideoSource, open_sink


class PipelineState(enum.Enum):
    IDLE = "idle"
    SOURCE_OPENED = "source_opened"
    SINK_OPENED = "sink_opened"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class ConversionSession:
    """Per-run state, owned by the frame loop of one ``convert`` call."""

    source_width: int
    source_height: int
    fps: float
    total_frames: int
    grid_width: int
    grid_height: int
    output_width: int
    output_height: int
    processed_frames: int = 0

    @property
    def output_size(self):
        return self.output_width, self.output_height

    @property
    def percent(self):
        """Completion percentage, or None when the source did not report a frame count."""
        if self.total_frames <= 0:
            return None
        return self.processed_frames * 100.0 / self.total_frames


def compute_grid_height(grid_width, source_width, source_height):
    """Rows of glyphs for a grid ``grid_width`` columns wide.

    Glyph cells are about twice as tall as wide, hence the halving.
    """
    if source_width <= 0 or source_height <= 0:
        raise InvalidDimensionsError(f"Source dimensions {source_width}x{source_height} are not usable")
    grid_height = grid_width * source_height // source_width // 2
    if grid_height < 1:
        raise InvalidDimensionsError(
            f"A {grid_width}-column grid over a {source_width}x{source_height} source has no rows"
        )
    return grid_height


def downsample(frame, grid_width, grid_height):
    """Area-average a frame down to one color sample per grid cell."""
    return cv2.resize(frame, (grid_width, grid_height), interpolation=cv2.INTER_AREA)


class ProgressReporter:
    """Console output for a run: metadata, periodic progress, completion."""

    def __init__(self, every=30, bar=False, debug=False):
        self.every = every
        self.bar = bar
        self.debug = debug
        self._pbar = None

    def write(self, line):
        tqdm.write(line)

    def begin(self, session, ramp, output_path):
        self.write(
            f"Video info: {session.source_width}x{session.source_height}, "
            f"{session.fps:g}fps, {session.total_frames if session.total_frames > 0 else 'unknown'} frames"
        )
        self.write(f"Output size: {session.output_width}x{session.output_height}")
        self.write(f"ASCII grid: {session.grid_width}x{session.grid_height} characters")
        self.write(f"Charset: {len(ramp)} glyphs")
        if self.debug:
            self.write("Glyph brightness map:")
            entries = [f"'{g}' -> {ramp.brightness_of_index(i):.2f}" for i, g in enumerate(ramp)]
            for start in range(0, len(entries), 8):
                self.write(" | ".join(entries[start:start + 8]))
        self.write(f"Converting to {output_path} ...")
        if self.bar:
            self._pbar = tqdm(total=session.total_frames or None, desc="Rendering ASCII", unit="frame")

    def advance(self, session):
        if self._pbar is not None:
            self._pbar.update(1)
        if session.processed_frames % self.every != 0:
            return
        percent = session.percent
        if percent is None:
            self.write(f"Progress: {session.processed_frames} frames")
        else:
            self.write(
                f"Progress: {session.processed_frames}/{session.total_frames} frames ({percent:.1f}%)"
            )

    def close(self):
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

    def finish(self, session, output_path):
        self.close()
        self.write(f"Conversion complete! Total frames: {session.processed_frames}")
        self.write(f"Output file: {output_path}")


class ConversionPipeline:
    """Decode -> down-sample -> rasterize -> encode, one frame at a time.

    ``source_factory(path)`` must return an opened source (raising
    SourceOpenError otherwise); ``sink_opener(path, fps, size, codecs)``
    must return an opened sink or raise SinkOpenError. On success the sink's
    ``close()`` finalizes the output and may raise FrameEncodeError;
    ``release()`` always runs.
    """

    def __init__(self, config=None, source_factory=OpenCVVideoSource, sink_opener=open_sink,
                 reporter=None, tracer=None):
        self.config = config or ConversionConfig()
        self.source_factory = source_factory
        self.sink_opener = sink_opener
        self.reporter = reporter or ProgressReporter(
            every=self.config.progress_every, bar=self.config.progress_bar, debug=self.config.debug
        )
        if tracer is None and self.config.debug:
            tracer = CellTracer(emit=self.reporter.write)
        self.tracer = tracer
        self.state = PipelineState.IDLE
        self.session = None
        self._rasterizer = None
        self._cancelled = False

    @property
    def rasterizer(self):
        if self._rasterizer is None:
            self._rasterizer = FrameRasterizer.from_config(self.config)
        return self._rasterizer

    def cancel(self):
        """Stop after the frame currently being processed."""
        self._cancelled = True

    def _start_session(self, source, grid_width):
        grid_height = compute_grid_height(grid_width, source.width, source.height)
        fps = source.fps if source.fps and source.fps > 0 else self.config.fallback_fps
        out_w, out_h = self.rasterizer.canvas_size(grid_width, grid_height)
        return ConversionSession(
            source_width=source.width,
            source_height=source.height,
            fps=fps,
            total_frames=max(0, int(source.frame_count or 0)),
            grid_width=grid_width,
            grid_height=grid_height,
            output_width=out_w,
            output_height=out_h,
        )

    def render(self, frame, session):
        small = downsample(frame, session.grid_width, session.grid_height)
        return self.rasterizer.rasterize(small, trace=self.tracer)

    def convert(self, source_path, sink_path, grid_width):
        """Convert one video; returns the number of frames written."""
        if isinstance(grid_width, bool) or not isinstance(grid_width, numbers.Integral) or grid_width < 1:
            raise ConfigurationError(f"Grid width must be a positive integer, got {grid_width!r}")
        grid_width = int(grid_width)
        # build glyph tiles before touching any file
        rasterizer = self.rasterizer
        self.state = PipelineState.IDLE
        self.session = None
        self._cancelled = False
        if self.tracer is not None and hasattr(self.tracer, "reset"):
            self.tracer.reset()
        source = None
        sink = None
        try:
            source = self.source_factory(source_path)
            self.state = PipelineState.SOURCE_OPENED
            session = self.session = self._start_session(source, grid_width)

            sink = self.sink_opener(sink_path, session.fps, session.output_size, self.config.codecs)
            self.state = PipelineState.SINK_OPENED
            self.reporter.begin(session, rasterizer.ramp, sink_path)

            self.state = PipelineState.STREAMING
            while not self._cancelled:
                frame = source.read()
                if frame is None:
                    break
                sink.write(self.render(frame, session))
                session.processed_frames += 1
                self.reporter.advance(session)
            # finalize the output; a failing encoder surfaces here, not on release
            sink.close()
        except BaseException:
            self.state = PipelineState.FAILED
            self.reporter.close()
            raise
        finally:
            try:
                if sink is not None:
                    sink.release()
            finally:
                if source is not None:
                    source.release()

        self.state = PipelineState.CLOSED
        self.reporter.finish(session, sink_path)
        return session.processed_frames


def ascii_video_to_mp4(video_path, output_path, grid_width=80, config=None):
    """Render ``video_path`` as colored character art into ``output_path``."""
    return ConversionPipeline(config).convert(str(video_path), str(output_path), grid_width)
