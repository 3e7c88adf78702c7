import pytest

from ascii_video import main as cli
from ascii_video.errors import SourceOpenError


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_convert(video_path, output_path, grid_width=80, config=None):
        recorded.append((video_path, output_path, grid_width, config))
        return 1

    monkeypatch.setattr(cli, "ascii_video_to_mp4", fake_convert)
    return recorded


def test_too_few_arguments_prints_usage_to_stdout(calls, capsys):
    assert cli.main(["ascii-video", "in.mp4"]) == 1
    captured = capsys.readouterr()
    assert "Usage: ascii-video" in captured.out
    assert calls == []


def test_grid_width_below_minimum(tmp_path, calls, capsys):
    src = tmp_path / "in.mp4"
    src.write_bytes(b"not really a video")
    out = tmp_path / "out.mp4"
    assert cli.main(["ascii-video", str(src), str(out), "10"]) == 1
    assert "between 20 and 300" in capsys.readouterr().err
    assert calls == []
    assert not out.exists()
    assert src.read_bytes() == b"not really a video"


def test_grid_width_must_be_numeric(calls, capsys):
    assert cli.main(["ascii-video", "in.mp4", "out.mp4", "wide"]) == 1
    assert "integer" in capsys.readouterr().err


def test_default_grid_width_and_success(calls, capsys):
    assert cli.main(["ascii-video", "in.mp4", "out.mp4"]) == 0
    (video, output, width, config), = calls
    assert (video, output, width) == ("in.mp4", "out.mp4", 80)
    assert not config.debug and not config.progress_bar
    out = capsys.readouterr().out
    assert "Color ASCII video created!" in out


def test_flags(calls):
    assert cli.main(["ascii-video", "--debug", "in.mp4", "out.mp4", "120", "--bar"]) == 0
    _, _, width, config = calls[0]
    assert width == 120
    assert config.debug and config.progress_bar


def test_unknown_flag(calls, capsys):
    assert cli.main(["ascii-video", "in.mp4", "out.mp4", "--invert"]) == 1
    assert "Unknown argument: --invert" in capsys.readouterr().err
    assert calls == []


def test_font_flag_requires_value(calls):
    assert cli.main(["ascii-video", "in.mp4", "out.mp4", "--font"]) == 1
    assert calls == []


def test_auto_font_not_found(calls, monkeypatch, capsys):
    monkeypatch.setattr(cli, "find_mono_font", lambda: None)
    assert cli.main(["ascii-video", "in.mp4", "out.mp4", "--font", "auto"]) == 1
    assert "no monospace font" in capsys.readouterr().err


def test_conversion_error_reported_on_stderr(monkeypatch, capsys):
    def failing(*args, **kwargs):
        raise SourceOpenError("Cannot open video file: in.mp4")

    monkeypatch.setattr(cli, "ascii_video_to_mp4", failing)
    assert cli.main(["ascii-video", "in.mp4", "out.mp4"]) == 1
    assert "Cannot open video file: in.mp4" in capsys.readouterr().err


def test_missing_input_end_to_end(tmp_path, capsys):
    out = tmp_path / "out.mp4"
    assert cli.main(["ascii-video", str(tmp_path / "nope.mp4"), str(out), "40"]) == 1
    assert "Cannot open video file" in capsys.readouterr().err
    assert not out.exists()
