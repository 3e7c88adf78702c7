import sys

from .ascii_to_mp4 import ascii_video_to_mp4
from .config import (
    DEFAULT_GRID_WIDTH,
    MAX_GRID_WIDTH,
    MIN_GRID_WIDTH,
    ConversionConfig,
    validate_grid_width,
)
from .errors import ConversionError
from .rasterizer import find_mono_font

RULE = "=" * 40


def usage(prog):
    return "\n".join([
        f"Usage: {prog} <input_video> <output_video> [grid_width] [--debug] [--bar] [--font PATH|auto]",
        f"Example: {prog} input.mp4 ascii.mp4 120",
        f"Suggested grid width: 60-150, allowed {MIN_GRID_WIDTH}-{MAX_GRID_WIDTH} (default {DEFAULT_GRID_WIDTH})",
    ])


def main(argv=None):
    argv = sys.argv if argv is None else argv
    prog = argv[0] if argv else "ascii-video"
    positional = []
    debug = False
    bar = False
    font_path = None

    args = list(argv[1:])
    i = 0
    while i < len(args):
        a = args[i]
        if a == "--debug":
            debug = True
        elif a == "--bar":
            bar = True
        elif a == "--font":
            i += 1
            if i >= len(args):
                print("Error: --font must be followed by a font path or 'auto'", file=sys.stderr)
                return 1
            font_path = args[i]
        elif a.startswith("--"):
            print(f"Unknown argument: {a}", file=sys.stderr)
            print(usage(prog), file=sys.stderr)
            return 1
        else:
            positional.append(a)
        i += 1

    if len(positional) < 2:
        print(usage(prog))
        return 1
    if len(positional) > 3:
        print(f"Unexpected arguments: {' '.join(positional[3:])}", file=sys.stderr)
        print(usage(prog), file=sys.stderr)
        return 1

    input_path, output_path = positional[0], positional[1]
    try:
        width = validate_grid_width(positional[2]) if len(positional) == 3 else DEFAULT_GRID_WIDTH
    except ConversionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(usage(prog), file=sys.stderr)
        return 1

    if font_path == "auto":
        font_path = find_mono_font()
        if font_path is None:
            print("Error: no monospace font found, pass --font PATH", file=sys.stderr)
            return 1

    try:
        config = ConversionConfig(font_path=font_path, progress_bar=bar, debug=debug)
    except ConversionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(RULE)
    print("Color ASCII video converter")
    print(RULE)

    try:
        ascii_video_to_mp4(input_path, output_path, width, config)
    except ConversionError as exc:
        print(RULE, file=sys.stderr)
        print(f"Conversion failed: {exc}", file=sys.stderr)
        print(RULE, file=sys.stderr)
        return 1

    print(RULE)
    print("Color ASCII video created!")
    print(f"Output file: {output_path}")
    print(RULE)
    return 0


if __name__ == "__main__":
    sys.exit(main())
