"""Exceptions raised while converting a video to character art."""


class ConversionError(RuntimeError):
    """Base class for every failure that aborts a conversion."""


class ConfigurationError(ConversionError):
    """Invalid glyph ramp, grid width or other setting, detected before any I/O."""


class SourceOpenError(ConversionError):
    pass


class SinkOpenError(ConversionError):
    """No candidate codec could open the output file."""


class InvalidDimensionsError(ConversionError):
    """The source aspect ratio collapses the character grid to zero rows."""


class FrameDecodeError(ConversionError):
    pass


class FrameEncodeError(ConversionError):
    pass
