class CodecError(Exception):
    """Base class for every error raised by the bit buffer and varint codec.

    Each subclass also derives from the closest builtin exception, so
    callers catching ``EOFError``, ``OverflowError``, ``ValueError`` or
    ``OSError`` keep working.
    """


class StreamIOError(CodecError, OSError):
    """The underlying byte stream failed to read or write.

    The underlying exception is available as ``__cause__``.
    """


class EndOfBufferError(CodecError, EOFError):
    """A read asked for more bits than remain in the buffer."""


class UnexpectedEofError(CodecError, EOFError):
    """Input ended before a varint's terminating byte was seen."""


class CodecOverflowError(CodecError, OverflowError):
    """A write exceeds capacity, or a width/value is out of range."""


class MalformedVarintError(CodecError, ValueError):
    """A varint kept its continuation bit set past the maximum length.

    :ivar width: Integer width (32 or 64) being decoded.
    :type width: int
    :ivar max_bytes: Longest legal encoding for ``width``.
    :type max_bytes: int
    """

    def __init__(self, width: int, max_bytes: int):
        super().__init__(
            f"malformed varint: no terminating byte after more than "
            f"{max_bytes} bytes for a {width}-bit value"
        )
        self.width = width
        self.max_bytes = max_bytes
