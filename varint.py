"""Variable-length integer codec.

Each byte carries 7 payload bits in its low bits and a continuation flag in
its most-significant bit (1 = more bytes follow). The least significant
7-bit group comes first. Signed values are zigzag-mapped before encoding so
that small magnitudes stay short::

    bytes  value range
    1      0 .. 127
    2      128 .. 16383
    3      16384 .. 2097151
    4      2097152 .. 268435455
    5      268435456 .. 0xFFFFFFFF

Streams are duck-typed: writers need ``write(bytes)`` and readers need
``read(size)`` returning ``b""`` at end of stream.
"""

import io
from typing import Tuple

from errors import (
    CodecOverflowError,
    MalformedVarintError,
    StreamIOError,
    UnexpectedEofError,
)

CONTINUATION_BIT = 0x80
PAYLOAD_MASK = 0x7F
SUPPORTED_WIDTHS = (32, 64)


def max_varint_size(width: int) -> int:
    """Longest varint encoding, in bytes, of a ``width``-bit integer."""
    return (width + 6) // 7


MAX_VARINT32_BYTES = max_varint_size(32)
MAX_VARINT64_BYTES = max_varint_size(64)


def _check_width(width: int) -> None:
    if width not in SUPPORTED_WIDTHS:
        raise CodecOverflowError(f"unsupported integer width: {width}")


def _check_unsigned(value: int, width: int) -> None:
    _check_width(width)
    if not 0 <= value < (1 << width):
        raise CodecOverflowError(
            f"value {value} does not fit in u{width}"
        )


def _check_signed(value: int, width: int) -> None:
    _check_width(width)
    limit = 1 << (width - 1)
    if not -limit <= value < limit:
        raise CodecOverflowError(
            f"value {value} does not fit in i{width}"
        )


def zigzag_encode(n: int, width: int = 64) -> int:
    """Map a signed integer onto an unsigned one of the same width.

    ``0, -1, 1, -2, 2, ...`` become ``0, 1, 2, 3, 4, ...``.

    :param n: Signed value in the ``width``-bit range.
    :type n: int
    :param width: 32 or 64.
    :type width: int
    :returns: Unsigned zigzag value.
    :rtype: int
    :raises CodecOverflowError: If ``n`` does not fit in ``width`` bits.
    """
    _check_signed(n, width)
    return ((n << 1) ^ (n >> (width - 1))) & ((1 << width) - 1)


def zigzag_decode(u: int, width: int = 64) -> int:
    """Exact inverse of :func:`zigzag_encode`."""
    _check_unsigned(u, width)
    return (u >> 1) ^ -(u & 1)


def zigzag_encode32(n: int) -> int:
    return zigzag_encode(n, 32)


def zigzag_encode64(n: int) -> int:
    return zigzag_encode(n, 64)


def zigzag_decode32(u: int) -> int:
    return zigzag_decode(u, 32)


def zigzag_decode64(u: int) -> int:
    return zigzag_decode(u, 64)


def uvarint_size(value: int) -> int:
    """Number of bytes :func:`encode_uvarint` produces for ``value``."""
    if value < 0:
        raise CodecOverflowError(f"negative value: {value}")
    return max(1, (value.bit_length() + 6) // 7)


def encode_uvarint(value: int, width: int = 64) -> bytes:
    """Encode an unsigned integer as varint bytes.

    :param value: Value in ``[0, 2**width)``.
    :type value: int
    :param width: 32 or 64.
    :type width: int
    :returns: Between 1 and ``max_varint_size(width)`` bytes.
    :rtype: bytes
    :raises CodecOverflowError: If ``value`` does not fit in ``width`` bits.
    """
    _check_unsigned(value, width)
    out = bytearray()
    while value >= CONTINUATION_BIT:
        out.append((value & PAYLOAD_MASK) | CONTINUATION_BIT)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_varint(value: int, width: int = 64) -> bytes:
    """Zigzag-map ``value`` and encode it with :func:`encode_uvarint`."""
    return encode_uvarint(zigzag_encode(value, width), width)


def _write_all(stream, data: bytes) -> int:
    try:
        written = stream.write(data)
    except OSError as e:
        raise StreamIOError(f"varint write failed: {e}") from e
    # Raw streams may accept fewer bytes than offered; buffered ones
    # either take everything or raise.
    if written is not None and written != len(data):
        raise StreamIOError(
            f"short write: {written} of {len(data)} bytes"
        )
    return len(data)


def _read_byte(stream) -> int:
    try:
        chunk = stream.read(1)
    except OSError as e:
        raise StreamIOError(f"varint read failed: {e}") from e
    if not chunk:
        raise UnexpectedEofError("stream ended inside a varint")
    return chunk[0]


def write_uvarint(stream, value: int, width: int = 64) -> int:
    """Write an unsigned varint to ``stream``.

    :param stream: Object with a ``write(bytes)`` method.
    :param value: Value in ``[0, 2**width)``.
    :type value: int
    :param width: 32 or 64.
    :type width: int
    :returns: Number of bytes written.
    :rtype: int
    :raises CodecOverflowError: If ``value`` is out of range.
    :raises StreamIOError: If the stream write fails.
    """
    return _write_all(stream, encode_uvarint(value, width))


def write_varint(stream, value: int, width: int = 64) -> int:
    """Write a signed, zigzag-mapped varint to ``stream``."""
    return write_uvarint(stream, zigzag_encode(value, width), width)


def write_uvarint32(stream, value: int) -> int:
    return write_uvarint(stream, value, 32)


def write_uvarint64(stream, value: int) -> int:
    return write_uvarint(stream, value, 64)


def write_varint32(stream, value: int) -> int:
    return write_varint(stream, value, 32)


def write_varint64(stream, value: int) -> int:
    return write_varint(stream, value, 64)


def read_uvarint(stream, width: int = 64) -> Tuple[int, int]:
    """Read one unsigned varint from ``stream``.

    Bytes are consumed one at a time, so the stream is left positioned
    right after the varint. At most ``max_varint_size(width) + 1`` bytes
    are read.

    Payload bits above ``width`` are truncated, not reported: a terminating
    byte that carries more bits than the integer can hold yields the value
    masked to ``width`` bits.

    :param stream: Object with a ``read(size)`` method.
    :param width: 32 or 64.
    :type width: int
    :returns: ``(value, bytes_consumed)``.
    :rtype: Tuple[int, int]
    :raises UnexpectedEofError: If the stream ends before the terminating
        byte.
    :raises MalformedVarintError: If more than ``max_varint_size(width)``
        bytes were read and all had the continuation bit set.
    :raises StreamIOError: If the stream read fails.
    """
    _check_width(width)
    max_bytes = max_varint_size(width)
    result = 0
    for count in range(max_bytes + 1):
        byte = _read_byte(stream)
        result |= (byte & PAYLOAD_MASK) << (7 * count)
        if not byte & CONTINUATION_BIT:
            return result & ((1 << width) - 1), count + 1
    raise MalformedVarintError(width, max_bytes)


def read_varint(stream, width: int = 64) -> Tuple[int, int]:
    """Read one signed, zigzag-mapped varint from ``stream``."""
    value, consumed = read_uvarint(stream, width)
    return zigzag_decode(value, width), consumed


def read_uvarint32(stream) -> Tuple[int, int]:
    return read_uvarint(stream, 32)


def read_uvarint64(stream) -> Tuple[int, int]:
    return read_uvarint(stream, 64)


def read_varint32(stream) -> Tuple[int, int]:
    return read_varint(stream, 32)


def read_varint64(stream) -> Tuple[int, int]:
    return read_varint(stream, 64)


def decode_uvarint(data, offset: int = 0, width: int = 64) -> Tuple[int, int]:
    """Decode an unsigned varint from an in-memory buffer.

    :param data: Bytes-like object.
    :param offset: Index of the first varint byte.
    :type offset: int
    :param width: 32 or 64.
    :type width: int
    :returns: ``(value, bytes_consumed)``.
    :rtype: Tuple[int, int]
    """
    return read_uvarint(io.BytesIO(memoryview(data)[offset:]), width)


def decode_varint(data, offset: int = 0, width: int = 64) -> Tuple[int, int]:
    value, consumed = decode_uvarint(data, offset, width)
    return zigzag_decode(value, width), consumed
