import struct
from typing import Optional, Tuple, Union

import varint
from bittables import (
    BIT_WRITE_MASKS,
    BITS_PER_BYTE,
    EXTRA_MASKS,
    MAX_BITS,
    bits_to_bytes,
    check_num_bits,
    get_bit_for_bit_num,
)
from errors import CodecOverflowError, EndOfBufferError

UBITVAR_HEADER_BITS = 6  #: Header bits of a ``UBitVar`` field
#: Extra payload bits selected by the top two header bits of a ``UBitVar``.
UBITVAR_EXTRA_BITS = (0, 4, 8, 28)

_FLOAT = struct.Struct("<f")
_U32 = struct.Struct("<I")


class BitWriter:
    """Bit-packing writer.

    Packs fields of arbitrary bit width into a byte buffer at an explicit
    bit cursor. Bit 0 of every byte is its least significant bit and
    fields are written LSB-first, straddling byte boundaries as needed.

    :ivar storage: Backing bytes. Owned unless a ``bytearray`` was passed in.
    :type storage: bytearray
    """

    def __init__(
        self,
        storage: Optional[Union[bytearray, int]] = None,
        num_bits: Optional[int] = None,
    ):
        """Create a writer.

        :param storage: ``None`` for growable storage, an ``int`` for an
            owned zero-filled buffer of that many bytes, or a
            ``bytearray`` to write into in place.
        :type storage: Optional[Union[bytearray, int]]
        :param num_bits: Capacity limit in bits for fixed storage.
            Defaults to the whole buffer.
        :type num_bits: Optional[int]
        :raises CodecOverflowError: If ``num_bits`` exceeds the storage.
        :raises TypeError: If ``storage`` is an immutable buffer.
        """
        growable = storage is None and num_bits is None
        if storage is None:
            storage = bytearray(bits_to_bytes(num_bits or 0))
        elif isinstance(storage, int):
            storage = bytearray(storage)
        elif not isinstance(storage, bytearray):
            raise TypeError(
                f"storage must be a bytearray, got {type(storage).__name__}"
            )

        if growable:
            capacity = None
        else:
            capacity = len(storage) * BITS_PER_BYTE
            if num_bits is not None:
                if not 0 <= num_bits <= capacity:
                    raise CodecOverflowError(
                        f"capacity {num_bits} bits exceeds storage of "
                        f"{capacity} bits"
                    )
                capacity = num_bits

        self.storage = storage
        self._capacity_bits = capacity
        self._cursor_bits = 0
        self._high_water_bits = 0

    @property
    def cursor_bits(self) -> int:
        return self._cursor_bits

    @property
    def capacity_bits(self) -> Optional[int]:
        """Addressable bits, or ``None`` when the storage grows on demand."""
        return self._capacity_bits

    @property
    def high_water_bits(self) -> int:
        """Furthest bit position ever written."""
        return self._high_water_bits

    @property
    def bits_left(self) -> Optional[int]:
        if self._capacity_bits is None:
            return None
        return self._capacity_bits - self._cursor_bits

    @property
    def bytes_written(self) -> int:
        return bits_to_bytes(self._high_water_bits)

    def tell(self) -> int:
        return self._cursor_bits

    def _reserve(self, num_bits: int) -> int:
        """Make room for ``num_bits`` more bits; return the end position."""
        end = self._cursor_bits + num_bits
        if self._capacity_bits is None:
            missing = bits_to_bytes(end) - len(self.storage)
            if missing > 0:
                self.storage.extend(bytes(missing))
        elif end > self._capacity_bits:
            raise CodecOverflowError(
                f"writing {num_bits} bits at bit {self._cursor_bits} "
                f"exceeds capacity of {self._capacity_bits} bits"
            )
        return end

    def _advance(self, end: int) -> None:
        self._cursor_bits = end
        if end > self._high_water_bits:
            self._high_water_bits = end

    def write_bits(self, value: int, num_bits: int) -> None:
        """Write the lowest ``num_bits`` of ``value``, LSB first.

        Bits of the destination bytes outside the field are preserved.

        :param value: Integer whose low bits are written. Negative values
            contribute their two's complement bits.
        :type value: int
        :param num_bits: Field width, 0-64.
        :type num_bits: int
        :returns: None
        :rtype: None
        :raises CodecOverflowError: If ``num_bits`` is out of range or the
            field does not fit. Nothing is written in that case.
        """
        check_num_bits(num_bits)
        end = self._reserve(num_bits)

        value &= EXTRA_MASKS[num_bits]
        pos = self._cursor_bits
        storage = self.storage
        while pos < end:
            byte_index = pos >> 3
            offset = pos & 7
            take = min(BITS_PER_BYTE - offset, end - pos)
            storage[byte_index] = (
                (storage[byte_index] & BIT_WRITE_MASKS[offset][take])
                | ((value & EXTRA_MASKS[take]) << offset)
            )
            value >>= take
            pos += take
        self._advance(end)

    def write_ubit32(self, value: int, num_bits: int) -> None:
        check_num_bits(num_bits, 32)
        self.write_bits(value, num_bits)

    def write_ubit64(self, value: int, num_bits: int) -> None:
        check_num_bits(num_bits, 64)
        self.write_bits(value, num_bits)

    def write_sbits(self, value: int, num_bits: int) -> None:
        """Write a two's complement signed field of ``num_bits`` bits.

        :raises CodecOverflowError: If ``value`` does not fit.
        """
        if not 1 <= num_bits <= MAX_BITS:
            raise CodecOverflowError(
                f"signed bit count {num_bits} outside [1, {MAX_BITS}]"
            )
        limit = 1 << (num_bits - 1)
        if not -limit <= value < limit:
            raise CodecOverflowError(
                f"value {value} does not fit in {num_bits} signed bits"
            )
        self.write_bits(value, num_bits)

    def write_bit(self, bit: int) -> None:
        end = self._reserve(1)
        byte_index, mask = get_bit_for_bit_num(self._cursor_bits)
        if bit:
            self.storage[byte_index] |= mask
        else:
            self.storage[byte_index] &= ~mask & 0xFF
        self._advance(end)

    def write_bool(self, flag: bool) -> None:
        self.write_bit(1 if flag else 0)

    def write_bytes(self, data: bytes) -> None:
        """Write whole bytes at the current bit position.

        Unlike a byte-oriented stream this does not realign the cursor:
        the bytes are laid out as consecutive 8-bit fields.

        :param data: Bytes to append.
        :type data: bytes
        :returns: None
        :rtype: None
        :raises CodecOverflowError: If the bytes do not all fit.
        """
        data = bytes(data)
        end = self._reserve(len(data) * BITS_PER_BYTE)
        if self._cursor_bits & 7 == 0:
            start = self._cursor_bits >> 3
            self.storage[start:start + len(data)] = data
            self._advance(end)
            return
        for b in data:
            self.write_bits(b, BITS_PER_BYTE)

    def write_float(self, value: float) -> None:
        """Write an IEEE-754 single precision float as 32 bits."""
        self.write_bits(_U32.unpack(_FLOAT.pack(value))[0], 32)

    def write_ubitvar(self, value: int) -> None:
        """Write ``value`` in the 6-bit-prefixed ``UBitVar`` layout.

        The low nibble sits in the header; the header's top two bits say
        whether 0, 4, 8 or 28 more bits follow.

        :param value: Unsigned value below ``2**32``.
        :type value: int
        :raises CodecOverflowError: If the value is out of range or the
            field does not fit.
        """
        if not 0 <= value < (1 << 32):
            raise CodecOverflowError(f"value {value} does not fit in u32")
        rest = value >> 4
        for selector, extra in enumerate(UBITVAR_EXTRA_BITS):
            if rest < (1 << extra):
                break
        self._reserve(UBITVAR_HEADER_BITS + extra)
        self.write_bits((value & 0xF) | (selector << 4), UBITVAR_HEADER_BITS)
        self.write_bits(rest, extra)

    def write_uvarint32(self, value: int) -> int:
        return self._write_encoded(varint.encode_uvarint(value, 32))

    def write_uvarint64(self, value: int) -> int:
        return self._write_encoded(varint.encode_uvarint(value, 64))

    def write_varint32(self, value: int) -> int:
        return self._write_encoded(varint.encode_varint(value, 32))

    def write_varint64(self, value: int) -> int:
        return self._write_encoded(varint.encode_varint(value, 64))

    def _write_encoded(self, data: bytes) -> int:
        self.write_bytes(data)
        return len(data)

    def seek_bits(self, position: int) -> None:
        """Move the cursor to an absolute bit position.

        :raises CodecOverflowError: If ``position`` is negative or past the
            capacity.
        """
        if position < 0 or (
            self._capacity_bits is not None
            and position > self._capacity_bits
        ):
            raise CodecOverflowError(
                f"seek to bit {position} outside [0, {self._capacity_bits}]"
            )
        if self._capacity_bits is None:
            missing = bits_to_bytes(position) - len(self.storage)
            if missing > 0:
                self.storage.extend(bytes(missing))
        self._cursor_bits = position

    def reset(self) -> None:
        self._cursor_bits = 0
        self._high_water_bits = 0

    def finish(self) -> bytes:
        """Return the written bytes, rounded up to a whole byte.

        Pad bits after :attr:`high_water_bits` in the last byte carry no
        meaning.

        :returns: The first :attr:`bytes_written` bytes of the storage.
        :rtype: bytes
        """
        return bytes(self.storage[:self.bytes_written])


class _BitReaderStream:
    """Byte-stream view over a :class:`BitReader` for the varint codec."""

    def __init__(self, reader: "BitReader"):
        self._reader = reader

    def read(self, size: int = -1) -> bytes:
        available = self._reader.bits_remaining // BITS_PER_BYTE
        if size is None or size < 0 or size > available:
            size = available
        return self._reader.read_bytes(size)


class BitReader:
    """Bit-unpacking reader, the exact mirror of :class:`BitWriter`.

    :ivar data: Source bytes.
    :type data: bytes
    """

    def __init__(self, data: bytes, length_bits: Optional[int] = None):
        """Create a reader over ``data``.

        :param data: Bytes-like source.
        :type data: bytes
        :param length_bits: Number of valid bits. Defaults to all of
            ``data``.
        :type length_bits: Optional[int]
        :raises CodecOverflowError: If ``length_bits`` exceeds ``data``.
        """
        self.data = data
        total = len(data) * BITS_PER_BYTE
        if length_bits is None:
            length_bits = total
        elif not 0 <= length_bits <= total:
            raise CodecOverflowError(
                f"length of {length_bits} bits exceeds data of {total} bits"
            )
        self._length_bits = length_bits
        self._cursor_bits = 0

    @property
    def cursor_bits(self) -> int:
        return self._cursor_bits

    @property
    def length_bits(self) -> int:
        return self._length_bits

    @property
    def bits_remaining(self) -> int:
        return self._length_bits - self._cursor_bits

    def tell(self) -> int:
        return self._cursor_bits

    def _claim(self, num_bits: int) -> int:
        end = self._cursor_bits + num_bits
        if end > self._length_bits:
            raise EndOfBufferError(
                f"reading {num_bits} bits at bit {self._cursor_bits} "
                f"exceeds length of {self._length_bits} bits"
            )
        return end

    def read_bits(self, num_bits: int) -> int:
        """Read ``num_bits`` bits, LSB first.

        :param num_bits: Field width, 0-64.
        :type num_bits: int
        :returns: The field value, in ``[0, 2**num_bits)``.
        :rtype: int
        :raises CodecOverflowError: If ``num_bits`` is out of range.
        :raises EndOfBufferError: If fewer than ``num_bits`` bits remain.
            The cursor does not move in that case.
        """
        check_num_bits(num_bits)
        end = self._claim(num_bits)

        data = self.data
        pos = self._cursor_bits
        result = 0
        shift = 0
        while pos < end:
            offset = pos & 7
            take = min(BITS_PER_BYTE - offset, end - pos)
            result |= ((data[pos >> 3] >> offset) & EXTRA_MASKS[take]) << shift
            shift += take
            pos += take
        self._cursor_bits = end
        return result

    def read_ubit32(self, num_bits: int) -> int:
        check_num_bits(num_bits, 32)
        return self.read_bits(num_bits)

    def read_ubit64(self, num_bits: int) -> int:
        check_num_bits(num_bits, 64)
        return self.read_bits(num_bits)

    def read_sbits(self, num_bits: int) -> int:
        """Read a two's complement signed field of ``num_bits`` bits."""
        if not 1 <= num_bits <= MAX_BITS:
            raise CodecOverflowError(
                f"signed bit count {num_bits} outside [1, {MAX_BITS}]"
            )
        value = self.read_bits(num_bits)
        if value >> (num_bits - 1):
            value -= 1 << num_bits
        return value

    def read_bit(self) -> int:
        end = self._claim(1)
        byte_index, mask = get_bit_for_bit_num(self._cursor_bits)
        self._cursor_bits = end
        return 1 if self.data[byte_index] & mask else 0

    def read_bool(self) -> bool:
        return self.read_bit() == 1

    def read_bytes(self, nbytes: int) -> bytes:
        """Read ``nbytes`` whole bytes from the current bit position.

        :param nbytes: Number of bytes to read.
        :type nbytes: int
        :returns: Exactly ``nbytes`` bytes.
        :rtype: bytes
        :raises EndOfBufferError: If not enough bits remain.
        """
        if nbytes < 0:
            raise CodecOverflowError(f"negative byte count: {nbytes}")
        end = self._claim(nbytes * BITS_PER_BYTE)
        if self._cursor_bits & 7 == 0:
            start = self._cursor_bits >> 3
            result = bytes(self.data[start:start + nbytes])
            self._cursor_bits = end
            return result
        return bytes(self.read_bits(BITS_PER_BYTE) for _ in range(nbytes))

    def read_float(self) -> float:
        """Read an IEEE-754 single precision float from 32 bits."""
        return _FLOAT.unpack(_U32.pack(self.read_bits(32)))[0]

    def read_ubitvar(self) -> int:
        """Read a ``UBitVar`` field written by :meth:`BitWriter.write_ubitvar`."""
        start = self._cursor_bits
        header = self.read_bits(UBITVAR_HEADER_BITS)
        try:
            rest = self.read_bits(UBITVAR_EXTRA_BITS[header >> 4])
        except EndOfBufferError:
            self._cursor_bits = start
            raise
        return (header & 0xF) | (rest << 4)

    def _read_varint(self, reader, width: int) -> Tuple[int, int]:
        start = self._cursor_bits
        try:
            return reader(_BitReaderStream(self), width)
        except Exception:
            self._cursor_bits = start
            raise

    def read_uvarint32(self) -> Tuple[int, int]:
        return self._read_varint(varint.read_uvarint, 32)

    def read_uvarint64(self) -> Tuple[int, int]:
        return self._read_varint(varint.read_uvarint, 64)

    def read_varint32(self) -> Tuple[int, int]:
        return self._read_varint(varint.read_varint, 32)

    def read_varint64(self) -> Tuple[int, int]:
        return self._read_varint(varint.read_varint, 64)

    def skip_bits(self, num_bits: int) -> None:
        if num_bits < 0:
            raise CodecOverflowError(f"negative skip: {num_bits}")
        self._cursor_bits = self._claim(num_bits)

    def seek_bits(self, position: int) -> None:
        """Move the cursor to an absolute bit position.

        :raises CodecOverflowError: If ``position`` is outside
            ``[0, length_bits]``.
        """
        if not 0 <= position <= self._length_bits:
            raise CodecOverflowError(
                f"seek to bit {position} outside [0, {self._length_bits}]"
            )
        self._cursor_bits = position
