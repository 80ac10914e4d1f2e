from typing import List, Tuple

from errors import CodecOverflowError

BITS_PER_BYTE = 8  #: Bits in a storage byte
MAX_BITS = 64  #: Widest field accepted by a single read/write call

#: ``EXTRA_MASKS[n]`` keeps the low ``n`` bits of a value (n = 0..64).
EXTRA_MASKS: List[int] = [(1 << n) - 1 for n in range(MAX_BITS + 1)]

#: ``LITTLE_BITS[i]`` selects bit ``i`` of a byte, bit 0 being the LSB.
LITTLE_BITS: List[int] = [1 << i for i in range(BITS_PER_BYTE)]

#: ``BIT_WRITE_MASKS[offset][n]`` keeps every bit of a byte except the
#: ``n`` bits starting at ``offset``.
BIT_WRITE_MASKS: List[List[int]] = [
    [
        ~(EXTRA_MASKS[n] << offset) & 0xFF
        for n in range(BITS_PER_BYTE - offset + 1)
    ]
    for offset in range(BITS_PER_BYTE)
]


def get_bit_for_bit_num(bit_num: int) -> Tuple[int, int]:
    """Map an absolute bit index to its byte and in-byte mask.

    Both :class:`bitops.BitWriter` and :class:`bitops.BitReader` go
    through this mapping, which keeps them symmetric.

    :param bit_num: Absolute bit position (0 is the LSB of byte 0).
    :type bit_num: int
    :returns: ``(byte_index, mask)``.
    :rtype: Tuple[int, int]
    :raises CodecOverflowError: If ``bit_num`` is negative.
    """
    if bit_num < 0:
        raise CodecOverflowError(f"negative bit index: {bit_num}")
    return bit_num >> 3, LITTLE_BITS[bit_num & 7]


def bits_to_bytes(num_bits: int) -> int:
    """Number of whole bytes needed to hold ``num_bits`` bits."""
    return (num_bits + BITS_PER_BYTE - 1) // BITS_PER_BYTE


def check_num_bits(num_bits: int, width: int = MAX_BITS) -> None:
    """Reject field widths outside ``[0, width]``.

    :raises CodecOverflowError: If ``num_bits`` is out of range.
    """
    if not 0 <= num_bits <= width:
        raise CodecOverflowError(
            f"bit count {num_bits} outside [0, {width}]"
        )
