import pytest

from bittables import (
    BIT_WRITE_MASKS,
    EXTRA_MASKS,
    LITTLE_BITS,
    bits_to_bytes,
    check_num_bits,
    get_bit_for_bit_num,
)
from errors import CodecOverflowError


def test_get_bit_for_bit_num_is_lsb_first():
    assert get_bit_for_bit_num(0) == (0, 0x01)
    assert get_bit_for_bit_num(7) == (0, 0x80)
    assert get_bit_for_bit_num(8) == (1, 0x01)
    assert get_bit_for_bit_num(21) == (2, 0x20)


def test_get_bit_for_bit_num_rejects_negative():
    with pytest.raises(CodecOverflowError):
        get_bit_for_bit_num(-1)


def test_mask_tables():
    assert EXTRA_MASKS[0] == 0
    assert EXTRA_MASKS[8] == 0xFF
    assert EXTRA_MASKS[64] == 2**64 - 1
    assert LITTLE_BITS == [1, 2, 4, 8, 16, 32, 64, 128]
    assert BIT_WRITE_MASKS[0][8] == 0x00
    assert BIT_WRITE_MASKS[3][0] == 0xFF
    assert BIT_WRITE_MASKS[3][2] == 0b11100111
    assert BIT_WRITE_MASKS[7][1] == 0x7F


def test_bits_to_bytes_rounds_up():
    assert [bits_to_bytes(n) for n in (0, 1, 8, 9, 64)] == [0, 1, 1, 2, 8]


def test_check_num_bits():
    check_num_bits(0)
    check_num_bits(64)
    check_num_bits(32, 32)
    with pytest.raises(CodecOverflowError):
        check_num_bits(65)
    with pytest.raises(CodecOverflowError):
        check_num_bits(33, 32)
    with pytest.raises(OverflowError):
        check_num_bits(-1)
