"""
test_hypothesis.py - Property-based tests for the bit buffer and varints

Run with:
    pytest tests/test_hypothesis.py -v
    HYPOTHESIS_PROFILE=ci pytest tests/test_hypothesis.py
"""

import io

import pytest
from hypothesis import given, assume
from hypothesis import strategies as st

import varint
from bitops import BitReader, BitWriter
from errors import CodecOverflowError, MalformedVarintError, UnexpectedEofError


# =============================================================================
# Strategies
# =============================================================================

u32_values = st.integers(min_value=0, max_value=2**32 - 1)
u64_values = st.integers(min_value=0, max_value=2**64 - 1)
s32_values = st.integers(min_value=-2**31, max_value=2**31 - 1)
s64_values = st.integers(min_value=-2**63, max_value=2**63 - 1)

VALUES = {
    (32, False): u32_values,
    (64, False): u64_values,
    (32, True): s32_values,
    (64, True): s64_values,
}


@st.composite
def bit_fields(draw):
    """A list of (value, num_bits) fields with arbitrary widths."""
    widths = draw(st.lists(st.integers(0, 64), min_size=1, max_size=20))
    return [(draw(st.integers(0, 2**64 - 1)), n) for n in widths]


# =============================================================================
# Varint properties
# =============================================================================

@pytest.mark.parametrize("width,signed", list(VALUES))
@given(data=st.data())
def test_varint_roundtrip(width, signed, data):
    value = data.draw(VALUES[width, signed])
    buf = io.BytesIO()
    if signed:
        n = varint.write_varint(buf, value, width)
    else:
        n = varint.write_uvarint(buf, value, width)
    assert 1 <= n <= varint.max_varint_size(width)
    buf.seek(0)
    read = varint.read_varint if signed else varint.read_uvarint
    assert read(buf, width) == (value, n)


@given(s64_values)
def test_zigzag_bijection(value):
    assert varint.zigzag_decode64(varint.zigzag_encode64(value)) == value


@given(st.integers(min_value=-2**30, max_value=2**30))
def test_zigzag_keeps_small_magnitudes_small(value):
    encoded = varint.zigzag_encode32(value)
    assert encoded == (2 * value if value >= 0 else -2 * value - 1)
    assert abs(value) <= encoded <= 2 * abs(value)


@given(u64_values)
def test_every_strict_prefix_is_truncated(value):
    encoded = varint.encode_uvarint(value)
    for cut in range(len(encoded)):
        with pytest.raises(UnexpectedEofError):
            varint.read_uvarint64(io.BytesIO(encoded[:cut]))


@given(st.binary(min_size=0, max_size=16))
def test_decoder_never_returns_garbage(data):
    """Arbitrary input either decodes in bounds or raises a codec error."""
    try:
        value, n = varint.read_uvarint32(io.BytesIO(data))
    except (UnexpectedEofError, MalformedVarintError):
        return
    assert 0 <= value < 2**32
    assert 1 <= n <= varint.MAX_VARINT32_BYTES + 1
    assert data[n - 1] & 0x80 == 0


@given(st.integers(min_value=6, max_value=12))
def test_long_continuation_runs_are_malformed(length):
    with pytest.raises(MalformedVarintError):
        varint.read_uvarint32(io.BytesIO(b"\x80" * length))


# =============================================================================
# Bit buffer properties
# =============================================================================

@given(
    offset=st.integers(0, 63),
    num_bits=st.integers(0, 64),
    value=st.integers(0, 2**64 - 1),
)
def test_bit_roundtrip_at_any_offset(offset, num_bits, value):
    bw = BitWriter()
    bw.write_bits(0, offset)
    bw.write_bits(value, num_bits)
    br = BitReader(bw.finish())
    br.seek_bits(offset)
    assert br.read_bits(num_bits) == value & ((1 << num_bits) - 1)


@given(bit_fields())
def test_field_sequences_roundtrip(fields):
    bw = BitWriter()
    for value, n in fields:
        bw.write_bits(value, n)
    total = sum(n for _, n in fields)
    assert bw.high_water_bits == total
    br = BitReader(bw.finish(), length_bits=total)
    for value, n in fields:
        assert br.read_bits(n) == value & ((1 << n) - 1)
    assert br.bits_remaining == 0


@given(
    capacity=st.integers(1, 16),
    used=st.integers(0, 128),
    num_bits=st.integers(1, 64),
)
def test_overflow_never_moves_cursor(capacity, used, num_bits):
    used = min(used, capacity * 8)
    assume(used + num_bits > capacity * 8)
    bw = BitWriter(capacity)
    bw.seek_bits(used)
    before = bytes(bw.storage)
    with pytest.raises(CodecOverflowError):
        bw.write_bits(2**64 - 1, num_bits)
    assert bw.cursor_bits == used
    assert bytes(bw.storage) == before


@given(
    num_bits=st.integers(1, 64),
    data=st.data(),
)
def test_signed_field_roundtrip(num_bits, data):
    value = data.draw(
        st.integers(-(1 << (num_bits - 1)), (1 << (num_bits - 1)) - 1)
    )
    bw = BitWriter()
    bw.write_bits(1, 5)
    bw.write_sbits(value, num_bits)
    br = BitReader(bw.finish())
    br.skip_bits(5)
    assert br.read_sbits(num_bits) == value


@given(st.integers(0, 2**32 - 1), st.integers(0, 7))
def test_ubitvar_roundtrip(value, offset):
    bw = BitWriter()
    bw.write_bits(0, offset)
    bw.write_ubitvar(value)
    br = BitReader(bw.finish())
    br.skip_bits(offset)
    assert br.read_ubitvar() == value
