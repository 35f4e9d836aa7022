import pytest

from bitops import BitWriter, BitReader


def test_bitwriter_write_bits_and_flush_basic():
    bw = BitWriter()
    bw.write_bits(0b1010, 4)
    bw.write_bits(0b11110000, 8)
    assert bw.bit_length == 12
    out = bw.flush()
    assert isinstance(out, (bytes, bytearray))
    assert len(out) == 2
    assert out[0] == 0b10101111
    assert out[1] == 0b00000000


def test_bitwriter_write_code_msb_first():
    bw = BitWriter()
    bw.write_code("101")
    bw.write_code("")
    bw.write_code("00001")
    assert bw.bit_length == 8
    assert bw.flush() == bytes([0b10100001])


def test_write_zero_bits_is_noop_and_flush_padding():
    bw = BitWriter()
    bw.write_bits(0xAA, 8)
    bw.write_bits(0, 0)
    out = bw.flush()
    assert out == bytes([0xAA])


def test_bitreader_read_bits_positions():
    data = bytes([0b11001010, 0xFF, 0x00])
    br = BitReader(data)
    assert br.read_bits(3) == 0b110
    assert br.bit_position == 3
    assert br.read_bits(5) == 0b01010
    assert br.read_bit() == 1
    assert br.bit_position == 9
    assert br.bits_remaining == 15


def test_bitreader_eoferror_on_insufficient_bits():
    br = BitReader(b"\xF0")
    with pytest.raises(EOFError):
        _ = br.read_bits(9)


def test_bitreader_respects_bit_length():
    br = BitReader(b"\xFF\xFF", bit_length=10)
    assert br.read_bits(10) == 0b1111111111
    assert br.bits_remaining == 0
    with pytest.raises(EOFError):
        _ = br.read_bit()


def test_bitreader_rejects_bit_length_beyond_data():
    with pytest.raises(ValueError):
        BitReader(b"\x00", bit_length=9)
