from typing import Optional


class BitWriter:
    """Bit-packing writer.

    Accumulates individual bits into bytes, most significant bit first,
    and buffers them until flushed.

    :ivar buffer: Internal byte buffer holding fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    """

    def __init__(self):
        """Initialize an empty bit writer.

        :returns: None
        :rtype: None
        """
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0

    @property
    def bit_length(self) -> int:
        """Number of bits written so far (padding not included)."""
        return len(self.buffer) * 8 + self.bit_count

    def _push(self, bit: int):
        """Append one bit, moving a completed byte into ``buffer``.

        :param bit: Bit value, ``0`` or ``1``.
        :type bit: int
        :returns: None
        :rtype: None
        """
        self.bit_buffer = (self.bit_buffer << 1) | bit
        self.bit_count += 1
        if self.bit_count == 8:
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value`` to the buffer, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        for i in range(nbits - 1, -1, -1):
            self._push((value >> i) & 1)

    def write_code(self, code: str):
        """Write a code given as a string of ``'0'``/``'1'`` characters.

        :param code: Bit path such as ``"0110"``.
        :type code: str
        :returns: None
        :rtype: None
        """
        for ch in code:
            self._push(1 if ch == "1" else 0)

    def flush(self) -> bytes:
        """Flush remaining bits (if any) and return the full byte buffer.

        Any partial byte in ``bit_buffer`` is padded with zeros to complete the
        byte before being appended.

        :returns: The accumulated bytes written so far.
        :rtype: bytes
        """
        if self.bit_count > 0:
            self.bit_buffer <<= (8 - self.bit_count)
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0
        return bytes(self.buffer)


class BitReader:
    """Bit reader over a bytes-like object.

    Reads arbitrary bit lengths, MSB first. The readable region may be cut
    short of the last byte with ``bit_length``.

    :ivar data: Input data to read bits from.
    :type data: bytes
    :ivar bit_length: Number of readable bits in ``data``.
    :type bit_length: int
    :ivar pos: Current position in ``data`` (byte index).
    :type pos: int
    :ivar bit_buffer: Scratch register holding the current source byte.
    :type bit_buffer: int
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, data: bytes, bit_length: Optional[int] = None):
        """Create a bit reader for the given input ``data``.

        :param data: Source data to read from.
        :type data: bytes
        :param bit_length: Number of valid bits; defaults to ``len(data) * 8``.
        :type bit_length: Optional[int]
        :returns: None
        :rtype: None
        :raises ValueError: If ``bit_length`` does not fit inside ``data``.
        """
        if bit_length is None:
            bit_length = len(data) * 8
        elif not 0 <= bit_length <= len(data) * 8:
            raise ValueError(
                f"bit_length {bit_length} out of range for {len(data)} bytes"
            )
        self.data = data
        self.bit_length = bit_length
        self.pos = 0
        self.bit_buffer = 0
        self.bit_count = 0

    @property
    def bit_position(self) -> int:
        """Number of bits consumed so far."""
        return self.pos * 8 - self.bit_count

    @property
    def bits_remaining(self) -> int:
        """Number of bits left before ``bit_length`` is reached."""
        return self.bit_length - self.bit_position

    def read_bit(self) -> int:
        """Read a single bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EOFError: If no bits remain.
        """
        if self.bit_position >= self.bit_length:
            raise EOFError("Unexpected end of data")
        if self.bit_count == 0:
            self.bit_buffer = self.data[self.pos]
            self.pos += 1
            self.bit_count = 8
        self.bit_count -= 1
        return (self.bit_buffer >> self.bit_count) & 1

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits from the stream and return them as an integer.

        Bits are returned MSB-first in the integer.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits.
        :rtype: int
        :raises EOFError: If the end of data is reached before reading ``nbits``.
        """
        result = 0
        for _ in range(nbits):
            result = (result << 1) | self.read_bit()
        return result
