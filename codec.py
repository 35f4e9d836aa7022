from typing import Callable, Optional, Tuple

from bitops import BitReader, BitWriter
from errors import TruncatedPayloadError
from huffman import END_OF_STREAM, HuffmanTree, Trace, count_symbols

Progress = Optional[Callable[[int, int], None]]


def build_tree(data: bytes, trace: Trace = None) -> HuffmanTree:
    """Count symbols in ``data`` and build its Huffman tree.

    :param data: Input bytes.
    :type data: bytes
    :param trace: Optional callback receiving diagnostic lines.
    :type trace: Optional[Callable[[str], None]]
    :returns: Tree with codes assigned to every leaf.
    :rtype: HuffmanTree
    """
    return HuffmanTree.build(count_symbols(data), trace=trace)


def encode(
    data: bytes,
    tree: HuffmanTree,
    trace: Trace = None,
    on_progress: Progress = None,
) -> bytes:
    """Encode ``data`` with ``tree``.

    Output layout: serialized tree, one code per input byte, the
    end-of-stream code, then zero padding to a byte boundary.

    :param data: Input bytes to compress.
    :type data: bytes
    :param tree: Tree built for ``data`` (see :func:`build_tree`).
    :type tree: HuffmanTree
    :param trace: Optional callback receiving diagnostic lines.
    :type trace: Optional[Callable[[str], None]]
    :param on_progress: Optional callback ``on_progress(done, total)``
                        called with the number of input bytes encoded.
    :type on_progress: Optional[Callable[[int, int], None]]
    :returns: Compressed byte stream.
    :rtype: bytes
    :raises ValueError: If ``data`` holds a byte the tree has no leaf for,
        or the tree has no end-of-stream leaf.
    """
    codes = tree.code_table()
    if END_OF_STREAM not in codes:
        raise ValueError("Tree has no end-of-stream leaf")

    output = BitWriter()
    tree.save(output)
    if trace is not None:
        trace(f"Tree encoded is size: {output.bit_length}")

    total = len(data)
    for pos, byte in enumerate(data, 1):
        code = codes.get(byte)
        if code is None:
            raise ValueError(f"Byte 0x{byte:02x} has no code in this tree")
        output.write_code(code)
        if on_progress is not None:
            on_progress(pos, total)

    output.write_code(codes[END_OF_STREAM])
    return output.flush()


def decode(
    data: bytes,
    bit_length: Optional[int] = None,
    trace: Trace = None,
    on_progress: Progress = None,
) -> Tuple[bytes, HuffmanTree]:
    """Decode a stream produced by :func:`encode`.

    :param data: Compressed byte stream.
    :type data: bytes
    :param bit_length: Number of valid bits in ``data``; all of them by default.
    :type bit_length: Optional[int]
    :param trace: Optional callback receiving diagnostic lines.
    :type trace: Optional[Callable[[str], None]]
    :param on_progress: Optional callback ``on_progress(done, total)``
                        called with the number of payload bits consumed.
    :type on_progress: Optional[Callable[[int, int], None]]
    :returns: The original bytes and the tree read from the stream.
    :rtype: Tuple[bytes, HuffmanTree]
    :raises MalformedStreamError: If the tree at the start cannot be decoded.
    :raises TruncatedPayloadError: If no end-of-stream code is found.
    """
    reader = BitReader(data, bit_length)
    tree = HuffmanTree.load(reader)
    start = reader.bit_position
    if trace is not None:
        trace(f"Tree encoded is size: {start}")

    table = tree.decode_table()
    total = reader.bit_length - start
    decoded = bytearray()
    code = 0
    length = 0

    while reader.bits_remaining > 0:
        code = (code << 1) | reader.read_bit()
        length += 1
        if on_progress is not None:
            on_progress(reader.bit_position - start, total)
        leaf = table.get((code, length))
        if leaf is None:
            continue
        if leaf.symbol == END_OF_STREAM:
            return bytes(decoded), tree
        decoded.append(leaf.symbol)
        code = 0
        length = 0

    raise TruncatedPayloadError(
        f"Payload ended after {len(decoded)} bytes without an end-of-stream code"
    )


def compress(data: bytes, trace: Trace = None, on_progress: Progress = None) -> bytes:
    """Build a tree for ``data`` and encode it in one call."""
    return encode(data, build_tree(data, trace=trace), trace=trace, on_progress=on_progress)


def decompress(data: bytes, trace: Trace = None, on_progress: Progress = None) -> bytes:
    """Decode ``data`` and discard the tree."""
    decoded, _ = decode(data, trace=trace, on_progress=on_progress)
    return decoded
