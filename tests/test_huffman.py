import pytest

from bitops import BitReader, BitWriter
from errors import MalformedStreamError
from huffman import END_OF_STREAM, HuffmanNode, HuffmanTree, count_symbols


def _save(tree):
    bw = BitWriter()
    tree.save(bw)
    nbits = bw.bit_length
    return bw.flush(), nbits


def _shape(node):
    if node.is_leaf:
        return node.symbol
    return (_shape(node.left), _shape(node.right))


def test_count_symbols_first_seen_order_and_eos():
    freqs = count_symbols(b"go go gophers")
    assert list(freqs) == [ord("g"), ord("o"), ord(" "), ord("p"), ord("h"),
                           ord("e"), ord("r"), ord("s"), END_OF_STREAM]
    assert freqs[ord("g")] == 3
    assert freqs[ord("o")] == 3
    assert freqs[ord(" ")] == 2
    assert freqs[END_OF_STREAM] == 1


def test_count_symbols_empty_has_only_eos():
    assert count_symbols(b"") == {END_OF_STREAM: 1}


def test_build_ties_follow_insertion_order():
    tree = HuffmanTree.build({ord("a"): 1, ord("b"): 1, END_OF_STREAM: 1})
    # a+b merges first (freq 2), then eos (1) is merged with it
    assert _shape(tree.root) == (END_OF_STREAM, (ord("a"), ord("b")))
    assert tree.find(END_OF_STREAM).code == "0"
    assert tree.find(ord("a")).code == "10"
    assert tree.find(ord("b")).code == "11"


def test_merged_node_goes_after_equal_frequencies():
    tree = HuffmanTree.build({1: 1, 2: 1, 3: 2, 4: 2})
    # 1+2 -> 2 is inserted after 3 and 4, so 3+4 merge next
    assert _shape(tree.root) == ((1, 2), (3, 4))
    assert tree.root.freq == 6


def test_build_empty_frequencies_raises():
    with pytest.raises(ValueError):
        HuffmanTree.build({})


def test_single_leaf_tree_gets_code_zero():
    tree = HuffmanTree.build({END_OF_STREAM: 1})
    assert tree.root.is_leaf
    assert tree.root.code == "0"


def test_codes_are_prefix_free():
    tree = HuffmanTree.build(count_symbols(b"abracadabra, go go gophers!\n"))
    codes = [leaf.code for leaf in tree.leaves]
    assert len(set(codes)) == len(codes)
    for a in codes:
        for b in codes:
            if a != b:
                assert not b.startswith(a)


def test_internal_node_label_and_freq():
    left = HuffmanNode(symbol=ord("a"), freq=2)
    right = HuffmanNode(symbol=ord("\n"), freq=3)
    node = HuffmanNode(left=left, right=right)
    assert node.freq == 5
    assert not node.is_leaf
    assert node.label == "a \\n"


def test_save_load_preserves_shape_and_codes():
    tree = HuffmanTree.build(count_symbols(b"go go gophers"))
    data, nbits = _save(tree)
    reader = BitReader(data)
    loaded = HuffmanTree.load(reader)
    assert reader.bit_position == nbits
    assert _shape(loaded.root) == _shape(tree.root)
    assert loaded.code_table() == tree.code_table()


def test_save_layout_for_empty_input():
    tree = HuffmanTree.build({END_OF_STREAM: 1})
    data, nbits = _save(tree)
    # 16-bit count, '1', 11111111, '0' for end-of-stream
    assert nbits == 16 + 10
    assert data == bytes([0x00, 0x01, 0b11111111, 0b10000000])


def test_byte_ff_and_eos_are_distinguished():
    tree = HuffmanTree.build({0xFF: 3, END_OF_STREAM: 1})
    data, _ = _save(tree)
    loaded = HuffmanTree.load(BitReader(data))
    assert {leaf.symbol for leaf in loaded.leaves} == {0xFF, END_OF_STREAM}
    assert loaded.code_table() == tree.code_table()


def test_load_stops_exactly_at_last_tree_bit():
    tree = HuffmanTree.build(count_symbols(b"abcabcaab"))
    data, nbits = _save(tree)
    reader = BitReader(data, bit_length=nbits)
    loaded = HuffmanTree.load(reader)
    assert reader.bits_remaining == 0
    assert loaded.code_table() == tree.code_table()


def test_load_one_bit_short_raises():
    tree = HuffmanTree.build(count_symbols(b"abcabcaab"))
    data, nbits = _save(tree)
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(data, bit_length=nbits - 1))


def test_load_truncated_header_raises():
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(b"\x00"))


@pytest.mark.parametrize("count", [0, 258, 0xFFFF])
def test_load_invalid_leaf_count_raises(count):
    bw = BitWriter()
    bw.write_bits(count, 16)
    bw.write_bits(0, 32)
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(bw.flush()))


def test_load_internal_node_without_children_raises():
    bw = BitWriter()
    bw.write_bits(2, 16)
    bw.write_bits(1, 1)
    bw.write_bits(ord("a"), 8)
    bw.write_bits(0, 1)
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(bw.flush()))


def test_load_duplicate_symbol_raises():
    bw = BitWriter()
    bw.write_bits(2, 16)
    for _ in range(2):
        bw.write_bits(1, 1)
        bw.write_bits(ord("a"), 8)
    bw.write_bits(0, 1)
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(bw.flush()))


def test_load_without_eos_leaf_raises():
    bw = BitWriter()
    bw.write_bits(2, 16)
    bw.write_bits(1, 1)
    bw.write_bits(ord("a"), 8)
    bw.write_bits(1, 1)
    bw.write_bits(ord("b"), 8)
    bw.write_bits(0, 1)
    with pytest.raises(MalformedStreamError):
        HuffmanTree.load(BitReader(bw.flush()))


def test_find_and_find_code():
    tree = HuffmanTree.build(count_symbols(b"aab"))
    leaf = tree.find(ord("a"))
    assert tree.find_code(leaf.code) is leaf
    assert tree.find(ord("z")) is None
    assert tree.find_code("1111111") is None


def test_format_table_sorted_by_freq():
    tree = HuffmanTree.build(count_symbols(b"go go gophers"))
    lines = tree.format_table(by_freq=True)
    assert lines[0] == " leaf ||   freq   ||    code "
    assert lines[1] == "=" * 32
    assert len(lines) == 2 + len(tree.leaves)
    assert lines[2].strip().startswith("p ||")
    assert any(line.lstrip().startswith("' ' ||") for line in lines)
    assert lines[-1].strip().startswith("o ||")


def test_build_traces_merge_list(trace_recorder):
    trace, lines = trace_recorder
    HuffmanTree.build(count_symbols(b"abc"), trace=trace)
    # three merges for four leaves, then the final table
    assert len(lines) == 4
    assert all(line.startswith("merge list:") for line in lines[:3])
    assert "EOF" in lines[-1]
