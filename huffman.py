from typing import Callable, Dict, List, Optional, Tuple

from bitops import BitReader, BitWriter
from errors import MalformedStreamError

END_OF_STREAM = 256  #: Sentinel symbol appended to every symbol table
MAX_LEAVES = 257  #: 256 byte values plus the end-of-stream symbol
LEAF_COUNT_BITS = 16  #: Width of the leaf-count header field
SYMBOL_BITS = 8
ALL_ONES = 0xFF  #: Symbol field shared by byte 0xFF and end-of-stream

Trace = Optional[Callable[[str], None]]

_PRINTED_NAMES = {
    ord("\n"): "\\n",
    ord(" "): "' '",
    ord("\t"): "\\t",
    ord("\r"): "\\r",
    0: "\\0",
}


def symbol_name(symbol: int) -> str:
    """Return a printable name for a leaf symbol.

    :param symbol: Byte value or :data:`END_OF_STREAM`.
    :type symbol: int
    :returns: Human readable name, e.g. ``"\\n"`` for a newline.
    :rtype: str
    """
    if symbol == END_OF_STREAM:
        return "EOF"
    if symbol in _PRINTED_NAMES:
        return _PRINTED_NAMES[symbol]
    if 0x21 <= symbol <= 0x7E:
        return chr(symbol)
    return f"\\x{symbol:02x}"


class HuffmanNode:
    """Node for a binary Huffman tree.

    :ivar symbol: Byte value or :data:`END_OF_STREAM` at a leaf; ``None`` for internal nodes.
    :type symbol: int | None
    :ivar freq: Frequency (weight) of the subtree rooted at this node.
    :type freq: int
    :ivar left: Left child node.
    :type left: HuffmanNode | None
    :ivar right: Right child node.
    :type right: HuffmanNode | None
    :ivar code: Bit path from the root, filled in by :meth:`HuffmanTree.assign_codes`.
    :type code: str
    """

    def __init__(self, symbol=None, freq=0, left=None, right=None):
        """Create a Huffman node.

        Internal nodes take their frequency from their children.

        :param symbol: Symbol value for leaf nodes; ``None`` for internal nodes.
        :type symbol: int | None
        :param int freq: Frequency associated with a leaf.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        :returns: None
        :rtype: None
        """
        self.symbol = symbol
        self.left = left
        self.right = right
        if left is not None and right is not None:
            freq = left.freq + right.freq
        self.freq = freq
        self.code = ""

    @property
    def is_leaf(self) -> bool:
        """Whether this node has no children.

        :returns: ``True`` for leaves, ``False`` for internal nodes.
        :rtype: bool
        """
        return self.left is None and self.right is None

    @property
    def label(self) -> str:
        """Display name: the symbol for a leaf, children's labels for internal nodes."""
        if self.is_leaf:
            return symbol_name(self.symbol)
        return f"{self.left.label} {self.right.label}"

    def __repr__(self):
        return f"HuffmanNode({self.label!r}, freq={self.freq}, code={self.code!r})"


def count_symbols(data: bytes) -> Dict[int, int]:
    """Count occurrences of every byte in ``data``.

    The end-of-stream symbol is always added last with a count of one.
    Iteration order follows first occurrence.

    :param data: Input bytes.
    :type data: bytes
    :returns: Mapping from symbol to frequency.
    :rtype: Dict[int, int]
    """
    frequencies: Dict[int, int] = {}
    for byte in data:
        frequencies[byte] = frequencies.get(byte, 0) + 1
    frequencies[END_OF_STREAM] = 0
    frequencies[END_OF_STREAM] += 1
    return frequencies


def _insert_by_freq(nodes: List[HuffmanNode], node: HuffmanNode):
    """Insert ``node`` before the first entry with a strictly greater frequency."""
    i = 0
    size = len(nodes)
    while i < size and node.freq >= nodes[i].freq:
        i += 1
    nodes.insert(i, node)


def _format_rows(nodes: List[HuffmanNode]) -> List[str]:
    """Render ``nodes`` as a ``leaf || freq || code`` table.

    :param nodes: Nodes to list, in display order.
    :type nodes: List[HuffmanNode]
    :returns: Table lines, header first.
    :rtype: List[str]
    """
    lines = [" leaf ||   freq   ||    code ", "=" * 32]
    for node in nodes:
        lines.append(f"{node.label:>5} || {node.freq:>8} || {node.code}")
    return lines


class HuffmanTree:
    """A Huffman code tree together with its leaves.

    :ivar leaves: Leaf nodes, in first-occurrence order for built trees and
        in serialization order for loaded trees.
    :type leaves: List[HuffmanNode]
    :ivar root: Root node of the tree.
    :type root: HuffmanNode
    """

    def __init__(self, leaves: List[HuffmanNode], root: HuffmanNode):
        """Wrap an already linked node set.

        :param leaves: Leaf nodes of the tree.
        :type leaves: List[HuffmanNode]
        :param root: Root node; a single leaf for one-symbol trees.
        :type root: HuffmanNode
        :returns: None
        :rtype: None
        """
        self.leaves = leaves
        self.root = root
        self._by_symbol = {leaf.symbol: leaf for leaf in leaves}

    @classmethod
    def build(cls, frequencies: Dict[int, int], trace: Trace = None) -> "HuffmanTree":
        """Build a tree from a symbol frequency table.

        Leaves are stably sorted by frequency, then the two front entries are
        merged repeatedly; each merged node is inserted back after every
        entry of equal frequency.

        :param frequencies: Mapping from symbol to observed frequency.
        :type frequencies: Dict[int, int]
        :param trace: Optional callback receiving diagnostic lines.
        :type trace: Optional[Callable[[str], None]]
        :returns: The finished tree with codes assigned.
        :rtype: HuffmanTree
        :raises ValueError: If ``frequencies`` is empty.
        """
        if not frequencies:
            raise ValueError("Cannot build a Huffman tree without symbols")

        leaves = [HuffmanNode(symbol=sym, freq=freq) for sym, freq in frequencies.items()]
        nodes = sorted(leaves, key=lambda n: n.freq)

        while len(nodes) > 1:
            left = nodes.pop(0)
            right = nodes.pop(0)
            _insert_by_freq(nodes, HuffmanNode(left=left, right=right))
            if trace is not None:
                trace("\n".join(["merge list:"] + _format_rows(nodes)))

        tree = cls(leaves, nodes[0])
        tree.assign_codes()
        if trace is not None:
            trace("\n".join(tree.format_table()))
        return tree

    def assign_codes(self) -> List[HuffmanNode]:
        """Assign bit paths to every node in one postorder walk.

        A tree consisting of a single leaf gives that leaf the code ``"0"``.

        :returns: All nodes in postorder (left subtree, right subtree, node).
        :rtype: List[HuffmanNode]
        """
        order: List[HuffmanNode] = []
        self._post_order(self.root, "", order)
        if self.root.is_leaf:
            self.root.code = "0"
        return order

    def _post_order(self, node: HuffmanNode, path: str, order: List[HuffmanNode]):
        """Assign ``path`` to ``node`` and append its subtree in postorder.

        :param node: Current node.
        :type node: HuffmanNode
        :param path: Bit path from the root to ``node``.
        :type path: str
        :param order: Accumulator receiving visited nodes.
        :type order: List[HuffmanNode]
        :returns: None
        :rtype: None
        """
        node.code = path
        if not node.is_leaf:
            self._post_order(node.left, path + "0", order)
            self._post_order(node.right, path + "1", order)
        order.append(node)

    def save(self, writer: BitWriter):
        """Serialize the tree shape and leaf symbols.

        Layout: 16-bit leaf count, then for each node in postorder a ``0``
        for internal nodes or a ``1`` followed by the 8-bit symbol for
        leaves. An all-ones symbol field is followed by one extra bit:
        ``0`` for end-of-stream, ``1`` for the byte 0xFF.

        :param writer: Destination bit writer.
        :type writer: BitWriter
        :returns: None
        :rtype: None
        :raises ValueError: If the tree has more leaves than the format allows.
        """
        if len(self.leaves) > MAX_LEAVES:
            raise ValueError(f"Too many leaves: {len(self.leaves)}")
        writer.write_bits(len(self.leaves), LEAF_COUNT_BITS)
        for node in self.assign_codes():
            if not node.is_leaf:
                writer.write_bits(0, 1)
                continue
            writer.write_bits(1, 1)
            if node.symbol == END_OF_STREAM:
                writer.write_bits(ALL_ONES, SYMBOL_BITS)
                writer.write_bits(0, 1)
            else:
                writer.write_bits(node.symbol, SYMBOL_BITS)
                if node.symbol == ALL_ONES:
                    writer.write_bits(1, 1)

    @classmethod
    def load(cls, reader: BitReader) -> "HuffmanTree":
        """Rebuild a tree written by :meth:`save`.

        Leaves are pushed on a stack; each ``0`` bit pops two nodes ``a``
        then ``b`` and pushes an internal node with ``b`` on the left.
        Reading stops once all announced leaves were seen and exactly one
        node is left on the stack.

        :param reader: Source bit reader, left positioned after the tree.
        :type reader: BitReader
        :returns: The reconstructed tree with codes assigned.
        :rtype: HuffmanTree
        :raises MalformedStreamError: If the bits do not describe a valid tree.
        """
        try:
            num_leaves = reader.read_bits(LEAF_COUNT_BITS)
        except EOFError as e:
            raise MalformedStreamError("Stream too short for a tree header") from e
        if not 1 <= num_leaves <= MAX_LEAVES:
            raise MalformedStreamError(f"Invalid leaf count: {num_leaves}")

        stack: List[HuffmanNode] = []
        leaves: List[HuffmanNode] = []
        seen = set()

        try:
            while len(leaves) < num_leaves or len(stack) > 1:
                if reader.bits_remaining <= 0:
                    raise MalformedStreamError(
                        "Could not decode Huffman tree: ran out of bits "
                        f"after {len(leaves)} of {num_leaves} leaves"
                    )
                if reader.read_bit():
                    if len(leaves) == num_leaves:
                        raise MalformedStreamError(
                            f"More leaves than announced ({num_leaves})"
                        )
                    symbol = reader.read_bits(SYMBOL_BITS)
                    if symbol == ALL_ONES and not reader.read_bit():
                        symbol = END_OF_STREAM
                    if symbol in seen:
                        raise MalformedStreamError(
                            f"Duplicate leaf symbol: {symbol_name(symbol)}"
                        )
                    seen.add(symbol)
                    leaf = HuffmanNode(symbol=symbol)
                    leaves.append(leaf)
                    stack.append(leaf)
                else:
                    if len(stack) < 2:
                        raise MalformedStreamError(
                            "Internal node without two subtrees"
                        )
                    a = stack.pop()
                    b = stack.pop()
                    stack.append(HuffmanNode(left=b, right=a))
        except EOFError as e:
            raise MalformedStreamError("Stream ended inside a tree leaf") from e

        if END_OF_STREAM not in seen:
            raise MalformedStreamError("Tree has no end-of-stream leaf")

        tree = cls(leaves, stack[0])
        tree.assign_codes()
        return tree

    def find(self, symbol: int) -> Optional[HuffmanNode]:
        """Return the leaf for ``symbol``, or ``None`` if absent."""
        return self._by_symbol.get(symbol)

    def find_code(self, code: str) -> Optional[HuffmanNode]:
        """Return the leaf whose code equals ``code``, or ``None``."""
        for leaf in self.leaves:
            if leaf.code == code:
                return leaf
        return None

    def code_table(self) -> Dict[int, str]:
        """Map each leaf symbol to its code string."""
        return {leaf.symbol: leaf.code for leaf in self.leaves}

    def decode_table(self) -> Dict[Tuple[int, int], HuffmanNode]:
        """Build a lookup table for decoding.

        :returns: Mapping from ``(code, length)`` to leaf node.
        :rtype: Dict[Tuple[int, int], HuffmanNode]
        """
        return {(int(leaf.code, 2), len(leaf.code)): leaf for leaf in self.leaves}

    def format_table(self, by_freq: bool = False) -> List[str]:
        """Render the leaves as ``leaf || freq || code`` rows.

        :param by_freq: List leaves in stable ascending frequency order.
        :type by_freq: bool
        :returns: Table lines, header first.
        :rtype: List[str]
        """
        leaves = sorted(self.leaves, key=lambda n: n.freq) if by_freq else self.leaves
        return _format_rows(leaves)
