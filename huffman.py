import heapq
import itertools
from collections import Counter
from typing import Dict, List, Optional, Tuple

from bitops import BitReader, BitWriter
from errors import CodeOverflowError, FormatError

MAX_CODE_LENGTH = 255  #: Longest code the one-byte length field can describe


class HuffmanNode:
    """Node of a static Huffman tree.

    Leaves carry a byte symbol; internal nodes carry ``None`` and own their
    two children exclusively.

    :ivar symbol: Byte value (0-255) for leaves, ``None`` for internal nodes.
    :type symbol: int | None
    :ivar freq: Sum of the leaf weights below this node.
    :type freq: int
    :ivar left: Child reached with bit ``0``.
    :type left: HuffmanNode | None
    :ivar right: Child reached with bit ``1``.
    :type right: HuffmanNode | None
    """

    def __init__(self, symbol=None, freq=0, left=None, right=None):
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None

    def child(self, bit: int) -> Optional["HuffmanNode"]:
        return self.right if bit else self.left


def build_frequency_table(data: bytes) -> Dict[int, int]:
    """Count byte occurrences.

    :param data: Input bytes, possibly empty.
    :type data: bytes
    :returns: Mapping ``symbol -> count`` holding only symbols that occur,
        in ascending symbol order. Empty for empty input.
    :rtype: Dict[int, int]
    """
    return dict(sorted(Counter(data).items()))


def build_tree(frequencies: Dict[int, int]) -> HuffmanNode:
    """Merge weighted leaves into a Huffman tree.

    Heap items are keyed ``(weight, sequence)``. Leaves get their sequence
    numbers first, in ascending symbol order, and every merged node gets the
    next number when it is created, so equal weights always pop in insertion
    order. The first node popped becomes the left child.

    A table with a single symbol yields a lone leaf.

    :param frequencies: Non-empty mapping ``symbol -> count``.
    :type frequencies: Dict[int, int]
    :returns: Root of the tree.
    :rtype: HuffmanNode
    :raises ValueError: If ``frequencies`` has no positive count.
    """
    sequence = itertools.count()
    heap: List[Tuple[int, int, HuffmanNode]] = []
    for symbol, freq in sorted(frequencies.items()):
        if freq > 0:
            heap.append((freq, next(sequence), HuffmanNode(symbol=symbol, freq=freq)))
    if not heap:
        raise ValueError("Cannot build a Huffman tree from an empty frequency table")

    heapq.heapify(heap)
    while len(heap) > 1:
        left_freq, _, left = heapq.heappop(heap)
        right_freq, _, right = heapq.heappop(heap)
        weight = left_freq + right_freq
        merged = HuffmanNode(freq=weight, left=left, right=right)
        heapq.heappush(heap, (weight, next(sequence), merged))

    return heap[0][2]


def generate_codes(root: HuffmanNode) -> Dict[int, Tuple[int, int]]:
    """Derive the code of every leaf by walking the tree.

    Descending left appends ``0``, descending right appends ``1``. A root
    that is itself a leaf gets the one-bit code ``0``.

    :param root: Tree produced by :func:`build_tree`.
    :type root: HuffmanNode
    :returns: Mapping ``symbol -> (code, length)``, ascending by symbol,
        where ``code`` holds the path bits MSB-first.
    :rtype: Dict[int, Tuple[int, int]]
    """
    codes: Dict[int, Tuple[int, int]] = {}

    if root.is_leaf:
        codes[root.symbol] = (0, 1)
        return codes

    def walk(node: HuffmanNode, code: int, depth: int):
        if node.is_leaf:
            codes[node.symbol] = (code, depth)
            return
        walk(node.left, code << 1, depth + 1)
        walk(node.right, (code << 1) | 1, depth + 1)

    walk(root, 0, 0)
    return dict(sorted(codes.items()))


def code_to_str(code: int, length: int) -> str:
    """Render ``(code, length)`` as a string of ``0``/``1`` characters."""
    return format(code, "b").zfill(length) if length else ""


def weighted_length(frequencies: Dict[int, int], codes: Dict[int, Tuple[int, int]]) -> int:
    """Total number of payload bits for the given frequencies and codes."""
    return sum(freq * codes[symbol][1] for symbol, freq in frequencies.items())


def _printable(symbol: int) -> str:
    ch = chr(symbol)
    return ch if 32 <= symbol < 127 else "\\x%02x" % symbol


def format_frequency_table(frequencies: Dict[int, int]) -> List[str]:
    lines = ["Frequency Table:"]
    for symbol, freq in sorted(frequencies.items()):
        lines.append(f"{symbol} ('{_printable(symbol)}') : {freq}")
    return lines


def format_dictionary(codes: Dict[int, Tuple[int, int]]) -> List[str]:
    lines = ["Huffman Dictionary:"]
    for symbol, (code, length) in sorted(codes.items()):
        lines.append(f"{symbol} ('{_printable(symbol)}') : {code_to_str(code, length)}")
    return lines


class StaticHuffman:
    """Static Huffman coder for one byte stream.

    Holds the tree and the dictionary for a single compress or decompress
    call. The encoding side builds both from frequencies; the decoding side
    rebuilds an equivalent tree from a serialized dictionary alone.

    :ivar root: Tree root, ``None`` until built or loaded.
    :type root: HuffmanNode | None
    :ivar codes: Mapping ``symbol -> (code, length)``.
    :type codes: Dict[int, Tuple[int, int]]
    :ivar frequencies: Frequencies the codes were built from; empty after
        :meth:`load_dictionary`, which has no access to them.
    :type frequencies: Dict[int, int]
    """

    def __init__(self):
        self.root: Optional[HuffmanNode] = None
        self.codes: Dict[int, Tuple[int, int]] = {}
        self.frequencies: Dict[int, int] = {}

    def build_from_frequencies(self, frequencies: Dict[int, int]):
        """Build the tree and dictionary for ``frequencies``.

        An empty table leaves the coder empty.

        :param frequencies: Mapping ``symbol -> count``.
        :type frequencies: Dict[int, int]
        :returns: None
        :rtype: None
        """
        self.frequencies = {s: f for s, f in sorted(frequencies.items()) if f > 0}
        self.root = None
        self.codes = {}
        if not self.frequencies:
            return
        self.root = build_tree(self.frequencies)
        self.codes = generate_codes(self.root)

    def encode_symbol(self, symbol: int) -> Tuple[int, int]:
        """Return the ``(code, length)`` pair of ``symbol``.

        :raises ValueError: If ``symbol`` is not in the dictionary.
        """
        try:
            return self.codes[symbol]
        except KeyError:
            raise ValueError(f"Symbol {symbol} has no Huffman code") from None

    def save_dictionary(self) -> bytes:
        """Serialize the dictionary entries.

        Each entry is byte aligned: symbol (1 byte), code length (1 byte),
        then ``ceil(length / 8)`` bytes of code bits, MSB-first and
        zero-padded. Entries follow ascending symbol order.

        :returns: Serialized entries (the entry count lives in the header).
        :rtype: bytes
        :raises CodeOverflowError: If a code is longer than
            :data:`MAX_CODE_LENGTH` bits.
        """
        out = BitWriter()
        for symbol, (code, length) in sorted(self.codes.items()):
            if length > MAX_CODE_LENGTH:
                raise CodeOverflowError(
                    f"Code for symbol {symbol} is {length} bits long, "
                    f"the format allows at most {MAX_CODE_LENGTH}"
                )
            out.write_bits(symbol, 8)
            out.write_bits(length, 8)
            out.write_bits(code, length)
            out.align()
        return out.flush()

    def load_dictionary(self, reader: BitReader, count: int):
        """Read ``count`` entries and rebuild the decoding tree.

        Each code is inserted by walking from the root and creating missing
        internal nodes along its path; the symbol is attached to the node
        at the end of the path.

        :param reader: Reader positioned at the first entry.
        :type reader: BitReader
        :param count: Number of entries to read.
        :type count: int
        :returns: None
        :rtype: None
        :raises FormatError: On truncation, a zero-length code, a duplicate
            symbol, or a code that is not prefix-free against earlier ones.
        """
        self.root = HuffmanNode()
        self.codes = {}
        self.frequencies = {}

        for index in range(count):
            try:
                symbol = reader.read_bits(8)
                length = reader.read_bits(8)
                code = reader.read_bits(length)
                reader.align()
            except EOFError as e:
                raise FormatError(f"Dictionary truncated in entry {index}") from e

            if length == 0:
                raise FormatError(f"Dictionary entry {index} has an empty code")
            if symbol in self.codes:
                raise FormatError(f"Symbol {symbol} appears twice in the dictionary")
            self._insert(symbol, code, length)
            self.codes[symbol] = (code, length)

    def _insert(self, symbol: int, code: int, length: int):
        node = self.root
        for i in range(length - 1, -1, -1):
            if node.is_leaf:
                break
            bit = (code >> i) & 1
            child = node.child(bit)
            if child is None:
                child = HuffmanNode()
                if bit:
                    node.right = child
                else:
                    node.left = child
            node = child
        if node.is_leaf or node.left is not None or node.right is not None:
            raise FormatError(
                f"Code {code_to_str(code, length)} of symbol {symbol} "
                "collides with another dictionary code"
            )
        node.symbol = symbol

    def decode_symbol(self, reader: BitReader) -> int:
        """Walk the tree bit by bit until a leaf is reached.

        :param reader: Reader positioned inside the payload.
        :type reader: BitReader
        :returns: Decoded symbol.
        :rtype: int
        :raises FormatError: If a bit leads to a missing child.
        :raises EOFError: If the payload runs out mid-code.
        """
        node = self.root
        while True:
            node = node.child(reader.read_bit())
            if node is None:
                raise FormatError("Payload bit leads outside the Huffman tree")
            if node.is_leaf:
                return node.symbol
