import heapq
import itertools
import logging
from collections import Counter

from bitstream import CHUNK_SIZE
from grin_errors import MalformedBitstreamError

logger = logging.getLogger(__name__)

# Symbols 0-255 are literal bytes, 256 marks the end of the payload
SENTINEL = 256
# Width of a symbol in the serialized tree; 8 bits cannot hold the sentinel
SYMBOL_BITS = 9


### HUFFMAN NODE CLASS ###
class HuffmanNode:
    """Represents a node in the Huffman tree."""
    __slots__ = ("symbol", "weight", "left", "right")

    def __init__(self, symbol=None, weight=0, left=None, right=None):
        # symbol: 0-255 or SENTINEL for leaves, None for internal nodes.
        self.symbol = symbol
        # weight: count of the symbol, or the sum of both children's weights.
        self.weight = weight
        self.left = left
        self.right = right

    @property
    def is_leaf(self):
        return self.left is None and self.right is None

    def leaves(self):
        """Yield every leaf, left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol}, weight={self.weight})"
        return f"HuffmanNode(weight={self.weight}, left={self.left!r}, right={self.right!r})"


### FREQUENCY COUNTING ###
def count_frequencies(source):
    """Count every byte of a binary stream, plus one occurrence of the sentinel."""
    frequency = Counter()
    chunk = source.read(CHUNK_SIZE)
    while chunk:
        frequency.update(chunk)
        chunk = source.read(CHUNK_SIZE)

    # Present exactly once even for an empty source
    frequency[SENTINEL] = 1
    return frequency


### TREE CONSTRUCTION ###
def build_tree(frequency):
    """
    Builds the Huffman tree by repeatedly merging the two lightest nodes.

    Ties are broken by creation order: leaves are created in ascending symbol
    order, and every merged node is newer than all nodes before it. The first
    node popped becomes the left child.
    """
    if not frequency:
        raise ValueError("cannot build a Huffman tree from an empty frequency table")

    order = itertools.count()
    priority_queue = []
    for symbol in sorted(frequency):
        node = HuffmanNode(symbol=symbol, weight=frequency[symbol])
        priority_queue.append((node.weight, next(order), node))
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        parent = HuffmanNode(weight=left.weight + right.weight, left=left, right=right)
        heapq.heappush(priority_queue, (parent.weight, next(order), parent))

    root = priority_queue[0][2]
    logger.debug("built Huffman tree over %d symbols, total weight %d", len(frequency), root.weight)
    return root


### TREE SERIALIZATION ###
def serialize_tree(node, writer):
    """
    Writes the tree in pre-order: a leaf is bit 0 followed by its 9-bit
    symbol, an internal node is bit 1 followed by its left then right subtree.
    """
    if node.is_leaf:
        writer.write_bit(0)
        writer.write_bits(node.symbol, SYMBOL_BITS)
    else:
        writer.write_bit(1)
        serialize_tree(node.left, writer)
        serialize_tree(node.right, writer)


def deserialize_tree(reader):
    """Reads a tree written by serialize_tree. Leaves come back with weight 0."""
    try:
        return _read_node(reader)
    except EOFError as exc:
        raise MalformedBitstreamError("tree header ended before the tree was complete") from exc


def _read_node(reader, depth=0):
    if reader.read_bit() == 0:
        symbol = reader.read_bits(SYMBOL_BITS)
        if symbol > SENTINEL:
            raise MalformedBitstreamError(f"tree header holds invalid symbol {symbol}")
        return HuffmanNode(symbol=symbol)

    # 257 leaves cannot sit deeper than 256 levels
    if depth >= SENTINEL:
        raise MalformedBitstreamError("tree header is deeper than any Huffman tree over 257 symbols")
    left = _read_node(reader, depth + 1)
    right = _read_node(reader, depth + 1)
    return HuffmanNode(left=left, right=right)


### CODE TABLE ###
def build_code_table(root):
    """
    Maps every leaf symbol to (code, length), where the low `length` bits of
    `code` spell the path from the root, 0 for left and 1 for right.

    A tree made of a single leaf gives that symbol the empty code (0, 0).
    """
    codes = {}

    def walk(node, pattern, depth):
        if node.is_leaf:
            codes[node.symbol] = (pattern, depth)
            return
        walk(node.left, pattern << 1, depth + 1)
        walk(node.right, (pattern << 1) | 1, depth + 1)

    walk(root, 0, 0)
    logger.debug("code table holds %d codes", len(codes))
    return codes


### PAYLOAD ENCODING ###
def encode_payload(source, writer, codes):
    """Writes the code of every byte of `source`, then the sentinel's code.

    Returns the number of source bytes encoded.
    """
    count = 0
    chunk = source.read(CHUNK_SIZE)
    while chunk:
        for byte in chunk:
            code, length = codes[byte]
            writer.write_bits(code, length)
        count += len(chunk)
        chunk = source.read(CHUNK_SIZE)

    code, length = codes[SENTINEL]
    writer.write_bits(code, length)
    return count


### PAYLOAD DECODING ###
def decode_payload(reader, root, sink):
    """
    Walks the tree bit by bit from the root, writing each byte reached to
    `sink`, until the sentinel leaf is reached.

    Returns the number of bytes written.
    """
    if not any(leaf.symbol == SENTINEL for leaf in root.leaves()):
        raise MalformedBitstreamError("tree has no end-of-stream leaf")

    decoded = bytearray()
    count = 0
    node = root
    try:
        while True:
            if node.is_leaf:
                if node.symbol == SENTINEL:
                    break
                decoded.append(node.symbol)
                node = root
                if len(decoded) >= CHUNK_SIZE:
                    sink.write(bytes(decoded))
                    count += len(decoded)
                    decoded.clear()
                continue

            if reader.read_bit() == 0:
                node = node.left
            else:
                node = node.right
    except EOFError as exc:
        raise MalformedBitstreamError("payload ended before the end-of-stream code") from exc

    sink.write(bytes(decoded))
    return count + len(decoded)
