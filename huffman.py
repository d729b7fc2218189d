"""
Huffman coding engine.

Counts byte frequencies, builds the Huffman tree, derives the codeword table,
turns data into a '0'/'1' bit-string and back, and serializes the tree in
pre-order so it can travel alongside the bit-string.
"""

from __future__ import annotations

import heapq
import itertools
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

LEAF_TAG = ord('L')
INTERNAL_TAG = ord('I')
MAX_TREE_DEPTH = 255  # at most 256 distinct bytes, so no leaf sits deeper than this


class HuffmanError(Exception):
    """Base class for every failure raised while compressing or decompressing."""


class CorruptBitstreamError(HuffmanError, ValueError):
    """The bit-string does not decode to a whole number of codewords."""


class MalformedTreeError(HuffmanError, ValueError):
    """The serialized tree cannot be parsed."""


@dataclass(frozen=True)
class Leaf: # terminal node holding one byte value
    symbol: int
    weight: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Internal: # always owns exactly two children
    left: Node
    right: Node
    weight: int = field(default=0, compare=False)


Node = Union[Leaf, Internal]


def count_frequencies(data: bytes) -> Dict[int, int]: # every byte counts, whitespace and NUL included
    return dict(Counter(data))


def format_symbol(symbol: int) -> str:
    return repr(bytes([symbol]))[1:] # 'a', '\n', '\x00'


def format_frequencies(frequency_table: Dict[int, int]) -> List[str]:
    return [f"{format_symbol(symbol)}: {count}" for symbol, count in sorted(frequency_table.items())]


def format_codes(code_map: Dict[int, str]) -> List[str]:
    return [f"{format_symbol(symbol)}: {code}" for symbol, code in sorted(code_map.items())]


def build_huffman_tree(frequency_table: Dict[int, int]) -> Node:
    """
    Merge the two lightest nodes until one remains.
    Heap entries are ordered by (weight, sequence number): leaves get their
    numbers in ascending symbol order, merged nodes take the next free one.
    """
    if not frequency_table:
        raise ValueError("cannot build a Huffman tree from an empty frequency table")

    sequence = itertools.count()
    priority_queue = [(frequency, next(sequence), Leaf(symbol, frequency))
                      for symbol, frequency in sorted(frequency_table.items())]
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_weight, _, left = heapq.heappop(priority_queue)
        right_weight, _, right = heapq.heappop(priority_queue)
        weight = left_weight + right_weight
        heapq.heappush(priority_queue, (weight, next(sequence), Internal(left, right, weight)))

    return priority_queue[0][2] # a lone leaf when the alphabet has one symbol


def generate_huffman_codes(root: Optional[Node]) -> Dict[int, str]:
    codes: Dict[int, str] = {}
    if root is None:
        return codes

    # Single-leaf tree: the path is empty, so the symbol gets "0"
    if isinstance(root, Leaf):
        codes[root.symbol] = '0'
        return codes

    def generate_codes_helper(node: Node, current_code: str) -> None:
        if isinstance(node, Leaf):
            codes[node.symbol] = current_code
            return
        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return codes


def huffman_encode(data: bytes, code_map: Dict[int, str]) -> str:
    if len(code_map) == 1:
        (symbol,) = code_map
        if data.count(symbol) != len(data):
            raise HuffmanError("data contains symbols that are not in the code table")
        return '0' * len(data)

    try:
        return ''.join(code_map[byte] for byte in data)
    except KeyError as exc:
        raise HuffmanError(f"symbol {format_symbol(exc.args[0])} is not in the code table") from None


def huffman_decode(bit_string: str, root: Optional[Node]) -> bytes:
    """
    Walk the tree one bit at a time, emitting a byte and returning to the root
    at every leaf. Raises CorruptBitstreamError if a bit is not '0'/'1' or the
    walk ends away from the root.
    """
    if root is None:
        if bit_string:
            raise CorruptBitstreamError("bitstream has a payload but there is no Huffman tree")
        return b''

    if isinstance(root, Leaf):
        if bit_string.strip('0'):
            raise CorruptBitstreamError("a single-symbol bitstream may only contain '0' bits")
        return bytes([root.symbol]) * len(bit_string)

    decoded = bytearray()
    node = root
    for position, bit in enumerate(bit_string):
        if bit == '0':
            node = node.left
        elif bit == '1':
            node = node.right
        else:
            raise CorruptBitstreamError(f"invalid bit {bit!r} at position {position}")

        if isinstance(node, Leaf):
            decoded.append(node.symbol)
            node = root

    if node is not root:
        raise CorruptBitstreamError("bitstream ends in the middle of a codeword")

    return bytes(decoded)


def serialize_tree(root: Optional[Node]) -> bytes:
    """Pre-order: b'I' + left + right for internal nodes, b'L' + the byte for leaves."""
    if root is None:
        return b''

    out = bytearray()

    def serialize_helper(node: Node) -> None:
        if isinstance(node, Leaf):
            out.append(LEAF_TAG)
            out.append(node.symbol)
            return
        out.append(INTERNAL_TAG)
        serialize_helper(node.left)
        serialize_helper(node.right)

    serialize_helper(root)
    return bytes(out)


def deserialize_tree(serialized: bytes) -> Optional[Node]:
    if not serialized:
        return None

    position = 0 # shared by the whole descent

    def read_node(depth: int) -> Node:
        nonlocal position
        if position >= len(serialized):
            raise MalformedTreeError("serialized tree is truncated")
        if depth > MAX_TREE_DEPTH:
            raise MalformedTreeError("serialized tree is nested too deeply")

        tag = serialized[position]
        position += 1

        if tag == LEAF_TAG:
            if position >= len(serialized):
                raise MalformedTreeError(f"leaf at offset {position - 1} has no symbol byte")
            symbol = serialized[position]
            position += 1
            return Leaf(symbol)

        if tag == INTERNAL_TAG:
            left = read_node(depth + 1)
            right = read_node(depth + 1)
            return Internal(left, right)

        raise MalformedTreeError(f"unexpected tag byte 0x{tag:02x} at offset {position - 1}")

    root = read_node(0)
    if position != len(serialized):
        raise MalformedTreeError(f"{len(serialized) - position} trailing bytes after serialized tree")
    return root


def compress(data: bytes) -> Tuple[bytes, str]:
    """Returns (serialized_tree, bit_string); empty data gives (b'', '')."""
    if not data:
        return b'', ''

    root = build_huffman_tree(count_frequencies(data))
    code_map = generate_huffman_codes(root)
    return serialize_tree(root), huffman_encode(data, code_map)


def decompress(serialized_tree: bytes, bit_string: str) -> bytes:
    return huffman_decode(bit_string, deserialize_tree(serialized_tree))
