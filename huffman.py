import heapq
import itertools
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

ALPHABET_SIZE = 256 # symbols are byte values 0..255


class FormatError(ValueError):
    """Raised for a malformed code table or a payload the tree cannot decode."""


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, order = 0):
        self.symbol = symbol    # byte, or None for an internal node
        self.frequency = frequency
        self.order = order      # arrival order, breaks frequency ties
        self.left = None
        self.right = None

    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __lt__(self, other):
        if self.frequency != other.frequency:
            return self.frequency < other.frequency # min-heap on frequency
        return self.order < other.order


def _iter_frequencies(frequencies) -> Iterator[Tuple[int, int]]:
    """
    Yield (symbol, count) pairs in ascending symbol order from either a
    mapping of symbol -> count or a sequence of counts indexed by symbol
    """
    items = frequencies.items() if hasattr(frequencies, "items") else enumerate(frequencies)
    for symbol, count in sorted(items):
        if not 0 <= symbol < ALPHABET_SIZE:
            raise ValueError(f"symbol {symbol} outside 0..{ALPHABET_SIZE - 1}")
        if count < 0:
            raise ValueError(f"negative count {count} for symbol {symbol}")
        yield symbol, count


def freq_table(data: bytes) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def build_huffman_tree(frequencies) -> Optional[HuffmanNode]: # frequencies: dict of symbol -> count, or 256 counts
    arrival = itertools.count()
    priority_queue = [
        HuffmanNode(symbol, count, next(arrival))
        for symbol, count in _iter_frequencies(frequencies)
        if count != 0
    ]
    if not priority_queue:
        return None
    heapq.heapify(priority_queue)

    # Build the tree
    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.frequency + right.frequency, next(arrival))
        merged_node.left = left
        merged_node.right = right
        heapq.heappush(priority_queue, merged_node)

    return priority_queue[0] # root of the tree, a lone leaf when only one symbol occurs


def _parse_symbol(line: str) -> int:
    if not (line.isascii() and line.isdigit()):
        raise FormatError(f"symbol line {line!r} is not a decimal integer")
    symbol = int(line)
    if symbol >= ALPHABET_SIZE:
        raise FormatError(f"symbol {symbol} outside 0..{ALPHABET_SIZE - 1}")
    return symbol


def _parse_code(line: str) -> str:
    if line.strip("01"):
        raise FormatError(f"code line {line!r} contains characters other than 0 and 1")
    return line


def build_tree_from_table(lines: Iterable[str]) -> Optional[HuffmanNode]:
    """
    Rebuild a tree from the lines of a saved code table: a symbol line
    followed by its code line, repeated. Nodes on the way to a leaf are
    created as internal nodes with frequency 0.
    """
    lines = list(lines)
    if len(lines) % 2 != 0:
        raise FormatError(f"code table has an odd number of lines ({len(lines)})")
    n_entries = len(lines) // 2

    root = None
    seen = set()
    for i in range(0, len(lines), 2):
        symbol = _parse_symbol(lines[i])
        code = _parse_code(lines[i + 1])
        if symbol in seen:
            raise FormatError(f"symbol {symbol} appears more than once")
        seen.add(symbol)

        # Single symbol table -> the leaf is the root
        if code == "":
            if n_entries > 1:
                raise FormatError(f"empty code for symbol {symbol} in a table of {n_entries} entries")
            root = HuffmanNode(symbol, 0)
            continue

        if root is None:
            root = HuffmanNode(None, 0)
        node = root
        for depth, bit in enumerate(code):
            if node.is_leaf():
                raise FormatError(f"code {code} for symbol {symbol} runs through the leaf at {code[:depth]}")
            child = node.left if bit == "0" else node.right
            if depth == len(code) - 1:
                if child is not None:
                    raise FormatError(f"code {code} for symbol {symbol} collides with an existing node")
                child = HuffmanNode(symbol, 0)
            elif child is None:
                child = HuffmanNode(None, 0)
            if bit == "0":
                node.left = child
            else:
                node.right = child
            node = child

    logger.debug("rebuilt tree with %d leaves from code table", n_entries)
    return root


def read_code_table(stream) -> Optional[HuffmanNode]: # stream: text file or any iterable of lines
    return build_tree_from_table(line.rstrip("\r\n") for line in stream)


def save_code_table(root: Optional[HuffmanNode]) -> List[Tuple[int, str]]:
    """
    List (symbol, code) for every leaf, left subtree ('0') before right
    subtree ('1'). Uses an explicit stack so skewed trees do not hit the
    recursion limit.
    """
    table: List[Tuple[int, str]] = []
    if root is None:
        return table
    stack = [(root, "")]
    while stack:
        node, code = stack.pop()
        if node.is_leaf():
            table.append((node.symbol, code))
            continue
        # right is pushed first so the left branch comes out first
        if node.right is not None:
            stack.append((node.right, code + "1"))
        if node.left is not None:
            stack.append((node.left, code + "0"))
    return table


def write_code_table(root: Optional[HuffmanNode], output) -> int: # output: text stream
    table = save_code_table(root)
    for symbol, code in table:
        output.write(f"{symbol}\n{code}\n")
    return len(table)


def generate_huffman_codes(root: Optional[HuffmanNode]) -> Dict[int, str]:
    return dict(save_code_table(root)) # mapping of symbol -> code


def weighted_code_length(frequencies, code_map: Dict[int, str]) -> int:
    """Sum of count * len(code) over all symbols that occur"""
    return sum(
        count * len(code_map[symbol])
        for symbol, count in _iter_frequencies(frequencies)
        if count
    )


def huffman_encode(data: bytes, code_map: Dict[int, str], writer) -> int:
    """
    Write the code of every byte in data to writer (anything with
    write_bits). A lone symbol has the empty code, so it is written as a
    single 0 bit per occurrence. Returns the number of bits written.
    """
    n_bits = 0
    for byte in data:
        code = code_map.get(byte)
        if code is None:
            raise ValueError(f"no code for symbol {byte}")
        code = code or "0"
        writer.write_bits(code)
        n_bits += len(code)
    return n_bits


def _symbol_sink(output):
    if hasattr(output, "write"):
        return lambda symbol: output.write(bytes((symbol,)))
    return output.append


def translate(root: Optional[HuffmanNode], reader, output) -> int:
    """
    Decode the bits of reader (has_next_bit / next_bit) with the tree and
    write each symbol to output as soon as its leaf is reached. output is
    a binary stream or anything with append. Returns the number of symbols
    written.
    """
    emit = _symbol_sink(output)
    if root is None:
        if reader.has_next_bit():
            raise FormatError("cannot decode bits without a code tree")
        return 0

    n_symbols = 0
    # Lone leaf -> every bit is one occurrence
    if root.is_leaf():
        while reader.has_next_bit():
            if reader.next_bit() != 0:
                raise FormatError(f"unexpected 1 bit for the single symbol {root.symbol}")
            emit(root.symbol)
            n_symbols += 1
        return n_symbols

    node = root
    while reader.has_next_bit() or node.is_leaf():
        if node.is_leaf():
            emit(node.symbol)
            n_symbols += 1
            node = root
        else:
            bit = reader.next_bit()
            node = node.right if bit == 1 else node.left
            if node is None:
                raise FormatError(f"bit {bit} leads outside the code tree after {n_symbols} symbols")

    if node is not root:
        raise FormatError(f"input ended in the middle of a code after {n_symbols} symbols")
    return n_symbols
