"""
Huffman compressor client

  code:       SOURCE            -> SOURCE.code   (code table from byte frequencies)
  compress:   SOURCE + .code    -> SOURCE.short  (packed bits)
  decompress: .short + .code    -> .new          (original bytes)

How to run:
  python compressor.py code notes.txt
  python compressor.py compress notes.txt notes.code
  python compressor.py decompress notes.short notes.code -o notes.txt.new
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import huffman as huff
from bitio import BitWriter, pack_payload, unpack_payload

logger = logging.getLogger(__name__)

CODE_SUFFIX = ".code"
COMPRESSED_SUFFIX = ".short"
DECOMPRESSED_SUFFIX = ".new"


def _check_output(out_path: Path, *inputs: Path) -> None:
    target = out_path.resolve()
    for path in inputs:
        if path.resolve() == target:
            raise ValueError(f"output {out_path} would overwrite input {path}, pass -o to choose another path")


def make_code(source: Path, out_path: Path) -> int:
    _check_output(out_path, source)
    data = source.read_bytes()
    ft = huff.freq_table(data)
    root = huff.build_huffman_tree(ft)
    with out_path.open("w", encoding="ascii", newline="\n") as f:
        n_entries = huff.write_code_table(root, f)
    logger.debug("%s: %d bytes, %d distinct symbols", source, len(data), n_entries)
    return n_entries


def load_code(code_path: Path) -> Optional[huff.HuffmanNode]:
    with code_path.open("r", encoding="ascii", newline="") as f:
        return huff.read_code_table(f)


def compress(source: Path, code_path: Path, out_path: Path) -> int:
    _check_output(out_path, source, code_path)
    data = source.read_bytes()
    code_map = huff.generate_huffman_codes(load_code(code_path))
    writer = BitWriter()
    n_bits = huff.huffman_encode(data, code_map, writer)
    packed, pad_bits = writer.getvalue()
    payload = pack_payload(packed, pad_bits)
    out_path.write_bytes(payload)
    logger.debug("%s: %d bits, %d pad bits", out_path, n_bits, pad_bits)
    return len(payload)


def decompress(compressed: Path, code_path: Path, out_path: Path) -> int:
    _check_output(out_path, compressed, code_path)
    root = load_code(code_path)
    reader = unpack_payload(compressed.read_bytes())
    n_bits = reader.bits_remaining
    # nothing is written unless the whole payload decodes
    decoded = bytearray()
    n_symbols = huff.translate(root, reader, decoded)
    out_path.write_bytes(decoded)
    logger.debug("%s: %d bits decoded into %d symbols", out_path, n_bits, n_symbols)
    return n_symbols


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffcode", description="Huffman code-table compressor")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("code", help=f"Write the {CODE_SUFFIX} table for a source file")
    p.add_argument("source", type=Path)
    p.add_argument("-o", "--output", type=Path, default=None, help=f"Default: SOURCE with {CODE_SUFFIX} suffix")

    p = sub.add_parser("compress", help=f"Compress a source file into {COMPRESSED_SUFFIX}")
    p.add_argument("source", type=Path)
    p.add_argument("code", type=Path, help=f"{CODE_SUFFIX} table built for the source")
    p.add_argument("-o", "--output", type=Path, default=None, help=f"Default: SOURCE with {COMPRESSED_SUFFIX} suffix")

    p = sub.add_parser("decompress", help=f"Restore a {COMPRESSED_SUFFIX} file into {DECOMPRESSED_SUFFIX}")
    p.add_argument("compressed", type=Path)
    p.add_argument("code", type=Path, help=f"{CODE_SUFFIX} table used to compress")
    p.add_argument("-o", "--output", type=Path, default=None, help=f"Default: input with {DECOMPRESSED_SUFFIX} suffix")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "code":
            out_path = args.output or args.source.with_suffix(CODE_SUFFIX)
            n_entries = make_code(args.source, out_path)
            print(f"Wrote {n_entries} codes to {out_path}")
        elif args.command == "compress":
            out_path = args.output or args.source.with_suffix(COMPRESSED_SUFFIX)
            size = compress(args.source, args.code, out_path)
            original = args.source.stat().st_size
            print(f"Compressed {original} bytes to {size} bytes in {out_path}")
        else:
            out_path = args.output or args.compressed.with_suffix(DECOMPRESSED_SUFFIX)
            n_symbols = decompress(args.compressed, args.code, out_path)
            print(f"Decompressed {n_symbols} bytes to {out_path}")
    except (ValueError, OSError) as e: # FormatError is a ValueError
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
