"""
zap: compress and restore single files with Huffman coding.

How to run:
  python zap.py zap notes.txt notes.zap
  python zap.py unzap notes.zap notes_restored.txt
  python zap.py zap notes.txt notes.zap --verbose
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import bitio
import huffman as huff


@dataclass
class CompressReport:
    input_path: str
    output_path: str
    input_bytes: int
    encoded_bits: int = 0
    artifact_bytes: int = 0
    frequencies: Dict[int, int] = field(default_factory=dict)
    codes: Dict[int, str] = field(default_factory=dict)

    @property
    def empty(self) -> bool: # nothing was written
        return self.input_bytes == 0


@dataclass
class DecompressReport:
    input_path: str
    output_path: str
    encoded_bits: int
    output_bytes: int


def compress_file(input_path: bitio.PathLike, output_path: bitio.PathLike) -> CompressReport:
    """
    Compress one file into a zap artifact
    An empty input is not an error: the report says so and no artifact is written
    """
    data = bitio.read_input(input_path)
    report = CompressReport(input_path=str(input_path), output_path=str(output_path), input_bytes=len(data))
    if not data:
        return report

    frequency_table = huff.count_frequencies(data)
    root = huff.build_huffman_tree(frequency_table)
    code_map = huff.generate_huffman_codes(root)
    bit_string = huff.huffman_encode(data, code_map)
    serialized_tree = huff.serialize_tree(root)

    report.artifact_bytes = bitio.write_artifact(output_path, serialized_tree, bit_string)
    report.encoded_bits = len(bit_string)
    report.frequencies = frequency_table
    report.codes = code_map
    return report


def decompress_file(input_path: bitio.PathLike, output_path: bitio.PathLike) -> DecompressReport:
    serialized_tree, bit_string = bitio.read_artifact(input_path)
    # Decode fully before touching the output so a corrupt artifact leaves nothing behind
    decoded = huff.decompress(serialized_tree, bit_string)
    bitio.write_output(output_path, decoded)
    return DecompressReport(
        input_path=str(input_path),
        output_path=str(output_path),
        encoded_bits=len(bit_string),
        output_bytes=len(decoded),
    )


def render_compress_report(report: CompressReport, verbose: bool = False) -> List[str]:
    if report.empty:
        return [f"{report.input_path} is empty and cannot be compressed."]

    lines: List[str] = []
    if verbose:
        lines.append(f"Frequencies ({len(report.frequencies)} symbols):")
        lines.extend("  " + line for line in huff.format_frequencies(report.frequencies))
        lines.append("Codes:")
        lines.extend("  " + line for line in huff.format_codes(report.codes))
        lines.append(f"Artifact size: {report.artifact_bytes} bytes (input {report.input_bytes} bytes)")
    lines.append(f"Success! Encoded given text using {report.encoded_bits} bits.")
    return lines


def render_decompress_report(report: DecompressReport) -> List[str]:
    return [f"Success! Decoded {report.output_bytes} bytes."]


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="zap", description="Huffman file compressor")
    ap.add_argument("mode", choices=("zap", "unzap"), help="zap compresses INPUT, unzap restores it")
    ap.add_argument("input", help="File to read")
    ap.add_argument("output", help="File to write")
    ap.add_argument("-v", "--verbose", action="store_true",
                    help="Print the frequency and code tables after compressing")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.mode == "zap":
            lines = render_compress_report(compress_file(args.input, args.output), verbose=args.verbose)
        else:
            lines = render_decompress_report(decompress_file(args.input, args.output))
    except huff.HuffmanError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
