"""
Bit packing and the on-disk artifact.

Artifact layout:
    b"ZAP"          magic
    u8              format version
    u32 big-endian  length of the serialized tree
    bytes           serialized tree
    u8              number of zero bits padding the last payload byte (0-7)
    bytes           payload, 8 bits per byte, most significant bit first
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Tuple, Union

from huffman import HuffmanError

ARTIFACT_MAGIC = b'ZAP'
ARTIFACT_VERSION = 1
HEADER = struct.Struct('>3sBI')

PathLike = Union[str, Path]


class FileAccessError(HuffmanError):
    """A file could not be read or written."""


class MalformedArtifactError(HuffmanError, ValueError):
    """The compressed file is not a valid artifact."""


def pack_bits(bit_string: str) -> Tuple[bytes, int]:
    """
    Converts a '0'/'1' string into packed bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for ch in bit_string:
        if ch not in '01':
            raise ValueError(f"bit string may only contain '0' and '1', got {ch!r}")
        acc = (acc << 1) | (1 if ch == '1' else 0)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc)
            acc = 0
            acc_bits = 0

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        out.append(acc << pad_bits)

    return bytes(out), pad_bits


def unpack_bits(packed: bytes, pad_bits: int) -> str:
    if not 0 <= pad_bits < 8:
        raise MalformedArtifactError(f"pad bit count {pad_bits} is out of range")
    if pad_bits and not packed:
        raise MalformedArtifactError("padding declared for an empty payload")

    bits = ''.join(format(byte, '08b') for byte in packed)
    if pad_bits:
        if bits[-pad_bits:].strip('0'):
            raise MalformedArtifactError("padding bits are not zero")
        bits = bits[:-pad_bits]
    return bits


def build_artifact(serialized_tree: bytes, bit_string: str) -> bytes:
    packed, pad_bits = pack_bits(bit_string)
    return (HEADER.pack(ARTIFACT_MAGIC, ARTIFACT_VERSION, len(serialized_tree))
            + serialized_tree
            + bytes([pad_bits])
            + packed)


def parse_artifact(data: bytes) -> Tuple[bytes, str]:
    if len(data) < HEADER.size:
        raise MalformedArtifactError("file is too short to hold an artifact header")

    magic, version, tree_size = HEADER.unpack_from(data)
    if magic != ARTIFACT_MAGIC:
        raise MalformedArtifactError("not a zap artifact (bad magic)")
    if version != ARTIFACT_VERSION:
        raise MalformedArtifactError(f"unsupported artifact version: {version}")

    pos = HEADER.size
    if pos + tree_size + 1 > len(data):
        raise MalformedArtifactError("artifact is truncated inside the serialized tree")

    serialized_tree = data[pos:pos + tree_size]
    pos += tree_size
    pad_bits = data[pos]
    pos += 1

    return serialized_tree, unpack_bits(data[pos:], pad_bits)


def write_artifact(path: PathLike, serialized_tree: bytes, bit_string: str) -> int:
    """Writes the artifact and returns its size in bytes."""
    artifact = build_artifact(serialized_tree, bit_string)
    write_output(path, artifact)
    return len(artifact)


def read_artifact(path: PathLike) -> Tuple[bytes, str]:
    return parse_artifact(read_input(path))


def read_input(path: PathLike) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileAccessError(f"Unable to open file {path}: {exc.strerror or exc}") from exc


def write_output(path: PathLike, data: bytes) -> None:
    try:
        Path(path).write_bytes(data)
    except OSError as exc:
        raise FileAccessError(f"Unable to write file {path}: {exc.strerror or exc}") from exc
