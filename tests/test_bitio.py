import pytest

import bitio
import huffman as huff


def test_pack_empty():
    assert bitio.pack_bits("") == (b"", 0)


def test_pack_partial_byte():
    assert bitio.pack_bits("1") == (b"\x80", 7)
    assert bitio.pack_bits("10101111000") == (b"\xaf\x00", 5)


def test_pack_whole_bytes():
    assert bitio.pack_bits("0000000111111110") == (b"\x01\xfe", 0)


def test_pack_rejects_non_bits():
    with pytest.raises(ValueError):
        bitio.pack_bits("0102")


@pytest.mark.parametrize("bits", ["", "0", "1", "1000", "00000000", "10101111000", "0" * 17, "1" * 64])
def test_unpack_restores_exact_length(bits):
    packed, pad_bits = bitio.pack_bits(bits)
    assert bitio.unpack_bits(packed, pad_bits) == bits


def test_unpack_rejects_bad_padding():
    with pytest.raises(bitio.MalformedArtifactError):
        bitio.unpack_bits(b"\x80", 8)
    with pytest.raises(bitio.MalformedArtifactError):
        bitio.unpack_bits(b"\x81", 1)
    with pytest.raises(bitio.MalformedArtifactError):
        bitio.unpack_bits(b"", 3)


def test_artifact_round_trip():
    artifact = bitio.build_artifact(b"ILaLb", "0110")
    assert artifact.startswith(b"ZAP\x01\x00\x00\x00\x05ILaLb")
    assert bitio.parse_artifact(artifact) == (b"ILaLb", "0110")


def test_artifact_keeps_trailing_zero_bits():
    serialized_tree, bits = bitio.parse_artifact(bitio.build_artifact(b"ILaLb", "1000"))
    assert bits == "1000"


def test_artifact_preserves_any_tree_bytes():
    tree = bytes(range(256))  # not a valid tree, but the packer must not care
    assert bitio.parse_artifact(bitio.build_artifact(tree, "1"))[0] == tree


def test_empty_artifact():
    assert bitio.parse_artifact(bitio.build_artifact(b"", "")) == (b"", "")


@pytest.mark.parametrize("data", [
    b"",
    b"ZA",
    b"XYZ\x01\x00\x00\x00\x00\x00",
    b"ZAP\x02\x00\x00\x00\x00\x00",
    b"ZAP\x01\x00\x00\x00\x05ILa",
    b"ZAP\x01\x00\x00\x00\x05ILaLb",
    b"ZAP\x01\x00\x00\x00\x05ILaLb\x09\x00",
])
def test_parse_malformed_artifact(data):
    with pytest.raises(bitio.MalformedArtifactError):
        bitio.parse_artifact(data)


def test_file_round_trip(tmp_path):
    path = tmp_path / "out.zap"
    serialized_tree, bits = huff.compress(b"hello, world\n")
    size = bitio.write_artifact(path, serialized_tree, bits)
    assert size == path.stat().st_size
    assert bitio.read_artifact(path) == (serialized_tree, bits)


def test_read_missing_file(tmp_path):
    with pytest.raises(bitio.FileAccessError) as excinfo:
        bitio.read_input(tmp_path / "missing.txt")
    assert "Unable to open file" in str(excinfo.value)


def test_write_into_missing_directory(tmp_path):
    with pytest.raises(bitio.FileAccessError):
        bitio.write_output(tmp_path / "no" / "such" / "dir.zap", b"data")


def test_errors_share_a_base_class():
    assert issubclass(bitio.FileAccessError, huff.HuffmanError)
    assert issubclass(bitio.MalformedArtifactError, huff.HuffmanError)
