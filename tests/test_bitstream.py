import io

import pytest

from bitstream import BitReader, BitWriter


def _written(write, chunk_size=None):
    sink = io.BytesIO()
    writer = BitWriter(sink) if chunk_size is None else BitWriter(sink, chunk_size=chunk_size)
    write(writer)
    writer.flush()
    return sink.getvalue()


def test_bits_are_packed_high_bit_first():
    assert _written(lambda w: w.write_bits(0b101, 3)) == b"\xa0"


def test_multi_byte_field():
    assert _written(lambda w: w.write_bits(0x1234, 16)) == b"\x12\x34"


def test_single_bits_fill_a_byte():
    def write(writer):
        for bit in (1, 1, 0, 0, 1, 0, 1, 0):
            writer.write_bit(bit)
    assert _written(write) == b"\xca"


def test_flush_without_bits_writes_nothing():
    assert _written(lambda w: None) == b""


def test_zero_width_write_is_a_no_op():
    sink = io.BytesIO()
    writer = BitWriter(sink)
    writer.write_bits(0, 0)
    writer.flush()
    assert writer.bits_written == 0
    assert sink.getvalue() == b""


def test_value_wider_than_field_is_rejected():
    writer = BitWriter(io.BytesIO())
    with pytest.raises(ValueError):
        writer.write_bits(512, 9)
    with pytest.raises(ValueError):
        writer.write_bits(-1, 4)
    with pytest.raises(ValueError):
        writer.write_bits(0, -1)


def test_small_chunks_drain_to_stream():
    data = _written(lambda w: [w.write_bits(b, 8) for b in range(10)], chunk_size=3)
    assert data == bytes(range(10))


def test_bits_written_excludes_padding():
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        writer.write_bits(1846, 32)
        writer.write_bit(1)
    assert writer.bits_written == 33
    assert len(sink.getvalue()) == 5


def test_context_manager_does_not_flush_on_error():
    sink = io.BytesIO()
    with pytest.raises(RuntimeError):
        with BitWriter(sink) as writer:
            writer.write_bits(0xFF, 8)
            raise RuntimeError("boom")
    assert sink.getvalue() == b""


def test_reader_reads_fields_high_bit_first():
    reader = BitReader(io.BytesIO(b"\x00\x00\x07\x36\xa0"))
    assert reader.read_bits(32) == 1846
    assert [reader.read_bit() for _ in range(3)] == [1, 0, 1]
    assert reader.bits_read == 35


def test_reader_reports_end_of_data():
    reader = BitReader(io.BytesIO(b"\x01"))
    assert reader.has_bits()
    assert reader.read_bits(8) == 1
    assert not reader.has_bits()
    with pytest.raises(EOFError):
        reader.read_bit()


def test_reader_on_empty_stream():
    reader = BitReader(io.BytesIO(b""))
    assert not reader.has_bits()
    with pytest.raises(EOFError):
        reader.read_bits(1)


def test_reader_across_chunk_boundaries():
    reader = BitReader(io.BytesIO(bytes(range(20))), chunk_size=1)
    assert [reader.read_bits(8) for _ in range(20)] == list(range(20))
    assert not reader.has_bits()


def test_reader_reads_what_writer_wrote():
    fields = [(1, 1), (256, 9), (0, 3), (65, 9), (0x1ABCD, 17)]
    data = _written(lambda w: [w.write_bits(v, n) for v, n in fields])
    reader = BitReader(io.BytesIO(data))
    assert [reader.read_bits(n) for _, n in fields] == [v for v, _ in fields]
