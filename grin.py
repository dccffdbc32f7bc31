"""
grin.py : encode and decode files in the GRIN container format

A .grin file holds a 32-bit magic number, the serialized Huffman tree and the
Huffman-coded payload, which ends with the code of the end-of-stream symbol.

Usage:
    grin encode <infile> <outfile>
    grin decode <infile> <outfile>
    grin -v encode <infile> <outfile>    #also log progress
"""

import io
import logging
import os
import sys

from bitstream import BitReader, BitWriter
from grin_errors import FormatMismatchError, GrinError
from huffman_tree import (
    build_code_table,
    build_tree,
    count_frequencies,
    decode_payload,
    deserialize_tree,
    encode_payload,
    serialize_tree,
)

logger = logging.getLogger(__name__)

MAGIC = 1846
MAGIC_BITS = 32

USAGE = "Usage: grin <encode|decode> <infile> <outfile>"


### STREAM LEVEL ###
def encode_stream(source, sink):
    """Encode a seekable binary `source` into `sink`. Returns the bytes consumed.

    The source is read twice: once to count frequencies, once to encode.
    """
    start = source.tell()
    frequency = count_frequencies(source)
    root = build_tree(frequency)
    source.seek(start)

    with BitWriter(sink) as writer:
        writer.write_bits(MAGIC, MAGIC_BITS)
        serialize_tree(root, writer)
        codes = build_code_table(root)
        count = encode_payload(source, writer, codes)

    logger.info("encoded %d bytes into %d bits", count, writer.bits_written)
    return count


def decode_stream(source, sink):
    """Decode a GRIN container from `source` into `sink`. Returns the bytes written."""
    reader = BitReader(source)
    try:
        magic = reader.read_bits(MAGIC_BITS)
    except EOFError as exc:
        raise FormatMismatchError("input is too short to hold the GRIN magic number") from exc
    if magic != MAGIC:
        raise FormatMismatchError(f"bad magic number {magic:#010x}, expected {MAGIC:#010x}")

    root = deserialize_tree(reader)
    count = decode_payload(reader, root, sink)
    sink.flush()

    logger.info("decoded %d bits into %d bytes", reader.bits_read, count)
    return count


### IN MEMORY ###
def compress(data):
    """Return the GRIN container for `data`."""
    sink = io.BytesIO()
    encode_stream(io.BytesIO(data), sink)
    return sink.getvalue()


def decompress(blob):
    """Return the bytes stored in the GRIN container `blob`."""
    sink = io.BytesIO()
    decode_stream(io.BytesIO(blob), sink)
    return sink.getvalue()


### FILE LEVEL ###
def encode(infile, outfile):
    """Encode the file `infile` into the .grin file `outfile`."""
    _check_distinct(infile, outfile)
    with open(infile, "rb") as source:
        return _write_or_discard(outfile, lambda sink: encode_stream(source, sink))


def decode(infile, outfile):
    """Decode the .grin file `infile` and write the original bytes to `outfile`."""
    _check_distinct(infile, outfile)
    with open(infile, "rb") as source:
        return _write_or_discard(outfile, lambda sink: decode_stream(source, sink))


def _check_distinct(infile, outfile):
    # Opening the output for writing would truncate the input before it is read
    if os.path.exists(outfile) and os.path.samefile(infile, outfile):
        raise ValueError(f"input and output are the same file: '{outfile}'")


def _write_or_discard(outfile, produce):
    # A failed run must not leave a half-written file behind
    try:
        with open(outfile, "wb") as sink:
            return produce(sink)
    except Exception:
        if os.path.exists(outfile):
            os.remove(outfile)
        raise


### CLI ###
def log_level(verbose=False):
    """Level name for the CLI: INFO with -v, else GRIN_LOG_LEVEL, else WARNING."""
    if verbose:
        return "INFO"
    level = os.environ.get("GRIN_LOG_LEVEL", "WARNING").upper()
    # getLevelName maps known names to their number, unknown ones to a string
    if not isinstance(logging.getLevelName(level), int):
        return "WARNING"
    return level


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    verbose = any(arg in ("-v", "--verbose") for arg in args)
    args = [arg for arg in args if arg not in ("-v", "--verbose")]

    level = log_level(verbose)
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")
    requested = os.environ.get("GRIN_LOG_LEVEL")
    if not verbose and requested and requested.upper() != level:
        logger.warning("unknown GRIN_LOG_LEVEL %r, using WARNING", requested)

    if len(args) != 3 or args[0] not in ("encode", "decode"):
        print(USAGE)
        return 1

    mode, infile, outfile = args
    if not os.path.isfile(infile):
        print(f"Error: input file not found at '{infile}'.")
        print(USAGE)
        return 1

    try:
        if mode == "encode":
            encode(infile, outfile)
        else:
            decode(infile, outfile)
    except (GrinError, ValueError) as e:
        print(f"Error: cannot {mode} '{infile}': {e}")
        return 1
    except OSError as e:
        print(f"I/O error while trying to {mode} '{infile}': {e}")
        return 1

    original_size = os.path.getsize(infile)
    result_size = os.path.getsize(outfile)
    change = round((result_size - original_size) / original_size * 100, 2) if original_size else 0
    print(f"✅ {mode.capitalize()}d '{infile}' → '{outfile}' "
          f"({original_size} → {result_size} bytes, {change:+.2f}%)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
