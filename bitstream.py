"""
Bit-granular I/O over binary file objects.

Bits are packed most-significant first: the first bit written lands in the
high bit of the first byte. The writer zero-pads the last byte on flush, the
reader raises EOFError once every byte of the stream has been consumed.
"""

# Bytes read from / written to the underlying stream per call
CHUNK_SIZE = 64 * 1024


class BitWriter:
    """Packs single bits and multi-bit fields into bytes."""

    def __init__(self, stream, chunk_size=CHUNK_SIZE):
        self.stream = stream
        self.chunk_size = chunk_size
        self.bits_written = 0
        self._pending = bytearray()
        # Partially filled byte and how many bits it holds
        self._buffer = 0
        self._bit_count = 0

    def write_bit(self, bit):
        self._buffer = (self._buffer << 1) | (bit & 1)
        self._bit_count += 1
        self.bits_written += 1

        if self._bit_count == 8:
            self._pending.append(self._buffer)
            self._buffer = 0
            self._bit_count = 0
            if len(self._pending) >= self.chunk_size:
                self._drain()

    def write_bits(self, value, n):
        """Write the low `n` bits of `value`, high bit first."""
        if n < 0:
            raise ValueError(f"bit width must be non-negative, got {n}")
        if value < 0 or value >> n:
            raise ValueError(f"value {value} does not fit in {n} bits")
        for shift in range(n - 1, -1, -1):
            self.write_bit((value >> shift) & 1)

    def flush(self):
        """Pad the current byte with zeros and push everything to the stream."""
        if self._bit_count:
            padding_bits = 8 - self._bit_count
            self._pending.append(self._buffer << padding_bits)
            self._buffer = 0
            self._bit_count = 0
        self._drain()
        self.stream.flush()

    def _drain(self):
        if self._pending:
            self.stream.write(bytes(self._pending))
            self._pending.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        # Nothing is pushed to the stream when the block failed
        if exc_type is None:
            self.flush()
        return False


class BitReader:
    """Reads single bits and multi-bit fields from a byte stream."""

    def __init__(self, stream, chunk_size=CHUNK_SIZE):
        self.stream = stream
        self.chunk_size = chunk_size
        self.bits_read = 0
        self._chunk = b""
        self._index = 0
        # Byte being consumed and how many of its bits are still unread
        self._current = 0
        self._remaining = 0

    def has_bits(self):
        """Return True while at least one unconsumed bit is left."""
        if self._remaining:
            return True
        if self._index >= len(self._chunk):
            self._chunk = self.stream.read(self.chunk_size)
            self._index = 0
            if not self._chunk:
                return False
        self._current = self._chunk[self._index]
        self._index += 1
        self._remaining = 8
        return True

    def read_bit(self):
        if not self.has_bits():
            raise EOFError(f"bit stream exhausted after {self.bits_read} bits")
        self._remaining -= 1
        self.bits_read += 1
        return (self._current >> self._remaining) & 1

    def read_bits(self, n):
        """Read `n` bits and return them as an unsigned int, high bit first."""
        if n < 0:
            raise ValueError(f"bit width must be non-negative, got {n}")
        value = 0
        for _ in range(n):
            value = (value << 1) | self.read_bit()
        return value
