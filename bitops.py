class BitWriter:
    """MSB-first bit packer for the container payload and dictionary codes.

    Bits are accumulated into an 8-bit register and moved to the output
    buffer as soon as a byte is complete. The trailing partial byte is
    zero-padded on :meth:`align` / :meth:`flush`.

    :ivar buffer: Completed output bytes.
    :type buffer: bytearray
    :ivar bit_buffer: Pending bits of the byte under construction.
    :type bit_buffer: int
    :ivar bit_count: Number of pending bits in ``bit_buffer`` (0-7).
    :type bit_count: int
    :ivar bits_written: Total number of data bits written, padding excluded.
    :type bits_written: int
    """

    def __init__(self):
        """Initialize an empty writer.

        :returns: None
        :rtype: None
        """
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0
        self.bits_written = 0

    def write_bit(self, bit: int):
        """Append a single bit.

        :param bit: ``0`` or ``1``; any non-zero value counts as ``1``.
        :type bit: int
        :returns: None
        :rtype: None
        """
        self.bit_buffer = (self.bit_buffer << 1) | (1 if bit else 0)
        self.bit_count += 1
        self.bits_written += 1
        if self.bit_count == 8:
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0

    def write_bits(self, value: int, nbits: int):
        """Append the lowest ``nbits`` of ``value``, most significant first.

        A Huffman code stored as ``(code, length)`` is written with
        ``write_bits(code, length)``.

        :param value: Integer whose low bits are written.
        :type value: int
        :param nbits: Number of bits to take from ``value``.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        for i in range(nbits - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def align(self):
        """Zero-pad the pending partial byte, if any, and commit it.

        Padding bits are not counted in ``bits_written``.

        :returns: None
        :rtype: None
        """
        if self.bit_count > 0:
            self.buffer.append(self.bit_buffer << (8 - self.bit_count))
            self.bit_buffer = 0
            self.bit_count = 0

    def write_bytes(self, data: bytes):
        """Align to a byte boundary, then append raw bytes.

        :param data: Bytes to append verbatim.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self.align()
        self.buffer.extend(data)
        self.bits_written += 8 * len(data)

    def flush(self) -> bytes:
        """Pad the trailing byte and return everything written so far.

        :returns: The packed output.
        :rtype: bytes
        """
        self.align()
        return bytes(self.buffer)


class BitReader:
    """MSB-first bit reader over an in-memory buffer.

    :ivar data: Source buffer.
    :type data: bytes
    :ivar pos: Index of the next unread byte in ``data``.
    :type pos: int
    :ivar bit_buffer: Byte currently being consumed.
    :type bit_buffer: int
    :ivar bit_count: Unread bits left in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, data: bytes, pos: int = 0):
        """Create a reader positioned at byte offset ``pos``.

        :param data: Source buffer.
        :type data: bytes
        :param pos: Starting byte offset.
        :type pos: int
        :returns: None
        :rtype: None
        """
        self.data = data
        self.pos = pos
        self.bit_buffer = 0
        self.bit_count = 0

    def read_bit(self) -> int:
        """Read the next bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EOFError: If the buffer is exhausted.
        """
        if self.bit_count == 0:
            if self.pos >= len(self.data):
                raise EOFError("Unexpected end of data")
            self.bit_buffer = self.data[self.pos]
            self.pos += 1
            self.bit_count = 8
        self.bit_count -= 1
        return (self.bit_buffer >> self.bit_count) & 1

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits and return them as an MSB-first integer.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The decoded integer.
        :rtype: int
        :raises EOFError: If fewer than ``nbits`` bits remain.
        """
        result = 0
        for _ in range(nbits):
            result = (result << 1) | self.read_bit()
        return result

    def align(self):
        """Discard the unread bits of the current byte.

        :returns: None
        :rtype: None
        """
        self.bit_count = 0

    def read_bytes(self, nbytes: int) -> bytes:
        """Byte-align, then read exactly ``nbytes`` raw bytes.

        :param nbytes: Number of bytes to read.
        :type nbytes: int
        :returns: The next ``nbytes`` bytes.
        :rtype: bytes
        :raises EOFError: If fewer than ``nbytes`` bytes remain.
        """
        self.align()
        if self.pos + nbytes > len(self.data):
            raise EOFError(
                f"Wanted {nbytes} bytes at offset {self.pos}, "
                f"only {len(self.data) - self.pos} left"
            )
        result = self.data[self.pos:self.pos + nbytes]
        self.pos += nbytes
        return bytes(result)

    def bits_remaining(self) -> int:
        """Number of bits not yet consumed, including any padding.

        :returns: Remaining bit count.
        :rtype: int
        """
        return self.bit_count + 8 * (len(self.data) - self.pos)
