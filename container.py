import struct
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from bitops import BitReader, BitWriter
from errors import BadMagic, CodeOverflowError, FormatError, UnsupportedVersion
from huffman import StaticHuffman, build_frequency_table

MAGIC = b"SHUF"  #: Container magic number
VERSION = 1  #: Current container version
MAX_SYMBOL_COUNT = 0xFFFFFFFF  #: Largest input the 32-bit count field holds

#: magic, version, dictionary entry count, original symbol count
HEADER = struct.Struct(">4sBBI")

ProgressCallback = Callable[[int, int], None]


@dataclass
class ContainerInfo:
    """Parsed header and dictionary of a container.

    :ivar version: Format version byte.
    :ivar entry_count: Number of dictionary entries (0-256).
    :ivar symbol_count: Number of bytes the payload decodes to.
    :ivar codes: Stored dictionary, ``symbol -> (code, length)``.
    :ivar dictionary_size: Bytes taken by the dictionary entries.
    :ivar payload_size: Bytes left for the packed payload.
    """

    version: int
    entry_count: int
    symbol_count: int
    codes: Dict[int, Tuple[int, int]] = field(default_factory=dict)
    dictionary_size: int = 0
    payload_size: int = 0


def read_header(data: bytes) -> Tuple[int, int, int]:
    """Parse and validate the fixed-size header.

    The one-byte entry count stores 256 as ``0``; it is told apart from an
    empty dictionary by a non-zero symbol count.

    :param data: Container bytes.
    :type data: bytes
    :returns: ``(version, entry_count, symbol_count)``.
    :rtype: Tuple[int, int, int]
    :raises BadMagic: If the magic number does not match.
    :raises UnsupportedVersion: If the version is not :data:`VERSION`.
    :raises FormatError: If the header is truncated.
    """
    if len(data) < HEADER.size:
        raise FormatError(
            f"Container is {len(data)} bytes, the header alone needs {HEADER.size}"
        )
    magic, version, entry_byte, symbol_count = HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise BadMagic(f"Not a statichuff container (magic {magic!r})")
    if version != VERSION:
        raise UnsupportedVersion(f"Unsupported container version: {version}")
    if symbol_count == 0:
        if entry_byte != 0:
            raise FormatError(
                f"Empty payload declared with {entry_byte} dictionary entries"
            )
        return version, 0, 0
    return version, entry_byte or 256, symbol_count


def _report(on_progress: Optional[ProgressCallback], done: int, total: int):
    if on_progress is not None:
        on_progress(done, total)


class Container:
    """Static Huffman compressor producing a self-contained container.

    Layout (big-endian):
    - Magic: ``b"SHUF"`` (4 bytes)
    - Version: uint8
    - Dictionary entry count: uint8 (``0`` stands for 256 when the symbol
      count is non-zero)
    - Original symbol count: uint32
    - Dictionary entries, ascending by symbol, each byte aligned:
    - - symbol: uint8
    - - code length in bits: uint8 (1-255)
    - - code bits, MSB-first, zero-padded to whole bytes
    - Payload: concatenated codes of the input bytes, MSB-first, trailing
      byte zero-padded

    :ivar huffman: Coder holding the tree and dictionary of the last call.
    :type huffman: StaticHuffman
    """

    VERSION = VERSION

    def __init__(self):
        self.huffman = StaticHuffman()

    def compress(
        self,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Compress ``data`` into a container.

        :param data: Input bytes, possibly empty.
        :type data: bytes
        :param on_progress: Optional ``on_progress(done, total)`` callback
            fed with the number of input bytes encoded so far. The last call
            is always ``(len(data), len(data))``.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Container bytes. Empty input gives a bare header.
        :rtype: bytes
        :raises CodeOverflowError: If ``data`` is too long for the count
            field or a code exceeds the maximum code length.
        """
        data = bytes(data)
        total = len(data)
        if total > MAX_SYMBOL_COUNT:
            raise CodeOverflowError(
                f"Input of {total} bytes exceeds the {MAX_SYMBOL_COUNT}-byte limit"
            )

        self.huffman.build_from_frequencies(build_frequency_table(data))
        codes = self.huffman.codes
        dictionary = self.huffman.save_dictionary()

        output = BitWriter()
        output.write_bytes(HEADER.pack(MAGIC, VERSION, len(codes) & 0xFF, total))
        output.write_bytes(dictionary)

        for done, symbol in enumerate(data, 1):
            code, length = codes[symbol]
            output.write_bits(code, length)
            if on_progress is not None:
                on_progress(done, total)

        _report(on_progress, total, total)
        return output.flush()

    def decompress(
        self,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Decompress a container produced by :meth:`compress`.

        Decoding stops after exactly the declared symbol count, so padding
        bits in the last payload byte are never decoded.

        :param data: Container bytes.
        :type data: bytes
        :param on_progress: Optional ``on_progress(done, total)`` callback
            fed with the number of bytes recovered so far.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Original bytes.
        :rtype: bytes
        :raises FormatError: If the container is malformed or truncated.
        """
        _, entry_count, symbol_count = read_header(data)
        reader = BitReader(data, HEADER.size)
        self.huffman.load_dictionary(reader, entry_count)

        if symbol_count:
            shortest = min(length for _, length in self.huffman.codes.values())
            if reader.bits_remaining() < symbol_count * shortest:
                raise FormatError(
                    f"Header declares {symbol_count} symbols but the payload "
                    f"holds only {reader.bits_remaining()} bits"
                )

        output = bytearray()
        try:
            for done in range(1, symbol_count + 1):
                output.append(self.huffman.decode_symbol(reader))
                if on_progress is not None:
                    on_progress(done, symbol_count)
        except EOFError as e:
            raise FormatError(
                f"Payload ends after {len(output)} of {symbol_count} symbols"
            ) from e

        if reader.pos != len(data):
            raise FormatError(
                f"{len(data) - reader.pos} unexpected bytes after the payload"
            )

        _report(on_progress, symbol_count, symbol_count)
        return bytes(output)


def inspect(data: bytes) -> ContainerInfo:
    """Parse the header and dictionary without decoding the payload.

    :param data: Container bytes.
    :type data: bytes
    :returns: Header fields, the stored dictionary and section sizes.
    :rtype: ContainerInfo
    :raises FormatError: If the header or dictionary is malformed.
    """
    version, entry_count, symbol_count = read_header(data)
    reader = BitReader(data, HEADER.size)
    huffman = StaticHuffman()
    huffman.load_dictionary(reader, entry_count)
    return ContainerInfo(
        version=version,
        entry_count=entry_count,
        symbol_count=symbol_count,
        codes=huffman.codes,
        dictionary_size=reader.pos - HEADER.size,
        payload_size=len(data) - reader.pos,
    )


def compress(data: bytes) -> bytes:
    """Compress ``data`` into a self-contained container."""
    return Container().compress(data)


def decompress(data: bytes) -> bytes:
    """Recover the original bytes from a container."""
    return Container().decompress(data)
