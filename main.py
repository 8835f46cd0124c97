import argparse
import os
import sys
import tempfile

from typing import Callable, List, Optional, Tuple
from container import Container, inspect
from errors import (
    EXIT_GENERIC,
    EXIT_OK,
    ContainerIOError,
    HuffmanError,
    exit_code_info,
)
from huffman import code_to_str, format_dictionary, format_frequency_table

PROG = "statichuff"


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Static Huffman compressor for small byte streams",
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    compress = subparsers.add_parser(
        "compress", aliases=["c"], help="Compress a file or a string"
    )
    compress.add_argument(
        "target", nargs="?", help="File to compress"
    )
    compress.add_argument(
        "-t", "--text", help="Compress this string (UTF-8) instead of a file"
    )
    compress.add_argument(
        "-o", "--output", required=True, help="Output container path"
    )
    compress.add_argument(
        "--show-tables",
        action="store_true",
        help="Print the frequency table and the Huffman dictionary",
    )

    decompress = subparsers.add_parser(
        "decompress", aliases=["d"], help="Decompress a container"
    )
    decompress.add_argument("archive", help="Container file to decompress")
    decompress.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )

    show = subparsers.add_parser(
        "inspect", aliases=["i"], help="Print a container's header and dictionary"
    )
    show.add_argument("archive", help="Container file to inspect")

    for sub in (compress, decompress, show):
        sub.add_argument(
            "-P",
            "--no-progress",
            action="store_true",
            help="Hide the progress line",
        )
        sub.add_argument(
            "--debug", action="store_true", help="Show stack traces on errors"
        )

    return parser


def _print_progress(line: str) -> None:
    """Render and flush a single progress line in-place (carriage return).

    :param line: The textual progress line to display.
    :type line: str
    :returns: None
    :rtype: None
    """
    sys.stdout.write("\r" + line)
    sys.stdout.flush()


def _fmt_pct(done: int, total: int) -> str:
    """Format a completion percentage string like ``12.34%``.

    :param done: Units completed.
    :type done: int
    :param total: Total units to complete.
    :type total: int
    :returns: Percentage.
    :rtype: str
    """
    if total <= 0:
        return "0%"
    pct = 100.0 * (done / float(total))
    return f"{pct:6.2f}%"


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


class ProgressLine:
    """Callable progress reporter redrawing one line per percent step.

    :ivar label: Action label (``"Compressing"`` or ``"Decompressing"``).
    :type label: str
    :ivar name: File or source name shown next to the label.
    :type name: str
    """

    def __init__(self, label: str, name: str) -> None:
        self.label = label
        self.name = name
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Redraw the line if the percentage bucket changed.

        :param done: Units processed so far.
        :type done: int
        :param total: Total units.
        :type total: int
        :returns: None
        :rtype: None
        """
        if total <= 0:
            return
        percent_bucket = int((done * 100) / total)
        if percent_bucket == self._last_reported:
            return
        self._last_reported = percent_bucket
        _print_progress(f"{self.label} {self.name}  {_fmt_pct(done, total)}")


def _read_file(path: str) -> bytes:
    """Read a whole file.

    :raises ContainerIOError: If the file cannot be opened or read.
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ContainerIOError(f"Cannot read {path}: {e.strerror or e}") from e


def _write_atomic(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file in the same directory.

    The destination is replaced only once every byte has been written; on
    failure the temporary file is removed and ``path`` is left untouched.

    :raises ContainerIOError: If the file cannot be created or written.
    """
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=directory,
            prefix="." + os.path.basename(path) + ".",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(data)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise ContainerIOError(f"Cannot write {path}: {e.strerror or e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def compress_bytes_to_file(
    data: bytes,
    output_path: str,
    on_progress: Optional[Callable[[int, int], None]] = None,
    container: Optional[Container] = None,
) -> int:
    """Compress in-memory ``data`` and write the container to ``output_path``.

    :param data: Bytes to compress.
    :type data: bytes
    :param output_path: Destination container path.
    :type output_path: str
    :param on_progress: Optional ``on_progress(done, total)`` callback.
    :type on_progress: Optional[Callable[[int, int], None]]
    :param container: Container to use, so callers can read its tables
        afterwards; a fresh one by default.
    :type container: Optional[Container]
    :returns: Size of the written container in bytes.
    :rtype: int
    :raises ContainerIOError: If the output cannot be written.
    """
    if container is None:
        container = Container()
    comp = container.compress(data, on_progress=on_progress)
    _write_atomic(output_path, comp)
    return len(comp)


def compress_file(
    input_path: str,
    output_path: str,
    on_progress: Optional[Callable[[int, int], None]] = None,
    container: Optional[Container] = None,
) -> Tuple[int, int]:
    """Compress the file at ``input_path`` into ``output_path``.

    :returns: ``(original_size, compressed_size)``.
    :rtype: Tuple[int, int]
    :raises ContainerIOError: If either file cannot be accessed.
    """
    data = _read_file(input_path)
    return len(data), compress_bytes_to_file(
        data, output_path, on_progress=on_progress, container=container
    )


def decompress_file(
    input_path: str,
    output_path: str,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> int:
    """Decompress the container at ``input_path`` into ``output_path``.

    Nothing is written when the container turns out to be malformed.

    :returns: Size of the recovered data in bytes.
    :rtype: int
    :raises ContainerIOError: If either file cannot be accessed.
    :raises FormatError: If the container is malformed.
    """
    data = Container().decompress(_read_file(input_path), on_progress=on_progress)
    _write_atomic(output_path, data)
    return len(data)


def _finish_progress(args) -> None:
    if not args.no_progress:
        sys.stdout.write("\n")
        sys.stdout.flush()


def _print_lines(lines: List[str]) -> None:
    for line in lines:
        print(line)


def run_compress(args) -> int:
    """Handle the ``compress`` subcommand.

    :returns: Exit code.
    :rtype: int
    """
    on_prog = None
    container = Container()
    if args.text is not None:
        name = "<text>"
        if not args.no_progress:
            on_prog = ProgressLine("Compressing", name)
        data = args.text.encode("utf-8")
        orig_size = len(data)
        comp_size = compress_bytes_to_file(
            data, args.output, on_progress=on_prog, container=container
        )
    else:
        if not args.no_progress:
            on_prog = ProgressLine("Compressing", args.target)
        orig_size, comp_size = compress_file(
            args.target, args.output, on_progress=on_prog, container=container
        )
    _finish_progress(args)

    if args.show_tables:
        _print_lines(format_frequency_table(container.huffman.frequencies))
        _print_lines(format_dictionary(container.huffman.codes))

    print("File compressed successfully.")
    print("Size before compression: ", _fmt_bytes(orig_size))
    print("Size after compression: ", _fmt_bytes(comp_size))
    print(f"Compression ratio: {orig_size / comp_size:.2f}")
    return EXIT_OK


def run_decompress(args) -> int:
    """Handle the ``decompress`` subcommand.

    :returns: Exit code.
    :rtype: int
    """
    on_prog = None
    if not args.no_progress:
        on_prog = ProgressLine("Decompressing", args.archive)
    size = decompress_file(args.archive, args.output, on_progress=on_prog)
    _finish_progress(args)
    print("File decompressed successfully.")
    print("Size after decompression: ", _fmt_bytes(size))
    return EXIT_OK


def run_inspect(args) -> int:
    """Handle the ``inspect`` subcommand.

    :returns: Exit code.
    :rtype: int
    """
    info = inspect(_read_file(args.archive))
    print(f"Container: {args.archive}")
    print(f"Version: {info.version}")
    print(f"Symbols: {info.symbol_count}")
    print(f"Dictionary entries: {info.entry_count} ({info.dictionary_size} bytes)")
    print(f"Payload: {info.payload_size} bytes")
    if info.codes:
        code, length = max(info.codes.values(), key=lambda c: c[1])
        print(f"Longest code: {length} bits ({code_to_str(code, length)})")
    _print_lines(format_dictionary(info.codes))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments without the program name; ``sys.argv[1:]`` by
        default.
    :type argv: Optional[List[str]]
    :returns: Process exit code.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    if args.cmd in ["compress", "c"]:
        if (args.target is None) == (args.text is None):
            parser.error("compress needs either a target file or --text")
        handler = run_compress
    elif args.cmd in ["decompress", "d"]:
        handler = run_decompress
    else:
        handler = run_inspect

    try:
        return handler(args)
    except HuffmanError as e:
        if args.debug:
            raise
        info = exit_code_info(e.exit_code)
        name = info.name if info is not None else "ERROR"
        print(f"[{PROG}] {name}: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        if args.debug:
            raise
        print(f"[{PROG}] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
