import argparse
import os
import sys

from typing import Optional

import codec
from errors import HuffmanError

HUF_EXT = ".huf"  #: Extension of compressed files
OUT_EXT = ".out"  #: Extension of decoded files


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Huffman encoder/decoder for single files"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print the merge list and code table while working",
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Compress a file"
    )
    encode.add_argument("target", help="File to compress")
    encode.add_argument(
        "-o", "--output", help=f"Output path (default: <target root>{HUF_EXT})"
    )
    encode.add_argument(
        "-P",
        "--no-progress",
        action="store_true",
        help="Hide progress output",
    )

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decompress a file"
    )
    decode.add_argument("target", help=f"Compressed file ({HUF_EXT})")
    decode.add_argument(
        "-o", "--output", help=f"Output path (default: <target root>{OUT_EXT})"
    )
    decode.add_argument(
        "-P",
        "--no-progress",
        action="store_true",
        help="Hide progress output",
    )

    run = subparsers.add_parser(
        "run", aliases=["r"], help="Encode then decode a file and compare sizes"
    )
    run.add_argument("target", help="File to run through the codec")
    run.add_argument(
        "-P",
        "--no-progress",
        action="store_true",
        help="Hide progress output",
    )

    show = subparsers.add_parser(
        "print", aliases=["p"], help="Print the Huffman tree built for a file"
    )
    show.add_argument("target", help="File to build the tree for")

    return parser


def _default_output(path: str, ext: str) -> str:
    """Replace the extension of ``path`` with ``ext``.

    :param path: Input file path.
    :type path: str
    :param ext: New extension including the dot.
    :type ext: str
    :returns: Output path next to the input.
    :rtype: str
    """
    return os.path.splitext(path)[0] + ext


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


class FileProgress:
    """Callable progress reporter for one file.

    Redraws only when the whole-percent value changes.

    :ivar label: Action label (e.g., "Encoding" or "Decoding").
    :type label: str
    :ivar path: Path displayed for the current file.
    :type path: str
    """

    def __init__(self, label: str, path: str) -> None:
        """Initialize the reporter.

        :param label: Action label (e.g., ``"Encoding"``).
        :type label: str
        :param path: Path to display for the file.
        :type path: str
        :returns: None
        :rtype: None
        """
        self.label = label
        self.path = path
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Update the progress display.

        :param done: Units processed so far.
        :type done: int
        :param total: Total units for the file.
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
        _print_progress(f"{self.label} {self.path}  {_fmt_pct(done, total)}")


def _read_file(path: str) -> Optional[bytes]:
    """Read ``path`` fully, reporting a missing file to the user.

    :param path: File to read.
    :type path: str
    :returns: File contents, or ``None`` if the file does not exist.
    :rtype: Optional[bytes]
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        print(f"[!] Could not find file {path}")
        return None


def encode_file(
    path: str,
    output_path: Optional[str] = None,
    hide_progress: bool = True,
    debug: bool = False,
) -> Optional[int]:
    """Compress ``path`` into ``output_path``.

    :param path: File to compress.
    :type path: str
    :param output_path: Destination; defaults to ``path`` with :data:`HUF_EXT`.
    :type output_path: Optional[str]
    :param hide_progress: Suppress the progress line.
    :type hide_progress: bool
    :param debug: Print the builder's merge list and code table.
    :type debug: bool
    :returns: Number of bytes written, or ``None`` if ``path`` is missing.
    :rtype: Optional[int]
    """
    data = _read_file(path)
    if data is None:
        return None
    output_path = output_path or _default_output(path, HUF_EXT)
    trace = print if debug else None
    on_prog = None if hide_progress else FileProgress("Encoding", path)

    tree = codec.build_tree(data, trace=trace)
    comp = codec.encode(data, tree, trace=trace, on_progress=on_prog)
    if on_prog is not None:
        sys.stdout.write("\n")
        sys.stdout.flush()
    with open(output_path, "wb") as out:
        out.write(comp)
    print(f"encoded file {path} to {output_path}")
    print(f"{output_path}: {len(comp)} bytes")
    return len(comp)


def decode_file(
    path: str,
    output_path: Optional[str] = None,
    hide_progress: bool = True,
    debug: bool = False,
) -> Optional[int]:
    """Decompress ``path`` into ``output_path``.

    Without an explicit ``output_path`` the input must carry :data:`HUF_EXT`.

    :param path: Compressed file.
    :type path: str
    :param output_path: Destination; defaults to ``path`` with :data:`OUT_EXT`.
    :type output_path: Optional[str]
    :param hide_progress: Suppress the progress line.
    :type hide_progress: bool
    :param debug: Print the size of the stored tree.
    :type debug: bool
    :returns: Number of decoded bytes, or ``None`` on failure.
    :rtype: Optional[int]
    """
    if output_path is None:
        if not path.endswith(HUF_EXT):
            print(f"[!] {path} is not a valid huffman encoded file")
            print(f"    Run \"encode <filename>\" to create a {HUF_EXT} file")
            return None
        output_path = _default_output(path, OUT_EXT)
    comp = _read_file(path)
    if comp is None:
        return None
    trace = print if debug else None
    on_prog = None if hide_progress else FileProgress("Decoding", path)

    try:
        data, _ = codec.decode(comp, trace=trace, on_progress=on_prog)
    except HuffmanError as e:
        print(f"[!] Could not decode {path}: {e}")
        return None
    finally:
        if on_prog is not None:
            sys.stdout.write("\n")
            sys.stdout.flush()
    with open(output_path, "wb") as out:
        out.write(data)
    print(f"decoded file {path} to {output_path}")
    print(f"{output_path}: {len(data)} bytes")
    return len(data)


def run_file(path: str, hide_progress: bool = True, debug: bool = False) -> None:
    """Encode and decode ``path``, then report both sizes.

    :param path: File to run through the codec.
    :type path: str
    :param hide_progress: Suppress progress lines.
    :type hide_progress: bool
    :param debug: Print diagnostics from the codec.
    :type debug: bool
    :returns: None
    :rtype: None
    """
    encoded_path = _default_output(path, HUF_EXT)
    e_size = encode_file(path, encoded_path, hide_progress, debug)
    if e_size is None:
        return
    d_size = decode_file(encoded_path, None, hide_progress, debug)
    if d_size is None:
        return
    print("Size before compression: ", _fmt_bytes(d_size))
    print("Size after compression: ", _fmt_bytes(e_size))
    if d_size > 0:
        print(f"{encoded_path} is {_fmt_pct(e_size, d_size).strip()} the size of {path}")
    if d_size < e_size:
        print(
            "  Note: small files may have larger huffman encodings "
            "because the binary tree must be stored in the file"
        )


def print_tree(path: str, debug: bool = False) -> None:
    """Print the frequency-sorted leaf table built for ``path``.

    :param path: File to analyse.
    :type path: str
    :param debug: Print the builder's merge list as well.
    :type debug: bool
    :returns: None
    :rtype: None
    """
    data = _read_file(path)
    if data is None:
        return
    tree = codec.build_tree(data, trace=print if debug else None)
    print(f"printing sorted tree for: {path}")
    for line in tree.format_table(by_freq=True):
        print(line)


def main():
    """Entry point for the CLI tool.

    :returns: None
    :rtype: None
    """
    parser = get_parser()
    args = parser.parse_args()
    hide_progress = getattr(args, "no_progress", False)

    if args.cmd in ["encode", "e"]:
        encode_file(args.target, args.output, hide_progress, args.debug)
    elif args.cmd in ["decode", "d"]:
        decode_file(args.target, args.output, hide_progress, args.debug)
    elif args.cmd in ["run", "r"]:
        run_file(args.target, hide_progress, args.debug)
    elif args.cmd in ["print", "p"]:
        print_tree(args.target, args.debug)


if __name__ == "__main__":
    main()
