import argparse
import io
import logging
import sys

from typing import List, Optional, Tuple

import varint
from bitops import BitReader, BitWriter
from errors import CodecError

_LOG = logging.getLogger("bitwire")


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="bitwire",
        description="Encode and decode varints and LSB-first bit fields",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Encode integers as varints"
    )
    encode.add_argument("values", nargs="+", help="Integers to encode")
    _add_varint_options(encode)

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decode a run of varints"
    )
    decode.add_argument("hex", help="Hex string of concatenated varints")
    _add_varint_options(decode)

    pack = subparsers.add_parser(
        "pack", aliases=["p"], help="Pack VALUE:BITS fields LSB-first"
    )
    pack.add_argument(
        "fields", nargs="+", help="Fields as VALUE:BITS (e.g. 0b101:3)"
    )

    unpack = subparsers.add_parser(
        "unpack", aliases=["u"], help="Unpack LSB-first bit fields"
    )
    unpack.add_argument("hex", help="Hex string of packed bytes")
    unpack.add_argument(
        "widths", nargs="+", type=int, help="Bit width of each field"
    )

    return parser


def _add_varint_options(subparser) -> None:
    subparser.add_argument(
        "-s",
        "--signed",
        action="store_true",
        help="Use zigzag-mapped signed varints",
    )
    subparser.add_argument(
        "-w",
        "--width",
        type=int,
        choices=varint.SUPPORTED_WIDTHS,
        default=32,
        help="Integer width in bits (default: 32)",
    )


def _parse_int(text: str) -> int:
    """Parse a decimal, ``0x`` hex or ``0b`` binary integer.

    :param text: Integer literal, optionally negative.
    :type text: str
    :returns: Parsed value.
    :rtype: int
    :raises ValueError: If ``text`` is not an integer literal.
    """
    return int(text, 0)


def _parse_field(text: str) -> Tuple[int, int]:
    """Split a ``VALUE:BITS`` field specification.

    :param text: Field such as ``"0b101:3"``.
    :type text: str
    :returns: ``(value, num_bits)``.
    :rtype: Tuple[int, int]
    :raises ValueError: If the field is not ``VALUE:BITS``.
    """
    value, sep, bits = text.rpartition(":")
    if not sep or not value:
        raise ValueError(f"Field must be VALUE:BITS, got {text!r}")
    return _parse_int(value), int(bits)


def _parse_hex(text: str) -> bytes:
    """Parse hex bytes, ignoring whitespace and an optional ``0x`` prefix."""
    text = "".join(text.split())
    if text.lower().startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)


def encode_values(values: List[int], signed: bool, width: int) -> bytes:
    """Concatenate the varint encodings of ``values``.

    :param values: Integers to encode.
    :type values: List[int]
    :param signed: Zigzag-map the values first.
    :type signed: bool
    :param width: 32 or 64.
    :type width: int
    :returns: Encoded bytes.
    :rtype: bytes
    """
    encode = varint.encode_varint if signed else varint.encode_uvarint
    out = bytearray()
    for value in values:
        chunk = encode(value, width)
        _LOG.debug("%d -> %s (%d bytes)", value, chunk.hex(), len(chunk))
        out.extend(chunk)
    return bytes(out)


def decode_values(
    data: bytes, signed: bool, width: int
) -> List[Tuple[int, int]]:
    """Decode every varint in ``data``.

    :returns: ``(value, bytes_consumed)`` per varint, in order.
    :rtype: List[Tuple[int, int]]
    :raises CodecError: If the data ends mid-varint or a varint is
        malformed.
    """
    read = varint.read_varint if signed else varint.read_uvarint
    stream = io.BytesIO(data)
    result = []
    while stream.tell() < len(data):
        pos = stream.tell()
        value, consumed = read(stream, width)
        _LOG.debug("offset %d: %d (%d bytes)", pos, value, consumed)
        result.append((value, consumed))
    return result


def pack_fields(fields: List[Tuple[int, int]]) -> bytes:
    """Pack ``(value, num_bits)`` fields LSB-first into bytes.

    Negative values are written as signed fields.
    """
    writer = BitWriter()
    for value, num_bits in fields:
        if value < 0:
            writer.write_sbits(value, num_bits)
        else:
            writer.write_bits(value, num_bits)
    _LOG.debug(
        "packed %d fields into %d bits", len(fields), writer.high_water_bits
    )
    return writer.finish()


def unpack_fields(data: bytes, widths: List[int]) -> List[int]:
    reader = BitReader(data)
    return [reader.read_bits(n) for n in widths]


def run(args) -> int:
    """Execute the parsed command.

    :param args: Parsed command-line arguments.
    :type args: argparse.Namespace
    :returns: Process exit status.
    :rtype: int
    """
    try:
        if args.cmd in ["encode", "e"]:
            values = [_parse_int(v) for v in args.values]
            print(encode_values(values, args.signed, args.width).hex())
        elif args.cmd in ["decode", "d"]:
            data = _parse_hex(args.hex)
            for value, consumed in decode_values(
                data, args.signed, args.width
            ):
                print(f"{value}\t{consumed}")
        elif args.cmd in ["pack", "p"]:
            fields = [_parse_field(f) for f in args.fields]
            print(pack_fields(fields).hex())
        elif args.cmd in ["unpack", "u"]:
            data = _parse_hex(args.hex)
            for value in unpack_fields(data, args.widths):
                print(value)
    except CodecError as e:
        _LOG.debug("codec failure", exc_info=True)
        print(f"[!] {e}")
        return 1
    except ValueError as e:
        print(f"[!] Invalid input: {e}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments, defaulting to ``sys.argv[1:]``.
    :type argv: Optional[List[str]]
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
