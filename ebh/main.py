# EBH MESSAGE ENGINE ->

import logging as _logging_module
import math as _math_module
import os as _os_module
import sys as _sys_module

__all__ = ["DecodeError", "cli", "ebh", "get_logger", "setup_logging"]


class DecodeError(ValueError):
    """Raised when a string is not something the ebh encoder could have produced."""


def get_logger(name: str) -> _logging_module.Logger:
    return _logging_module.getLogger(name)


def setup_logging(level: str = "WARNING") -> None:
    """
    Configure logging for command line use.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Records go to stderr so stdout only ever carries the result line.
    """
    numeric_level = getattr(_logging_module, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    _logging_module.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[_logging_module.StreamHandler(_sys_module.stderr)],
        force=True
    )


def _cascade_key(head: int) -> int:
    # the product is never negative, so int() is a floor
    return int(2 * _math_module.pi * head) % 256


_LOG = get_logger("ebh")


class ebh:
    import string
    import typing
    import numpy as np

    @staticmethod
    def _env_mask(name: str) -> "ebh.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value, 0)
        except (TypeError, ValueError):
            return None
        if parsed < 0 or parsed > 0xFFFFFFFF:
            return None
        return parsed

    ENGINE_VERSION = "1.0.0"
    DEFAULT_MASK = 0x12345678
    _MASK_ENV = _env_mask("EBH_MASK")
    MASK = DEFAULT_MASK if _MASK_ENV is None else _MASK_ENV
    TEXT_ENCODING = _os_module.getenv("EBH_TEXT_ENCODING", "latin-1")
    LOG_LEVEL = _os_module.getenv("EBH_LOG_LEVEL", "WARNING")

    # 64 data symbols followed by the sentinel
    ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/="
    SENTINEL = ALPHABET[64]
    _ALPHABET_INDEX: typing.ClassVar[dict[str, int]] = {
        ch: idx for idx, ch in enumerate(ALPHABET[:64])
    }
    # sentinel slots only ever fill the final group and carry no bits
    _SYMBOL_BITS: typing.ClassVar[dict[str, int]] = {**_ALPHABET_INDEX, SENTINEL: 0}

    _CASCADE_KEYS = bytes(_cascade_key(h) for h in range(256))
    _CASCADE_KEY_ARR = np.frombuffer(_CASCADE_KEYS, dtype=np.uint8)

    @staticmethod
    def _coerce_bytes(data: "ebh.typing.Union[bytes, bytearray, memoryview]") -> bytes:
        if isinstance(data, (bytes, bytearray, memoryview)):
            return bytes(data)
        raise TypeError(f"Unsupported type for byte conversion: {type(data)!r}")

    @staticmethod
    def _mask_bytes(mask: "ebh.typing.Optional[int]") -> bytes:
        if mask is None:
            mask = ebh.MASK
        if not isinstance(mask, int) or not 0 <= mask <= 0xFFFFFFFF:
            raise ValueError(f"Mask must be a 32-bit unsigned integer, got {mask!r}")
        return mask.to_bytes(4, "big")

    # STAGE 1 - PARTIAL MASK (self-inverse)
    @staticmethod
    def apply_mask(data, mask: "ebh.typing.Optional[int]" = None) -> bytes:
        """
        XOR the interior of the buffer with the 4 mask bytes.

        The first len % 4 bytes and the last 4 - len % 4 bytes are left alone
        (so the last 4 when the length is a multiple of 4). The mask cycle is
        phased so the last interior byte always takes m3, which puts m0 on the
        first interior byte only when len % 4 == 0.
        """
        buf = ebh._coerce_bytes(data)
        mask_arr = ebh.np.frombuffer(ebh._mask_bytes(mask), dtype=ebh.np.uint8)
        total_len = len(buf)
        pad = total_len % 4
        start = pad
        stop = total_len - (4 - pad)
        if stop <= start:
            return buf
        arr = ebh.np.frombuffer(buf, dtype=ebh.np.uint8).copy()
        phase = (ebh.np.arange(start, stop) - 2 * pad) % 4
        ebh.np.bitwise_xor(
            arr[start:stop],
            mask_arr.take(phase),
            out=arr[start:stop]
        )
        return arr.tobytes()

    # STAGE 2 - CASCADING HEAD/TAIL XOR
    @staticmethod
    def cascade(data, encoding: bool) -> bytes:
        """
        Every byte is XORed with the keys of all the plain bytes to its left.

        The head byte passes through and only supplies a key. Encoding and
        decoding are exact inverses of each other.
        """
        buf = ebh._coerce_bytes(data)
        if not buf:
            return buf
        if encoding:
            return ebh._cascade_encode(buf)
        return ebh._cascade_decode(buf)

    @staticmethod
    def _cascade_encode(buf: bytes) -> bytes:
        arr = ebh.np.frombuffer(buf, dtype=ebh.np.uint8)
        running = ebh.np.bitwise_xor.accumulate(ebh._CASCADE_KEY_ARR.take(arr))
        out = arr.copy()
        ebh.np.bitwise_xor(out[1:], running[:-1], out=out[1:])
        return out.tobytes()

    @staticmethod
    def _cascade_decode(buf: bytes) -> bytes:
        keys = ebh._CASCADE_KEYS
        out = bytearray(len(buf))
        running = 0
        for i, value in enumerate(buf):
            plain = value ^ running
            out[i] = plain
            running ^= keys[plain]
        return bytes(out)

    # STAGE 3 - CUSTOM BASE64
    @staticmethod
    def encoded_length(byte_count: int) -> int:
        return (byte_count * 8 + 5) // 6

    @staticmethod
    def b64encode(data) -> str:
        buf = ebh._coerce_bytes(data)
        if not buf:
            return ""
        table = ebh.ALPHABET
        padded = buf + b"\x00" * (-len(buf) % 3)
        out = []
        for offset in range(0, len(padded), 3):
            group = int.from_bytes(padded[offset:offset + 3], "little")
            out.append(table[group & 0x3F])
            out.append(table[(group >> 6) & 0x3F])
            out.append(table[(group >> 12) & 0x3F])
            out.append(table[group >> 18])
        return "".join(out)[:ebh.encoded_length(len(buf))]

    @staticmethod
    def b64decode(string: str) -> bytes:
        if not isinstance(string, str):
            raise TypeError(f"b64decode expects str, got {type(string)!r}")
        count = len(string)
        byte_count = count * 6 // 8
        if ebh.encoded_length(byte_count) != count:
            raise DecodeError(f"Invalid encoded length {count}: no byte sequence encodes to that many symbols")
        index = ebh._ALPHABET_INDEX
        for position, ch in enumerate(string):
            if ch not in index:
                raise DecodeError(f"Invalid character {ch!r} at position {position}")
        padded = string + ebh.SENTINEL * (-count % 4)
        lookup = ebh._SYMBOL_BITS
        out = bytearray()
        for offset in range(0, len(padded), 4):
            group = 0
            for shift, ch in enumerate(padded[offset:offset + 4]):
                group |= lookup[ch] << (6 * shift)
            out += group.to_bytes(3, "little")
        del out[byte_count:]
        return bytes(out)

    # PIPELINE
    @staticmethod
    def encode_bytes(data, mask: "ebh.typing.Optional[int]" = None) -> str:
        buf = ebh._coerce_bytes(data)
        _LOG.debug("encode: %d bytes in", len(buf))
        masked = ebh.apply_mask(buf, mask)
        cascaded = ebh.cascade(masked, encoding=True)
        encoded = ebh.b64encode(cascaded)
        _LOG.debug("encode: %d symbols out", len(encoded))
        return encoded

    @staticmethod
    def decode_bytes(string: str, mask: "ebh.typing.Optional[int]" = None) -> bytes:
        _LOG.debug("decode: %d symbols in", len(string))
        try:
            raw = ebh.b64decode(string)
        except DecodeError as exc:
            _LOG.debug("decode: rejected input: %s", exc)
            raise
        uncascaded = ebh.cascade(raw, encoding=False)
        plain = ebh.apply_mask(uncascaded, mask)
        _LOG.debug("decode: %d bytes out", len(plain))
        return plain

    @staticmethod
    def encode_message(message: str, mask: "ebh.typing.Optional[int]" = None) -> str:
        if not isinstance(message, str):
            raise TypeError(f"encode_message expects str, got {type(message)!r}")
        return ebh.encode_bytes(message.encode(ebh.TEXT_ENCODING), mask)

    @staticmethod
    def decode_message(string: str, mask: "ebh.typing.Optional[int]" = None) -> str:
        if not isinstance(string, str):
            raise TypeError(f"decode_message expects str, got {type(string)!r}")
        plain = ebh.decode_bytes(string, mask)
        try:
            return plain.decode(ebh.TEXT_ENCODING)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Decoded bytes are not valid {ebh.TEXT_ENCODING} text") from exc


# STAGES:
# PARTIAL MASK - apply_mask (self-inverse)
# CASCADE - cascade(data, encoding=True/False)
# BASE64 - b64encode/b64decode (ebh alphabet, no '=' padding)

# HOW TO USE: ebh.encode_message("text") / ebh.decode_message("encoded")


def cli(argv=None) -> int:
    import argparse

    def _parse_mask(value: str) -> int:
        try:
            parsed = int(value, 0)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid mask {value!r}") from None
        if not 0 <= parsed <= 0xFFFFFFFF:
            raise argparse.ArgumentTypeError(f"mask {value!r} does not fit in 32 bits")
        return parsed

    parser = argparse.ArgumentParser(prog="ebh", description="Encode or decode a message")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "-e", "--encode",
        dest="mode",
        action="store_const",
        const="encode",
        help="Encode the message"
    )
    mode.add_argument(
        "-d", "--decode",
        dest="mode",
        action="store_const",
        const="decode",
        help="Decode the message"
    )
    parser.add_argument(
        "message",
        help="Message to encode or decode"
    )
    parser.add_argument(
        "--mask",
        type=_parse_mask,
        default=None,
        help="32-bit mask for the partial mask stage (default 0x12345678 or $EBH_MASK)"
    )
    parser.add_argument(
        "--log-level",
        default=ebh.LOG_LEVEL,
        help="Logging level written to stderr (default WARNING or $EBH_LOG_LEVEL)"
    )

    args = parser.parse_args(argv)

    try:
        setup_logging(args.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    if args.mode == "encode":
        try:
            result = ebh.encode_message(args.message, mask=args.mask)
        except UnicodeEncodeError as exc:
            print(f"Failed to encode: {exc}", file=_sys_module.stderr)
            return 1
    else:
        try:
            result = ebh.decode_message(args.message, mask=args.mask)
        except DecodeError as exc:
            print(f"Failed to decode: {exc}", file=_sys_module.stderr)
            return 1

    print(result)
    return 0


def main(argv=None) -> int:
    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(main())
