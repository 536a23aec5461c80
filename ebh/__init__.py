"""
EBH - reversible three-stage message obfuscation

Encoding runs a partial XOR mask, a cascading head/tail XOR and a custom
Base64 codec; decoding runs the same stages in reverse. Not encryption.
"""

from .main import *
from .version import __version__

# ============================================================================
# MESSAGE FUNCTIONS (Text → Encoded String → Text)
# ============================================================================

def encode_message(string: str, mask: int | None = None):
    """
    Encode a text message.

    Args:
        string: Text to encode (single-byte characters, latin-1 by default)
        mask: Optional 32-bit mask overriding ebh.MASK

    Returns:
        Printable string made only of the 64 data symbols

    Note:
        - Deterministic, no randomness
        - Reversible with decode_message()
    """
    return ebh.encode_message(string, mask=mask)


def decode_message(string: str, mask: int | None = None):
    """
    Decode a string produced by encode_message().

    Args:
        string: Encoded string
        mask: Optional 32-bit mask, must match the one used to encode

    Returns:
        The original text

    Raises:
        DecodeError: unknown symbol or a symbol count no encoding produces
    """
    return ebh.decode_message(string, mask=mask)


# ============================================================================
# BYTE FUNCTIONS
# ============================================================================

def encode_bytes(data: bytes, mask: int | None = None):
    """Encode raw bytes to the printable form."""
    return ebh.encode_bytes(data, mask=mask)


def decode_bytes(string: str, mask: int | None = None):
    """Decode the printable form back to raw bytes."""
    return ebh.decode_bytes(string, mask=mask)


# ============================================================================
# INDIVIDUAL STAGES
# ============================================================================

def apply_mask(data: bytes, mask: int | None = None):
    return ebh.apply_mask(data, mask)


def cascade(data: bytes, encoding: bool):
    return ebh.cascade(data, encoding)


def b64encode(data: bytes):
    return ebh.b64encode(data)


def b64decode(string: str):
    return ebh.b64decode(string)
