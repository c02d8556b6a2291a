"""
PEM envelope encoding and decoding
"""

from asn1crypto import pem as asn1_pem

from twinpki.core.exceptions import ParseFailure, EncodingFailure

CERTIFICATE = "CERTIFICATE"
CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"
PRIVATE_KEY = "PRIVATE KEY"
EC_PRIVATE_KEY = "EC PRIVATE KEY"
PUBLIC_KEY = "PUBLIC KEY"


def encode_pem(der: bytes, label: str) -> str:
    """
    Wrap DER bytes in a PEM envelope: base64 in 64-character lines between
    -----BEGIN {label}----- and -----END {label}-----, newline terminated.
    """
    if not isinstance(der, bytes):
        raise EncodingFailure(f"PEM payload must be bytes, not {type(der).__name__}")
    return asn1_pem.armor(label, der).decode("ascii")


def decode_pem(pem: str | bytes, label: str) -> bytes:
    """
    Return the DER bytes of a PEM envelope with the given label.

    Raises:
        ParseFailure: missing or mismatched armor, or invalid base64
    """
    if isinstance(pem, str):
        try:
            pem = pem.encode("ascii")
        except UnicodeEncodeError as e:
            raise ParseFailure(f"PEM {label} contains non-ASCII data") from e

    try:
        object_type, _, der = asn1_pem.unarmor(pem.strip())
    except (ValueError, TypeError) as e:
        raise ParseFailure(f"Malformed PEM {label}: {e}") from e

    if object_type != label:
        raise ParseFailure(f"Expected PEM {label}, found {object_type}")
    if not der:
        raise ParseFailure(f"Empty PEM {label}")
    return der


def is_pem(data: str | bytes, label: str) -> bool:
    """Check for the BEGIN line of a PEM envelope without decoding it"""
    marker = f"-----BEGIN {label}-----"
    if isinstance(data, bytes):
        return marker.encode("ascii") in data
    return marker in data
