"""
Distinguished Name codec.

A subject or issuer is given as an ordered mapping of short attribute names
to values; each attribute becomes its own RelativeDistinguishedName.
"""

import re
from typing import Dict, Mapping, NamedTuple

from twinpki.core.exceptions import EncodingFailure
from twinpki.pki import asn1

NAME_OIDS = {
    "C": "2.5.4.6",
    "ST": "2.5.4.8",
    "L": "2.5.4.7",
    "O": "2.5.4.10",
    "OU": "2.5.4.11",
    "CN": "2.5.4.3",
    "EMAIL": "1.2.840.113549.1.9.1",
}

OID_NAMES = {oid: short_name for short_name, oid in NAME_OIDS.items()}

_DOTTED_OID = re.compile(r"^[0-2](\.\d+)+$")

# X.680 PrintableString repertoire
_PRINTABLE_STRING = re.compile(r"[A-Za-z0-9 '()+,\-./:=?]*")


class NameInfo(NamedTuple):
    fields: Dict[str, str]
    string: str


def _value_alternative(short_name: str) -> str:
    if short_name == "C":
        return "printable_string"
    if short_name == "EMAIL":
        return "ia5_string"
    return "utf8_string"


def encode_name(fields: Mapping[str, str], ignore_unknown: bool = False) -> asn1.Name:
    """
    Encode an ordered {C, ST, L, O, OU, CN, EMAIL} mapping as a Name.

    Keys are case-insensitive. A dotted OID key is encoded as a UTF8String
    attribute of that type.

    Raises:
        EncodingFailure: an unknown key (unless ignore_unknown), a non-string
            value, or a value the attribute's string type cannot carry
    """
    rdns = []
    for key, value in fields.items():
        short_name = str(key).upper()
        if short_name in NAME_OIDS:
            oid = NAME_OIDS[short_name]
        elif _DOTTED_OID.match(str(key)):
            oid = str(key)
            short_name = OID_NAMES.get(oid, oid)
        elif ignore_unknown:
            continue
        else:
            raise EncodingFailure(f"Unknown name attribute: {key}")

        if not isinstance(value, str):
            raise EncodingFailure(f"Name attribute {key} must be a string, not {type(value).__name__}")

        alternative = _value_alternative(short_name)
        if alternative == "printable_string" and not _PRINTABLE_STRING.fullmatch(value):
            raise EncodingFailure(f"Name attribute {key}={value!r} is not a PrintableString")

        try:
            attribute_value = asn1.AttributeValue(name=alternative, value=value)
            attribute = asn1.AttributeTypeAndValue({"type": oid, "value": attribute_value})
            rdns.append(asn1.RelativeDistinguishedName([attribute]))
        except (ValueError, TypeError) as e:
            raise EncodingFailure(f"Cannot encode name attribute {key}={value!r}: {e}") from e

    return asn1.Name(rdns)


def decode_name(name: asn1.Name) -> NameInfo:
    """Decode every attribute of every RDN, in encoded order"""
    fields = {}
    parts = []
    for rdn in name:
        for attribute in rdn:
            oid = attribute["type"].dotted
            key = OID_NAMES.get(oid, oid)
            value = attribute["value"].native
            if isinstance(value, bytes):
                value = value.hex()
            fields[key] = value
            parts.append(f"{key}={value}")
    return NameInfo(fields=fields, string=", ".join(parts))
