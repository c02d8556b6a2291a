from twinpki.pki.builder import build_certificate, build_csr
from twinpki.pki.extensions import decode_extensions, encode_extensions
from twinpki.pki.keys import KeyAlgorithm, KeyPair
from twinpki.pki.names import NameInfo, decode_name, encode_name
from twinpki.pki.parser import (
    ParsedCertificate,
    ParsedCSR,
    load_issuer_from_cert_pem,
    load_subject_from_cert_pem,
    parse_certificate,
    parse_csr,
    parse_subject_from_csr,
    verify_certificate,
    verify_csr,
)
from twinpki.pki.pem import decode_pem, encode_pem
from twinpki.pki.validity import asn1_time_string, date_to_asn1_time, generate_serial_number

__all__ = [
    "build_certificate",
    "build_csr",
    "decode_extensions",
    "encode_extensions",
    "KeyAlgorithm",
    "KeyPair",
    "NameInfo",
    "decode_name",
    "encode_name",
    "ParsedCertificate",
    "ParsedCSR",
    "load_issuer_from_cert_pem",
    "load_subject_from_cert_pem",
    "parse_certificate",
    "parse_csr",
    "parse_subject_from_csr",
    "verify_certificate",
    "verify_csr",
    "decode_pem",
    "encode_pem",
    "asn1_time_string",
    "date_to_asn1_time",
    "generate_serial_number",
]
