"""
Parsing and signature verification of certificates and certification requests
"""

from contextlib import contextmanager
from datetime import datetime
from typing import NamedTuple, Optional, Union

from twinpki.core.exceptions import ParseFailure
from twinpki.pki import asn1
from twinpki.pki.extensions import decode_extensions
from twinpki.pki.keys import KeyPair
from twinpki.pki.names import NameInfo, decode_name
from twinpki.pki.pem import CERTIFICATE, CERTIFICATE_REQUEST, decode_pem
from twinpki.schemas.extensions import ExtensionsConfig


class ParsedCertificate(NamedTuple):
    serial_number: int
    subject: NameInfo
    issuer: NameInfo
    not_before: datetime
    not_after: datetime
    signature_algorithm: str
    public_key: KeyPair
    extensions: ExtensionsConfig
    signature: bytes
    tbs_bytes: bytes
    subject_name: asn1.Name

    @property
    def is_ca(self) -> bool:
        basic_constraints = self.extensions.basic_constraints
        return basic_constraints is not None and basic_constraints.is_ca

    @property
    def validity_days(self) -> int:
        return (self.not_after - self.not_before).days


class ParsedCSR(NamedTuple):
    subject: NameInfo
    public_key: KeyPair
    signature_algorithm: str
    extensions: ExtensionsConfig
    signature: bytes
    info_bytes: bytes
    subject_name: asn1.Name


@contextmanager
def _parse_errors(what: str):
    # asn1crypto parses lazily, so malformed content can surface on any access
    try:
        yield
    except (ValueError, TypeError, KeyError, IndexError) as e:
        raise ParseFailure(f"Malformed {what}: {e}") from e


def _load_certificate(cert_pem: Union[str, bytes]) -> asn1.Certificate:
    der = decode_pem(cert_pem, CERTIFICATE)
    with _parse_errors("certificate"):
        return asn1.Certificate.load(der, strict=True)


def _load_csr(csr_pem: Union[str, bytes]) -> asn1.CertificationRequest:
    der = decode_pem(csr_pem, CERTIFICATE_REQUEST)
    with _parse_errors("certification request"):
        return asn1.CertificationRequest.load(der, strict=True)


def _requested_extensions(request_info: asn1.CertificationRequestInfo) -> ExtensionsConfig:
    for attribute in request_info["attributes"]:
        if attribute["type"].dotted != asn1.OID_EXTENSION_REQUEST:
            continue
        for extensions in attribute["values"]:
            return decode_extensions(extensions)
    return ExtensionsConfig()


def parse_certificate(cert_pem: Union[str, bytes]) -> ParsedCertificate:
    """
    Raises:
        ParseFailure: malformed PEM or DER
        KeyImportFailure: the subject public key is of an unsupported type
    """
    certificate = _load_certificate(cert_pem)
    with _parse_errors("certificate"):
        tbs_certificate = certificate["tbs_certificate"]
        validity = tbs_certificate["validity"]
        spki_der = tbs_certificate["subject_public_key_info"].dump()
        parsed = dict(
            serial_number=tbs_certificate["serial_number"].native,
            subject=decode_name(tbs_certificate["subject"]),
            issuer=decode_name(tbs_certificate["issuer"]),
            not_before=validity["not_before"].native,
            not_after=validity["not_after"].native,
            signature_algorithm=certificate["signature_algorithm"]["algorithm"].dotted,
            extensions=decode_extensions(tbs_certificate["extensions"]),
            signature=certificate["signature_value"].native,
            tbs_bytes=tbs_certificate.dump(),
            subject_name=tbs_certificate["subject"],
        )
        if tbs_certificate["signature"]["algorithm"].dotted != parsed["signature_algorithm"]:
            raise ValueError("TBSCertificate signature algorithm differs from the outer one")

    return ParsedCertificate(public_key=KeyPair.from_spki_der(spki_der), **parsed)


def parse_csr(csr_pem: Union[str, bytes]) -> ParsedCSR:
    request = _load_csr(csr_pem)
    with _parse_errors("certification request"):
        request_info = request["certification_request_info"]
        spki_der = request_info["subject_pk_info"].dump()
        parsed = dict(
            subject=decode_name(request_info["subject"]),
            signature_algorithm=request["signature_algorithm"]["algorithm"].dotted,
            extensions=_requested_extensions(request_info),
            signature=request["signature"].native,
            info_bytes=request_info.dump(),
            subject_name=request_info["subject"],
        )

    return ParsedCSR(public_key=KeyPair.from_spki_der(spki_der), **parsed)


def parse_subject_from_csr(csr_pem: Union[str, bytes]) -> NameInfo:
    request = _load_csr(csr_pem)
    with _parse_errors("certification request"):
        return decode_name(request["certification_request_info"]["subject"])


def load_subject_from_cert_pem(cert_pem: Union[str, bytes]) -> NameInfo:
    certificate = _load_certificate(cert_pem)
    with _parse_errors("certificate"):
        return decode_name(certificate["tbs_certificate"]["subject"])


def load_issuer_from_cert_pem(cert_pem: Union[str, bytes]) -> NameInfo:
    certificate = _load_certificate(cert_pem)
    with _parse_errors("certificate"):
        return decode_name(certificate["tbs_certificate"]["issuer"])


def _as_key_pair(public_key: Union[str, bytes, KeyPair]) -> KeyPair:
    if isinstance(public_key, KeyPair):
        return public_key
    return KeyPair.from_public_key_pem(public_key)


def verify_csr(
    csr_pem: Union[str, bytes],
    public_key_pem: Optional[Union[str, bytes, KeyPair]] = None,
) -> bool:
    """
    Check the request signature over CertificationRequestInfo, against the
    given public key or, by default, the key embedded in the request.
    """
    csr = parse_csr(csr_pem)
    key_pair = csr.public_key if public_key_pem is None else _as_key_pair(public_key_pem)
    return key_pair.verify(csr.signature, csr.info_bytes, csr.signature_algorithm)


def verify_certificate(
    cert_pem: Union[str, bytes],
    public_key_pem: Union[str, bytes, KeyPair],
) -> bool:
    """Check the certificate signature over TBSCertificate against the issuer public key"""
    certificate = parse_certificate(cert_pem)
    key_pair = _as_key_pair(public_key_pem)
    return key_pair.verify(certificate.signature, certificate.tbs_bytes, certificate.signature_algorithm)
