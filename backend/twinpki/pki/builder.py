"""
Assembly and signing of X.509v3 certificates and PKCS#10 requests.

The to-be-signed structure is assembled field by field, DER-encoded, signed
with the issuer (or, for a request, the subject) key and wrapped into the
outer sequence. The result is returned as PEM.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Union

from twinpki.core.exceptions import EncodingFailure
from twinpki.core.logging import get_logger
from twinpki.pki import asn1
from twinpki.pki.extensions import encode_extensions, leaf_profile
from twinpki.pki.keys import KeyPair
from twinpki.pki.names import NameInfo, encode_name
from twinpki.pki.pem import CERTIFICATE, CERTIFICATE_REQUEST, encode_pem
from twinpki.pki.validity import (
    date_to_asn1_time,
    generate_serial_number,
    serial_to_int,
    validity_window,
)
from twinpki.schemas.extensions import ExtensionsConfig

logger = get_logger(__name__)

NameInput = Union[Mapping[str, str], NameInfo, asn1.Name]
ExtensionsInput = Union[ExtensionsConfig, Mapping[str, Any], None]

X509_V3 = 2
CSR_V1 = 0


def _as_name(value: NameInput) -> asn1.Name:
    # An already encoded Name (e.g. taken from a CSR) is reused byte for byte
    if isinstance(value, asn1.Name):
        return value
    if isinstance(value, NameInfo):
        return encode_name(value.fields)
    return encode_name(value)


def _algorithm_identifier(key_pair: KeyPair) -> asn1.AlgorithmIdentifier:
    # Neither Ed25519 nor ecdsa-with-SHA* carry parameters
    return asn1.AlgorithmIdentifier({"algorithm": key_pair.signature_oid})


def _subject_public_key_info(key_pair: KeyPair) -> asn1.SubjectPublicKeyInfo:
    return asn1.SubjectPublicKeyInfo.load(key_pair.spki_der())


def build_certificate(
    subject_key: KeyPair,
    issuer_key: KeyPair,
    subject: NameInput,
    issuer: NameInput,
    serial_number: Optional[Union[bytes, int]] = None,
    validity_days: int = 365,
    extensions: ExtensionsInput = None,
    not_before: Optional[datetime] = None,
) -> str:
    """
    Build and sign an X.509v3 certificate.

    Args:
        subject_key: key pair whose public key is certified; may be public only
        issuer_key: key pair holding the signing private key
        subject: subject name fields
        issuer: issuer name fields; must equal the issuer certificate's subject
        serial_number: defaults to 20 random bytes
        validity_days: notAfter is notBefore plus this many days
        extensions: extensions to include; None or an empty config adds none
        not_before: defaults to the current UTC time truncated to the second

    Returns:
        certificate PEM

    Raises:
        EncodingFailure, SigningFailure
    """
    if serial_number is None:
        serial_number = generate_serial_number()
    serial = serial_to_int(serial_number)
    start, end = validity_window(validity_days, not_before)
    encoded_extensions = encode_extensions(extensions)
    signature_algorithm = _algorithm_identifier(issuer_key)

    try:
        tbs_certificate = asn1.TbsCertificate({
            "version": X509_V3,
            "serial_number": serial,
            "signature": signature_algorithm,
            "issuer": _as_name(issuer),
            "validity": {
                "not_before": date_to_asn1_time(start),
                "not_after": date_to_asn1_time(end),
            },
            "subject": _as_name(subject),
            "subject_public_key_info": _subject_public_key_info(subject_key),
        })
        if len(encoded_extensions):
            tbs_certificate["extensions"] = encoded_extensions
        tbs_der = tbs_certificate.dump()
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"Failed to encode TBSCertificate: {e}") from e

    signature = issuer_key.sign(tbs_der)

    try:
        certificate = asn1.Certificate({
            "tbs_certificate": tbs_certificate,
            "signature_algorithm": signature_algorithm,
            "signature_value": signature,
        })
        der = certificate.dump()
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"Failed to encode Certificate: {e}") from e

    logger.debug(f"Built certificate serial={serial:x} signed with {issuer_key.algorithm.value}")
    return encode_pem(der, CERTIFICATE)


def build_csr(
    subject_key: KeyPair,
    subject: NameInput,
    validity_years: int = 10,
    extensions: ExtensionsInput = None,
) -> str:
    """
    Build a PKCS#10 certification request self-signed by ``subject_key``.

    When ``extensions`` is None the leaf profile is requested through an
    extensionRequest attribute; an empty config requests nothing.
    ``validity_years`` is kept for call compatibility only, since a request
    carries no validity period.
    """
    if extensions is None:
        extensions = leaf_profile()
    encoded_extensions = encode_extensions(extensions)
    signature_algorithm = _algorithm_identifier(subject_key)

    attributes = []
    if len(encoded_extensions):
        attributes.append({
            "type": asn1.OID_EXTENSION_REQUEST,
            "values": [encoded_extensions],
        })

    try:
        request_info = asn1.CertificationRequestInfo({
            "version": CSR_V1,
            "subject": _as_name(subject),
            "subject_pk_info": _subject_public_key_info(subject_key),
            "attributes": attributes,
        })
        request_info_der = request_info.dump()
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"Failed to encode CertificationRequestInfo: {e}") from e

    signature = subject_key.sign(request_info_der)

    try:
        request = asn1.CertificationRequest({
            "certification_request_info": request_info,
            "signature_algorithm": signature_algorithm,
            "signature": signature,
        })
        der = request.dump()
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"Failed to encode CertificationRequest: {e}") from e

    logger.debug(f"Built {subject_key.algorithm.value} certification request")
    return encode_pem(der, CERTIFICATE_REQUEST)
