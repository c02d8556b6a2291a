from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec

from twinpki.core.exceptions import EncodingFailure, SigningFailure
from twinpki.pki import asn1
from twinpki.pki.builder import build_certificate, build_csr
from twinpki.pki.extensions import leaf_profile, root_ca_profile
from twinpki.pki.keys import KeyAlgorithm, KeyPair
from twinpki.pki.parser import parse_certificate, parse_csr, verify_certificate, verify_csr
from twinpki.pki.pem import CERTIFICATE, CERTIFICATE_REQUEST, decode_pem, encode_pem


def _self_signed(key_pair, subject, **kwargs):
    return build_certificate(key_pair, key_pair, subject, subject, extensions=root_ca_profile(), **kwargs)


def test_ed25519_root_ca_verifies_against_itself(ed25519_key, root_subject):
    pem = _self_signed(ed25519_key, root_subject, validity_days=3650)

    assert verify_certificate(pem, ed25519_key.public_key_pem())
    cert = parse_certificate(pem)
    assert cert.subject == cert.issuer
    assert cert.subject.fields == root_subject
    assert cert.is_ca
    assert "keyCertSign" in cert.extensions.key_usage.usage
    assert cert.signature_algorithm == asn1.OID_ED25519


@pytest.mark.parametrize("algorithm", [
    KeyAlgorithm.ECDSA_P256,
    KeyAlgorithm.ECDSA_P384,
    KeyAlgorithm.ECDSA_P521,
])
def test_ecdsa_leaf_verifies_against_issuer_only(algorithm, root_subject, device_subject):
    issuer_key = KeyPair.generate(algorithm)
    leaf_key = KeyPair.generate(algorithm)
    unrelated_key = KeyPair.generate(algorithm)

    leaf = build_certificate(
        leaf_key, issuer_key, device_subject, root_subject,
        validity_days=365, extensions=leaf_profile(),
    )

    assert verify_certificate(leaf, issuer_key.public_key_pem())
    assert not verify_certificate(leaf, unrelated_key.public_key_pem())
    assert not verify_certificate(leaf, leaf_key.public_key_pem())

    cert = parse_certificate(leaf)
    assert cert.issuer.fields == root_subject
    assert cert.subject.fields == device_subject
    assert cert.signature_algorithm == issuer_key.signature_oid
    assert cert.public_key.spki_der() == leaf_key.spki_der()


def test_signature_algorithm_follows_issuer_not_subject(ed25519_key, p256_key, root_subject, device_subject):
    leaf = build_certificate(p256_key, ed25519_key, device_subject, root_subject)
    cert = parse_certificate(leaf)
    assert cert.signature_algorithm == asn1.OID_ED25519
    assert cert.public_key.algorithm is KeyAlgorithm.ECDSA_P256
    assert verify_certificate(leaf, ed25519_key)
    # Wrong family never verifies
    assert not verify_certificate(leaf, p256_key)


def test_validity_days_are_exact(ed25519_key, root_subject):
    pem = _self_signed(ed25519_key, root_subject, validity_days=42)
    cert = parse_certificate(pem)
    assert cert.not_after - cert.not_before == timedelta(days=42)
    assert cert.validity_days == 42


def test_explicit_serial_and_start(ed25519_key, root_subject):
    start = datetime(2049, 12, 1, tzinfo=timezone.utc)
    pem = _self_signed(ed25519_key, root_subject, serial_number=b"\x80" + b"\x00" * 19, validity_days=60, not_before=start)
    cert = parse_certificate(pem)
    assert cert.serial_number == 2 ** 159
    assert cert.not_before == start
    # Crosses into 2050, so notAfter switches to GeneralizedTime
    assert cert.not_after == datetime(2050, 1, 30, tzinfo=timezone.utc)
    tbs = asn1.Certificate.load(decode_pem(pem, CERTIFICATE))["tbs_certificate"]
    assert tbs["validity"]["not_before"].name == "utc_time"
    assert tbs["validity"]["not_after"].name == "general_time"


def test_default_serial_is_positive_and_random(ed25519_key, root_subject):
    serials = {parse_certificate(_self_signed(ed25519_key, root_subject)).serial_number for _ in range(5)}
    assert len(serials) == 5
    assert all(serial > 0 for serial in serials)


def test_no_extensions_when_none_configured(ed25519_key, root_subject):
    pem = build_certificate(ed25519_key, ed25519_key, root_subject, root_subject)
    tbs = asn1.Certificate.load(decode_pem(pem, CERTIFICATE))["tbs_certificate"]
    assert isinstance(tbs["extensions"], asn1.core.Void)
    assert parse_certificate(pem).extensions.is_empty


def test_certificate_interoperates_with_cryptography(p256_key, root_subject):
    root_subject = dict(root_subject)
    pem = _self_signed(p256_key, root_subject, validity_days=30)

    cert = x509.load_pem_x509_certificate(pem.encode())
    assert cert.version == x509.Version.v3
    p256_key.public_key.verify(
        cert.signature,
        cert.tbs_certificate_bytes,
        ec.ECDSA(cert.signature_hash_algorithm),
    )
    basic_constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
    assert basic_constraints.critical
    assert basic_constraints.value.ca
    assert basic_constraints.value.path_length == 1
    key_usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    assert key_usage.key_cert_sign and key_usage.crl_sign
    assert not key_usage.digital_signature
    assert cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)[0].value == root_subject["CN"]


def test_ed25519_leaf_interoperates_with_cryptography(ed25519_key, root_subject, device_subject):
    leaf_key = KeyPair.generate(KeyAlgorithm.ED25519)
    pem = build_certificate(
        leaf_key, ed25519_key, device_subject, root_subject,
        extensions=leaf_profile([{"type": "dns", "value": "localhost"}, {"type": "ip", "value": "127.0.0.1"}]),
    )
    cert = x509.load_pem_x509_certificate(pem.encode())
    ed25519_key.public_key.verify(cert.signature, cert.tbs_certificate_bytes)
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["localhost"]
    assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["127.0.0.1"]
    eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage)
    assert eku.critical
    assert set(eku.value) == {x509.ExtendedKeyUsageOID.SERVER_AUTH, x509.ExtendedKeyUsageOID.CLIENT_AUTH}


def test_issuer_without_private_key_cannot_sign(ed25519_key, root_subject):
    public_only = KeyPair.from_public_key_pem(ed25519_key.public_key_pem())
    with pytest.raises(SigningFailure):
        build_certificate(ed25519_key, public_only, root_subject, root_subject)


def test_invalid_inputs_raise_encoding_failure(ed25519_key, root_subject):
    with pytest.raises(EncodingFailure):
        build_certificate(ed25519_key, ed25519_key, {"XX": "nope"}, root_subject)
    with pytest.raises(EncodingFailure):
        build_certificate(ed25519_key, ed25519_key, root_subject, root_subject, validity_days=0)
    with pytest.raises(EncodingFailure):
        build_certificate(
            ed25519_key, ed25519_key, root_subject, root_subject,
            extensions={"subjectAltName": {"names": [{"type": "uri", "value": "https://example.com"}]}},
        )


# Certification requests

def test_csr_self_signature_verifies(ed25519_key, device_subject):
    pem = build_csr(ed25519_key, device_subject)
    assert verify_csr(pem)
    assert verify_csr(pem, ed25519_key.public_key_pem())
    assert not verify_csr(pem, KeyPair.generate().public_key_pem())


def test_altered_csr_body_fails_verification(p256_key, device_subject):
    pem = build_csr(p256_key, device_subject)
    der = decode_pem(pem, CERTIFICATE_REQUEST)
    altered = der.replace(b"device-001", b"device-002")
    assert altered != der
    assert not verify_csr(encode_pem(altered, CERTIFICATE_REQUEST))


def test_csr_requests_leaf_profile_by_default(ed25519_key, device_subject):
    csr = parse_csr(build_csr(ed25519_key, device_subject))
    assert csr.subject.fields == device_subject
    assert csr.extensions.basic_constraints.is_ca is False
    assert csr.extensions.extended_key_usage.usage == {"serverAuth", "clientAuth"}


def test_csr_with_empty_extensions_has_no_attributes(ed25519_key, device_subject):
    pem = build_csr(ed25519_key, device_subject, extensions={})
    request = asn1.CertificationRequest.load(decode_pem(pem, CERTIFICATE_REQUEST))
    assert len(request["certification_request_info"]["attributes"]) == 0
    assert parse_csr(pem).extensions.is_empty
    assert verify_csr(pem)


@pytest.mark.parametrize("algorithm", list(KeyAlgorithm))
def test_csr_interoperates_with_cryptography(algorithm, device_subject):
    key_pair = KeyPair.generate(algorithm)
    pem = build_csr(key_pair, device_subject, extensions=leaf_profile([{"type": "dns", "value": "device.local"}]))
    csr = x509.load_pem_x509_csr(pem.encode())
    assert csr.is_signature_valid
    san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["device.local"]
