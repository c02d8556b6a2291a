import pytest

from twinpki.core.exceptions import EncodingFailure, VerificationFailure
from twinpki.pki import asn1
from twinpki.pki.keys import KeyAlgorithm, KeyPair
from twinpki.pki.parser import (
    load_subject_from_cert_pem,
    parse_certificate,
    parse_csr,
    verify_certificate,
    verify_csr,
)
from twinpki.pki.pem import CERTIFICATE, CERTIFICATE_REQUEST, decode_pem, encode_pem
from twinpki.services.ca_service import CAService, LEAF_PROFILE


def test_root_ca(ca, ed25519_root, root_subject):
    assert ed25519_root.key_pair.algorithm is KeyAlgorithm.ED25519
    cert = parse_certificate(ed25519_root.certificate)
    assert cert.subject.fields == root_subject
    assert cert.issuer.fields == root_subject
    assert cert.extensions.basic_constraints.path_len_constraint == 1
    assert cert.extensions.key_usage.usage == {"keyCertSign", "cRLSign"}
    assert verify_certificate(ed25519_root.certificate, ed25519_root.key_pair.public_key_pem())
    assert ca.verify_key_pair(ed25519_root.key_pair)


def test_root_ca_reuses_given_key(ca, root_subject, p256_key):
    issued = ca.generate_root_ca(root_subject, validity_years=1, key_pair=p256_key)
    assert issued.key_pair is p256_key
    assert parse_certificate(issued.certificate).signature_algorithm == asn1.OID_ECDSA_SHA256


def test_intermediate_ca(ca, ed25519_root, root_subject):
    subject = dict(root_subject, CN="Test Intermediate CA")
    intermediate = ca.generate_intermediate_ca(
        subject,
        validity_years=5,
        issuer_key_pair=ed25519_root.key_pair,
        issuer_cert_pem=ed25519_root.certificate,
    )
    cert = parse_certificate(intermediate.certificate)
    assert cert.is_ca
    assert cert.extensions.basic_constraints.path_len_constraint == 0
    assert cert.issuer.fields == root_subject
    assert verify_certificate(intermediate.certificate, ed25519_root.key_pair)


def test_leaf_certificate_scenario(ca, ed25519_root, root_subject, device_subject):
    leaf = ca.generate_leaf_certificate(
        device_subject,
        validity_days=365,
        issuer_key_pair=ed25519_root.key_pair,
        issuer_cert_pem=ed25519_root.certificate,
        subject_alt_names=[{"type": "dns", "value": "device-001.local"}],
    )
    cert = parse_certificate(leaf.certificate)
    assert cert.issuer == load_subject_from_cert_pem(ed25519_root.certificate)
    assert cert.subject.fields == device_subject
    assert not cert.is_ca
    assert cert.extensions.subject_alt_name.names[0].value == "device-001.local"
    assert cert.validity_days == 365
    assert verify_certificate(leaf.certificate, ed25519_root.key_pair)
    assert not verify_certificate(leaf.certificate, leaf.key_pair)


def test_leaf_key_follows_issuer_algorithm(root_subject, device_subject):
    root = CAService(KeyAlgorithm.ECDSA_P384).generate_root_ca(root_subject)
    leaf = CAService(KeyAlgorithm.ED25519).generate_leaf_certificate(
        device_subject, 30, root.key_pair, root.certificate,
    )
    assert root.key_pair.algorithm is KeyAlgorithm.ECDSA_P384
    assert leaf.key_pair.algorithm is KeyAlgorithm.ECDSA_P384
    assert parse_certificate(leaf.certificate).signature_algorithm == asn1.OID_ECDSA_SHA384


def test_leaf_with_uri_san_is_rejected(ca, ed25519_root, device_subject):
    with pytest.raises(EncodingFailure):
        ca.generate_leaf_certificate(
            device_subject, 365, ed25519_root.key_pair, ed25519_root.certificate,
            subject_alt_names=[{"type": "uri", "value": "https://example.com"}],
        )


def test_generate_csr(ca, device_subject):
    issued = ca.generate_csr(device_subject)
    assert verify_csr(issued.csr)
    csr = parse_csr(issued.csr)
    assert csr.subject.fields == device_subject
    assert csr.public_key.spki_der() == issued.key_pair.spki_der()


def test_sign_csr_uses_request_subject_and_key(ca, ed25519_root, root_subject, device_subject):
    request = ca.generate_csr(device_subject, subject_key_pair=KeyPair.generate(KeyAlgorithm.ECDSA_P256))
    cert_pem = ca.sign_csr(
        request.csr,
        ed25519_root.key_pair,
        root_subject,
        validity_days=90,
        extensions=LEAF_PROFILE,
    )
    cert = parse_certificate(cert_pem)
    assert cert.subject.fields == device_subject
    assert cert.issuer.fields == root_subject
    assert cert.public_key.spki_der() == request.key_pair.spki_der()
    assert cert.validity_days == 90
    assert cert.extensions.extended_key_usage.usage == {"serverAuth", "clientAuth"}
    assert verify_certificate(cert_pem, ed25519_root.key_pair)


def test_sign_csr_ignores_requested_extensions(ca, ed25519_root, root_subject, device_subject):
    request = ca.generate_csr(
        device_subject,
        extensions={"basicConstraints": {"critical": True, "isCA": True}},
    )
    assert parse_csr(request.csr).extensions.basic_constraints.is_ca

    cert = parse_certificate(ca.sign_csr(request.csr, ed25519_root.key_pair, root_subject))
    assert cert.extensions.is_empty
    assert not cert.is_ca


def test_sign_csr_rejects_bad_signature(ca, ed25519_root, root_subject, device_subject):
    request = ca.generate_csr(device_subject)
    der = decode_pem(request.csr, CERTIFICATE_REQUEST)
    forged = encode_pem(der.replace(b"device-001", b"device-666"), CERTIFICATE_REQUEST)
    with pytest.raises(VerificationFailure):
        ca.sign_csr(forged, ed25519_root.key_pair, root_subject)


def test_verify_key_pair(ca, ed25519_key):
    assert ca.verify_key_pair(ed25519_key)
    assert ca.verify_key_pair(KeyPair.generate(KeyAlgorithm.ECDSA_P521))
    assert not ca.verify_key_pair(KeyPair.from_public_key_pem(ed25519_key.public_key_pem()))


def _two_unit_name():
    rdns = []
    for oid, value in [("2.5.4.11", "a"), ("2.5.4.11", "b"), ("2.5.4.3", "root")]:
        attribute = asn1.AttributeTypeAndValue({
            "type": oid,
            "value": asn1.AttributeValue(name="utf8_string", value=value),
        })
        rdns.append(asn1.RelativeDistinguishedName([attribute]))
    return asn1.Name(rdns)


def test_issuer_name_matches_issuer_subject_bytes(ca, device_subject):
    root = ca.generate_root_ca(_two_unit_name(), validity_years=1)
    root_subject = parse_certificate(root.certificate).subject_name.dump()

    leaf = ca.generate_leaf_certificate(device_subject, 30, root.key_pair, root.certificate)
    intermediate = ca.generate_intermediate_ca({"CN": "Sub CA"}, 1, root.key_pair, root.certificate)
    for pem in (leaf.certificate, intermediate.certificate):
        tbs_certificate = asn1.Certificate.load(decode_pem(pem, CERTIFICATE))["tbs_certificate"]
        assert tbs_certificate["issuer"].dump() == root_subject
        assert verify_certificate(pem, root.key_pair)


def test_fractional_validity_years_is_rejected(ca, root_subject):
    with pytest.raises(EncodingFailure):
        ca.generate_root_ca(root_subject, validity_years=1.5)


def test_non_printable_country_is_rejected(ca, root_subject):
    with pytest.raises(EncodingFailure):
        ca.generate_root_ca(dict(root_subject, C="J@"))
