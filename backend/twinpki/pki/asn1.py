"""
ASN.1 structures for X.509v3 certificates (RFC 5280) and PKCS#10 requests
(RFC 2986), declared over the asn1crypto.core primitive types.

Only the structures the engine assembles or reads are declared here. Field
names follow the RFC names in snake_case.
"""

from asn1crypto import core


# Object identifiers
OID_ED25519 = "1.3.101.112"
OID_EC_PUBLIC_KEY = "1.2.840.10045.2.1"
OID_ECDSA_SHA256 = "1.2.840.10045.4.3.2"
OID_ECDSA_SHA384 = "1.2.840.10045.4.3.3"
OID_ECDSA_SHA512 = "1.2.840.10045.4.3.4"

OID_BASIC_CONSTRAINTS = "2.5.29.19"
OID_KEY_USAGE = "2.5.29.15"
OID_EXTENDED_KEY_USAGE = "2.5.29.37"
OID_SUBJECT_ALT_NAME = "2.5.29.17"

OID_EXTENSION_REQUEST = "1.2.840.113549.1.9.14"


class AttributeValue(core.Choice):
    """DirectoryString plus the IA5String used by emailAddress"""

    _alternatives = [
        ("printable_string", core.PrintableString),
        ("utf8_string", core.UTF8String),
        ("ia5_string", core.IA5String),
        ("teletex_string", core.TeletexString),
        ("bmp_string", core.BMPString),
        ("universal_string", core.UniversalString),
    ]


class AttributeTypeAndValue(core.Sequence):
    _fields = [
        ("type", core.ObjectIdentifier),
        ("value", AttributeValue),
    ]


class RelativeDistinguishedName(core.SetOf):
    _child_spec = AttributeTypeAndValue


class Name(core.SequenceOf):
    # Name ::= CHOICE { rdnSequence RDNSequence }; the only alternative is
    # untagged, so the RDNSequence encoding is the Name encoding.
    _child_spec = RelativeDistinguishedName


class AlgorithmIdentifier(core.Sequence):
    _fields = [
        ("algorithm", core.ObjectIdentifier),
        ("parameters", core.Any, {"optional": True}),
    ]


class SubjectPublicKeyInfo(core.Sequence):
    _fields = [
        ("algorithm", AlgorithmIdentifier),
        ("subject_public_key", core.OctetBitString),
    ]


class Time(core.Choice):
    _alternatives = [
        ("utc_time", core.UTCTime),
        ("general_time", core.GeneralizedTime),
    ]


class Validity(core.Sequence):
    _fields = [
        ("not_before", Time),
        ("not_after", Time),
    ]


class Extension(core.Sequence):
    _fields = [
        ("extn_id", core.ObjectIdentifier),
        ("critical", core.Boolean, {"default": False}),
        ("extn_value", core.OctetString),
    ]


class Extensions(core.SequenceOf):
    _child_spec = Extension


class TbsCertificate(core.Sequence):
    _fields = [
        ("version", core.Integer, {"explicit": 0, "default": 0}),
        ("serial_number", core.Integer),
        ("signature", AlgorithmIdentifier),
        ("issuer", Name),
        ("validity", Validity),
        ("subject", Name),
        ("subject_public_key_info", SubjectPublicKeyInfo),
        ("issuer_unique_id", core.OctetBitString, {"implicit": 1, "optional": True}),
        ("subject_unique_id", core.OctetBitString, {"implicit": 2, "optional": True}),
        ("extensions", Extensions, {"explicit": 3, "optional": True}),
    ]


class Certificate(core.Sequence):
    _fields = [
        ("tbs_certificate", TbsCertificate),
        ("signature_algorithm", AlgorithmIdentifier),
        ("signature_value", core.OctetBitString),
    ]


# Extension payloads

class BasicConstraints(core.Sequence):
    _fields = [
        ("ca", core.Boolean, {"default": False}),
        ("path_len_constraint", core.Integer, {"optional": True}),
    ]


class KeyUsage(core.BitString):
    # RFC 5280 4.2.1.3; decipherOnly has its own bit
    _map = {
        0: "digitalSignature",
        1: "nonRepudiation",
        2: "keyEncipherment",
        3: "dataEncipherment",
        4: "keyAgreement",
        5: "keyCertSign",
        6: "cRLSign",
        7: "encipherOnly",
        8: "decipherOnly",
    }


class ExtKeyUsageSyntax(core.SequenceOf):
    _child_spec = core.ObjectIdentifier


class GeneralName(core.Choice):
    _alternatives = [
        ("rfc822_name", core.IA5String, {"implicit": 1}),
        ("dns_name", core.IA5String, {"implicit": 2}),
        ("directory_name", Name, {"explicit": 4}),
        ("uniform_resource_identifier", core.IA5String, {"implicit": 6}),
        ("ip_address", core.OctetString, {"implicit": 7}),
        ("registered_id", core.ObjectIdentifier, {"implicit": 8}),
    ]


class GeneralNames(core.SequenceOf):
    _child_spec = GeneralName


# PKCS#10

class SetOfExtensions(core.SetOf):
    _child_spec = Extensions


class CRIAttribute(core.Sequence):
    _fields = [
        ("type", core.ObjectIdentifier),
        ("values", core.Any),
    ]

    _oid_pair = ("type", "values")
    _oid_specs = {
        OID_EXTENSION_REQUEST: SetOfExtensions,
    }


class CRIAttributes(core.SetOf):
    _child_spec = CRIAttribute


class CertificationRequestInfo(core.Sequence):
    _fields = [
        ("version", core.Integer),
        ("subject", Name),
        ("subject_pk_info", SubjectPublicKeyInfo),
        ("attributes", CRIAttributes, {"implicit": 0}),
    ]


class CertificationRequest(core.Sequence):
    _fields = [
        ("certification_request_info", CertificationRequestInfo),
        ("signature_algorithm", AlgorithmIdentifier),
        ("signature", core.OctetBitString),
    ]
