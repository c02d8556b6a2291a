"""
X.509v3 extension codec for basicConstraints, keyUsage, extendedKeyUsage and
subjectAltName.
"""

import ipaddress
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from twinpki.core.exceptions import EncodingFailure
from twinpki.pki import asn1
from twinpki.schemas.extensions import ExtensionsConfig

EXTENDED_KEY_USAGE_OIDS = {
    "serverAuth": "1.3.6.1.5.5.7.3.1",
    "clientAuth": "1.3.6.1.5.5.7.3.2",
    "codeSigning": "1.3.6.1.5.5.7.3.3",
    "emailProtection": "1.3.6.1.5.5.7.3.4",
    "timeStamping": "1.3.6.1.5.5.7.3.8",
    "ocspSigning": "1.3.6.1.5.5.7.3.9",
}

EXTENDED_KEY_USAGE_NAMES = {oid: name for name, oid in EXTENDED_KEY_USAGE_OIDS.items()}

_GENERAL_NAME_ALTERNATIVES = {
    "dns": "dns_name",
    "ip": "ip_address",
    "email": "rfc822_name",
}

_GENERAL_NAME_TYPES = {alternative: name_type for name_type, alternative in _GENERAL_NAME_ALTERNATIVES.items()}


def as_extensions_config(value: Union[ExtensionsConfig, Mapping[str, Any], None]) -> ExtensionsConfig:
    """Validate a mapping into an ExtensionsConfig; None gives an empty config"""
    if value is None:
        return ExtensionsConfig()
    if isinstance(value, ExtensionsConfig):
        return value
    try:
        return ExtensionsConfig.model_validate(value)
    except ValidationError as e:
        raise EncodingFailure(f"Invalid extensions configuration: {e}") from e


def ip_to_bytes(address: str) -> bytes:
    """4 bytes for an IPv4 address, 16 for IPv6"""
    try:
        return ipaddress.ip_address(address).packed
    except ValueError as e:
        raise EncodingFailure(f"Invalid IP address: {address}") from e


def bytes_to_ip(data: bytes) -> str:
    if len(data) not in (4, 16):
        raise ValueError(f"iPAddress must be 4 or 16 bytes, got {len(data)}")
    return str(ipaddress.ip_address(data))


def _extension(oid: str, critical: bool, inner: asn1.core.Asn1Value) -> asn1.Extension:
    # critical is DEFAULT FALSE; asn1crypto drops it from the encoding when false.
    # force builds the contents of payloads whose fields are all absent, e.g. an
    # end-entity basicConstraints that encodes as an empty SEQUENCE.
    return asn1.Extension({
        "extn_id": oid,
        "critical": critical,
        "extn_value": inner.dump(force=True),
    })


def encode_extensions(config: Union[ExtensionsConfig, Mapping[str, Any], None]) -> asn1.Extensions:
    """
    Encode the configured extensions in the order basicConstraints, keyUsage,
    extendedKeyUsage, subjectAltName. The result is empty when nothing is
    configured.

    Raises:
        EncodingFailure: invalid configuration, unsupported SAN type,
            unknown usage name or malformed IP address
    """
    config = as_extensions_config(config)
    extensions = []

    basic_constraints = config.basic_constraints
    if basic_constraints is not None:
        value = {}
        if basic_constraints.is_ca:
            value["ca"] = True
        if basic_constraints.path_len_constraint is not None:
            value["path_len_constraint"] = basic_constraints.path_len_constraint
        extensions.append(_extension(
            asn1.OID_BASIC_CONSTRAINTS,
            basic_constraints.critical,
            asn1.BasicConstraints(value),
        ))

    key_usage = config.key_usage
    if key_usage is not None:
        if not key_usage.usage:
            raise EncodingFailure("keyUsage requires at least one usage")
        extensions.append(_extension(
            asn1.OID_KEY_USAGE,
            key_usage.critical,
            asn1.KeyUsage(set(key_usage.usage)),
        ))

    extended_key_usage = config.extended_key_usage
    if extended_key_usage is not None:
        # Fixed order keeps the encoding deterministic for a given set
        oids = [
            oid for name, oid in EXTENDED_KEY_USAGE_OIDS.items()
            if name in extended_key_usage.usage
        ]
        if not oids:
            raise EncodingFailure("extendedKeyUsage requires at least one usage")
        extensions.append(_extension(
            asn1.OID_EXTENDED_KEY_USAGE,
            extended_key_usage.critical,
            asn1.ExtKeyUsageSyntax(oids),
        ))

    subject_alt_name = config.subject_alt_name
    if subject_alt_name is not None:
        general_names = []
        for entry in subject_alt_name.names:
            alternative = _GENERAL_NAME_ALTERNATIVES.get(entry.type)
            if alternative is None:
                raise EncodingFailure(f"Unsupported subjectAltName type: {entry.type}")
            value = ip_to_bytes(entry.value) if entry.type == "ip" else entry.value
            try:
                general_names.append(asn1.GeneralName(name=alternative, value=value))
            except (ValueError, TypeError) as e:
                raise EncodingFailure(f"Cannot encode subjectAltName {entry.type}:{entry.value}: {e}") from e
        extensions.append(_extension(
            asn1.OID_SUBJECT_ALT_NAME,
            subject_alt_name.critical,
            asn1.GeneralNames(general_names),
        ))

    return asn1.Extensions(extensions)


def _decode_general_names(data: bytes) -> list:
    names = []
    for general_name in asn1.GeneralNames.load(data):
        name_type = _GENERAL_NAME_TYPES.get(general_name.name)
        if name_type is None:
            continue
        value = general_name.chosen.native
        if name_type == "ip":
            value = bytes_to_ip(value)
        names.append({"type": name_type, "value": value})
    return names


def decode_extensions(extensions: Optional[asn1.Extensions]) -> ExtensionsConfig:
    """
    Read the supported extensions back into an ExtensionsConfig. Extensions
    with other OIDs, and usages or names with no configuration equivalent,
    are skipped.

    Malformed extension payloads raise ValueError from asn1crypto; callers
    classify it.
    """
    decoded = {}
    # An absent OPTIONAL field reads back as asn1crypto's Void
    if extensions is None or isinstance(extensions, asn1.core.Void):
        return ExtensionsConfig()

    for extension in extensions:
        oid = extension["extn_id"].dotted
        critical = bool(extension["critical"].native)
        data = extension["extn_value"].native

        if oid == asn1.OID_BASIC_CONSTRAINTS:
            basic_constraints = asn1.BasicConstraints.load(data)
            decoded["basic_constraints"] = {
                "critical": critical,
                "is_ca": bool(basic_constraints["ca"].native),
                "path_len_constraint": basic_constraints["path_len_constraint"].native,
            }
        elif oid == asn1.OID_KEY_USAGE:
            usage = asn1.KeyUsage.load(data).native
            if usage:
                decoded["key_usage"] = {"critical": critical, "usage": usage}
        elif oid == asn1.OID_EXTENDED_KEY_USAGE:
            usage = {
                EXTENDED_KEY_USAGE_NAMES[purpose.dotted]
                for purpose in asn1.ExtKeyUsageSyntax.load(data)
                if purpose.dotted in EXTENDED_KEY_USAGE_NAMES
            }
            if usage:
                decoded["extended_key_usage"] = {"critical": critical, "usage": usage}
        elif oid == asn1.OID_SUBJECT_ALT_NAME:
            names = _decode_general_names(data)
            if names:
                decoded["subject_alt_name"] = {"critical": critical, "names": names}

    return ExtensionsConfig.model_validate(decoded)


# Standard profiles

def root_ca_profile() -> ExtensionsConfig:
    return ExtensionsConfig.model_validate({
        "basicConstraints": {"critical": True, "isCA": True, "pathLenConstraint": 1},
        "keyUsage": {"critical": True, "usage": {"keyCertSign", "cRLSign"}},
    })


def intermediate_ca_profile() -> ExtensionsConfig:
    return ExtensionsConfig.model_validate({
        "basicConstraints": {"critical": True, "isCA": True, "pathLenConstraint": 0},
        "keyUsage": {"critical": True, "usage": {"keyCertSign", "cRLSign"}},
    })


def leaf_profile(subject_alt_names: Optional[list] = None) -> ExtensionsConfig:
    """
    End-entity profile. ``subject_alt_names`` is a list of {type, value}
    entries (dns, ip or email); an unsupported type raises EncodingFailure.
    """
    config = {
        "basicConstraints": {"critical": True, "isCA": False},
        "keyUsage": {
            "critical": True,
            "usage": {"digitalSignature", "keyEncipherment", "keyAgreement"},
        },
        "extendedKeyUsage": {"critical": True, "usage": {"serverAuth", "clientAuth"}},
    }
    if subject_alt_names:
        config["subjectAltName"] = {"critical": False, "names": list(subject_alt_names)}
    return as_extensions_config(config)
