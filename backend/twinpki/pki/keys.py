"""
Key pairs for the two supported signature families: Ed25519 and ECDSA over
P-256, P-384 and P-521.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from twinpki.core.exceptions import (
    KeyGenerationFailure,
    KeyImportFailure,
    SigningFailure,
)
from twinpki.pki import asn1

PrivateKey = Union[ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey]
PublicKey = Union[ed25519.Ed25519PublicKey, ec.EllipticCurvePublicKey]


class KeyAlgorithm(str, Enum):
    ED25519 = "ed25519"
    ECDSA_P256 = "ecdsa-p256"
    ECDSA_P384 = "ecdsa-p384"
    ECDSA_P521 = "ecdsa-p521"

    @property
    def is_ecdsa(self) -> bool:
        return self is not KeyAlgorithm.ED25519


_CURVES = {
    KeyAlgorithm.ECDSA_P256: ec.SECP256R1,
    KeyAlgorithm.ECDSA_P384: ec.SECP384R1,
    KeyAlgorithm.ECDSA_P521: ec.SECP521R1,
}

_CURVE_NAMES = {curve.name: algorithm for algorithm, curve in _CURVES.items()}

# Signature algorithm used when a key of this family signs
SIGNATURE_OIDS = {
    KeyAlgorithm.ED25519: asn1.OID_ED25519,
    KeyAlgorithm.ECDSA_P256: asn1.OID_ECDSA_SHA256,
    KeyAlgorithm.ECDSA_P384: asn1.OID_ECDSA_SHA384,
    KeyAlgorithm.ECDSA_P521: asn1.OID_ECDSA_SHA512,
}

_HASHES = {
    KeyAlgorithm.ECDSA_P256: hashes.SHA256,
    KeyAlgorithm.ECDSA_P384: hashes.SHA384,
    KeyAlgorithm.ECDSA_P521: hashes.SHA512,
}

# Signature algorithm OID -> digest; None means pure Ed25519
SIGNATURE_HASHES = {
    asn1.OID_ED25519: None,
    asn1.OID_ECDSA_SHA256: hashes.SHA256,
    asn1.OID_ECDSA_SHA384: hashes.SHA384,
    asn1.OID_ECDSA_SHA512: hashes.SHA512,
}


def algorithm_for_key(key: Union[PrivateKey, PublicKey]) -> KeyAlgorithm:
    """Identify the algorithm family of a cryptography key object"""
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey)):
        return KeyAlgorithm.ED25519
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        algorithm = _CURVE_NAMES.get(key.curve.name)
        if algorithm is None:
            raise KeyImportFailure(f"Unsupported elliptic curve: {key.curve.name}")
        return algorithm
    raise KeyImportFailure(f"Unsupported key type: {type(key).__name__}")


def _check_algorithm(found: KeyAlgorithm, expected: Optional[KeyAlgorithm]) -> None:
    if expected is not None and KeyAlgorithm(expected) is not found:
        raise KeyImportFailure(f"Key algorithm mismatch: expected {KeyAlgorithm(expected).value}, got {found.value}")


@dataclass(frozen=True)
class KeyPair:
    """
    An algorithm-tagged key pair. ``private_key`` is None for key pairs built
    from a public key alone, such as the key embedded in a CSR.
    """

    algorithm: KeyAlgorithm
    public_key: PublicKey
    private_key: Optional[PrivateKey] = None

    @classmethod
    def generate(cls, algorithm: Union[KeyAlgorithm, str] = KeyAlgorithm.ED25519) -> "KeyPair":
        try:
            algorithm = KeyAlgorithm(algorithm)
        except ValueError as e:
            raise KeyGenerationFailure(f"Unsupported key algorithm: {algorithm}") from e

        try:
            if algorithm is KeyAlgorithm.ED25519:
                private_key = ed25519.Ed25519PrivateKey.generate()
            else:
                private_key = ec.generate_private_key(_CURVES[algorithm]())
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyGenerationFailure(f"Failed to generate {algorithm.value} key pair: {e}") from e

        return cls(algorithm=algorithm, public_key=private_key.public_key(), private_key=private_key)

    @classmethod
    def from_private_key(cls, private_key: PrivateKey) -> "KeyPair":
        return cls(
            algorithm=algorithm_for_key(private_key),
            public_key=private_key.public_key(),
            private_key=private_key,
        )

    @classmethod
    def from_public_key(cls, public_key: PublicKey) -> "KeyPair":
        return cls(algorithm=algorithm_for_key(public_key), public_key=public_key)

    @classmethod
    def from_private_key_pem(
        cls,
        pem: Union[str, bytes],
        algorithm: Optional[Union[KeyAlgorithm, str]] = None,
    ) -> "KeyPair":
        """Import a PKCS#8 or EC PRIVATE KEY PEM"""
        if isinstance(pem, str):
            pem = pem.encode()
        try:
            private_key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportFailure(f"Failed to import private key: {e}") from e

        key_pair = cls.from_private_key(private_key)
        _check_algorithm(key_pair.algorithm, algorithm)
        return key_pair

    @classmethod
    def from_public_key_pem(
        cls,
        pem: Union[str, bytes],
        algorithm: Optional[Union[KeyAlgorithm, str]] = None,
    ) -> "KeyPair":
        if isinstance(pem, str):
            pem = pem.encode()
        try:
            public_key = serialization.load_pem_public_key(pem)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportFailure(f"Failed to import public key: {e}") from e

        key_pair = cls.from_public_key(public_key)
        _check_algorithm(key_pair.algorithm, algorithm)
        return key_pair

    @classmethod
    def from_spki_der(cls, der: bytes) -> "KeyPair":
        try:
            public_key = serialization.load_der_public_key(der)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportFailure(f"Failed to import subject public key: {e}") from e
        return cls.from_public_key(public_key)

    @property
    def can_sign(self) -> bool:
        return self.private_key is not None

    @property
    def signature_oid(self) -> str:
        return SIGNATURE_OIDS[self.algorithm]

    def private_key_pem(self) -> str:
        """PKCS#8 PRIVATE KEY for Ed25519, EC PRIVATE KEY for ECDSA"""
        if self.private_key is None:
            raise KeyImportFailure("Key pair has no private key")
        key_format = (
            serialization.PrivateFormat.TraditionalOpenSSL
            if self.algorithm.is_ecdsa
            else serialization.PrivateFormat.PKCS8
        )
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=key_format,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()

    def public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    def spki_der(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def sign(self, data: bytes) -> bytes:
        """
        Sign with the algorithm implied by the key family: pure Ed25519, or
        ECDSA with SHA-256/384/512 for P-256/384/521 (DER signature value).
        """
        if self.private_key is None:
            raise SigningFailure("Key pair has no private key to sign with")
        try:
            if self.algorithm is KeyAlgorithm.ED25519:
                return self.private_key.sign(data)
            return self.private_key.sign(data, ec.ECDSA(_HASHES[self.algorithm]()))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningFailure(f"Failed to sign with {self.algorithm.value} key: {e}") from e

    def verify(self, signature: bytes, data: bytes, signature_oid: Optional[str] = None) -> bool:
        """
        Check a signature made by this key. ``signature_oid`` selects the
        digest for ECDSA; it defaults to the one matching the key's curve.
        A signature algorithm from the other family never verifies.
        """
        if signature_oid is None:
            signature_oid = self.signature_oid
        if signature_oid not in SIGNATURE_HASHES:
            return False

        digest = SIGNATURE_HASHES[signature_oid]
        try:
            if self.algorithm is KeyAlgorithm.ED25519:
                if digest is not None:
                    return False
                self.public_key.verify(signature, data)
            else:
                if digest is None:
                    return False
                self.public_key.verify(signature, data, ec.ECDSA(digest()))
        except InvalidSignature:
            return False
        return True
