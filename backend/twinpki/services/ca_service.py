from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union

from twinpki.core.config import settings
from twinpki.core.exceptions import ProvisionError, VerificationFailure
from twinpki.core.logging import get_logger
from twinpki.pki.builder import ExtensionsInput, NameInput, build_certificate, build_csr
from twinpki.pki.extensions import intermediate_ca_profile, leaf_profile, root_ca_profile
from twinpki.pki.keys import KeyAlgorithm, KeyPair
from twinpki.pki.parser import parse_certificate, parse_csr
from twinpki.pki.validity import utc_now, years_to_days

logger = get_logger(__name__)

# Re-exported for callers that build their own issuance
ROOT_CA_PROFILE = root_ca_profile()
INTERMEDIATE_CA_PROFILE = intermediate_ca_profile()
LEAF_PROFILE = leaf_profile()

_PROBE = b"twinpki key pair probe"


class IssuedCertificate(NamedTuple):
    key_pair: KeyPair
    certificate: str


class IssuedCSR(NamedTuple):
    key_pair: KeyPair
    csr: str


def _common_name(subject: NameInput) -> str:
    fields = getattr(subject, "fields", subject)
    if isinstance(fields, Mapping):
        for key, value in fields.items():
            if str(key).upper() == "CN":
                return value
    return "<no CN>"


class CAService:
    """
    Certificate authority workflow over the PKI engine. Holds only the
    default key algorithm; keys and certificates are passed in and returned.
    """

    def __init__(self, algorithm: Union[KeyAlgorithm, str, None] = None):
        self.algorithm = KeyAlgorithm(algorithm or settings.KEY_ALGORITHM)

    def _key_pair(self, key_pair: Optional[KeyPair], algorithm: Optional[KeyAlgorithm] = None) -> KeyPair:
        if key_pair is not None:
            return key_pair
        return KeyPair.generate(algorithm or self.algorithm)

    def generate_root_ca(
        self,
        subject: Mapping[str, str],
        validity_years: int = 10,
        key_pair: Optional[KeyPair] = None,
    ) -> IssuedCertificate:
        """
        Self-signed root: subject equals issuer, basicConstraints CA with
        pathLenConstraint 1, keyUsage keyCertSign and cRLSign.
        """
        key_pair = self._key_pair(key_pair)
        not_before = utc_now()
        try:
            certificate = build_certificate(
                subject_key=key_pair,
                issuer_key=key_pair,
                subject=subject,
                issuer=subject,
                validity_days=years_to_days(validity_years, not_before),
                extensions=ROOT_CA_PROFILE,
                not_before=not_before,
            )
        except ProvisionError as e:
            logger.error(f"Failed to generate root CA {_common_name(subject)}: {e}")
            raise

        logger.info(f"Generated {key_pair.algorithm.value} root CA: {_common_name(subject)}")
        return IssuedCertificate(key_pair, certificate)

    def generate_intermediate_ca(
        self,
        subject: Mapping[str, str],
        validity_years: int,
        issuer_key_pair: KeyPair,
        issuer_cert_pem: str,
        key_pair: Optional[KeyPair] = None,
    ) -> IssuedCertificate:
        """CA certificate with pathLenConstraint 0, chained to the issuer"""
        key_pair = self._key_pair(key_pair, issuer_key_pair.algorithm)
        issuer = parse_certificate(issuer_cert_pem)
        not_before = utc_now()
        try:
            certificate = build_certificate(
                subject_key=key_pair,
                issuer_key=issuer_key_pair,
                subject=subject,
                issuer=issuer.subject_name,
                validity_days=years_to_days(validity_years, not_before),
                extensions=INTERMEDIATE_CA_PROFILE,
                not_before=not_before,
            )
        except ProvisionError as e:
            logger.error(f"Failed to generate intermediate CA {_common_name(subject)}: {e}")
            raise

        logger.info(f"Generated intermediate CA {_common_name(subject)} issued by {issuer.subject.string}")
        return IssuedCertificate(key_pair, certificate)

    def generate_leaf_certificate(
        self,
        subject: Mapping[str, str],
        validity_days: int,
        issuer_key_pair: KeyPair,
        issuer_cert_pem: str,
        subject_key_pair: Optional[KeyPair] = None,
        subject_alt_names: Optional[List[Dict[str, Any]]] = None,
    ) -> IssuedCertificate:
        """
        End-entity certificate. The issuer name is the issuer certificate's
        subject, copied byte for byte; a new subject key follows the issuer's
        algorithm.
        """
        subject_key_pair = self._key_pair(subject_key_pair, issuer_key_pair.algorithm)
        issuer = parse_certificate(issuer_cert_pem)
        try:
            certificate = build_certificate(
                subject_key=subject_key_pair,
                issuer_key=issuer_key_pair,
                subject=subject,
                issuer=issuer.subject_name,
                validity_days=validity_days,
                extensions=leaf_profile(subject_alt_names),
            )
        except ProvisionError as e:
            logger.error(f"Failed to generate certificate {_common_name(subject)}: {e}")
            raise

        logger.info(f"Generated certificate {_common_name(subject)} issued by {issuer.subject.string}")
        return IssuedCertificate(subject_key_pair, certificate)

    def generate_csr(
        self,
        subject: Mapping[str, str],
        validity_years: int = 10,
        subject_key_pair: Optional[KeyPair] = None,
        extensions: ExtensionsInput = None,
    ) -> IssuedCSR:
        subject_key_pair = self._key_pair(subject_key_pair)
        csr = build_csr(subject_key_pair, subject, validity_years=validity_years, extensions=extensions)
        logger.info(f"Generated {subject_key_pair.algorithm.value} CSR: {_common_name(subject)}")
        return IssuedCSR(subject_key_pair, csr)

    def sign_csr(
        self,
        csr_pem: str,
        issuer_key_pair: KeyPair,
        issuer_subject: NameInput,
        validity_days: int = 365,
        extensions: ExtensionsInput = None,
    ) -> str:
        """
        Issue a certificate for a CSR. The request signature is checked
        first; subject and public key come from the request. Extensions the
        request asks for are not copied: only ``extensions`` is used, and
        None issues a certificate without extensions.

        Raises:
            VerificationFailure: the CSR self-signature does not verify
        """
        csr = parse_csr(csr_pem)
        if not csr.public_key.verify(csr.signature, csr.info_bytes, csr.signature_algorithm):
            logger.error(f"Invalid CSR signature: {csr.subject.string}")
            raise VerificationFailure("Invalid CSR signature")

        try:
            certificate = build_certificate(
                subject_key=csr.public_key,
                issuer_key=issuer_key_pair,
                subject=csr.subject_name,
                issuer=issuer_subject,
                validity_days=validity_days,
                extensions=extensions,
            )
        except ProvisionError as e:
            logger.error(f"Failed to sign CSR {csr.subject.string}: {e}")
            raise

        logger.info(f"Signed CSR: {csr.subject.string}")
        return certificate

    def verify_key_pair(self, key_pair: KeyPair) -> bool:
        """Sign and verify a probe message"""
        if not key_pair.can_sign:
            return False
        return key_pair.verify(key_pair.sign(_PROBE), _PROBE)


ca_service = CAService()
