import hashlib
from pathlib import Path
from typing import Optional, Tuple, Union

from twinpki.core.config import settings
from twinpki.core.exceptions import KeyImportFailure, KeyStoreFailure, ParseFailure, VerificationFailure
from twinpki.core.logging import get_logger
from twinpki.pki import asn1
from twinpki.pki.extensions import leaf_profile
from twinpki.pki.keys import KeyPair
from twinpki.pki.parser import parse_certificate, parse_csr, verify_csr
from twinpki.schemas.provision import Domain
from twinpki.services.bootstrap_service import ROOT_CA
from twinpki.services.ca_service import CAService, ca_service
from twinpki.services.key_store import KeyStore

logger = get_logger(__name__)


class DomainNotReady(FileNotFoundError):
    """The domain has no authority on disk to issue from"""


def spki_fingerprint(csr_pem: str) -> str:
    """SHA-256 over the DER SubjectPublicKeyInfo of a CSR, hex encoded"""
    csr = parse_csr(csr_pem)
    return hashlib.sha256(csr.public_key.spki_der()).hexdigest()


class ProvisionService:
    """
    Issues client certificates from a domain root CA for CSRs submitted by
    devices. A device is identified by its public key: submitting another CSR
    for the same key returns the certificate issued the first time.
    """

    def __init__(self, secure_root: Union[str, Path, None] = None, ca: Optional[CAService] = None):
        self.secure_root = Path(secure_root or settings.SECURE_ROOT)
        self.ca = ca or ca_service

    def _authority_store(self, domain: Union[Domain, str]) -> KeyStore:
        domain = Domain(domain)
        if not domain.has_authority:
            raise DomainNotReady(f"Domain {domain.value} does not issue certificates")
        store = KeyStore(self.secure_root / domain.value)
        if not store.certificate_path(ROOT_CA).exists() or not store.private_key_path(ROOT_CA).exists():
            logger.error(f"Domain {domain.value} not bootstrapped under {store.base_dir}")
            raise DomainNotReady(f"Domain {domain.value} not bootstrapped. Run bootstrap first.")
        return store

    @staticmethod
    def _load_root(store: KeyStore) -> Tuple[KeyPair, asn1.Name]:
        """Root key pair and the root certificate's encoded subject"""
        root_key_pair = store.load_keys(ROOT_CA)
        try:
            root_certificate = parse_certificate(store.load_certificate(ROOT_CA))
        except (ParseFailure, KeyImportFailure) as e:
            logger.error(f"Stored root CA certificate under {store.ssl_dir} is unreadable: {e}")
            raise KeyStoreFailure("Stored root CA certificate is unreadable") from e
        return root_key_pair, root_certificate.subject_name

    def get_ca_certificate(self, domain: Union[Domain, str]) -> str:
        """Root CA certificate of the domain in PEM format"""
        return self._authority_store(domain).load_certificate(ROOT_CA)

    def issue_client_certificate(self, domain: Union[Domain, str], csr_pem: str) -> str:
        """
        Sign a client CSR with the domain root CA.

        Raises:
            DomainNotReady: the domain has no bootstrapped authority
            ParseFailure, KeyImportFailure: the CSR cannot be read
            VerificationFailure: the CSR signature does not verify
            KeyStoreFailure: the stored root key or certificate is unreadable
        """
        store = self._authority_store(domain)
        # A stored certificate is only handed to the holder of the key
        if not verify_csr(csr_pem):
            logger.error("Rejected CSR with invalid signature")
            raise VerificationFailure("Invalid CSR signature")
        fingerprint = spki_fingerprint(csr_pem)

        def issue() -> str:
            root_key_pair, root_name = self._load_root(store)
            return self.ca.sign_csr(
                csr_pem,
                issuer_key_pair=root_key_pair,
                issuer_subject=root_name,
                validity_days=settings.CLIENT_CERT_VALIDITY_DAYS,
                extensions=leaf_profile(),
            )

        certificate = store.create_or_load_issued(fingerprint, issue)
        logger.info(f"Client certificate for {fingerprint[:16]} served from {Domain(domain).value}")
        return certificate


provision_service = ProvisionService()
