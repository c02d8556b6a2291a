from pathlib import Path
from typing import Dict, NamedTuple, Optional, Union

from twinpki.core.config import settings
from twinpki.core.logging import get_logger
from twinpki.pki.keys import KeyPair
from twinpki.schemas.provision import Domain
from twinpki.services.ca_service import CAService, ca_service
from twinpki.services.key_store import KeyStore

logger = get_logger(__name__)

ROOT_CA = "rootca"
SERVER = "server"
CLIENT = "client"

_DOMAIN_TITLES = {
    Domain.FACTORY: "Factory",
    Domain.CLUSTER: "Cluster",
    Domain.BUDDY: "Buddy",
}


class DomainAuthority(NamedTuple):
    domain: Domain
    root_key_pair: KeyPair
    root_certificate: str
    server_certificate: str
    client_certificate: str


def domain_subject(common_name: str) -> Dict[str, str]:
    return {
        "C": settings.SUBJECT_COUNTRY,
        "ST": settings.SUBJECT_STATE,
        "L": settings.SUBJECT_LOCALITY,
        "O": settings.SUBJECT_ORGANIZATION,
        "OU": settings.SUBJECT_ORGANIZATIONAL_UNIT,
        "CN": common_name,
    }


def server_alt_names() -> list:
    names = [{"type": "dns", "value": name} for name in settings.SERVER_SAN_DNS]
    names += [{"type": "ip", "value": address} for address in settings.SERVER_SAN_IPS]
    return names


class BootstrapService:
    """
    Stands up the key material of each provisioning domain under
    <secure_root>/<domain>. Every step is create-if-absent, so running a
    bootstrap again reuses what is already on disk.
    """

    def __init__(self, secure_root: Union[str, Path, None] = None, ca: Optional[CAService] = None):
        self.secure_root = Path(secure_root or settings.SECURE_ROOT)
        self.ca = ca or ca_service

    def key_store(self, domain: Union[Domain, str]) -> KeyStore:
        return KeyStore(self.secure_root / Domain(domain).value)

    def bootstrap_authority(self, domain: Union[Domain, str]) -> DomainAuthority:
        """Root CA plus server and client certificates issued by it"""
        domain = Domain(domain)
        if not domain.has_authority:
            raise ValueError(f"Domain {domain.value} has no certificate authority")

        title = _DOMAIN_TITLES[domain]
        store = self.key_store(domain)
        algorithm = self.ca.algorithm
        logger.info(f"Bootstrapping {domain.value} authority under {store.base_dir}")

        root_key_pair = store.create_or_load_keys(ROOT_CA, algorithm)
        root_certificate = store.create_or_load_certificate(
            ROOT_CA,
            lambda: self.ca.generate_root_ca(
                domain_subject(f"Digital Twin Root CA for {title} Provisioning"),
                validity_years=settings.ROOT_CA_VALIDITY_YEARS,
                key_pair=root_key_pair,
            ).certificate,
        )

        server_key_pair = store.create_or_load_keys(SERVER, algorithm)
        server_certificate = store.create_or_load_certificate(
            SERVER,
            lambda: self.ca.generate_leaf_certificate(
                domain_subject(f"Digital Twin Server CA for {title} Provisioning"),
                validity_days=settings.AUTHORITY_CERT_VALIDITY_DAYS,
                issuer_key_pair=root_key_pair,
                issuer_cert_pem=root_certificate,
                subject_key_pair=server_key_pair,
                subject_alt_names=server_alt_names(),
            ).certificate,
        )

        client_key_pair = store.create_or_load_keys(CLIENT, algorithm)
        client_certificate = store.create_or_load_certificate(
            CLIENT,
            lambda: self.ca.generate_leaf_certificate(
                domain_subject(f"Digital Twin Client CA for {title} Provisioning"),
                validity_days=settings.AUTHORITY_CERT_VALIDITY_DAYS,
                issuer_key_pair=root_key_pair,
                issuer_cert_pem=root_certificate,
                subject_key_pair=client_key_pair,
            ).certificate,
        )

        logger.info(f"{domain.value} authority ready")
        return DomainAuthority(
            domain=domain,
            root_key_pair=root_key_pair,
            root_certificate=root_certificate,
            server_certificate=server_certificate,
            client_certificate=client_certificate,
        )

    def bootstrap_client_request(self, domain: Union[Domain, str] = Domain.CLOUD) -> str:
        """Client key pair and the CSR to submit to a provisioning authority"""
        domain = Domain(domain)
        store = self.key_store(domain)
        client_key_pair = store.create_or_load_keys(CLIENT, self.ca.algorithm)
        return store.create_or_load_csr(
            CLIENT,
            lambda: self.ca.generate_csr(
                domain_subject("Digital Twin Client Certificate for Cloud Connection"),
                validity_years=settings.CSR_VALIDITY_YEARS,
                subject_key_pair=client_key_pair,
            ).csr,
        )

    def bootstrap(self, domain: Union[Domain, str]) -> Union[DomainAuthority, str]:
        domain = Domain(domain)
        if domain.has_authority:
            return self.bootstrap_authority(domain)
        return self.bootstrap_client_request(domain)

    def bootstrap_all(self) -> Dict[Domain, Union[DomainAuthority, str]]:
        return {domain: self.bootstrap(domain) for domain in Domain}
