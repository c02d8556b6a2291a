import pytest

from twinpki.pki.keys import KeyAlgorithm, KeyPair
from twinpki.services.bootstrap_service import BootstrapService
from twinpki.services.ca_service import CAService
from twinpki.services.provision_service import ProvisionService

ROOT_SUBJECT = {
    "C": "JP",
    "ST": "Tokyo",
    "L": "Minato",
    "O": "otmc",
    "OU": "dts",
    "CN": "Test Root CA",
}

DEVICE_SUBJECT = {
    "C": "JP",
    "O": "otmc",
    "CN": "device-001",
}


@pytest.fixture
def root_subject():
    return dict(ROOT_SUBJECT)


@pytest.fixture
def device_subject():
    return dict(DEVICE_SUBJECT)


@pytest.fixture
def ed25519_key():
    return KeyPair.generate(KeyAlgorithm.ED25519)


@pytest.fixture
def p256_key():
    return KeyPair.generate(KeyAlgorithm.ECDSA_P256)


@pytest.fixture
def ca():
    return CAService(KeyAlgorithm.ED25519)


@pytest.fixture
def ed25519_root(ca, root_subject):
    return ca.generate_root_ca(root_subject, validity_years=10)


@pytest.fixture
def bootstrap_service(tmp_path, ca):
    return BootstrapService(tmp_path, ca)


@pytest.fixture
def provision(tmp_path, ca):
    return ProvisionService(tmp_path, ca)
