import os
from pathlib import Path
from typing import Callable, Union

from twinpki.core.exceptions import KeyImportFailure, KeyStoreFailure
from twinpki.core.logging import get_logger
from twinpki.pki.keys import KeyAlgorithm, KeyPair

logger = get_logger(__name__)

PRIVATE_KEY_SUFFIX = ".priv.key"
PUBLIC_KEY_SUFFIX = ".pub.key"
CERTIFICATE_SUFFIX = ".crt"
CSR_SUFFIX = ".csr"


class KeyStore:
    """
    Filesystem store for one domain's keys, certificates and CSRs.

    Layout:
        <base>/keys/<name>.priv.key, <name>.pub.key
        <base>/ssl/<name>.crt, <name>.csr
        <base>/ssl/issued/<fingerprint>.crt

    Every artifact is created at most once; an existing file is always
    loaded instead of regenerated.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self.keys_dir = self.base_dir / "keys"
        self.ssl_dir = self.base_dir / "ssl"
        self.issued_dir = self.ssl_dir / "issued"

    def private_key_path(self, name: str) -> Path:
        return self.keys_dir / f"{name}{PRIVATE_KEY_SUFFIX}"

    def public_key_path(self, name: str) -> Path:
        return self.keys_dir / f"{name}{PUBLIC_KEY_SUFFIX}"

    def certificate_path(self, name: str) -> Path:
        return self.ssl_dir / f"{name}{CERTIFICATE_SUFFIX}"

    def csr_path(self, name: str) -> Path:
        return self.ssl_dir / f"{name}{CSR_SUFFIX}"

    def issued_path(self, fingerprint: str) -> Path:
        return self.issued_dir / f"{fingerprint}{CERTIFICATE_SUFFIX}"

    @staticmethod
    def _write_new(path: Path, content: str, mode: int = 0o644) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # 'x' refuses to replace a file created in the meantime
        with open(path, "x") as f:
            f.write(content)
        os.chmod(path, mode)

    def _read_private_key(self, name: str) -> KeyPair:
        private_path = self.private_key_path(name)
        try:
            return KeyPair.from_private_key_pem(private_path.read_text())
        except KeyImportFailure as e:
            logger.error(f"Stored private key {private_path} is unreadable: {e}")
            raise KeyStoreFailure(f"Stored private key {name} is unreadable") from e

    def create_or_load_keys(self, name: str, algorithm: Union[KeyAlgorithm, str] = KeyAlgorithm.ED25519) -> KeyPair:
        private_path = self.private_key_path(name)
        public_path = self.public_key_path(name)

        if private_path.exists():
            key_pair = self._read_private_key(name)
            if not public_path.exists():
                self._write_new(public_path, key_pair.public_key_pem())
                logger.info(f"Re-derived missing public key: {public_path}")
            logger.info(f"Loaded {key_pair.algorithm.value} key pair: {name}")
            return key_pair

        key_pair = KeyPair.generate(algorithm)
        self._write_new(private_path, key_pair.private_key_pem(), mode=0o600)
        if public_path.exists():
            logger.warning(f"Replacing public key without a private key: {public_path}")
            public_path.unlink()
        self._write_new(public_path, key_pair.public_key_pem())
        logger.info(f"Generated {key_pair.algorithm.value} key pair: {name}")
        logger.info(f"Private key: {private_path}")
        return key_pair

    def load_keys(self, name: str) -> KeyPair:
        private_path = self.private_key_path(name)
        if not private_path.exists():
            logger.error(f"Key pair {name} not found under {self.keys_dir}")
            raise FileNotFoundError(f"Key pair {name} not found under {self.keys_dir}")
        return self._read_private_key(name)

    def _create_or_load(self, path: Path, factory: Callable[[], str], what: str) -> str:
        if path.exists():
            logger.info(f"Loaded existing {what}: {path}")
            return path.read_text()

        pem = factory()
        self._write_new(path, pem)
        logger.info(f"Created {what}: {path}")
        return pem

    def create_or_load_certificate(self, name: str, factory: Callable[[], str]) -> str:
        return self._create_or_load(self.certificate_path(name), factory, "certificate")

    def create_or_load_csr(self, name: str, factory: Callable[[], str]) -> str:
        return self._create_or_load(self.csr_path(name), factory, "CSR")

    def create_or_load_issued(self, fingerprint: str, factory: Callable[[], str]) -> str:
        return self._create_or_load(self.issued_path(fingerprint), factory, "issued certificate")

    def load_certificate(self, name: str) -> str:
        path = self.certificate_path(name)
        if not path.exists():
            logger.error(f"Certificate {name} not found under {self.ssl_dir}")
            raise FileNotFoundError(f"Certificate {name} not found under {self.ssl_dir}")
        return path.read_text()
