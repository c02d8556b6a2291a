from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Key material
    SECURE_ROOT: str = "/secure"
    KEY_ALGORITHM: str = "ed25519"  # ed25519 | ecdsa-p256 | ecdsa-p384 | ecdsa-p521

    # Authority validity
    ROOT_CA_VALIDITY_YEARS: int = 20
    AUTHORITY_CERT_VALIDITY_DAYS: int = 7300  # server/client certs of each domain
    CLIENT_CERT_VALIDITY_DAYS: int = 365  # certificates issued over the socket
    CSR_VALIDITY_YEARS: int = 20

    # Subject defaults shared by every domain
    SUBJECT_COUNTRY: str = "xyz"
    SUBJECT_STATE: str = "wator"
    SUBJECT_LOCALITY: str = "wator"
    SUBJECT_ORGANIZATION: str = "otmc"
    SUBJECT_ORGANIZATIONAL_UNIT: str = "dts"

    # subjectAltName of domain server certificates
    SERVER_SAN_DNS: List[str] = ["localhost"]
    SERVER_SAN_IPS: List[str] = ["127.0.0.1"]

    # Provisioning service
    PROJECT_NAME: str = "twinpki"
    SOCKET_PATH: str = "/dev/shm/otmc.dts.provision.factor.sock"
    BOOTSTRAP_ON_STARTUP: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # empty: console only
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
