"""
Error taxonomy for key, certificate and CSR operations.

Every public operation either returns a complete artifact or raises exactly
one of these. The underlying cause is attached with ``raise ... from``.
"""


class ProvisionError(Exception):
    """Base class for classified provisioning failures"""

    @property
    def cause(self):
        return self.__cause__


class KeyGenerationFailure(ProvisionError):
    pass


class KeyImportFailure(ProvisionError):
    """Malformed key PEM, unsupported key type or algorithm mismatch"""


class EncodingFailure(ProvisionError):
    """Input that cannot be encoded: bad names, extension config, SAN types"""


class SigningFailure(ProvisionError):
    pass


class ParseFailure(ProvisionError):
    """Malformed PEM, base64 or DER"""


class VerificationFailure(ProvisionError):
    """Well-formed artifact whose signature does not verify"""


class KeyStoreFailure(ProvisionError):
    """Stored key or certificate of an authority cannot be read back"""


# Failures caused by the caller's input rather than by this process
CLIENT_ERRORS = (KeyImportFailure, EncodingFailure, ParseFailure, VerificationFailure)


__all__ = [
    "ProvisionError",
    "KeyGenerationFailure",
    "KeyImportFailure",
    "EncodingFailure",
    "SigningFailure",
    "ParseFailure",
    "VerificationFailure",
    "KeyStoreFailure",
    "CLIENT_ERRORS",
]
