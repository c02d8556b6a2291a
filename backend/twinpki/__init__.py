"""Device identity provisioning: X.509v3 certificates and PKCS#10 requests over raw DER."""

__version__ = "1.0.0"
