"""Console entry-points for the twinpki provisioning tools."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from twinpki.core.exceptions import ProvisionError
from twinpki.pki.parser import parse_certificate, parse_csr, verify_certificate, verify_csr
from twinpki.pki.pem import CERTIFICATE, CERTIFICATE_REQUEST, is_pem
from twinpki.schemas.provision import Domain
from twinpki.services.bootstrap_service import BootstrapService
from twinpki.services.provision_service import ProvisionService

app = typer.Typer(help="Device identity provisioning: domain authorities, CSR signing, inspection")


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------- #
# bootstrap
# ---------------------------------------------------------------------- #
@app.command()
def bootstrap(
    domain: Optional[Domain] = typer.Argument(None, help="Domain to bootstrap"),
    all_domains: bool = typer.Option(False, "--all", help="Bootstrap every domain"),
    secure_root: Optional[Path] = typer.Option(None, help="Overrides SECURE_ROOT"),
) -> None:
    if domain is None and not all_domains:
        _fail("Give a DOMAIN or --all")

    service = BootstrapService(secure_root)
    domains = list(Domain) if all_domains else [domain]
    try:
        for item in domains:
            service.bootstrap(item)
            typer.echo(f"{item.value}: ready under {service.key_store(item).base_dir}")
    except ProvisionError as e:
        _fail(f"Bootstrap failed: {e}")


# ---------------------------------------------------------------------- #
# serve
# ---------------------------------------------------------------------- #
@app.command()
def serve() -> None:
    """Run the provisioning service on SOCKET_PATH"""
    from twinpki.main import run

    run()


# ---------------------------------------------------------------------- #
# sign-csr
# ---------------------------------------------------------------------- #
@app.command("sign-csr")
def sign_csr(
    domain: Domain = typer.Argument(...),
    csr_file: Path = typer.Argument(..., exists=True, readable=True),
    secure_root: Optional[Path] = typer.Option(None, help="Overrides SECURE_ROOT"),
    out: Optional[Path] = typer.Option(None, help="Write certificate to file"),
) -> None:
    service = ProvisionService(secure_root)
    try:
        certificate = service.issue_client_certificate(domain, csr_file.read_text())
    except FileNotFoundError as e:
        _fail(str(e))
    except ProvisionError as e:
        _fail(f"Cannot sign {csr_file}: {e}")

    if out:
        out.write_text(certificate)
        typer.echo(f"Wrote certificate to {out}")
    else:
        typer.echo(certificate, nl=False)


# ---------------------------------------------------------------------- #
# inspect
# ---------------------------------------------------------------------- #
def _extensions_json(extensions) -> dict:
    return extensions.model_dump(mode="json", by_alias=True, exclude_none=True)


@app.command()
def inspect(file: Path = typer.Argument(..., exists=True, readable=True)) -> None:
    """Print a certificate or CSR as JSON"""
    pem = file.read_text()
    try:
        if is_pem(pem, CERTIFICATE):
            cert = parse_certificate(pem)
            summary = {
                "type": "certificate",
                "serial_number": f"{cert.serial_number:x}",
                "subject": cert.subject.string,
                "issuer": cert.issuer.string,
                "not_before": cert.not_before.isoformat(),
                "not_after": cert.not_after.isoformat(),
                "key_algorithm": cert.public_key.algorithm.value,
                "signature_algorithm": cert.signature_algorithm,
                "extensions": _extensions_json(cert.extensions),
            }
        elif is_pem(pem, CERTIFICATE_REQUEST):
            csr = parse_csr(pem)
            summary = {
                "type": "csr",
                "subject": csr.subject.string,
                "key_algorithm": csr.public_key.algorithm.value,
                "signature_algorithm": csr.signature_algorithm,
                "signature_valid": verify_csr(pem),
                "extensions": _extensions_json(csr.extensions),
            }
        else:
            _fail(f"{file} is neither a certificate nor a CSR")
    except ProvisionError as e:
        _fail(f"Cannot parse {file}: {e}")

    typer.echo(json.dumps(summary, indent=2, sort_keys=True))


# ---------------------------------------------------------------------- #
# verify
# ---------------------------------------------------------------------- #
@app.command()
def verify(
    cert: Path = typer.Argument(..., exists=True, readable=True),
    public_key: Path = typer.Argument(..., exists=True, readable=True, help="Issuer public key PEM"),
) -> None:
    """Check a certificate signature against an issuer public key"""
    try:
        valid = verify_certificate(cert.read_text(), public_key.read_text())
    except ProvisionError as e:
        _fail(f"Cannot verify {cert}: {e}")

    if not valid:
        _fail(f"{cert}: signature INVALID")
    typer.echo(f"{cert}: signature OK")


if __name__ == "__main__":
    app()
