from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from twinpki.core.exceptions import CLIENT_ERRORS, KeyStoreFailure
from twinpki.core.logging import get_logger
from twinpki.schemas.provision import Domain, IssueResponse
from twinpki.services.provision_service import ProvisionService, provision_service

logger = get_logger(__name__)

router = APIRouter(tags=["provisioning"])


def get_provision_service() -> ProvisionService:
    return provision_service


@router.post("/{domain}/csr", response_model=IssueResponse)
async def submit_csr(
    domain: Domain,
    request: Request,
    service: ProvisionService = Depends(get_provision_service),
):
    """
    Sign a client CSR with the domain root CA.
    The request body is the PEM encoded CSR.
    """
    body = await request.body()
    try:
        csr_pem = body.decode("ascii")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSR must be ASCII PEM",
        )

    try:
        certificate = service.issue_client_certificate(domain, csr_pem)
    except FileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except CLIENT_ERRORS as e:
        logger.error(f"Rejected CSR for {domain.value}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except KeyStoreFailure as e:
        logger.error(f"Authority of {domain.value} unusable: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authority of {domain.value} is unusable",
        )

    return IssueResponse(certificate=certificate)


@router.get("/{domain}/ca", response_class=PlainTextResponse)
async def get_ca_certificate(
    domain: Domain,
    service: ProvisionService = Depends(get_provision_service),
):
    """Root CA certificate of the domain in PEM format"""
    try:
        ca_cert_pem = service.get_ca_certificate(domain)
    except FileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return PlainTextResponse(
        content=ca_cert_pem,
        media_type="application/x-pem-file",
        headers={
            "Content-Disposition": f'attachment; filename="{domain.value}-rootca.pem"'
        },
    )
