"""Supported chain listing."""

from fastapi import APIRouter, Depends

from chainfolio.api.deps import get_registry
from chainfolio.api.schemas import ChainResponse
from chainfolio.domain.chains import ChainRegistry

router = APIRouter(prefix="/chains", tags=["chains"])


@router.get("", response_model=list[ChainResponse])
def list_chains(registry: ChainRegistry = Depends(get_registry)) -> list[ChainResponse]:
    """List supported chains in registry order."""
    return [ChainResponse(id=c.id, name=c.name) for c in registry.list_chains()]
