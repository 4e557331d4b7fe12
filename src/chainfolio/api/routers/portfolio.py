"""Portfolio fetch, status and aggregation endpoints."""

from fastapi import APIRouter, Depends

from chainfolio.api.deps import get_aggregation_service, get_submission_service
from chainfolio.api.schemas import (
    AggregatedPortfolioResponse,
    ChainSummaryResponse,
    FetchAllRequest,
    FetchAllResponse,
    FetchRequest,
    FetchResponse,
    PositionResponse,
    StatusResponse,
    TokenAmountResponse,
)
from chainfolio.domain.views import AggregatedPortfolio
from chainfolio.services import AggregationService, SubmissionService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.post("/fetch", response_model=FetchResponse, status_code=202)
def fetch_portfolio(
    data: FetchRequest,
    submission: SubmissionService = Depends(get_submission_service),
) -> FetchResponse:
    """Queue a portfolio fetch for one chain and return its request id."""
    request_id = submission.submit_one(data.chain_id, data.address)
    return FetchResponse(request_id=request_id)


@router.post("/fetch/all", response_model=FetchAllResponse, status_code=202)
def fetch_portfolio_all_chains(
    data: FetchAllRequest,
    submission: SubmissionService = Depends(get_submission_service),
) -> FetchAllResponse:
    """Queue a portfolio fetch for every supported chain."""
    request_ids = submission.submit_all(data.address)
    return FetchAllResponse(request_ids=request_ids)


@router.get("/status/{request_id}", response_model=StatusResponse)
def get_request_status(
    request_id: str,
    submission: SubmissionService = Depends(get_submission_service),
) -> StatusResponse:
    """Poll the status of a fetch request."""
    view = submission.get_status(request_id)
    return StatusResponse(
        request_id=view.request_id,
        chain_id=view.chain_id,
        address=view.address,
        status=view.status.value,
        timestamp=view.timestamp,
        data=view.data,
        error=view.error,
        position=view.position,
    )


@router.get("/{address}", response_model=AggregatedPortfolioResponse)
def get_aggregated_portfolio(
    address: str,
    aggregation: AggregationService = Depends(get_aggregation_service),
) -> AggregatedPortfolioResponse:
    """Aggregate the latest per-chain results for an address."""
    return _to_response(aggregation.aggregate(address))


def _to_response(portfolio: AggregatedPortfolio) -> AggregatedPortfolioResponse:
    return AggregatedPortfolioResponse(
        address=portfolio.address,
        timestamp=portfolio.timestamp,
        total_value_usd=float(portfolio.total_value_usd),
        chains=[
            ChainSummaryResponse(
                id=c.id,
                name=c.name,
                status=c.status.value,
                error=c.error,
                value_usd=float(c.value_usd) if c.value_usd is not None else None,
                timestamp=c.timestamp,
            )
            for c in portfolio.chains
        ],
        positions=[
            PositionResponse(
                chain_id=p.chain_id,
                protocol=p.protocol,
                name=p.name,
                contract_address=p.contract_address,
                value_usd=float(p.value_usd),
                underlying_tokens=[
                    TokenAmountResponse(
                        address=t.address,
                        symbol=t.symbol,
                        name=t.name,
                        amount=float(t.amount),
                        price_usd=float(t.price_usd),
                        value_usd=float(t.value_usd),
                    )
                    for t in p.underlying_tokens
                ],
            )
            for p in portfolio.positions
        ],
    )
