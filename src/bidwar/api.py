"""Bidding War HTTP API.

POST /bid places a bid from one of the configured accounts and answers once
the transaction is mined.
"""

from fastapi import FastAPI, HTTPException
import structlog
from dotenv import load_dotenv

from .exceptions import (
    ConfirmationTimeout,
    InvalidAmount,
    SubmissionRejected,
    UnknownIdentifier,
)
from .models import BidRequest
from .service import get_bid_service, set_bid_service

load_dotenv()
logger = structlog.get_logger()

app = FastAPI(
    title="Bidding War",
    description="Submits bids to the auction contract from a pool of managed accounts",
    version="0.1.0",
)


@app.on_event("startup")
async def startup():
    # ConfigurationError propagates and aborts startup
    service = get_bid_service()
    logger.info(
        "bidwar_api_started",
        accounts=service.resolver.identifiers,
        contract=service.submitter.contract_address,
    )


@app.on_event("shutdown")
async def shutdown():
    service = get_bid_service()
    await service.close()
    set_bid_service(None)
    logger.info("bidwar_api_stopped")


@app.get("/health")
def health():
    service = get_bid_service()
    return {
        "status": "ok",
        "accounts": len(service.resolver),
        "contract": service.submitter.contract_address,
    }


@app.post("/bid")
async def place_bid(request: BidRequest):
    """Place a bid and return the mined transaction hash."""
    service = get_bid_service()

    try:
        result = await service.place_bid(request.identifier, request.amount)
    except UnknownIdentifier as e:
        raise HTTPException(
            status_code=404,
            detail={"error": e.code, "message": "unknown user"},
        )
    except InvalidAmount as e:
        raise HTTPException(
            status_code=400,
            detail={"error": e.code, "message": e.reason},
        )
    except SubmissionRejected as e:
        raise HTTPException(
            status_code=502,
            detail={
                "error": e.code,
                "message": e.reason,
                "transient": e.transient,
                "tx_hash": e.transaction_id,
            },
        )
    except ConfirmationTimeout as e:
        raise HTTPException(
            status_code=504,
            detail={
                "error": e.code,
                "message": f"not confirmed within {e.timeout}s; the bid may still be mined",
                "tx_hash": e.transaction_id,
            },
        )

    return {
        "status": "confirmed",
        "tx_hash": result.transaction_id,
        "confirmed": result.confirmed,
        "block_number": result.block_number,
        "message": f"bidding successful. tx hash: {result.transaction_id}",
    }
