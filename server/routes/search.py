"""Search endpoint: retrieval, perspectives and a cited answer in one call."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from models.errors import InvalidInputError
from orchestrator.swarm_controller import SwarmController
from server.dependencies import get_swarm_controller
from server.schemas.requests import SearchRequest
from server.schemas.responses import SearchResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Search"])


@router.post("/search", response_model=SearchResponseDTO)
async def search(
    request: Request,
    body: SearchRequest,
    controller: SwarmController = Depends(get_swarm_controller),
):
    """
    Run a regular or pro search.

    Returns 400 when neither a query nor an image URL is given; any provider
    or model failure still produces a 200 with fallback content.
    """
    logger.info(
        "Search request received",
        extra={
            "extra_fields": {
                "query": body.query[:100],
                "image_count": len(body.image_urls),
                "pro": body.pro,
                "client": request.client.host if request.client else None,
            }
        },
    )
    try:
        outcome = await controller.process_query(body.query, body.image_urls, is_pro=body.pro)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return SearchResponseDTO.from_outcome(outcome)
