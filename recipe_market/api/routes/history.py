from fastapi import APIRouter, Depends, Response, status

from recipe_market.core.rate_limit import get_services
from recipe_market.schemas.history import HistoryCountResponse, HistoryRecord, HistoryRecordInput
from recipe_market.services.container import ServiceContainer

router = APIRouter(tags=["History"])


@router.get("/history", response_model=list[HistoryRecord])
async def list_history(
    services: ServiceContainer = Depends(get_services),
) -> list[HistoryRecord]:
    """Return recent generations, newest first."""
    return await services.history.list_records()


@router.get("/history/count", response_model=HistoryCountResponse)
async def count_history(
    services: ServiceContainer = Depends(get_services),
) -> HistoryCountResponse:
    return HistoryCountResponse(count=await services.history.count())


@router.post(
    "/history",
    response_model=list[HistoryRecord],
    status_code=status.HTTP_201_CREATED,
)
async def add_history(
    record: HistoryRecordInput,
    services: ServiceContainer = Depends(get_services),
) -> list[HistoryRecord]:
    """Record a generated artifact.

    Images are compacted before they are stored. When local storage is full
    the history is trimmed rather than failing; the response is the list as
    persisted, which is empty if nothing could be saved.

    Args:
        record: Generated artifact and the recipe that produced it.

    Returns:
        list[HistoryRecord]: The history after the insert.
    """
    return await services.history.add(record)


@router.delete("/history/{record_id}", response_model=list[HistoryRecord])
async def remove_history_record(
    record_id: str,
    services: ServiceContainer = Depends(get_services),
) -> list[HistoryRecord]:
    return await services.history.remove(record_id)


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    services: ServiceContainer = Depends(get_services),
) -> Response:
    await services.history.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
