from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/", summary="Health Check")
async def health_check(request: Request):
    processor = getattr(request.app.state, "queue_processor", None)
    return {"status": "ok", "queue_processing": bool(processor and processor.is_processing)}
