from fastapi import APIRouter

from app.cores.api_response import send_response

router = APIRouter()


@router.get("/healthcheck")
async def healthcheck_route():
    return send_response({"status": "ok"}, "Health check passed")
