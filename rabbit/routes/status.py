from fastapi import APIRouter, Depends

from rabbit.providers.base import BaseProvider
from rabbit.routes.llm import get_provider


router = APIRouter()


@router.get("/llm/status")
async def llm_status(provider: BaseProvider = Depends(get_provider)):
    """Report whether the provider is configured. Always 200 so clients can render it."""
    if not provider.is_configured():
        return {
            "status": "error",
            "configured": False,
            "message": "API key not configured",
        }
    return {
        "status": "ok",
        "configured": True,
        "message": "API configured correctly",
    }
