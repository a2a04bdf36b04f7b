from fastapi import APIRouter, Depends

from rabbit.providers.base import BaseProvider
from rabbit.routes.llm import get_provider


router = APIRouter()


@router.get("/health")
async def health(provider: BaseProvider = Depends(get_provider)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "provider": provider.name,
        "configured": provider.is_configured(),
    }
