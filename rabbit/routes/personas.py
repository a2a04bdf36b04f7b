from fastapi import APIRouter

from rabbit.services.prompts import PERSONAS, TAKE_TYPES, get_available_presets
from rabbit.utils.exceptions import raise_not_found


router = APIRouter()


def _persona_info(persona) -> dict:
    # Instructions stay server-side
    return {"id": persona.id, "name": persona.name, "description": persona.description}


@router.get("/personas")
async def list_personas():
    """List personas, take types and presets for the persona picker"""
    return {
        "personas": [_persona_info(p) for p in PERSONAS.values()],
        "take_types": list(TAKE_TYPES),
        "presets": get_available_presets(),
    }


@router.get("/personas/{persona_id}")
async def get_persona(persona_id: str):
    persona = PERSONAS.get(persona_id)
    if persona is None:
        raise_not_found("Persona", persona_id)
    return _persona_info(persona)
