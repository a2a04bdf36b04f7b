from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class LLMRequest(BaseModel):
    """Inbound generation request.

    Only ``text`` is validated here (non-empty after stripping, checked by the
    route so the caller gets a 400 instead of a schema error). Content type and
    persona are opaque keys into the prompt lookup; ``preview`` asks for a short
    teaser of the take instead of the full text.
    """

    text: str = ""
    content_type: str = Field(default="expansion", alias="contentType")
    persona_id: Optional[str] = Field(default=None, alias="personaId")
    stream: bool = False
    preview: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "text": "Cities should ban cars from their centers",
                    "contentType": "contrarian",
                    "personaId": "graham",
                    "stream": True,
                }
            ]
        },
    )
