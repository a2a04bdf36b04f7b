from rabbit.utils.exceptions import (
    LLMServiceError,
    MidStreamIOError,
    UpstreamHTTPError,
)
from rabbit.utils.normalize import normalize_string_list, repair_llm_list

__all__ = [
    "LLMServiceError",
    "MidStreamIOError",
    "UpstreamHTTPError",
    "normalize_string_list",
    "repair_llm_list",
]
