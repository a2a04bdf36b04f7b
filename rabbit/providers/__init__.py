from rabbit.providers.base import BaseProvider
from rabbit.providers.openai import OpenAIProvider

__all__ = ["BaseProvider", "OpenAIProvider"]
