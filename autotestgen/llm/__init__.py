"""Generation backends."""

from .client import ChatCompletionClient, GenerationClient, GenerationError
from .cloud import CloudClient
from .factory import build_client
from .local import LocalClient

__all__ = [
    "ChatCompletionClient",
    "CloudClient",
    "GenerationClient",
    "GenerationError",
    "LocalClient",
    "build_client",
]
