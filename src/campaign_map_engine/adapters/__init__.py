from .anthropic_completion import AnthropicCompletion
from .blob_store import LocalBlobStore
from .stability_image import StabilityImageGenerator

__all__ = [
    "AnthropicCompletion",
    "LocalBlobStore",
    "StabilityImageGenerator",
]
