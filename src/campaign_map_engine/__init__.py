from .campaigns import CampaignCatalog, campaign_from_dict
from .core.backends import GenerationConfig, TextGridBackend, VisionGridBackend
from .core.driver import CampaignMapDriver
from .core.orchestrator import MapRegenerationOrchestrator
from .core.ports import BlobStorePort, CompletionPort, ImageGenerationPort
from .core.validation import validate_map_output

__all__ = [
    "BlobStorePort",
    "CampaignCatalog",
    "CampaignMapDriver",
    "CompletionPort",
    "GenerationConfig",
    "ImageGenerationPort",
    "MapRegenerationOrchestrator",
    "TextGridBackend",
    "VisionGridBackend",
    "campaign_from_dict",
    "validate_map_output",
]
