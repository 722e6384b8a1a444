from .backends import GenerationConfig, TextGridBackend, VisionGridBackend
from .driver import CampaignMapDriver
from .errors import (
    BackendExhaustedError,
    BlobUploadError,
    EmptyCampaignError,
    GridShapeError,
    ImageGenerationError,
    MapEngineError,
    MapValidationError,
    MissingRegionsError,
    RegionBoundsError,
    RegionShapeError,
    ResponseParseError,
    UnknownMapSpecError,
    WalkabilityError,
)
from .orchestrator import MapRegenerationOrchestrator, map_document_id
from .planner import ArtifactState, MapAction, artifact_state, plan_combat_action, plan_exploration_action
from .ports import BlobStorePort, CompletionPort, ImageGenerationPort
from .types import (
    CampaignMapSet,
    CombatMapSpec,
    ExplorationMapSpec,
    MapOutcome,
    PointOfInterest,
    Region,
    RequiredRegion,
    RunReport,
    TileEncoding,
    TileGrid,
    ValidatedMap,
)
from .validation import validate_map_output

__all__ = [
    "ArtifactState",
    "BackendExhaustedError",
    "BlobStorePort",
    "BlobUploadError",
    "CampaignMapDriver",
    "CampaignMapSet",
    "CombatMapSpec",
    "CompletionPort",
    "EmptyCampaignError",
    "ExplorationMapSpec",
    "GenerationConfig",
    "GridShapeError",
    "ImageGenerationError",
    "ImageGenerationPort",
    "MapAction",
    "MapEngineError",
    "MapOutcome",
    "MapRegenerationOrchestrator",
    "MapValidationError",
    "MissingRegionsError",
    "PointOfInterest",
    "Region",
    "RegionBoundsError",
    "RegionShapeError",
    "RequiredRegion",
    "ResponseParseError",
    "RunReport",
    "TextGridBackend",
    "TileEncoding",
    "TileGrid",
    "UnknownMapSpecError",
    "ValidatedMap",
    "VisionGridBackend",
    "WalkabilityError",
    "artifact_state",
    "map_document_id",
    "plan_combat_action",
    "plan_exploration_action",
    "validate_map_output",
]
