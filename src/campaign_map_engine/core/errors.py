from __future__ import annotations


class MapEngineError(Exception):
    """Base class for every error raised by the map engine."""


class MapValidationError(MapEngineError):
    """Model output failed structural or invariant checks."""


class ResponseParseError(MapValidationError):
    pass


class GridShapeError(MapValidationError):
    pass


class RegionShapeError(MapValidationError):
    pass


class WalkabilityError(MapValidationError):
    def __init__(self, walkable_pct: float, floor_pct: float):
        self.walkable_pct = walkable_pct
        self.floor_pct = floor_pct
        super().__init__(
            f"Only {walkable_pct:.1f}% walkable tiles (need >={floor_pct:.0f}%). Map is too walled."
        )


class RegionBoundsError(MapValidationError):
    def __init__(self, region_id: str):
        self.region_id = region_id
        super().__init__(f'Region "{region_id}" has invalid bounds: min > max')


class MissingRegionsError(MapValidationError):
    def __init__(self, missing_ids: list[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(f"Missing regions from spec: {', '.join(self.missing_ids)}")


class BackendExhaustedError(MapEngineError):
    def __init__(self, backend: str, attempts: int, last_error: str, cost: float = 0.0):
        self.backend = backend
        self.attempts = attempts
        self.last_error = last_error
        self.cost = cost
        super().__init__(f"{backend} failed after {attempts} attempts: {last_error}")


class ImageGenerationError(MapEngineError):
    pass


class BlobUploadError(MapEngineError):
    pass


class CampaignNotFoundError(MapEngineError):
    pass


class EmptyCampaignError(MapEngineError):
    pass


class UnknownMapSpecError(MapEngineError):
    def __init__(self, map_id: str, available: list[str]):
        self.map_id = map_id
        self.available = list(available)
        super().__init__(
            f'Map spec "{map_id}" not found in campaign. Available specs: {", ".join(self.available) or "none"}'
        )


class CampaignFormatError(MapEngineError):
    pass
