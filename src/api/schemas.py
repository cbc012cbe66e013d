"""Pydantic request/response models for the shortsmith API."""

from typing import Optional, Union

from pydantic import BaseModel

# =============================================================================
# Response Models
# =============================================================================


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Shortsmith API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str

    model_config = {
        "json_schema_extra": {
            "examples": [{"status": "ok", "timestamp": "2026-01-01T00:00:00"}]
        }
    }


class VideoCreatedResponse(BaseModel):
    """Response after a video-creation session has been started."""

    success: bool = True
    sessionId: str
    message: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "sessionId": "4f1c2b0e9a8d4c7b8e6f5a4b3c2d1e0f",
                    "message": "Video creation started",
                }
            ]
        }
    }


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error body returned with 400/404 responses."""

    success: bool = False
    error: str

    model_config = {"json_schema_extra": {"examples": [{"success": False, "error": "Topic is required"}]}}


# =============================================================================
# Request Models
# =============================================================================


class CreateVideoRequest(BaseModel):
    """Request body for starting a video-creation session.

    Fields are deliberately loose: unknown genres, levels and languages fall
    back to defaults and unparseable durations are normalized downstream.
    """

    topic: Optional[str] = None
    hook: Optional[str] = None
    fact: Optional[str] = None
    duration: Optional[Union[int, float, str]] = None
    genre: Optional[str] = None
    comedyLevel: Optional[str] = None
    language: Optional[str] = None
    preview: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"topic": "Volcanoes", "duration": 30, "genre": "informative", "language": "english"},
                {"hook": "Octopuses have three hearts", "fact": "Two pump blood to the gills", "genre": "didyouknow"},
            ]
        }
    }


class ConfirmVideoRequest(BaseModel):
    """Request body for approving a previewed script."""

    sessionId: Optional[str] = None
