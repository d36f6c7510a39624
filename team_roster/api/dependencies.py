"""Dependencies resolving services from application state."""

from fastapi import HTTPException, Request

from team_roster.errors import PlatformNotReadyError
from team_roster.model.model_builder import ModelBuilder
from team_roster.model.team_model import TeamModelContainer
from team_roster.platforms.d4h import D4HPlatform
from team_roster.platforms.slack import SlackPlatform


def get_model_builder(request: Request) -> ModelBuilder:
    """ModelBuilder from app state.

    Raises:
        HTTPException: 503 if the builder was not initialized
    """
    builder = getattr(request.app.state, "model_builder", None)
    if builder is None:
        raise HTTPException(status_code=503, detail="ModelBuilder not initialized")
    return builder


def get_d4h_platform(request: Request) -> D4HPlatform:
    d4h = getattr(request.app.state, "d4h", None)
    if d4h is None:
        raise HTTPException(status_code=503, detail="D4H platform not initialized")
    return d4h


def get_slack_platform(request: Request) -> SlackPlatform | None:
    return getattr(request.app.state, "slack", None)


def build_model(builder: ModelBuilder) -> TeamModelContainer:
    """Build the model, mapping missing platform data to 503."""
    try:
        return builder.build_model()
    except PlatformNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
