"""Preference endpoints."""

from fastapi import APIRouter, HTTPException, status

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import ErrorResponse, PreferencesResponse, PreferenceUpdate
from pith_workbench.preferences import DEFAULT_PREFERENCES, LAST_MODEL_KEY, parse_value

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=PreferencesResponse, summary="Show preferences")
async def get_preferences(context: Workbench) -> PreferencesResponse:
    return PreferencesResponse(preferences=context.preferences.to_dict())


@router.put(
    "/{key}",
    response_model=PreferencesResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Set one preference",
)
async def set_preference(key: str, update: PreferenceUpdate, context: Workbench) -> PreferencesResponse:
    if key not in DEFAULT_PREFERENCES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "unknown_preference",
                "message": f"Unknown preference key: {key}",
                "details": {"known_keys": sorted(DEFAULT_PREFERENCES)},
            },
        )

    value = update.value
    if isinstance(value, str):
        try:
            value = parse_value(key, value)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "invalid_preference", "message": str(e), "details": {"key": key}},
            ) from e

    if key == LAST_MODEL_KEY:
        # Selecting a model through preferences behaves like a model switch
        context.chat.switch_model(value)
    else:
        context.preferences.set(key, value)
    return PreferencesResponse(preferences=context.preferences.to_dict())
