"""Authentication and authorization helpers."""

from fastapi import APIRouter, Depends

from app.backend.src.core.security import get_current_actor, get_current_user
from app.backend.src.models import User
from app.backend.src.schemas.access_control import CurrentUserOut
from app.backend.src.services.access import Actor

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserOut)
def read_current_user(
    current_user: User = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, object]:
    """Return the authenticated user's profile with effective permissions."""

    return {
        "id": current_user.id,
        "email": current_user.email,
        "name": current_user.name,
        "role": current_user.role,
        "is_active": current_user.is_active,
        "site_ids": sorted(actor.site_ids),
        "permissions": sorted(actor.permissions),
        "auto_approves_level_2": actor.auto_approves_level_2,
    }
