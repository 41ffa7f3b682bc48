"""
User routes
"""
from fastapi import APIRouter, Depends

from ...domain.models import Location, SessionContext
from ...schemas import UserProfile, UpdateLocation, ChangePassword, MessageResponse
from ...application.accounts import AccountService
from ..dependencies import get_account_service, get_current_session
from ..errors import unwrap


router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
async def get_my_profile(
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service)
):
    """Get current user's profile"""
    user = unwrap(await account_service.get_user(session.user_id))
    return UserProfile.model_validate(user)


@router.put("/me/location", response_model=UserProfile)
async def update_my_location(
    data: UpdateLocation,
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service)
):
    """Change the home location"""
    user = unwrap(await account_service.update_location(
        session.user_id, Location(**data.location.model_dump())
    ))
    return UserProfile.model_validate(user)


@router.post("/me/change-password", response_model=MessageResponse)
async def change_password(
    password_data: ChangePassword,
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service)
):
    """
    Change current user's password

    The current password must be supplied.
    """
    unwrap(await account_service.change_password(
        session.user_id, password_data.current_password, password_data.new_password
    ))
    return MessageResponse(message="Password changed successfully")


@router.delete("/me", response_model=MessageResponse)
async def delete_my_account(
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service)
):
    """Permanently delete the current user's account"""
    unwrap(await account_service.delete_account(session.user_id))
    return MessageResponse(message="Account deleted successfully")
