"""
Authentication routes
"""
from fastapi import APIRouter, Depends, HTTPException, status

from ...config import settings
from ...domain.errors import ErrorKind, Failure
from ...domain.models import Location
from ...schemas import UserRegister, UserLogin, TokenResponse, UserProfile
from ...application.accounts import AccountService
from ...infrastructure.security import create_access_token
from ..dependencies import get_account_service
from ..errors import unwrap


router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _token_response(user, session) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(session),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=session.role,
        user=UserProfile.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    account_service: AccountService = Depends(get_account_service)
):
    """
    Register a new user

    - **email**: Valid email address, compared case-sensitively
    - **password**: At least PASSWORD_MIN_LENGTH characters
    - **display_name**: Name shown to other users
    - **location**: Home location used as the default search center
    """
    user, session = unwrap(await account_service.register(
        email=user_data.email,
        password=user_data.password,
        display_name=user_data.display_name,
        location=Location(**user_data.location.model_dump()),
    ))
    return _token_response(user, session)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    account_service: AccountService = Depends(get_account_service)
):
    """
    Login with email and password

    The role (USER or ADMIN) is resolved here and carried in the token.
    """
    result = await account_service.login(credentials.email, credentials.password)
    if isinstance(result, Failure) and result.kind == ErrorKind.UNAUTHORIZED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": result.reason, "message": result.message},
            headers={"WWW-Authenticate": "Bearer"},
        )
    user, session = unwrap(result)
    return _token_response(user, session)
