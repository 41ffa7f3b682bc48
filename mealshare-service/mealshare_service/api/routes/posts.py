"""
Meal post routes
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from ...domain.models import Coordinate, Location, MealPost, SessionContext
from ...schemas import (
    ClaimResponse,
    ConversationResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    ReportRequest,
)
from ...application.accounts import AccountService
from ...application.geo import distance_km
from ...application.posts import PostLifecycle
from ..dependencies import get_account_service, get_current_session, get_post_lifecycle, page_params
from ..errors import unwrap


router = APIRouter(prefix="/api/v1/posts", tags=["Posts"])


def to_post_response(post: MealPost, center: Optional[Coordinate] = None) -> PostResponse:
    response = PostResponse.model_validate(post)
    if center is not None:
        response.distance_km = round(distance_km(center, post.location.coordinate), 3)
    return response


@router.get("/nearby", response_model=PostListResponse)
async def discover_nearby(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    paging: dict = Depends(page_params),
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """
    Discover claimable posts near a point

    Without coordinates the caller's home location is used.
    """
    if latitude is None or longitude is None:
        user = unwrap(await account_service.get_user(session.user_id))
        center = user.location.coordinate
    else:
        center = Coordinate(latitude, longitude)

    posts = await lifecycle.discover(center, radius_km).page(**paging)
    return PostListResponse(
        posts=[to_post_response(post, center) for post in posts],
        **paging,
    )


@router.get("/mine", response_model=List[PostResponse])
async def my_posts(
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Posts created by the current user"""
    return [to_post_response(p) for p in await lifecycle.posts_by_owner(session.user_id).to_list()]


@router.get("/claimed", response_model=List[PostResponse])
async def my_claimed_posts(
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Posts claimed by the current user"""
    return [to_post_response(p) for p in await lifecycle.posts_claimed_by(session.user_id).to_list()]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Get post by ID"""
    return to_post_response(unwrap(await lifecycle.get(post_id)))


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    session: SessionContext = Depends(get_current_session),
    account_service: AccountService = Depends(get_account_service),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """
    Create a meal post

    The post stays PENDING until a moderator approves it. Without a
    location the caller's home location is used.
    """
    if post_data.location is not None:
        location = Location(**post_data.location.model_dump())
    else:
        location = unwrap(await account_service.get_user(session.user_id)).location

    post = unwrap(await lifecycle.create(
        owner_id=session.user_id,
        title=post_data.title,
        description=post_data.description,
        photos=post_data.photos,
        expiry=post_data.expiry_date,
        location=location,
    ))
    return to_post_response(post)


@router.post("/{post_id}/claim", response_model=ClaimResponse)
async def claim_post(
    post_id: str,
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Claim a post; only the first claimant succeeds"""
    outcome = unwrap(await lifecycle.claim(post_id, session.user_id))
    return ClaimResponse(
        post=to_post_response(outcome.post),
        conversation=(
            ConversationResponse.model_validate(outcome.conversation)
            if outcome.conversation else None
        ),
        conversation_error=outcome.conversation_error.message if outcome.conversation_error else None,
    )


@router.post("/{post_id}/conversation", response_model=ConversationResponse)
async def open_post_conversation(
    post_id: str,
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """
    Get or create the chat of a claimed post

    Open to the owner and the claimer. Use it when the claim response
    carried a conversation_error.
    """
    conversation = unwrap(await lifecycle.open_conversation(post_id, session.user_id))
    return ConversationResponse.model_validate(conversation)


@router.post("/{post_id}/report", response_model=PostResponse)
async def report_post(
    post_id: str,
    report: ReportRequest,
    session: SessionContext = Depends(get_current_session),
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Report a post to the moderators"""
    return to_post_response(unwrap(await lifecycle.report(post_id, session.user_id, report.reason)))
