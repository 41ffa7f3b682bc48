"""
Admin routes - Moderation queues, statistics and report rows
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from typing import List, Optional

from ...config import settings
from ...schemas import (
    MessageResponse,
    ModerationRequest,
    PostReportRowResponse,
    PostResponse,
    RemovalRequest,
    StatisticsResponse,
)
from ...application.conversations import ConversationThread
from ...application.moderation import ModerationLedger
from ...application.posts import PostLifecycle
from ...application.statistics import REPORT_COLUMNS, StatisticsAggregator
from ..dependencies import (
    get_conversation_thread,
    get_moderation_ledger,
    get_post_lifecycle,
    get_statistics_aggregator,
    require_admin,
)
from ..errors import unwrap
from .posts import to_post_response


router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/posts/pending", response_model=List[PostResponse])
async def pending_posts(lifecycle: PostLifecycle = Depends(get_post_lifecycle)):
    """Posts waiting for moderation, newest first"""
    return [to_post_response(p) for p in await lifecycle.pending().to_list()]


@router.get("/posts", response_model=List[PostResponse])
async def all_posts(lifecycle: PostLifecycle = Depends(get_post_lifecycle)):
    """Every post that has not been removed, regardless of location"""
    return [to_post_response(p) for p in await lifecycle.all_active().to_list()]


@router.get("/posts/reported", response_model=List[PostResponse])
async def reported_posts(ledger: ModerationLedger = Depends(get_moderation_ledger)):
    """Reported posts, most reported first"""
    return [to_post_response(p) for p in await ledger.reported_queue().to_list()]


@router.post("/posts/{post_id}/moderate", response_model=PostResponse)
async def moderate_post(
    post_id: str,
    request: ModerationRequest,
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """
    Approve or reject a post

    - **decision**: APPROVE or REJECT
    - **comment**: Optional note sent to the owner
    """
    return to_post_response(unwrap(await lifecycle.moderate(post_id, request.decision, request.comment)))


@router.post("/posts/{post_id}/remove", response_model=PostResponse)
async def remove_post(
    post_id: str,
    request: RemovalRequest,
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Remove a post; it stays stored for audit"""
    return to_post_response(unwrap(await lifecycle.remove(post_id, request.admin_comment)))


@router.post("/posts/{post_id}/approve-reported", response_model=PostResponse)
async def approve_reported_post(
    post_id: str,
    lifecycle: PostLifecycle = Depends(get_post_lifecycle)
):
    """Dismiss the reports on a post"""
    return to_post_response(unwrap(await lifecycle.approve_reported(post_id)))


@router.get("/statistics", response_model=StatisticsResponse)
async def statistics(aggregator: StatisticsAggregator = Depends(get_statistics_aggregator)):
    """Application statistics"""
    return StatisticsResponse.model_validate(await aggregator.compute())


@router.get("/reports/posts", response_model=List[PostReportRowResponse])
async def post_report(
    status: Optional[str] = Query(None, description="PENDING, APPROVED, REJECTED or REMOVED"),
    city: Optional[str] = None,
    aggregator: StatisticsAggregator = Depends(get_statistics_aggregator)
):
    """Report rows for every post"""
    rows = await aggregator.post_report_rows(status=status, city=city)
    return [PostReportRowResponse.model_validate(row) for row in rows]


@router.get("/reports/posts.csv", response_class=PlainTextResponse)
async def post_report_csv(
    status: Optional[str] = None,
    city: Optional[str] = None,
    aggregator: StatisticsAggregator = Depends(get_statistics_aggregator)
):
    """Report rows as CSV text"""
    rows = await aggregator.post_report_rows(status=status, city=city)
    lines = [",".join(REPORT_COLUMNS)] + [row.to_csv_line() for row in rows]
    return PlainTextResponse("\n".join(lines) + "\n", media_type="text/csv")


@router.get("/reports/moderation", response_model=List[PostReportRowResponse])
async def moderation_report(ledger: ModerationLedger = Depends(get_moderation_ledger)):
    """Report rows for reported posts"""
    return [PostReportRowResponse.model_validate(row) for row in await ledger.moderation_report()]


@router.post("/conversations/close-inactive", response_model=MessageResponse)
async def close_inactive_conversations(
    older_than_days: int = Query(settings.INACTIVE_CONVERSATION_DAYS, ge=1),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Close conversations with no recent activity"""
    closed = await thread.close_inactive(older_than_days)
    return MessageResponse(message=f"Closed {closed} inactive conversation(s)")
