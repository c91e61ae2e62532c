"""
Issue CRUD + admin CSV export.

- Every route requires a valid bearer token.
- Who may do what is decided by ``core.policy``; handlers never branch
  on roles themselves.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from issuedesk.api.deps import get_current_actor, get_issue_store, require_admin
from issuedesk.core.policy import (
    Action,
    Actor,
    authorize,
    check_create,
    list_scope,
    update_mask,
)
from issuedesk.models.issue import Issue
from issuedesk.schemas.issue import IssueCreate, IssueRead, IssueUpdate, MessageResponse
from issuedesk.services.export import EXPORT_FILENAME, render_issues_csv
from issuedesk.stores.base import IssueStore

router = APIRouter(prefix="/issues", tags=["issues"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[IssueRead])
async def list_issues(
    actor: Actor = Depends(get_current_actor),
    issues: IssueStore = Depends(get_issue_store),
) -> list[Issue]:
    """Customers see their own issues; technicians and admins see all."""
    owner_id = list_scope(actor)
    if owner_id is None:
        return await issues.find_all()
    return await issues.find_by_owner(owner_id)


@router.post("", response_model=IssueRead, status_code=status.HTTP_201_CREATED)
async def create_issue(
    body: IssueCreate,
    actor: Actor = Depends(get_current_actor),
    issues: IssueStore = Depends(get_issue_store),
) -> Issue:
    fields = body.model_dump(exclude_unset=True)
    check_create(actor, fields)

    issue = await issues.create(
        {
            "title": body.title,
            "description": body.description,
            "location": body.location,
            "department": body.department,
            "user_id": actor.id,
            "username": actor.username,
            "user_email": actor.email,
            "user_phone_number": actor.phone_number,
        }
    )
    logger.info("Created issue %s for user %s", issue.id, actor.id)
    return issue


# ── Admin export ────────────────────────────────────────────────────
@router.get(
    "/admin/export/issues",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_issues(
    _admin: Actor = Depends(require_admin),
    issues: IssueStore = Depends(get_issue_store),
) -> Response:
    """Download every issue as a CSV file."""
    body = render_issues_csv(await issues.find_all())
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/{issue_id}", response_model=IssueRead)
async def get_issue(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    issues: IssueStore = Depends(get_issue_store),
) -> Issue:
    issue = await issues.find_by_id(issue_id)
    authorize(actor, Action.READ, issue.user_id)
    return issue


@router.put("/{issue_id}", response_model=IssueRead)
async def update_issue(
    issue_id: str,
    body: IssueUpdate,
    actor: Actor = Depends(get_current_actor),
    issues: IssueStore = Depends(get_issue_store),
) -> Issue:
    """Partial update: fields missing from the body keep their value."""
    issue = await issues.find_by_id(issue_id)
    changes = update_mask(actor, issue.user_id, body.changes())
    if not changes:
        return issue

    updated = await issues.update(issue_id, changes)
    logger.info("Updated issue %s by user %s: %s", issue_id, actor.id, sorted(changes))
    return updated


@router.delete("/{issue_id}", response_model=MessageResponse)
async def delete_issue(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    issues: IssueStore = Depends(get_issue_store),
) -> MessageResponse:
    issue = await issues.find_by_id(issue_id)
    authorize(actor, Action.DELETE, issue.user_id)

    await issues.delete_by_id(issue_id)
    logger.info("Deleted issue %s by user %s (%s)", issue_id, actor.id, actor.role.value)
    return MessageResponse(message="Issue deleted")
