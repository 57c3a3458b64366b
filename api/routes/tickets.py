"""
api/routes/tickets.py -- Support ticket endpoints.

Routes:
  POST /api/tickets                 -- any role; status starts at "open"
  GET  /api/tickets/my              -- caller's own tickets, newest first
  GET  /api/tickets/all             -- staff only
  GET  /api/tickets/{id}            -- owner or staff
  PUT  /api/tickets/{id}            -- staff only; "resolved" stamps resolved_at
  POST /api/tickets/{id}/comments   -- owner or staff
  GET  /api/tickets/{id}/comments   -- owner or staff, oldest first

Ownership rule: a plain user sees only tickets they raised. A ticket that
exists but belongs to someone else yields 403, an unknown id 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.deps import get_ops_store, http_error, not_found
from api.models import CommentOut, CreateCommentRequest, CreateTicketRequest, TicketOut, UpdateTicketRequest
from auth.dependencies import get_current_claims, require_staff
from auth.models import Claims
from ops.models import Comment, Ticket, TicketPatch

router = APIRouter(prefix="/tickets", dependencies=[Depends(get_current_claims)])


def _visible_ticket(request: Request, ticket_id: str, claims: Claims) -> Ticket:
    ticket = get_ops_store(request).get_ticket(ticket_id)
    if ticket is None:
        raise not_found("Ticket")
    if ticket.user_id != claims.sub and not claims.role.is_staff:
        raise http_error(403, "forbidden", "Access denied")
    return ticket


@router.post("", status_code=201)
def create_ticket(request: Request, body: CreateTicketRequest, claims: Claims = Depends(get_current_claims)) -> dict:
    ticket_id = get_ops_store(request).create_ticket(
        Ticket(user_id=claims.sub, title=body.title, description=body.description, priority=body.priority)
    )
    return {"success": True, "ticket_id": ticket_id}


@router.get("/my")
def my_tickets(request: Request, claims: Claims = Depends(get_current_claims)) -> dict:
    tickets = get_ops_store(request).list_tickets_for_user(claims.sub)
    return {"success": True, "tickets": [TicketOut.model_validate(t) for t in tickets]}


@router.get("/all", dependencies=[Depends(require_staff)])
def all_tickets(request: Request) -> dict:
    tickets = get_ops_store(request).list_all_tickets()
    return {"success": True, "tickets": [TicketOut.model_validate(t) for t in tickets]}


@router.get("/{ticket_id}")
def get_ticket(request: Request, ticket_id: str, claims: Claims = Depends(get_current_claims)) -> dict:
    return {"success": True, "ticket": TicketOut.model_validate(_visible_ticket(request, ticket_id, claims))}


@router.put("/{ticket_id}", dependencies=[Depends(require_staff)])
def update_ticket(request: Request, ticket_id: str, body: UpdateTicketRequest) -> dict:
    patch = TicketPatch(status=body.status, assigned_to=body.assigned_to, priority=body.priority)
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    try:
        updated = get_ops_store(request).update_ticket(ticket_id, patch)
    except IntegrityError as exc:
        raise http_error(400, "invalid_reference", "assigned_to is not a known user") from exc
    if not updated:
        raise not_found("Ticket")
    return {"success": True}


@router.post("/{ticket_id}/comments", status_code=201)
def add_comment(
    request: Request,
    ticket_id: str,
    body: CreateCommentRequest,
    claims: Claims = Depends(get_current_claims),
) -> dict:
    _visible_ticket(request, ticket_id, claims)
    comment_id = get_ops_store(request).add_ticket_comment(
        Comment(parent_id=ticket_id, user_id=claims.sub, comment=body.comment)
    )
    return {"success": True, "comment_id": comment_id}


@router.get("/{ticket_id}/comments")
def list_comments(request: Request, ticket_id: str, claims: Claims = Depends(get_current_claims)) -> dict:
    _visible_ticket(request, ticket_id, claims)
    comments = get_ops_store(request).list_ticket_comments(ticket_id)
    return {"success": True, "comments": [CommentOut.model_validate(c) for c in comments]}
