"""
api/routes/blog.py -- Blog posts (staff only).

Routes:
  POST   /api/blog          -- slug derived from the title; "published" stamps published_at
  GET    /api/blog          -- newest first
  PUT    /api/blog/{id}     -- a new title re-derives the slug
  DELETE /api/blog/{id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.deps import get_ops_store, http_error, not_found
from api.models import BlogPostOut, CreateBlogPostRequest, UpdateBlogPostRequest
from auth.dependencies import require_staff
from auth.errors import ValidationFailure
from auth.models import Claims
from ops.models import BlogPost, BlogPostPatch
from ops.rules import create_slug

router = APIRouter(prefix="/blog", dependencies=[Depends(require_staff)])


@router.post("", status_code=201)
def create_post(request: Request, body: CreateBlogPostRequest, claims: Claims = Depends(require_staff)) -> dict:
    if not create_slug(body.title):
        raise ValidationFailure("Title must contain at least one letter or digit")
    post_id, slug = get_ops_store(request).create_post(
        BlogPost(
            title=body.title,
            content=body.content,
            excerpt=body.excerpt,
            author_id=claims.sub,
            status=body.status,
        )
    )
    return {"success": True, "post_id": post_id, "slug": slug}


@router.get("")
def list_posts(request: Request) -> dict:
    return {"success": True, "posts": [BlogPostOut.model_validate(p) for p in get_ops_store(request).list_posts()]}


@router.put("/{post_id}")
def update_post(request: Request, post_id: str, body: UpdateBlogPostRequest) -> dict:
    patch = BlogPostPatch(title=body.title, content=body.content, excerpt=body.excerpt, status=body.status)
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    if patch.title is not None and not create_slug(patch.title):
        raise ValidationFailure("Title must contain at least one letter or digit")
    if not get_ops_store(request).update_post(post_id, patch):
        raise not_found("Blog post")
    return {"success": True}


@router.delete("/{post_id}")
def delete_post(request: Request, post_id: str) -> dict:
    if not get_ops_store(request).delete_post(post_id):
        raise not_found("Blog post")
    return {"success": True}
