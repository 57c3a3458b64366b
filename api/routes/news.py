"""
api/routes/news.py -- Team news board (staff only).

Routes:
  POST   /api/news
  GET    /api/news          -- pinned first, then newest first
  PUT    /api/news/{id}     -- partial update of title / content / is_pinned
  DELETE /api/news/{id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.deps import get_ops_store, http_error, not_found
from api.models import CreateNewsRequest, NewsOut, UpdateNewsRequest
from auth.dependencies import require_staff
from auth.models import Claims
from ops.models import News, NewsPatch

router = APIRouter(prefix="/news", dependencies=[Depends(require_staff)])


@router.post("", status_code=201)
def create_news(request: Request, body: CreateNewsRequest, claims: Claims = Depends(require_staff)) -> dict:
    news_id = get_ops_store(request).create_news(
        News(title=body.title, content=body.content, author_id=claims.sub, is_pinned=body.is_pinned)
    )
    return {"success": True, "news_id": news_id}


@router.get("")
def list_news(request: Request) -> dict:
    return {"success": True, "news": [NewsOut.model_validate(n) for n in get_ops_store(request).list_news()]}


@router.put("/{news_id}")
def update_news(request: Request, news_id: str, body: UpdateNewsRequest) -> dict:
    patch = NewsPatch(title=body.title, content=body.content, is_pinned=body.is_pinned)
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    if not get_ops_store(request).update_news(news_id, patch):
        raise not_found("News item")
    return {"success": True}


@router.delete("/{news_id}")
def delete_news(request: Request, news_id: str) -> dict:
    if not get_ops_store(request).delete_news(news_id):
        raise not_found("News item")
    return {"success": True}
