# 📄 File: app/modules/community/presentation/api/v1/posts.py
# 🧭 Purpose (Layman Explanation):
# Web endpoints for the farmer community forum: reading posts, writing posts and comments,
# and letting authors edit or remove their own posts.
#
# 🧪 Purpose (Technical Summary):
# Community post routes. Reads use optional authentication to flag authorship; writes run on the
# "community" rate limit tier; update and delete run the ownership check (owns="post"), which
# resolves the owner through the post's author field.
#
# 🔗 Dependencies:
# - FastAPI router
# - app.shared.core.dependencies (admission pipeline)
#
# 🔄 Connected Modules / Calls From:
# - app.api.v1.router (router inclusion)
# - Mobile app community screens

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from app.modules.community.presentation.api.schemas.post_schemas import (
    CommentCreate,
    PostCreate,
    PostListQuery,
    PostUpdate,
)
from app.shared.core.dependencies import AUTH_OPTIONAL, RequestContext, admit, get_document_store
from app.shared.core.exceptions import NotFoundError
from app.shared.core.security import Principal
from app.shared.schemas import paginated
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

POSTS = "posts"

posts_router = APIRouter()


def _post_not_found(post_id: str) -> NotFoundError:
    return NotFoundError("Post not found", resource_type="post", resource_id=post_id)


def _author(principal: Principal) -> Dict[str, Any]:
    return {"_id": principal.id, "name": principal.handle}


def _with_author_flag(post: Dict[str, Any], user_id) -> Dict[str, Any]:
    author = post.get("author") or {}
    post["isAuthor"] = user_id is not None and author.get("_id") == user_id
    return post


@posts_router.get("/posts", summary="List community posts")
async def list_posts(
    request: Request,
    ctx: RequestContext = Depends(admit(auth=AUTH_OPTIONAL, query=PostListQuery)),
) -> Dict[str, Any]:
    store = get_document_store(request)
    query: PostListQuery = ctx.query
    criteria = {"category": query.category} if query.category else {}

    posts = await store.find(POSTS, criteria, sort=query.sort, skip=query.skip, limit=query.limit)
    total = await store.count(POSTS, criteria)
    return paginated([_with_author_flag(post, ctx.user_id) for post in posts], total, query)


@posts_router.get("/posts/{id}", summary="Get a community post")
async def get_post(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(auth=AUTH_OPTIONAL)),
) -> Dict[str, Any]:
    post = await get_document_store(request).find_by_id(POSTS, id)
    if post is None:
        raise _post_not_found(id)
    return {"success": True, "data": _with_author_flag(post, ctx.user_id)}


@posts_router.post("/posts", status_code=status.HTTP_201_CREATED, summary="Create a community post")
async def create_post(
    request: Request,
    ctx: RequestContext = Depends(admit("community", body=PostCreate)),
) -> Dict[str, Any]:
    post = await get_document_store(request).insert(POSTS, {
        **ctx.body.model_dump(),
        "author": _author(ctx.principal),
        "comments": [],
        "likes": 0,
    })
    logger.info("Post created", post_id=post["_id"], category=post["category"])
    return {"success": True, "message": "Post created successfully", "data": _with_author_flag(post, ctx.user_id)}


@posts_router.put("/posts/{id}", summary="Update your post")
async def update_post(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit("community", body=PostUpdate, owns="post")),
) -> Dict[str, Any]:
    post = await get_document_store(request).update(POSTS, id, ctx.body.model_dump(exclude_unset=True))
    if post is None:
        raise _post_not_found(id)
    return {"success": True, "message": "Post updated successfully", "data": _with_author_flag(post, ctx.user_id)}


@posts_router.delete("/posts/{id}", summary="Delete your post")
async def delete_post(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(owns="post")),
) -> Dict[str, Any]:
    if not await get_document_store(request).delete(POSTS, id):
        raise _post_not_found(id)
    logger.info("Post deleted", post_id=id)
    return {"success": True, "message": "Post deleted successfully"}


@posts_router.post(
    "/posts/{id}/comments",
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post",
)
async def add_comment(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit("community", body=CommentCreate)),
) -> Dict[str, Any]:
    store = get_document_store(request)
    comment = {
        "content": ctx.body.content,
        "author": _author(ctx.principal),
    }
    post = await store.push(POSTS, id, "comments", comment)
    if post is None:
        raise _post_not_found(id)
    return {"success": True, "message": "Comment added successfully", "data": post["comments"][-1]}
