from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import schemas, models
from app.core.database import get_db
from app.core.repositories.posts import PostsRepository
from app.core.responses import with_status
from app.core.security import get_current_user

router = APIRouter(prefix="/posts", tags=["Posts"])


# The repository gets the request's session, nothing global
def get_posts_repository(db: Annotated[AsyncSession, Depends(get_db)]):
    return PostsRepository(db)


repo_dep = Annotated[PostsRepository, Depends(get_posts_repository)]


# Create post
@router.post("", response_model=schemas.ResponseEnvelope)
async def create_post(
    post: schemas.PostCreate,
    repo: repo_dep,
    response: Response,
    current_user: Annotated[models.User, Depends(get_current_user)],
):
    new_post = schemas.NewPost(
        title=post.title,
        body=post.body,
        user_id=current_user.id,
        tagname=post.tagname,
    )
    envelope = await repo.create(new_post, post.tag_description)
    return with_status(envelope, response)


# All posts, newest first
@router.get("", response_model=schemas.ResponseEnvelope)
async def get_posts(repo: repo_dep, response: Response):
    return with_status(await repo.retrieve_all(), response)


# Posts with most answers and comments first
@router.get("/top", response_model=schemas.ResponseEnvelope)
async def get_top_posts(repo: repo_dep, response: Response):
    return with_status(await repo.retrieve_all_top(), response)


@router.get("/tag/{tagname}", response_model=schemas.ResponseEnvelope)
async def get_posts_by_tag(tagname: str, repo: repo_dep, response: Response):
    return with_status(await repo.retrieve_all_tag(tagname), response)


# Single post, counts as a view
@router.get("/{post_id}", response_model=schemas.ResponseEnvelope)
async def get_post(post_id: int, repo: repo_dep, response: Response):
    return with_status(await repo.retrieve_one(post_id), response)


# Delete post with its tag links, answers and comments
@router.delete("/{post_id}", response_model=schemas.ResponseEnvelope)
async def delete_post(
    post_id: int,
    repo: repo_dep,
    response: Response,
    current_user: Annotated[models.User, Depends(get_current_user)],
):
    return with_status(await repo.remove(post_id), response)
