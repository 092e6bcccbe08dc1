from sqlalchemy import Select, distinct, func, select

from app.core import models


# -----------------------------------------------------------------------------
# POST SUMMARY QUERIES
# Every read path shares one shape: a post joined to its tag and author, with
# answer and comment counts computed on the fly.
# Tag and User are inner joins, so untagged or orphaned posts never show up.
# Answers and comments are outer joins, a post without them counts 0.
# -----------------------------------------------------------------------------

answer_count = func.count(distinct(models.Answer.id)).label("answer_count")
comment_count = func.count(distinct(models.Comment.id)).label("comment_count")


def post_summary_query() -> Select:
    """
    Base aggregate query, one row per post.

    Returns:
        A Select projecting id, user_id, tag_id, tagname, username, gravatar,
        title, body, created_at, updated_at, views, answer_count, comment_count.
    """

    return (
        select(
            models.Post.id,
            models.Post.user_id,
            models.Tag.id.label("tag_id"),
            models.Tag.tagname,
            models.User.username,
            models.User.gravatar,
            models.Post.title,
            models.Post.body,
            models.Post.created_at,
            models.Post.updated_at,
            models.Post.views,
            answer_count,
            comment_count,
        )
        .select_from(models.Post)
        .join(models.PostTag, models.PostTag.post_id == models.Post.id)
        .join(models.Tag, models.Tag.id == models.PostTag.tag_id)
        .join(models.User, models.User.id == models.Post.user_id)
        .outerjoin(models.Answer, models.Answer.post_id == models.Post.id)
        .outerjoin(models.Comment, models.Comment.post_id == models.Post.id)
        .group_by(models.Post.id, models.Tag.id, models.User.id)
    )


def single_post_query(post_id: int) -> Select:
    return post_summary_query().where(models.Post.id == post_id)


# Newest first
def all_posts_query() -> Select:
    return post_summary_query().order_by(models.Post.created_at.desc())


# Most engaged first
def top_posts_query() -> Select:
    return post_summary_query().order_by(answer_count.desc(), comment_count.desc())


def posts_by_tag_query(tagname: str) -> Select:
    # Case sensitivity follows the database collation
    return all_posts_query().where(models.Tag.tagname == tagname)
