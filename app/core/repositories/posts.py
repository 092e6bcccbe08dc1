import logging
from typing import Optional

from sqlalchemy import Select, delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models, schemas
from app.core.errors import EmptyResult, InternalFailure, NotFound
from app.core.repositories import queries
from app.core.repositories.transaction import storage_errors, transaction_scope
from app.core.responses import envelope_boundary, response_handler


# Dialects that can insert a tag and ignore the unique conflict in one statement
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

READ_FAILURE = "Something went wrong!"


def _summary(row) -> schemas.PostSummary:
    return schemas.PostSummary.model_validate(dict(row._mapping))


class PostsRepository:
    """
    Data access for posts and everything hanging off them.

    Writes touching several tables run inside one transaction_scope.
    Every public method resolves to a single ResponseEnvelope and never
    raises a storage error to its caller.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================
    # WRITES
    # =========================

    @envelope_boundary
    async def create(
        self, new_post: schemas.NewPost, tag_description: Optional[str] = None
    ) -> schemas.ResponseEnvelope:
        """
        Insert a post, find or create its tag and link the two, atomically.

        Args:
            new_post: Title, body, author id and tagname.
            tag_description: Used only when the tag does not exist yet.

        Returns:
            Envelope with the new post id, built after the commit went through.
        """

        async with transaction_scope(self.db):
            post = await self._insert_post(new_post)
            tag = await self._find_or_create_tag(new_post.tagname, tag_description)
            await self._link_tag(post.id, tag.id)
            post_id = post.id

        logging.info(f"Created post {post_id} tagged '{new_post.tagname}'")
        return response_handler(True, 200, "Post Created", post_id)

    @envelope_boundary
    async def remove(self, post_id: int) -> schemas.ResponseEnvelope:
        """
        Delete a post together with its tag links, answers and comments.
        Missing ids are not an error, every statement just affects 0 rows.
        """

        async with transaction_scope(self.db):
            for child in (models.PostTag, models.Answer, models.Comment):
                await self.db.execute(
                    delete(child)
                    .where(child.post_id == post_id)
                    .execution_options(synchronize_session=False)
                )
            result = await self.db.execute(
                delete(models.Post)
                .where(models.Post.id == post_id)
                .execution_options(synchronize_session=False)
            )

        logging.info(f"Removed post {post_id}, {result.rowcount} post row(s) deleted")
        return response_handler(True, 200, "Post Removed", None)

    async def _insert_post(self, new_post: schemas.NewPost) -> models.Post:
        post = models.Post(
            title=new_post.title,
            body=new_post.body,
            user_id=new_post.user_id,
        )
        self.db.add(post)
        await self.db.flush()  # Get the generated id without committing
        return post

    async def _find_or_create_tag(
        self, tagname: str, description: Optional[str]
    ) -> models.Tag:
        dialect = self.db.get_bind().dialect.name
        insert = UPSERT_INSERTS.get(dialect)

        if insert is None:
            logging.error(f"No conflict-safe tag insert for dialect '{dialect}'")
            raise InternalFailure()

        # A concurrent insert of the same tagname is absorbed by the unique constraint
        stmt = (
            insert(models.Tag)
            .values(tagname=tagname, description=description)
            .on_conflict_do_nothing(index_elements=["tagname"])
        )
        await self.db.execute(stmt)

        query = select(models.Tag).where(models.Tag.tagname == tagname)
        return (await self.db.execute(query)).scalar_one()

    async def _link_tag(self, post_id: int, tag_id: int) -> models.PostTag:
        link = models.PostTag(post_id=post_id, tag_id=tag_id)
        self.db.add(link)
        await self.db.flush()
        return link

    # =========================
    # READS
    # =========================

    @envelope_boundary
    async def retrieve_one(self, post_id: int) -> schemas.ResponseEnvelope:
        """
        Count a view, then read the post summary.
        The read happens even when the view could not be counted.
        """

        await self._increment_views(post_id)

        async with storage_errors(self.db, READ_FAILURE):
            row = (await self.db.execute(queries.single_post_query(post_id))).first()

        if row is None:
            raise NotFound()

        return response_handler(True, 200, "Success", _summary(row))

    @envelope_boundary
    async def retrieve_all(self) -> schemas.ResponseEnvelope:
        return await self._retrieve_many(queries.all_posts_query())

    @envelope_boundary
    async def retrieve_all_top(self) -> schemas.ResponseEnvelope:
        return await self._retrieve_many(queries.top_posts_query())

    @envelope_boundary
    async def retrieve_all_tag(self, tagname: str) -> schemas.ResponseEnvelope:
        return await self._retrieve_many(queries.posts_by_tag_query(tagname))

    async def _increment_views(self, post_id: int) -> None:
        try:
            async with transaction_scope(self.db):
                await self.db.execute(
                    update(models.Post)
                    .where(models.Post.id == post_id)
                    # A view is not an edit, keep updated_at as it is
                    .values(
                        views=models.Post.views + 1,
                        updated_at=models.Post.updated_at,
                    )
                    .execution_options(synchronize_session=False)
                )
        except InternalFailure:
            logging.warning(f"Could not count a view for post {post_id}")

    async def _retrieve_many(self, query: Select) -> schemas.ResponseEnvelope:
        async with storage_errors(self.db, READ_FAILURE):
            rows = (await self.db.execute(query)).all()

        if not rows:
            raise EmptyResult()

        return response_handler(True, 200, "Success", [_summary(row) for row in rows])
