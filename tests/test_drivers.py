"""
Persistence Drivers (quiver/drivers/)

Tests the document, content-repository and relational drivers plus
driver selection.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional

import pytest
import pytest_asyncio

from conftest import Article
from quiver.drivers import (
    ContentRepositoryDriver,
    DocumentDriver,
    DriverSelector,
    RelationalDriver,
    ResourceMetadata,
    SQLiteDatabase,
    select_driver,
)
from quiver.drivers.base import ConcurrentModificationError, DuplicateKeyError
from quiver.drivers.relational import _column_type
from quiver.faults import ConfigInvalidFault, DriverNotFoundFault


@dataclass
class Post:
    id: Optional[int] = None
    title: str = ""
    slug: Optional[str] = None
    published: bool = False
    version: int = 0


def article_metadata(**options):
    return ResourceMetadata("article", Article, options=options)


# ============================================================================
# Document driver
# ============================================================================

class TestDocumentDriver:

    @pytest.mark.asyncio
    async def test_create_assigns_object_id(self):
        driver = DocumentDriver(article_metadata())
        article = await driver.create(Article(title="Hello"))
        assert re.fullmatch(r"[0-9a-f]{24}", article.id)
        found = await driver.find_one_by({"id": article.id})
        assert found.title == "Hello"

    @pytest.mark.asyncio
    async def test_explicit_id_is_kept(self):
        driver = DocumentDriver(article_metadata())
        await driver.create(Article(id="a1", title="Hello"))
        assert (await driver.find_one_by({"id": "a1"})).title == "Hello"

    @pytest.mark.asyncio
    async def test_returned_instances_are_copies(self):
        driver = DocumentDriver(article_metadata())
        article = await driver.create(Article(id="a1", title="Hello"))
        article.title = "changed in memory"
        found = await driver.find_one_by({"id": "a1"})
        found.title = "also changed"
        assert (await driver.find_one_by({"id": "a1"})).title == "Hello"

    @pytest.mark.asyncio
    async def test_find_by_criteria_sorting_offset(self):
        driver = DocumentDriver(article_metadata())
        for i, title in enumerate(["d", "b", "a", "c"]):
            await driver.create(Article(id=str(i), title=title, published=i % 2 == 0))

        titles = [a.title for a in await driver.find_by({}, {"title": "desc"})]
        assert titles == ["d", "c", "b", "a"]

        page = await driver.find_by({}, {"title": "asc"}, limit=2, offset=1)
        assert [a.title for a in page] == ["b", "c"]

        published = await driver.find_by({"published": True})
        assert sorted(a.title for a in published) == ["a", "d"]

        any_of = await driver.find_by({"title": ["a", "b"]})
        assert sorted(a.title for a in any_of) == ["a", "b"]

        assert await driver.count({"published": False}) == 2

    @pytest.mark.asyncio
    async def test_string_criteria_match_numbers(self):
        driver = DocumentDriver(article_metadata())
        await driver.create(Article(id="x", title="Hello", owner_id=7))
        assert await driver.find_one_by({"owner_id": "7"}) is not None

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        driver = DocumentDriver(article_metadata())
        article = await driver.create(Article(title="Hello"))
        article.title = "Updated"
        await driver.update(article)
        assert (await driver.find_one_by({"id": article.id})).title == "Updated"

        await driver.delete(article)
        assert await driver.find_one_by({"id": article.id}) is None

    @pytest.mark.asyncio
    async def test_update_missing_document(self):
        driver = DocumentDriver(article_metadata())
        with pytest.raises(ConcurrentModificationError):
            await driver.update(Article(id="ghost"))

    @pytest.mark.asyncio
    async def test_unique_fields(self):
        driver = DocumentDriver(article_metadata(unique=["slug"]))
        await driver.create(Article(slug="hello"))
        with pytest.raises(DuplicateKeyError):
            await driver.create(Article(slug="hello"))

    @pytest.mark.asyncio
    async def test_version_field(self):
        driver = DocumentDriver(ResourceMetadata("post", Post, options={"version_field": "version"}))
        post = await driver.create(Post(id=1, title="Hello"))
        assert post.version == 1

        stale = await driver.find_one_by({"id": 1})
        post.title = "First"
        await driver.update(post)
        assert post.version == 2

        stale.title = "Second"
        with pytest.raises(ConcurrentModificationError):
            await driver.update(stale)

    @pytest.mark.asyncio
    async def test_transaction_commits(self):
        driver = DocumentDriver(article_metadata())
        async with driver.transaction():
            await driver.create(Article(id="a1"))
            # pending until commit
            assert await driver.count() == 0
        assert await driver.count() == 1

    @pytest.mark.asyncio
    async def test_transaction_rolls_back(self):
        driver = DocumentDriver(article_metadata())
        with pytest.raises(RuntimeError):
            async with driver.transaction():
                await driver.create(Article(id="a1"))
                raise RuntimeError("boom")
        assert await driver.count() == 0

    @pytest.mark.asyncio
    async def test_duplicates_checked_against_pending_writes(self):
        driver = DocumentDriver(article_metadata(unique=["slug"]))
        with pytest.raises(DuplicateKeyError):
            async with driver.transaction():
                await driver.create(Article(id="a1", slug="same"))
                await driver.create(Article(id="a2", slug="same"))
        assert await driver.count() == 0

    @pytest.mark.asyncio
    async def test_commit_rejects_version_committed_meanwhile(self):
        driver = DocumentDriver(ResourceMetadata("post", Post, options={"version_field": "version"}))
        await driver.create(Post(id=1, title="Hello"))
        first = await driver.find_one_by({"id": 1})
        second = await driver.find_one_by({"id": 1})
        staged = asyncio.Event()
        release = asyncio.Event()

        async def slow_update():
            async with driver.transaction():
                first.title = "First"
                await driver.update(first)
                staged.set()
                await release.wait()

        task = asyncio.create_task(slow_update())
        await staged.wait()
        second.title = "Second"
        await driver.update(second)
        release.set()

        with pytest.raises(ConcurrentModificationError):
            await task
        stored = await driver.find_one_by({"id": 1})
        assert (stored.title, stored.version) == ("Second", 2)

    def test_collection_defaults_to_plural(self):
        assert DocumentDriver(article_metadata()).collection == "articles"


# ============================================================================
# Content repository driver
# ============================================================================

class TestContentRepositoryDriver:

    @pytest.mark.asyncio
    async def test_path_identity(self):
        driver = ContentRepositoryDriver(article_metadata())
        article = await driver.create(Article(title="Hello", slug="Hello World"))
        assert article.id == "/cms/articles/hello-world"
        assert (await driver.find_one_by({"id": "/cms/articles/hello-world"})).title == "Hello"

    @pytest.mark.asyncio
    async def test_custom_root_and_children(self):
        driver = ContentRepositoryDriver(article_metadata(root="/site/news/"))
        await driver.create(Article(slug="one"))
        await driver.create(Article(slug="two"))
        assert driver.children("/site/news") == ["/site/news/one", "/site/news/two"]

    @pytest.mark.asyncio
    async def test_same_name_is_duplicate_path(self):
        driver = ContentRepositoryDriver(article_metadata())
        await driver.create(Article(slug="hello"))
        with pytest.raises(DuplicateKeyError):
            await driver.create(Article(slug="hello"))

    @pytest.mark.asyncio
    async def test_unnamed_nodes_get_a_token(self):
        driver = ContentRepositoryDriver(article_metadata())
        article = await driver.create(Article(title="No slug"))
        assert article.id.startswith("/cms/articles/")


# ============================================================================
# Relational driver
# ============================================================================

@pytest_asyncio.fixture
async def database():
    db = SQLiteDatabase("sqlite:///:memory:")
    await db.connect()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def posts(database):
    driver = RelationalDriver(
        ResourceMetadata("post", Post),
        database=database,
        unique=["slug"],
        version_field="version",
    )
    await driver.create_schema()
    return driver


class TestRelationalDriver:

    @pytest.mark.asyncio
    async def test_create_and_find(self, posts):
        post = await posts.create(Post(title="Hello", slug="hello", published=True))
        assert post.id == 1
        assert post.version == 1

        found = await posts.find_one_by({"slug": "hello"})
        assert found.title == "Hello"
        assert found.published is True
        assert await posts.find_one_by({"slug": "missing"}) is None

    @pytest.mark.asyncio
    async def test_find_by_sorting_limit_and_in(self, posts):
        for title in ("c", "a", "b", "d"):
            await posts.create(Post(title=title, slug=title))

        assert [p.title for p in await posts.find_by({}, {"title": "asc"}, limit=2)] == ["a", "b"]
        assert [p.title for p in await posts.find_by({}, {"title": "asc"}, limit=2, offset=2)] == ["c", "d"]
        assert sorted(p.title for p in await posts.find_by({"slug": ["a", "d"]})) == ["a", "d"]
        assert await posts.find_by({"slug": []}) == []
        assert await posts.count() == 4

    @pytest.mark.asyncio
    async def test_paginator_slices_in_sql(self, posts):
        for i in range(5):
            await posts.create(Post(title=f"post {i}", slug=f"p{i}"))
        paginator = posts.create_paginator({}, {"id": "asc"})
        paginator.set_max_per_page(2).set_current_page(3)
        await paginator.fetch()
        assert [p.title for p in paginator] == ["post 4"]
        assert paginator.nb_pages == 3

    @pytest.mark.asyncio
    async def test_update_with_version_check(self, posts):
        post = await posts.create(Post(title="Hello", slug="hello"))
        stale = await posts.find_one_by({"id": post.id})

        post.title = "First"
        await posts.update(post)
        assert post.version == 2
        assert (await posts.find_one_by({"id": post.id})).title == "First"

        stale.title = "Second"
        with pytest.raises(ConcurrentModificationError):
            await posts.update(stale)

    @pytest.mark.asyncio
    async def test_unique_violation(self, posts):
        await posts.create(Post(title="a", slug="same"))
        with pytest.raises(DuplicateKeyError):
            await posts.create(Post(title="b", slug="same"))

    @pytest.mark.asyncio
    async def test_delete(self, posts):
        post = await posts.create(Post(title="Hello", slug="hello"))
        await posts.delete(post)
        assert await posts.find_one_by({"id": post.id}) is None

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, posts):
        with pytest.raises(RuntimeError):
            async with posts.transaction():
                await posts.create(Post(title="Hello", slug="hello"))
                raise RuntimeError("boom")
        assert await posts.count() == 0

    @pytest.mark.asyncio
    async def test_nested_transaction_joins(self, posts):
        async with posts.transaction():
            async with posts.transaction():
                await posts.create(Post(title="Hello", slug="hello"))
        assert await posts.count() == 1

    @pytest.mark.asyncio
    async def test_reads_wait_for_open_transaction(self, posts):
        inserted = asyncio.Event()
        release = asyncio.Event()

        async def abandoned_write():
            async with posts.transaction():
                await posts.create(Post(title="ghost", slug="ghost"))
                inserted.set()
                await release.wait()
                raise RuntimeError("abort")

        writer = asyncio.create_task(abandoned_write())
        await inserted.wait()
        reader = asyncio.create_task(posts.find_one_by({"title": "ghost"}))
        await asyncio.sleep(0.01)
        assert not reader.done()

        release.set()
        with pytest.raises(RuntimeError):
            await writer
        assert await reader is None

    def test_column_types_follow_annotations(self):
        assert _column_type(int) == "INTEGER"
        assert _column_type(bool) == "INTEGER"
        assert _column_type(float) == "REAL"
        assert _column_type(Optional[int]) == "INTEGER"
        assert _column_type("Optional[int]") == "INTEGER"
        assert _column_type("int | None") == "INTEGER"
        assert _column_type("Point") == "TEXT"
        assert _column_type("List[int]") == "TEXT"
        assert _column_type(List[int]) == "TEXT"
        assert _column_type(str) == "TEXT"

    @pytest.mark.asyncio
    async def test_unknown_column(self, posts):
        with pytest.raises(ConfigInvalidFault):
            await posts.find_by({"nope": 1})

    def test_requires_dataclass_model(self):
        class Plain:
            pass

        with pytest.raises(ConfigInvalidFault):
            RelationalDriver(ResourceMetadata("plain", Plain))


# ============================================================================
# Selection
# ============================================================================

class TestDriverSelector:

    def test_builtin_kinds(self):
        selector = DriverSelector()
        assert selector.kinds == ["content-repository-odm", "document-odm", "relational-orm"]
        assert isinstance(selector.select("document-odm", article_metadata()), DocumentDriver)
        assert isinstance(
            selector.select("content-repository-odm", article_metadata()), ContentRepositoryDriver
        )

    def test_relational_selection(self):
        driver = select_driver("relational-orm", ResourceMetadata("post", Post), table="blog_posts")
        assert isinstance(driver, RelationalDriver)
        assert driver.table == "blog_posts"

    def test_unknown_kind(self):
        with pytest.raises(DriverNotFoundFault) as exc_info:
            DriverSelector().select("unknown-backend", article_metadata())
        assert exc_info.value.kind == "unknown-backend"
        assert exc_info.value.metadata["supported"] == DriverSelector().kinds

    def test_register_custom_kind(self):
        selector = DriverSelector()
        selector.register("memory", DocumentDriver)
        assert selector.supports("memory")
        assert isinstance(selector.select("memory", article_metadata()), DocumentDriver)
