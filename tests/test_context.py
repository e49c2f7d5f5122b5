"""
Tests for odata_expand.persons.context.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from odata_expand.odata.options import QueryOptions
from odata_expand.persons.context import PersonContext
from odata_expand.persons.records import OpenPerson, to_person


async def _seed(database, *people):
    async with database.session() as session:
        ctx = PersonContext(session)
        for data in people:
            await ctx.add_and_commit(to_person(OpenPerson.model_validate(data)))


class TestAddAndCommit:
    """Tests for the write path."""

    @pytest.mark.asyncio
    async def test_assigns_identity(self, database, sample_person):
        async with database.session() as session:
            ctx = PersonContext(session)
            person = await ctx.add_and_commit(to_person(OpenPerson.model_validate(sample_person)))

        assert person.id is not None
        assert all(a.id is not None for a in person.attributes)
        assert person.orders[0].id is not None

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back_and_propagates(self):
        session = AsyncMock()
        session.add = Mock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))

        ctx = PersonContext(session)
        with pytest.raises(SQLAlchemyError):
            await ctx.add_and_commit(to_person(OpenPerson(name="Ada")))

        session.add.assert_called_once()
        session.rollback.assert_awaited_once()


class TestQuery:
    """Tests for the read path."""

    @pytest.mark.asyncio
    async def test_filter_and_order(self, database):
        await _seed(database, {"Name": "Ada", "Age": 36}, {"Name": "Tim", "Age": 8}, {"Name": "Bob", "Age": 50})

        async with database.session() as session:
            page = await PersonContext(session).query(
                QueryOptions.from_pairs([("$filter", "Age gt 10"), ("$orderby", "Age desc")]),
                page_size=10,
            )

        assert [p.name for p in page.items] == ["Bob", "Ada"]
        assert page.next_skip is None
        assert page.count is None

    @pytest.mark.asyncio
    async def test_server_paging(self, database):
        await _seed(database, *({"Name": f"P{i}"} for i in range(5)))

        async with database.session() as session:
            page = await PersonContext(session).query(QueryOptions(count=True), page_size=2)

        assert [p.name for p in page.items] == ["P0", "P1"]
        assert page.next_skip == 2
        assert page.remaining_top is None
        assert page.count == 5

    @pytest.mark.asyncio
    async def test_top_within_page(self, database):
        await _seed(database, *({"Name": f"P{i}"} for i in range(5)))

        async with database.session() as session:
            page = await PersonContext(session).query(QueryOptions(top=2, skip=1), page_size=10)

        assert [p.name for p in page.items] == ["P1", "P2"]
        assert page.next_skip is None

    @pytest.mark.asyncio
    async def test_top_larger_than_page(self, database):
        await _seed(database, *({"Name": f"P{i}"} for i in range(5)))

        async with database.session() as session:
            page = await PersonContext(session).query(QueryOptions(top=4), page_size=3)

        assert len(page.items) == 3
        assert page.next_skip == 3
        assert page.remaining_top == 1

    @pytest.mark.asyncio
    async def test_expanded_navigations_are_loaded(self, database, sample_person):
        await _seed(database, sample_person)

        opts = QueryOptions.from_pairs([
            ("$expand", "Attributes,Orders($expand=Attributes),Pets($expand=Attributes)"),
        ])
        async with database.session() as session:
            page = await PersonContext(session).query(opts, page_size=10)

        (person,) = page.items
        assert {a.key for a in person.attributes} == {"Nickname", "Title"}
        assert person.orders[0].attributes[0].value == "high"
        assert person.pets[0].attributes[0].key == "Colour"
