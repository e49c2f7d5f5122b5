"""
odata_expand.persons.context - Persons persistence context
===========================================================

Query and write access to the ``Persons`` entity set over an
``AsyncSession``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odata_expand.odata.metadata import EdmModel
from odata_expand.odata.options import QueryOptions, apply_options
from odata_expand.persons.entities import PERSONS, Person, build_model

logger = logging.getLogger("odata_expand.persons")


@dataclass
class QueryPage:
    """
    One page of a collection read.

    Attributes
    ----------
    items : list
        Entities on this page
    count : int, optional
        Total matching rows when ``$count=true`` was requested
    next_skip : int, optional
        ``$skip`` of the next page, when one exists
    remaining_top : int, optional
        What is left of the caller's ``$top`` for the next page
    """
    items: List[Person]
    count: Optional[int] = None
    next_skip: Optional[int] = None
    remaining_top: Optional[int] = None


class PersonContext:
    """
    Persistence context for persons.

    Parameters
    ----------
    session : AsyncSession
        Session scoped to the current request
    model : EdmModel, optional
        EDM model; defaults to the service model

    Examples
    --------
    >>> async with db.session() as session:
    ...     ctx = PersonContext(session)
    ...     page = await ctx.query(QueryOptions.from_pairs(pairs), page_size=100)
    ...     person = await ctx.add_and_commit(to_person(record))
    """

    def __init__(self, session: AsyncSession, model: Optional[EdmModel] = None) -> None:
        self.session = session
        self.model = model or build_model()
        self.shape = self.model.shape_for_set(PERSONS)

    async def query(self, opts: QueryOptions, *, page_size: int) -> QueryPage:
        """
        Execute a collection read honoring the query options.

        Raises
        ------
        ODataQueryError
            If an option references unknown properties or navigations
        """
        stmt, count_stmt = apply_options(self.model, self.shape, opts, page_size=page_size)

        result = await self.session.execute(stmt)
        rows = list(result.scalars().unique().all())

        limit = page_size if opts.top is None else min(opts.top, page_size)
        page = QueryPage(items=rows[:limit])

        remaining = None if opts.top is None else opts.top - len(page.items)
        if len(rows) > limit and (remaining is None or remaining > 0):
            page.next_skip = opts.skip + len(page.items)
            page.remaining_top = remaining

        if opts.count:
            page.count = (await self.session.execute(count_stmt)).scalar_one()
        return page

    async def add_and_commit(self, person: Person) -> Person:
        """
        Add a new person and durably commit it.

        The returned entity carries the identity assigned on commit.

        Raises
        ------
        SQLAlchemyError
            Any failure of the commit, after the session is rolled back
        """
        self.session.add(person)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            logger.exception("Commit of new %s failed", self.shape.name)
            await self.session.rollback()
            raise
        logger.info("Created %s with Id=%s", self.shape.name, person.id)
        return person
