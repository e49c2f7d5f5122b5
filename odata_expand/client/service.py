"""
odata_expand.client.service - Persons service client
=====================================================

Entity-set scoped query client for the Persons service.

Reads are always returned with their ``Attributes`` expanded, because the
service adds that expansion to every collection read.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generator, List, Optional, Sequence

from odata_expand.client.metadata import ODataMetadata
from odata_expand.client.session import ODataSession
from odata_expand.odata.filters import escape_odata_literal

logger = logging.getLogger("odata_expand.client")

__all__ = ["PersonsService", "escape_odata_literal"]


def _join_csv(items: Sequence[str]) -> str:
    return ",".join([s.strip() for s in items if s and s.strip()])


class PersonsService:
    """
    Query and create client for one entity set.

    Parameters
    ----------
    sess : ODataSession
        Active OData session
    entity_set : str
        Entity set name (default: "Persons")

    Examples
    --------
    >>> with ODataSession(ODataConfig("http://localhost:5050/odata/")) as sess:
    ...     persons = PersonsService(sess)
    ...     adults = persons.query(
    ...         fields=["Name", "Age"],
    ...         filter_expr="Age ge 18",
    ...         expand=["Orders"],
    ...     )
    ...     persons.create({"Name": "Ada", "Age": 36, "Title": "Countess"})
    """

    def __init__(self, sess: ODataSession, entity_set: str = "Persons") -> None:
        self.sess = sess
        self.entity_set = entity_set
        self.meta = ODataMetadata(sess)

    # ---------------- core reads ----------------

    def read(self, **query: str) -> List[Dict[str, Any]]:
        """
        Read a single page of the entity set.

        Parameters
        ----------
        **query
            OData query parameters, e.g. ``**{"$top": "5"}``
        """
        payload = self.sess.get(self.entity_set, params=query)
        return payload.get("value") or []

    def iterate(
        self,
        *,
        max_pages: Optional[int] = None,
        **query: str,
    ) -> Generator[List[Dict[str, Any]], None, None]:
        """
        Iterate through pages of results, following ``@odata.nextLink``.

        Parameters
        ----------
        max_pages : int, optional
            Maximum number of pages to fetch
        **query
            OData query parameters

        Yields
        ------
        list of dict
            Each page of entity records
        """
        p = self.sess.get(self.entity_set, params=query)

        yielded = 0
        first = p.get("value") or []
        if first:
            yield first
            yielded += 1
            if max_pages is not None and yielded >= int(max_pages):
                return

        next_link = p.get("@odata.nextLink")
        seen = set()

        while next_link:
            if next_link in seen:
                logger.warning("nextLink loop detected at %s", next_link)
                return
            seen.add(next_link)

            p = self.sess.get_url(next_link)
            chunk = p.get("value") or []
            if chunk:
                yield chunk
                yielded += 1
                if max_pages is not None and yielded >= int(max_pages):
                    return

            next_link = p.get("@odata.nextLink")

    def read_all(
        self,
        *,
        max_pages: Optional[int] = None,
        **query: str,
    ) -> List[Dict[str, Any]]:
        """Read all pages of results into a single list."""
        out: List[Dict[str, Any]] = []
        for page in self.iterate(max_pages=max_pages, **query):
            out.extend(page)
        return out

    def count(self, filter_expr: Optional[str] = None) -> int:
        """Return the number of entities matching ``filter_expr``."""
        params = {"$count": "true", "$top": "0"}
        if filter_expr:
            params["$filter"] = filter_expr
        payload = self.sess.get(self.entity_set, params=params)
        return int(payload.get("@odata.count", 0))

    # ---------------- generic query builder ----------------

    def query(
        self,
        *,
        fields: Optional[List[str]] = None,
        filter_expr: Optional[str] = None,
        orderby: Optional[str] = None,
        top: Optional[int] = None,
        skip: Optional[int] = None,
        expand: Optional[Sequence[str]] = None,
        max_pages: Optional[int] = None,
        validate_fields: bool = True,
        extra_params: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute a flexible query against the entity set.

        Parameters
        ----------
        fields : list of str, optional
            Fields for $select
        filter_expr : str, optional
            Raw $filter expression
        orderby : str, optional
            $orderby expression
        top : int, optional
            Maximum number of records ($top)
        skip : int, optional
            Records to skip ($skip)
        expand : list of str, optional
            Navigations to expand; ``Attributes`` is added by the service
        max_pages : int, optional
            Maximum pages to follow
        validate_fields : bool
            If True, drop fields unknown to $metadata
        extra_params : dict, optional
            Additional OData parameters

        Returns
        -------
        list of dict
            Query results

        Examples
        --------
        >>> persons.query(
        ...     fields=["Name"],
        ...     filter_expr=f"Name eq '{escape_odata_literal(name)}'",
        ...     orderby="Age desc",
        ...     expand=["Orders", "Pets"],
        ... )
        """
        params: Dict[str, str] = {}
        if extra_params:
            params.update(extra_params)

        if fields:
            use_fields = fields
            if validate_fields:
                use_fields, unknown = self.meta.validate_select(self.entity_set, fields)
                if unknown:
                    logger.warning(
                        "Dropping unknown fields for %s: %s",
                        self.entity_set, ", ".join(unknown),
                    )
            if use_fields:
                params["$select"] = _join_csv(use_fields)

        if filter_expr:
            params["$filter"] = filter_expr
        if orderby:
            params["$orderby"] = orderby
        if expand:
            params["$expand"] = _join_csv(expand)
        if top is not None:
            params["$top"] = str(int(top))
        if skip is not None:
            params["$skip"] = str(int(skip))

        return self.read_all(max_pages=max_pages, **params)

    # ---------------- writes ----------------

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an entity from an open record.

        Undeclared members are stored server-side as ``Attributes``.

        Returns
        -------
        dict
            The created entity with its assigned ``Id``
        """
        return self.sess.post(self.entity_set, record)

    # ---------------- discovery helpers ----------------

    def list_entity_sets(self) -> List[str]:
        return self.meta.entity_sets()

    def list_fields(self) -> List[str]:
        return self.meta.properties(self.entity_set)

    def list_navigations(self) -> List[str]:
        return self.meta.navigations(self.entity_set)
