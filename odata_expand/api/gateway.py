"""
odata_expand.api.gateway - FastAPI Persons service
===================================================

HTTP surface for the ``Persons`` entity set.

Every collection read goes through the implicit ``Attributes`` expansion
before the query options are evaluated, so ``GET /odata/Persons`` behaves
as ``GET /odata/Persons?$expand=Attributes``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional
from urllib.parse import urlsplit

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odata_expand import __version__
from odata_expand.api.models import (
    EXAMPLE_EXPAND,
    EXAMPLE_FILTER,
    EXAMPLE_PERSON,
    HealthResponse,
    ODataErrorResponse,
    PersonCollectionResponse,
)
from odata_expand.core.config import ServiceConfig
from odata_expand.core.database import Database
from odata_expand.odata.errors import ODataRequestError
from odata_expand.odata.expand import rewrite_target
from odata_expand.odata.options import ExpandItem, QueryOptions, parse_expand
from odata_expand.odata.serializer import serialize_collection, serialize_entity
from odata_expand.odata.urls import parse_query_pairs, replace_params, with_query
from odata_expand.persons.context import PersonContext
from odata_expand.persons.entities import PERSONS, build_model
from odata_expand.persons.records import OpenPerson, to_person

logger = logging.getLogger("odata_expand.api")

API_PREFIX = "api"

# what a freshly created person is returned with
CREATED_EXPAND: List[ExpandItem] = parse_expand(
    "Attributes,Orders($expand=Attributes),Pets($expand=Attributes)"
)


class PersonsGateway:
    """
    Configuration and persistence holder for the API.

    Parameters
    ----------
    config : ServiceConfig, optional
        Service configuration; read from the environment when omitted
    database : Database, optional
        Pre-built database (tests); created from ``config`` when omitted
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        database: Optional[Database] = None,
    ) -> None:
        self.config = config or ServiceConfig.from_env()
        self.database = database
        self.model = build_model()

    def ensure_database(self) -> Database:
        if self.database is None:
            self.database = Database(self.config.database_url, echo=self.config.sql_echo)
        return self.database

    def prefixes(self) -> List[str]:
        out = [self.config.route_prefix]
        if API_PREFIX not in out:
            out.append(API_PREFIX)
        return out


def _service_root(request: Request, prefix: str) -> str:
    return f"{str(request.base_url).rstrip('/')}/{prefix}".rstrip("/")


def create_app(
    config: Optional[ServiceConfig] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    config : ServiceConfig, optional
        Service configuration. If None, reads from environment.
    database : Database, optional
        Database to use instead of one built from ``config.database_url``

    Returns
    -------
    FastAPI
        Configured FastAPI application
    """
    gw = PersonsGateway(config, database)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        db = gw.ensure_database()
        await db.create_all()
        logger.info("Persons service ready on /%s", ", /".join(gw.prefixes()))
        yield
        await db.dispose()

    app = FastAPI(
        title="Persons OData Service",
        description="""
## Persons OData Service

An OData-style entity set of open-type persons.

Every read implicitly expands `Attributes`, and every explicitly expanded
navigation expands its own `Attributes` too:

- `GET /odata/Persons` is served as `GET /odata/Persons?$expand=Attributes`
- `GET /odata/Persons?$expand=Orders,Pets` is served with
  `$expand=Attributes,Orders($expand=Attributes),Pets($expand=Attributes)`

Giving `$expand` more than once is rejected with **400**.
        """,
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Persons", "description": "Persons entity set"},
            {"name": "Service", "description": "Service and $metadata documents"},
        ],
    )
    app.state.gateway = gw

    app.add_middleware(
        CORSMiddleware,
        allow_origins=gw.config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------------

    @app.exception_handler(ODataRequestError)
    async def odata_request_error(request: Request, exc: ODataRequestError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(IntegrityError)
    async def integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Integrity violation on %s %s: %s", request.method, request.url, exc.orig or exc)
        return JSONResponse(
            status_code=409,
            content={"error": {"code": "Conflict", "message": str(exc.orig or exc)}},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s %s: %s", request.method, request.url, exc)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "InternalServerError", "message": str(exc)}},
        )

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    async def get_session() -> AsyncGenerator[AsyncSession, None]:
        async with gw.ensure_database().session() as session:
            yield session

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    def health() -> Dict[str, Any]:
        """Health check endpoint."""
        return {"ok": True, "version": __version__}

    def register(prefix: str) -> None:
        root = f"/{prefix}" if prefix else ""

        @app.get(f"{root}/", tags=["Service"], name=f"{prefix}_service_document")
        def service_document(request: Request) -> Dict[str, Any]:
            """List the entity sets of the service."""
            return gw.model.service_document(f"{_service_root(request, prefix)}/$metadata")

        @app.get(f"{root}/$metadata", tags=["Service"], name=f"{prefix}_metadata")
        def metadata() -> Response:
            """CSDL description of the entity types."""
            return Response(content=gw.model.to_csdl(), media_type="application/xml")

        @app.get(
            f"{root}/{PERSONS}",
            tags=["Persons"],
            name=f"{prefix}_list_persons",
            summary="Query Persons",
            responses={
                200: {"model": PersonCollectionResponse},
                400: {"model": ODataErrorResponse},
            },
        )
        async def list_persons(
            request: Request,
            # OpenAPI only; options are read from the raw query string below
            filter_: Optional[str] = Query(
                default=None, alias="$filter", examples=[EXAMPLE_FILTER],
                description="OData $filter expression",
            ),
            expand: Optional[str] = Query(
                default=None, alias="$expand", examples=[EXAMPLE_EXPAND],
                description="Navigations to expand; Attributes is always added",
            ),
            session: AsyncSession = Depends(get_session),
        ) -> Dict[str, Any]:
            """
            Query the Persons collection.

            The declared parameters only document the common options; every
            system query option is read from the raw query string.
            """
            original = request.url.query
            rewritten = urlsplit(rewrite_target(str(request.url))).query

            opts = QueryOptions.from_pairs(parse_query_pairs(rewritten))
            ctx = PersonContext(session, gw.model)
            page = await ctx.query(opts, page_size=gw.config.max_page_size)

            next_link = None
            if page.next_skip is not None:
                top = None if page.remaining_top is None else str(page.remaining_top)
                next_link = with_query(
                    str(request.url),
                    replace_params(original, skip=str(page.next_skip), top=top),
                )

            return serialize_collection(
                gw.model,
                ctx.shape,
                page.items,
                context_url=f"{_service_root(request, prefix)}/$metadata#{PERSONS}",
                select=opts.select,
                expand=opts.expand,
                count=page.count,
                next_link=next_link,
            )

        @app.post(
            f"{root}/{PERSONS}",
            tags=["Persons"],
            name=f"{prefix}_create_person",
            summary="Create Person",
            responses={400: {"model": ODataErrorResponse}, 409: {"model": ODataErrorResponse}},
        )
        async def create_person(
            request: Request,
            record: OpenPerson = Body(..., examples=[EXAMPLE_PERSON]),
            session: AsyncSession = Depends(get_session),
        ) -> Dict[str, Any]:
            """
            Create a person from an open record.

            Undeclared members of the body are stored as Attributes.
            """
            ctx = PersonContext(session, gw.model)
            person = await ctx.add_and_commit(to_person(record))
            payload = {"@odata.context": f"{_service_root(request, prefix)}/$metadata#{PERSONS}/$entity"}
            payload.update(serialize_entity(gw.model, ctx.shape, person, expand=CREATED_EXPAND))
            return payload

    for prefix in gw.prefixes():
        register(prefix)

    return app
