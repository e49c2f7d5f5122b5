"""
odata_expand.api - Run as module

Usage: python -m odata_expand.api
"""

import logging

import uvicorn

from odata_expand.core.config import ServiceConfig


def main():
    """Run the Persons service."""
    cfg = ServiceConfig.from_env()
    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("odata_expand").info(
        "Starting Persons OData service on %s:%s", cfg.host, cfg.port
    )

    uvicorn.run(
        "odata_expand.api:app",
        host=cfg.host,
        port=cfg.port,
        reload=cfg.reload,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
