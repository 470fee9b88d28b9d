"""
validatebag -- Application Entry Point

FastAPI application serving the bag validation API.

`validatebag run-service` -> uvicorn validatebag.main:app
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI

# Load .env file before any configuration is loaded
load_dotenv()

from validatebag.api.routers.validate import router as validate_router
from validatebag.clients import BagStoreClient, XmlSchemaValidator
from validatebag.config import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    ValidateBagConfig,
    load_config,
)
from validatebag.systems.validation.profiles import build_catalog
from validatebag.systems.validation.service import ValidationService
from validatebag.telemetry.logging import setup_logging

logger = structlog.get_logger()


def build_validation_service(
    config: ValidateBagConfig,
) -> tuple[ValidationService, BagStoreClient]:
    """
    Load the schemas, connect the bag-store client and build the catalog.

    Raises SchemaLoadError when an XSD cannot be loaded; the service does not
    start without its schemas.
    """
    schemas = config.schemas

    def load(location: str | None, name: str) -> XmlSchemaValidator | None:
        if not location:
            return None
        return XmlSchemaValidator.from_location(location, name, timeout_s=schemas.timeout_s)

    ddm_validator = load(schemas.ddm, "ddm")
    files_validator = load(schemas.files, "files")
    agreements_validator = load(schemas.agreements, "agreements")
    provenance_validator = load(schemas.provenance, "provenance")
    bag_store = BagStoreClient.from_config(config.bag_store)
    catalog = build_catalog(
        allowed_licenses=config.allowed_licenses,
        ddm_validator=ddm_validator,
        files_validator=files_validator,
        bag_store=bag_store,
        agreements_validator=agreements_validator,
        provenance_validator=provenance_validator,
    )
    logger.info(
        "catalog_built",
        rules=len(catalog),
        allowed_licenses=len(config.allowed_licenses),
        agreements_schema=agreements_validator is not None,
        provenance_schema=provenance_validator is not None,
    )
    return ValidationService(catalog), bag_store


# ─── Application State ───────────────────────────────────────────
# These are set during startup and accessible via app.state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown sequence."""
    # ── 1. Load configuration ─────────────────────────────────
    config_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
    config = load_config(config_path)
    app.state.config = config

    # ── 2. Set up logging ─────────────────────────────────────
    setup_logging(config.logging)
    logger.info("validatebag_starting", version=config.version, config_path=config_path)

    # ── 3. Schemas, bag store, catalog ────────────────────────
    validation, bag_store = build_validation_service(config)
    app.state.validation = validation

    logger.info("validatebag_ready", host=config.server.host, port=config.server.port)
    yield

    # ── Shutdown ──────────────────────────────────────────────
    bag_store.close()
    logger.info("validatebag_stopped")


app = FastAPI(
    title="validatebag",
    description="Validates bags against the DANS BagIt profile",
    version=ValidateBagConfig.model_fields["version"].default,
    lifespan=lifespan,
)

app.include_router(validate_router)


# ─── Health ───────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, Any]:
    """Service health check."""
    return {
        "status": "ok",
        "version": app.state.config.version,
        "validation": app.state.validation.health(),
    }
