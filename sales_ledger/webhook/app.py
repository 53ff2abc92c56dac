"""
Webhook receiver for external sale notifications.

A thin FastAPI layer over the ingestion gateway: it only translates the
gateway's outcomes into HTTP responses.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger

from sales_ledger.config.loader import ServiceSettings
from sales_ledger.core.ingestion import IngestionGateway, SaleSubmission
from sales_ledger.errors import AuthorizationError, StorageError, ValidationError
from sales_ledger.storage.config_store import ConfigStore
from sales_ledger.storage.repository import SalesRepository, initialize_schema


def build_gateway(settings: ServiceSettings) -> IngestionGateway:
    """Create the schema if needed and wire a gateway to it."""
    initialize_schema(settings.db_path, settings.default_commission_rate)
    return IngestionGateway(
        repository=SalesRepository(settings.db_path),
        config_store=ConfigStore(settings.db_path),
        webhook_secret=settings.webhook_secret,
    )


def create_app(
    settings: Optional[ServiceSettings] = None,
    gateway: Optional[IngestionGateway] = None
) -> FastAPI:
    """Build the webhook application.

    Args:
        settings: Service settings, defaults to ``ServiceSettings()``
        gateway: Pre-built gateway; built from ``settings`` when omitted
    """
    if gateway is None:
        gateway = build_gateway(settings or ServiceSettings())

    app = FastAPI(title="Sales Ledger Webhook")
    app.state.gateway = gateway

    @app.post("/webhook")
    async def receive_sale(request: Request):
        submission = SaleSubmission.from_payload(await _read_payload(request))
        try:
            # SQLite calls block, so keep them off the event loop
            await run_in_threadpool(gateway.ingest, submission)
        except AuthorizationError:
            return JSONResponse(status_code=403, content={"error": "Invalid secret"})
        except ValidationError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except StorageError as e:
            logger.error(f"Failed to record sale: {e}")
            return JSONResponse(status_code=500, content={"error": "Storage failure"})
        return {"success": True}

    return app


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Parse the body as a JSON object.

    An empty, malformed or non-object body reads as ``{}`` so the request
    still goes through the secret check.
    """
    try:
        payload = await request.json()
    except ValueError:
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload
