"""
Status API - Health and pass reporting for the Initializer Controller.

A small FastAPI app served by uvicorn alongside the reconciliation loop.
"""

import logging
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from controller import Controller
from errors import ListError

logger = logging.getLogger(__name__)


class PassReportResponse(BaseModel):
    """Response model for a reconciliation pass."""

    started_at: str
    finished_at: Optional[str] = None
    success: bool
    synced: List[str] = []
    skipped: List[str] = []
    initialized: List[str] = []
    errors: List[str] = []


class StatusResponse(BaseModel):
    """Response model for the controller status."""

    running: bool
    syncing: bool
    sync_interval: int
    last_pass: Optional[PassReportResponse] = None


class StatusServer:
    """Serves /healthz and the /api/v1 status endpoints."""

    def __init__(self, controller: Controller, host: str = "0.0.0.0", port: int = 8080):
        self.controller = controller
        self.host = host
        self.port = port
        self.server: Optional[uvicorn.Server] = None
        self.app = FastAPI(
            title="Initializer Controller",
            description="Status of the pending-initializer reconciliation loop",
        )
        self._setup_routes()

    def _setup_routes(self):
        @self.app.get("/healthz")
        async def healthz():
            """Liveness probe."""
            return {"status": "ok"}

        @self.app.get("/api/v1/status", response_model=StatusResponse)
        async def get_status():
            """Report the loop state and the most recent pass."""
            report = self.controller.last_report
            return StatusResponse(
                running=self.controller.running,
                syncing=self.controller.is_syncing,
                sync_interval=self.controller.sync_interval,
                last_pass=(
                    PassReportResponse(**report.to_dict()) if report else None
                ),
            )

        @self.app.post("/api/v1/sync", response_model=PassReportResponse)
        async def trigger_sync():
            """Run a reconciliation pass now."""
            if self.controller.is_syncing:
                raise HTTPException(
                    status_code=409, detail="A reconciliation pass is already running"
                )
            logger.info("Manually triggering reconciliation pass")
            try:
                report = await self.controller.sync_once()
            except ListError as e:
                raise HTTPException(status_code=502, detail=str(e))
            return PassReportResponse(**report.to_dict())

    async def start(self) -> None:
        """Start the HTTP server."""
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="info",
        )
        self.server = uvicorn.Server(config)

        logger.info(f"Starting status API on {self.host}:{self.port}")
        await self.server.serve()

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        logger.info("Stopping status API")
        if self.server:
            self.server.should_exit = True
