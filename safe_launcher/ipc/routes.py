"""
Routes for the launcher IPC server.
"""

from typing import Any

from fastapi import FastAPI, HTTPException

from safe_launcher.common.exceptions import LauncherError
from safe_launcher.common.models import AttachRequest, AttachResponse, SealedMessage

from .services import IpcService


class IpcRoutes:
    """Handles FastAPI routes for the IPC server."""

    def __init__(self, service: IpcService):
        self.service = service

    def setup_routes(self, app: FastAPI) -> None:
        """Setup API routes on the FastAPI app."""

        app.get("/health")(self.health)
        app.post("/apps")(self.attach)
        app.delete("/apps/{app_id}")(self.detach)
        app.post("/apps/{app_id}/messages")(self.message)

    def health(self) -> dict[str, Any]:
        """Handle /health endpoint."""
        return self.service.health()

    # Handlers are sync so FastAPI runs them in its threadpool; engine access blocks
    def attach(self, req: AttachRequest) -> AttachResponse:
        """Handle POST /apps endpoint."""
        try:
            return self.service.attach(req)
        except LauncherError as e:
            raise HTTPException(e.status_code, str(e))

    def detach(self, app_id: str) -> dict[str, Any]:
        """Handle DELETE /apps/{app_id} endpoint."""
        try:
            return self.service.detach(app_id)
        except LauncherError as e:
            raise HTTPException(e.status_code, str(e))

    def message(self, app_id: str, req: SealedMessage) -> SealedMessage:
        """Handle POST /apps/{app_id}/messages endpoint."""
        try:
            return SealedMessage(
                payload=self.service.handle_message(app_id, req.payload)
            )
        except LauncherError as e:
            raise HTTPException(e.status_code, str(e))
