"""
IPC server exposing a launcher session to local applications over FastAPI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from safe_launcher.common.config import Config
from safe_launcher.common.logging_utils import setup_logger
from safe_launcher.launcher.memory_network import MemoryClient

from .routes import IpcRoutes
from .services import IpcService, Operation, engine_operations

if TYPE_CHECKING:
    from safe_launcher.launcher.session import Session


class IpcServer:
    """Main IPC server class wiring the session into a FastAPI app."""

    def __init__(
        self,
        session: Session,
        operations: dict[str, Operation] | None = None,
        config: Config | None = None,
        server_host: str | None = None,
        server_port: int | None = None,
    ):
        self.config = config or session.config
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, self.config.LOG_LEVEL)
        self.server_host = server_host or self.config.SERVER_HOST
        self.server_port = server_port or self.config.SERVER_PORT

        if operations is None:
            operations = engine_operations(MemoryClient.OPERATIONS)

        self.session = session
        self.app = FastAPI(title="SAFE Launcher IPC")
        self.service = IpcService(session, operations, self.logger)
        self.routes = IpcRoutes(self.service)
        self.routes.setup_routes(self.app)

        self.logger.info(
            "IPC server ready on http://%s:%s (%d operations)",
            self.server_host,
            self.server_port,
            len(operations),
        )
