"""
Entry point for the launcher IPC server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import uvicorn

from .core import IpcServer

if TYPE_CHECKING:
    from safe_launcher.common.config import Config
    from safe_launcher.launcher.session import Session


def start_server(session: Session, config: Config | None = None) -> None:
    """Serve ``session`` to local applications until interrupted."""
    server = IpcServer(session, config=config)
    try:
        uvicorn.run(server.app, host=server.server_host, port=server.server_port)
    finally:
        session.close()


__all__ = ["IpcServer", "start_server"]
