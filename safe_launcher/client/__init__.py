# Application-side IPC client
from safe_launcher.client.app_client import ApplicationClient as ApplicationClient

__all__ = ["ApplicationClient"]
