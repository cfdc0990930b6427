# Common utilities
from safe_launcher.common.channel import ApplicationChannel as ApplicationChannel
from safe_launcher.common.crypto import CryptoUtils as CryptoUtils
from safe_launcher.common.logging_utils import setup_logger as setup_logger

__all__ = ["ApplicationChannel", "CryptoUtils", "setup_logger"]
