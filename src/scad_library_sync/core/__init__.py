"""Remote access and async helpers shared by the sync engine and the CLI."""

from .async_utils import run_sync
from .client import ProxySettings, RemoteClient

__all__ = ["ProxySettings", "RemoteClient", "run_sync"]
