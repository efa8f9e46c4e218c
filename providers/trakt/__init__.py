from ._auth import TraktCredentials
from .client import TraktClient

__all__ = ["TraktClient", "TraktCredentials"]
