"""JTL-Wawi Connector"""

from .api_client import JtlApiClient
from .service import JtlOrderWriter

__all__ = ["JtlApiClient", "JtlOrderWriter"]
