"""VirtueMart Repositories"""

from .order_repository import VirtueMartOrderRepository

__all__ = ["VirtueMartOrderRepository"]
