"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Header, Request
from pos_planner.infrastructure.clients.directory import DirectoryClient
from pos_planner.infrastructure.clients.settlement import SettlementClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_account_id(x_account_id: Optional[str] = Header(None)) -> Optional[str]:
    """Seller/account context supplied by the authenticating proxy"""
    return x_account_id or None


def get_settlement_client() -> SettlementClient:
    """Provide Settlement Service client instance"""
    return SettlementClient()


def get_directory_client() -> DirectoryClient:
    """Provide customer directory / catalog client instance"""
    return DirectoryClient()
