"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from installment_ledger.infrastructure.clients.notifications import NotificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_notification_client() -> NotificationClient:
    """Provide notification dispatcher client instance"""
    return NotificationClient()
