"""
TenderDesk - Python client for the REST API and the in-memory workspace built on it
"""

from app.client.api_client import TenderDeskClient, APIError
from app.client.workspace import Workspace, SessionStore, VIEW_ROLES

__all__ = ["TenderDeskClient", "APIError", "Workspace", "SessionStore", "VIEW_ROLES"]
