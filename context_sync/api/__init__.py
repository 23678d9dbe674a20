"""
FastAPI context sync service.

Provides REST API for:
- POST /embeddings/organization/{organization_id}/generate - Run a sync
- GET /embeddings/organization/{organization_id}/context - Read current context
- GET /health - Service health check
"""

from context_sync.api.app import create_app

__all__ = ["create_app"]
