"""Wiring for the reconciliation engine and its stores"""
import logging

from django.conf import settings

from .exceptions import ValidationError
from .reconciliation import ReconciliationEngine
from .stores import OrmHistoryStore, OrmInventoryStore, OrmSessionStore, OrmSkuCatalog

logger = logging.getLogger(__name__)

GRAPH_TOKEN_HEADER = 'HTTP_X_GRAPH_ACCESS_TOKEN'


def get_graph_token(request):
    """Delegated Microsoft Graph token supplied by the caller"""
    token = request.META.get(GRAPH_TOKEN_HEADER, '').strip() if request is not None else ''
    if not token:
        raise ValidationError("Microsoft Graph access token required (X-Graph-Access-Token header).")
    return token


def get_stores(request=None):
    """Return (inventory, sessions, history, catalog) for the configured backend"""
    backend = getattr(settings, 'COUNT_STORE_BACKEND', 'orm')
    if backend == 'graph':
        from .graph_store import (
            GraphHistoryStore, GraphInventoryStore, GraphSessionStore, GraphSkuCatalog, GraphWorkbookClient,
        )
        client = GraphWorkbookClient(get_graph_token(request))
        return (
            GraphInventoryStore(client),
            GraphSessionStore(client),
            GraphHistoryStore(client),
            GraphSkuCatalog(client),
        )
    if backend != 'orm':
        logger.warning(f"Unknown COUNT_STORE_BACKEND '{backend}', using orm")
    return OrmInventoryStore(), OrmSessionStore(), OrmHistoryStore(), OrmSkuCatalog()


def get_engine(request=None):
    inventory, sessions, history, catalog = get_stores(request)
    return ReconciliationEngine(inventory, sessions, history, catalog)
