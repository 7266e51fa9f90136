"""Application services: proxying, file streaming, subscriptions, cache, auth session."""

from kontext.application.services.auth_session import AuthSession
from kontext.application.services.cache_invalidator import CacheInvalidator, namespaces_for_collection
from kontext.application.services.collection_query import (
    CollectionQuery,
    CollectionQueryService,
    QueryMode,
    homepage_projection,
)
from kontext.application.services.file_proxy import FileProxy, file_url
from kontext.application.services.request_proxy import RequestProxy
from kontext.application.services.response_cache import ResponseCache, request_shape
from kontext.application.services.subscriptions import (
    Subscription,
    SubscriptionManager,
    SubscriptionState,
)

__all__ = [
    "AuthSession",
    "CacheInvalidator",
    "CollectionQuery",
    "CollectionQueryService",
    "FileProxy",
    "QueryMode",
    "RequestProxy",
    "ResponseCache",
    "Subscription",
    "SubscriptionManager",
    "SubscriptionState",
    "file_url",
    "homepage_projection",
    "namespaces_for_collection",
    "request_shape",
]
