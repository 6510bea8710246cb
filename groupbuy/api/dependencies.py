"""FastAPI dependencies.

Everything a handler needs (store, token service, metrics, the group
metrics provider, the recommender) is created by ``create_app`` and kept on
``app.state``; these functions hand it to route functions.
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from groupbuy.api.exceptions import AuthenticationError
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.security import TokenService
from groupbuy.recommender.group_metrics import GroupMetricsProvider
from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.store.database import Store

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_scoring_metrics(request: Request) -> ScoringMetrics:
    return request.app.state.scoring_metrics


def get_group_metrics_provider(request: Request) -> GroupMetricsProvider:
    return request.app.state.group_metrics_provider


def get_recommender(request: Request) -> GroupRecommender:
    return request.app.state.recommender


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Resolve the bearer access token to an active user document.

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            no longer exists or is inactive.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    user_id = tokens.decode_access_token(credentials.credentials)
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        raise AuthenticationError("Invalid token")

    user = store.users.find_one({"_id": oid, "isActive": True})
    if user is None:
        raise AuthenticationError("User not found or inactive")

    # Picked up by the access log and error handlers
    request.state.user_id = str(oid)
    return user
