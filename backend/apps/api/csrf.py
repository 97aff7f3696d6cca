"""Freshness-bound anti-forgery tokens for mutating cart requests.

Tokens are signed with the project secret, timestamped, and bound to the
user they were issued for. They are independent of the JWT access token.
"""
from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.core import signing
from rest_framework.permissions import SAFE_METHODS

from apps.common import get_logger
from apps.common.errors import SecurityTokenError

logger = get_logger(__name__).bind(component="api", layer="csrf")

TOKEN_SALT = "storefront.cart.mutation-token"


class MutationTokenService:
    def __init__(self, max_age: Optional[int] = None, salt: str = TOKEN_SALT):
        self.max_age = max_age if max_age is not None else settings.CART_TOKEN_MAX_AGE
        self.signer = signing.TimestampSigner(salt=salt)

    def issue(self, user_id: int) -> str:
        token = self.signer.sign(f"user:{user_id}")
        logger.debug("Issued mutation token", user_id=user_id)
        return token

    def verify(self, token: Optional[str], user_id: int) -> None:
        if not token:
            logger.warning("Mutation rejected: token missing", user_id=user_id)
            raise SecurityTokenError("Security token missing")
        try:
            value = self.signer.unsign(token, max_age=self.max_age)
        except signing.SignatureExpired:
            logger.info("Mutation rejected: token expired", user_id=user_id)
            raise SecurityTokenError("Security token expired")
        except signing.BadSignature:
            logger.warning("Mutation rejected: token tampered", user_id=user_id)
            raise SecurityTokenError("Security token invalid")
        if value != f"user:{user_id}":
            logger.warning("Mutation rejected: token bound to another user", user_id=user_id)
            raise SecurityTokenError("Security token invalid")


class MutationTokenRequiredMixin:
    """APIView mixin: unsafe methods must carry a valid ``X-CSRF-Token``.

    Runs after authentication and permission checks so the token is verified
    against the authenticated user.
    """

    token_service: Optional[MutationTokenService] = None

    def get_token_service(self) -> MutationTokenService:
        if self.token_service is None:
            self.token_service = MutationTokenService()
        return self.token_service

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        if request.method in SAFE_METHODS:
            return
        token = request.META.get(settings.CART_TOKEN_HEADER)
        self.get_token_service().verify(token, request.user.id)
