from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import get_logger
from .csrf import MutationTokenService
from .schemas import ErrorResponseSerializer, MutationTokenSerializer

logger = get_logger(__name__).bind(component="api", layer="view")


@extend_schema(tags=["Security"])
class MutationTokenView(APIView):
    permission_classes = [IsAuthenticated]
    token_service = MutationTokenService()

    @extend_schema(
        summary="Issue an anti-forgery token",
        description="Required as the X-CSRF-Token header on every mutating cart call.",
        responses={
            200: MutationTokenSerializer,
            401: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request):
        token = self.token_service.issue(request.user.id)
        logger.debug("Mutation token served", user_id=request.user.id)
        return Response({"token": token, "expiresIn": self.token_service.max_age})
