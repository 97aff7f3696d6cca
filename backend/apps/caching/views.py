from drf_spectacular.utils import OpenApiResponse, extend_schema, inline_serializer
from rest_framework import serializers
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.schemas import ErrorResponseSerializer
from apps.common import get_logger
from .container import build_cache_service
from .serializers import CacheInvalidateSerializer, CacheStatusSerializer

logger = get_logger(__name__).bind(component="caching", layer="view")


@extend_schema(tags=["Admin"])
class CacheAdminView(APIView):
    permission_classes = [IsAdminUser]
    service = build_cache_service()
    log = logger.bind(view="CacheAdminView")

    @extend_schema(
        summary="Cache status",
        responses={200: CacheStatusSerializer, 403: OpenApiResponse(response=ErrorResponseSerializer)},
    )
    def get(self, request):
        payload = {"reachable": self.service.ping(), "generations": self.service.generations()}
        return Response(CacheStatusSerializer(payload).data)

    @extend_schema(
        summary="Invalidate a cache domain",
        description="Orphans every entry of the domain by bumping its generation counters.",
        request=CacheInvalidateSerializer,
        responses={
            200: inline_serializer(
                "CacheInvalidated",
                {"invalidated": serializers.DictField(child=serializers.BooleanField())},
            ),
            400: OpenApiResponse(response=ErrorResponseSerializer),
            403: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request):
        serializer = CacheInvalidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        domain = serializer.validated_data["domain"]
        if domain == "all":
            results = self.service.invalidate_all()
        else:
            results = {domain: self.service.invalidate_domain(domain)}
        self.log.info("Cache invalidated by staff", domain=domain, actor_id=request.user.id, results=results)
        return Response({"invalidated": results})
