from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter
from rest_framework import serializers


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField()
    message = serializers.CharField()
    status = serializers.IntegerField()
    details = serializers.JSONField(required=False)
    hint = serializers.CharField(required=False, allow_blank=True)


class ErrorResponseSerializer(serializers.Serializer):
    error = ErrorDetailSerializer()


class MutationTokenSerializer(serializers.Serializer):
    token = serializers.CharField()
    expiresIn = serializers.IntegerField(help_text="Seconds until the token goes stale")


CSRF_HEADER_PARAMETER = OpenApiParameter(
    name="X-CSRF-Token",
    type=OpenApiTypes.STR,
    location=OpenApiParameter.HEADER,
    required=True,
    description=(
        "Anti-forgery token from GET /api/csrf-token/. A CSRF_TOKEN_INVALID error "
        "means the token should be refreshed and the request retried once."
    ),
)
