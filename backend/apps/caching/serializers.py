from rest_framework import serializers

from . import keys

DOMAIN_CHOICES = (*keys.DOMAINS, "all")


class CacheInvalidateSerializer(serializers.Serializer):
    domain = serializers.ChoiceField(choices=DOMAIN_CHOICES)


class CacheStatusSerializer(serializers.Serializer):
    reachable = serializers.BooleanField()
    generations = serializers.DictField(child=serializers.IntegerField(allow_null=True))
