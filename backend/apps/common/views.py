import os
import time

import redis as redis_lib
from django.db import connections
from django.db.utils import OperationalError
from django.http import JsonResponse

from apps.caching.container import build_cache_service
from .logger import get_logger

logger = get_logger(__name__).bind(component='common', layer='health')


def _redis_ping(url: str, timeout: float = 0.3):
    try:
        client = redis_lib.from_url(url, socket_connect_timeout=timeout, socket_timeout=timeout)
        return {'status': 'ok' if client.ping() else 'fail'}
    except redis_lib.RedisError as e:
        logger.warning('Redis health check failed', error=str(e))
        return {'status': 'fail', 'error': str(e)}


def _cache_check():
    # The cache is fail-open, so an unreachable backend degrades but never fails readiness
    reachable = build_cache_service().ping()
    if not reachable:
        logger.warning('Cache backend unreachable; serving from database')
    return {'status': 'ok' if reachable else 'degraded'}


def _db_check(alias='default'):
    started = time.monotonic()
    try:
        connections[alias].cursor().execute('SELECT 1')
    except OperationalError as e:
        logger.warning('Database health check failed', alias=alias, error=str(e))
        return {'status': 'fail', 'error': str(e)}
    latency = round((time.monotonic() - started) * 1000, 2)
    return {'status': 'ok', 'latency_ms': latency}


def live_health(request):
    """Liveness probe: process is up and can service requests."""
    return JsonResponse({'status': 'alive'})


def ready_health(request):
    """Readiness probe: the database must answer; cache trouble only degrades."""
    checks = {'database': _db_check(), 'cache': _cache_check()}
    redis_url = os.getenv('REDIS_URL')
    checks['redis'] = (
        _redis_ping(redis_url)
        if redis_url
        else {'status': 'skipped', 'detail': 'REDIS_URL not set'}
    )
    failing = checks['database']['status'] == 'fail'
    degraded = [name for name, r in checks.items() if r.get('status') in ('fail', 'degraded')]
    overall = 'fail' if failing else ('degraded' if degraded else 'ok')
    logger.info('Readiness probe evaluated', status=overall, degraded_components=degraded)
    return JsonResponse({'status': overall, 'checks': checks}, status=503 if failing else 200)
