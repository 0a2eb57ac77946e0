"""
Market Data Metrics API

Provides endpoints for monitoring data provider usage and health:
- Daily/minute usage per provider
- Rate-limited flags
- Circuit breaker state
- Consolidated dashboard status
"""

from flask import Blueprint, jsonify, current_app
from datetime import datetime, timezone
import logging
import time

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')
logger = logging.getLogger(__name__)

STARTED_AT = datetime.now(timezone.utc)
_started_monotonic = time.monotonic()


def _service():
    return current_app.extensions['market_data']


@metrics_bp.route('/usage', methods=['GET'])
def get_usage():
    """
    Usage for every provider.

    Returns:
        {
            "success": true,
            "providers": {
                "ALPHA_VANTAGE": {
                    "daily_request_count": 3,
                    "daily_limit": 25,
                    "minute_request_count": 1,
                    "minute_limit": 5,
                    "rate_limited": false,
                    "daily_usage_percent": 12.0,
                    "minute_usage_percent": 20.0
                },
                ...
            }
        }
    """
    try:
        metrics = _service().rate_limiter.get_all_metrics()

        return jsonify({
            'success': True,
            'providers': {name: m.to_dict() for name, m in metrics.items()}
        })
    except Exception as e:
        logger.error(f"Error getting usage metrics: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@metrics_bp.route('/usage/<provider>', methods=['GET'])
def get_provider_usage(provider: str):
    """
    Usage for a single provider.

    Unknown providers report zero usage and rate_limited=true.
    """
    try:
        snapshot = _service().rate_limiter.get_metrics(provider)

        return jsonify({
            'success': True,
            'provider': provider.upper(),
            'usage': snapshot.to_dict()
        })
    except Exception as e:
        logger.error(f"Error getting usage for {provider}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@metrics_bp.route('/rate-limited', methods=['GET'])
def get_rate_limited():
    try:
        metrics = _service().rate_limiter.get_all_metrics()

        return jsonify({
            'success': True,
            'providers': {name: m.rate_limited for name, m in metrics.items()}
        })
    except Exception as e:
        logger.error(f"Error getting rate-limited providers: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@metrics_bp.route('/summary', methods=['GET'])
def get_summary():
    """Totals across providers plus the per-provider breakdown."""
    try:
        metrics = _service().rate_limiter.get_all_metrics()

        total_requests = sum(m.daily_count for m in metrics.values())
        total_limit = sum(m.daily_limit for m in metrics.values())
        rate_limited_count = sum(1 for m in metrics.values() if m.rate_limited)
        avg_usage = 0.0
        if metrics:
            avg_usage = sum(m.daily_usage_percent for m in metrics.values()) / len(metrics)

        return jsonify({
            'success': True,
            'total_requests': total_requests,
            'total_daily_limit': total_limit,
            'average_usage_percent': f"{avg_usage:.2f}%",
            'providers_rate_limited': rate_limited_count,
            'providers': {name: m.to_dict() for name, m in metrics.items()},
            'timestamp': datetime.now(timezone.utc).isoformat()
        })
    except Exception as e:
        logger.error(f"Error getting metrics summary: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@metrics_bp.route('/circuit-breakers', methods=['GET'])
def get_circuit_breakers():
    try:
        status = _service().get_provider_circuit_breaker_status()

        return jsonify({
            'success': True,
            'circuit_breakers': status
        })
    except Exception as e:
        logger.error(f"Error getting circuit breaker status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@metrics_bp.route('/dashboard', methods=['GET'])
def get_dashboard():
    """
    Consolidated status for operations.

    Returns uptime, open breaker count, rate-limited flags, breaker detail
    and cache statistics in one payload.
    """
    try:
        service = _service()
        metrics = service.rate_limiter.get_all_metrics()
        breakers = service.get_provider_circuit_breaker_status()

        return jsonify({
            'success': True,
            'status': 'UP',
            'started_at': STARTED_AT.isoformat(),
            'uptime_ms': int((time.monotonic() - _started_monotonic) * 1000),
            'provider_count': len(metrics),
            'open_circuit_breakers': sum(1 for b in breakers.values() if b['open']),
            'rate_limited_providers': {name: m.rate_limited for name, m in metrics.items()},
            'circuit_breakers': breakers,
            'cache': service.cache.stats,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })
    except Exception as e:
        logger.error(f"Error getting dashboard status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
