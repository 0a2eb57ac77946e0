from flask import Blueprint, request, jsonify, current_app
import logging

from ..services.market_data.config import ALL_INTERVALS, normalize_symbol, normalize_interval

market_bp = Blueprint('market', __name__, url_prefix='/api/stocks')
logger = logging.getLogger(__name__)


@market_bp.route('/<symbol>/history', methods=['GET'])
def get_history(symbol):
    """
    Historical OHLC series, oldest first.

    Query params:
        - interval: daily (default), weekly or monthly
    """
    interval = normalize_interval(request.args.get('interval', 'daily'))
    if interval not in ALL_INTERVALS:
        return jsonify({
            'success': False,
            'error': f'Invalid interval: {interval}'
        }), 400

    try:
        service = current_app.extensions['market_data']
        normalized = normalize_symbol(symbol)
        points, source = service.get_historical_data_with_source(normalized, interval)

        return jsonify({
            'success': True,
            'symbol': normalized,
            'interval': interval,
            'source': source,
            'count': len(points),
            'data': [p.to_dict() for p in points]
        })
    except Exception as e:
        logger.error(f"Error getting history for {symbol}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@market_bp.route('/<symbol>/price', methods=['GET'])
def get_price(symbol):
    """Live quote, or the stored reference price. 503 when neither exists."""
    try:
        resolver = current_app.extensions['quote_resolver']
        quote = resolver.resolve(symbol)
        if quote is None:
            return jsonify({
                'success': False,
                'error': f'No price available for {normalize_symbol(symbol)}'
            }), 503

        return jsonify({
            'success': True,
            'quote': quote.to_dict()
        })
    except Exception as e:
        logger.error(f"Error getting price for {symbol}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
