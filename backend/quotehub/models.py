from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


class StockDataCache(db.Model):
    """Durable tier of the history cache. Rows are append-only; the sweep job deletes expired ones."""
    __tablename__ = 'stock_data_cache'

    id = db.Column(db.Integer, primary_key=True)
    symbol = db.Column(db.String(20), nullable=False)
    time_interval = db.Column(db.String(20), nullable=False)
    data = db.Column(db.Text, nullable=False)  # JSON array of points
    provider = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    __table_args__ = (
        db.Index('idx_stock_data_cache_lookup', 'symbol', 'time_interval'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'symbol': self.symbol,
            'time_interval': self.time_interval,
            'provider': self.provider,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
        }


class Stock(db.Model):
    """Reference price per symbol, used when no live quote is available."""
    __tablename__ = 'stock'

    id = db.Column(db.Integer, primary_key=True)
    symbol = db.Column(db.String(20), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    price = db.Column(db.Numeric(19, 2), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'symbol': self.symbol,
            'name': self.name,
            'price': str(self.price) if self.price is not None else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
