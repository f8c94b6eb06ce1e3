from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()

# Business entities live in the external entity API.
# This database only keeps the audit trail produced by this service.


class StatusHistory(db.Model):
    """Tracks every status change applied through the workflow endpoints"""
    __tablename__ = 'status_history'

    id = db.Column(db.Integer, primary_key=True)

    # Which entity changed ('service_request', 'inventory_order', 'insurance_lead', 'commission')
    entity_type = db.Column(db.String(30), nullable=False, index=True)
    entity_id = db.Column(db.String(64), nullable=False, index=True)

    # Status Information
    action = db.Column(db.String(30), nullable=False)
    from_status = db.Column(db.String(30))  # None when the entity was just opened
    to_status = db.Column(db.String(30), nullable=False)
    status_label = db.Column(db.String(100))  # Human-readable label

    # Who made the change
    changed_by_type = db.Column(db.String(30), nullable=False)  # user_type of the actor
    changed_by_id = db.Column(db.String(64))

    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<StatusHistory {self.entity_type}:{self.entity_id} {self.from_status} -> {self.to_status}>'


class ActivityLog(db.Model):
    """User actions across the platform (logins, checkouts, settlements, admin toggles)"""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64))
    user_type = db.Column(db.String(30))
    user_name = db.Column(db.String(255))

    action = db.Column(db.String(255), nullable=False)
    action_type = db.Column(db.String(50), nullable=False)  # 'checkout', 'settlement', 'user_toggle', ...

    entity_type = db.Column(db.String(30))
    entity_id = db.Column(db.String(64))
    details = db.Column(db.Text)
    ip_address = db.Column(db.String(45))

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action_type} by {self.user_type}:{self.user_id}>'
