from flask_marshmallow import Marshmallow
from mobility_pkg.models import StatusHistory, ActivityLog


ma = Marshmallow()


class StatusHistorySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = StatusHistory
        load_instance = True
        fields = ('id', 'entity_type', 'entity_id', 'action', 'from_status', 'to_status',
                  'status_label', 'changed_by_type', 'changed_by_id', 'notes', 'created_at')


class ActivityLogSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ActivityLog
        load_instance = True
        exclude = ('ip_address',)


status_histories_schema = StatusHistorySchema(many=True)
activity_logs_schema = ActivityLogSchema(many=True)
