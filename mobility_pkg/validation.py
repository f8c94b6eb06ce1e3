"""
Input Validation and Sanitization Utilities
Provides request schemas and plain-text sanitisation for every write endpoint
"""
from marshmallow import Schema, fields, validate, ValidationError, pre_load, validates_schema
from marshmallow.validate import Length, Regexp
import bleach


USER_TYPES = [
    'admin',
    'service_provider',
    'vehicle_owner',
    'payment_collector',
    'warehouse_staff',
    'dispatcher',
    'insurance_agent',
]

SERVICE_TYPES = [
    'general_service',
    'oil_change',
    'brake_service',
    'engine_repair',
    'electrical',
    'ac_service',
    'battery_replacement',
    'tire_service',
    'emergency_repair',
]

# Roles a user may pick for themselves at profile setup; admins are provisioned in the entity API
SELF_SERVICE_USER_TYPES = [user_type for user_type in USER_TYPES if user_type != 'admin']

PRIORITIES = ['low', 'medium', 'high', 'emergency']
LEAD_TYPES = ['new_policy', 'renewal', 'claim_assistance']
COVERAGE_TYPES = ['comprehensive', 'third_party', 'zero_depreciation', 'engine_protection', 'roadside_assistance']
CONTACT_PREFERENCES = ['phone', 'email', 'whatsapp']
VEHICLE_TYPES = ['2W', '3W', '4W']
FUEL_TYPES = ['petrol', 'diesel', 'cng', 'electric']

PHONE_REGEX = r'^(\+91)?[6-9]\d{9}$'
PINCODE_REGEX = r'^\d{6}$'


def sanitize_text(text):
    """
    Sanitize plain text by removing HTML tags

    Args:
        text: Text string to sanitize

    Returns:
        str: Sanitized text
    """
    if not text:
        return ""

    return bleach.clean(text, tags=[], strip=True)


def _sanitize(data, skip=()):
    """Strip markup from every string value, descending into nested dicts"""
    if isinstance(data, dict):
        return {
            key: value if key in skip else _sanitize(value, skip)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_sanitize(value, skip) for value in data]
    if isinstance(data, str):
        return sanitize_text(data)
    return data


class SanitizedSchema(Schema):
    """Base schema: strips HTML from string inputs before validation"""
    sanitize_skip = ()

    @pre_load
    def sanitize_inputs(self, data, **kwargs):
        """Sanitize string inputs"""
        if isinstance(data, dict):
            return _sanitize(data, self.sanitize_skip)
        return data


# Validation Schemas using Marshmallow

class LoginSchema(Schema):
    """Schema for login validation"""
    email = fields.Email(required=True, validate=Length(max=255))
    password = fields.Str(required=True, validate=Length(min=1, max=255))


class ProfileSetupSchema(SanitizedSchema):
    """Schema for first-login profile completion"""
    user_type = fields.Str(validate=validate.OneOf(SELF_SERVICE_USER_TYPES))
    full_name = fields.Str(validate=Length(min=1, max=255))
    phone = fields.Str(validate=Regexp(PHONE_REGEX, error='Invalid phone number'), allow_none=True)
    business_name = fields.Str(validate=Length(max=255), allow_none=True)
    address = fields.Str(validate=Length(max=255), allow_none=True)
    city = fields.Str(validate=Length(max=100), allow_none=True)
    state = fields.Str(validate=Length(max=100), allow_none=True)
    pincode = fields.Str(validate=Regexp(PINCODE_REGEX, error='Invalid pincode'), allow_none=True)


class LocationSchema(SanitizedSchema):
    address = fields.Str(validate=Length(max=255), load_default="")
    latitude = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))


class ServiceBookingSchema(SanitizedSchema):
    """Schema for booking a service"""
    vehicle_id = fields.Str(required=True, validate=Length(min=1, max=64))
    service_type = fields.Str(required=True, validate=validate.OneOf(SERVICE_TYPES))
    description = fields.Str(validate=Length(max=2000), load_default="")
    priority = fields.Str(validate=validate.OneOf(PRIORITIES), load_default='medium')
    scheduled_date = fields.Str(allow_none=True, validate=Length(max=40))
    location = fields.Nested(LocationSchema, load_default=None, allow_none=True)


class ServiceActionSchema(SanitizedSchema):
    """Fields accepted by assign/start/complete/cancel on a service request"""
    service_provider_id = fields.Str(validate=Length(min=1, max=64))
    estimated_cost = fields.Float(validate=validate.Range(min=0), allow_none=True)
    actual_cost = fields.Float(validate=validate.Range(min=0), allow_none=True)
    notes = fields.Str(validate=Length(max=2000), allow_none=True)


class ServiceProgressSchema(SanitizedSchema):
    """Same-status edit by the assigned provider"""
    actual_cost = fields.Float(validate=validate.Range(min=0), allow_none=True)
    notes = fields.Str(validate=Length(max=2000), allow_none=True)

    @validates_schema
    def require_something(self, data, **kwargs):
        if data.get('actual_cost') is None and not data.get('notes'):
            raise ValidationError("Provide actual_cost or notes")


class RatingSchema(SanitizedSchema):
    rating = fields.Int(required=True, validate=validate.Range(min=1, max=5))
    feedback = fields.Str(validate=Length(max=2000), allow_none=True)


class OrderActionSchema(SanitizedSchema):
    """Fields accepted by approve/pack/dispatch/deliver/cancel on an inventory order"""
    tracking_number = fields.Str(validate=Length(max=100), allow_none=True)
    notes = fields.Str(validate=Length(max=2000), allow_none=True)


class CurrentPolicySchema(SanitizedSchema):
    policy_number = fields.Str(validate=Length(max=100), load_default="")
    insurer = fields.Str(validate=Length(max=255), load_default="")
    expiry_date = fields.Str(validate=Length(max=40), load_default="")
    premium = fields.Float(validate=validate.Range(min=0), load_default=0)


class BudgetRangeSchema(Schema):
    min = fields.Float(validate=validate.Range(min=0), load_default=0)
    max = fields.Float(validate=validate.Range(min=0), load_default=0)


class InsuranceLeadSchema(SanitizedSchema):
    """Schema for a customer's insurance quote request"""
    vehicle_id = fields.Str(validate=Length(min=1, max=64), allow_none=True)
    lead_type = fields.Str(validate=validate.OneOf(LEAD_TYPES), load_default='new_policy')
    current_policy = fields.Nested(CurrentPolicySchema, allow_none=True)
    coverage_required = fields.List(fields.Str(validate=validate.OneOf(COVERAGE_TYPES)), load_default=list)
    budget_range = fields.Nested(BudgetRangeSchema, allow_none=True)
    contact_preference = fields.Str(validate=validate.OneOf(CONTACT_PREFERENCES), load_default='phone')
    best_time_to_call = fields.Str(validate=Length(max=100), allow_none=True)
    notes = fields.Str(validate=Length(max=2000), allow_none=True)


class QuoteSchema(SanitizedSchema):
    insurer = fields.Str(required=True, validate=Length(min=1, max=255))
    premium = fields.Float(required=True, validate=validate.Range(min=0))
    coverage = fields.Str(validate=Length(max=255), allow_none=True)


class ConvertedPolicySchema(SanitizedSchema):
    policy_number = fields.Str(required=True, validate=Length(min=1, max=100))
    insurer = fields.Str(validate=Length(max=255), allow_none=True)
    premium = fields.Float(validate=validate.Range(min=0), allow_none=True)
    commission_earned = fields.Float(validate=validate.Range(min=0), load_default=0)


class LeadActionSchema(SanitizedSchema):
    """Fields accepted by assign/quote/convert/lose on an insurance lead"""
    insurance_agent_id = fields.Str(validate=Length(min=1, max=64))
    priority = fields.Str(validate=validate.OneOf(['low', 'medium', 'high']))
    quote = fields.Nested(QuoteSchema)
    converted_policy = fields.Nested(ConvertedPolicySchema)
    notes = fields.Str(validate=Length(max=2000), allow_none=True)


class CartLineSchema(Schema):
    inventory_id = fields.Str(required=True, validate=Length(min=1, max=64))
    quantity = fields.Int(load_default=1, validate=validate.Range(min=0, max=10000))


class DeliveryAddressSchema(SanitizedSchema):
    address = fields.Str(validate=Length(max=255), allow_none=True)
    city = fields.Str(validate=Length(max=100), allow_none=True)
    pincode = fields.Str(validate=Regexp(PINCODE_REGEX, error='Invalid pincode'), allow_none=True)
    contact_person = fields.Str(validate=Length(max=255), allow_none=True)
    phone = fields.Str(validate=Regexp(PHONE_REGEX, error='Invalid phone number'), allow_none=True)


class CartSchema(Schema):
    """Schema for cart quote and checkout"""
    items = fields.List(fields.Nested(CartLineSchema), required=True, validate=Length(min=1))
    delivery_address = fields.Nested(DeliveryAddressSchema, load_default=None, allow_none=True)


class SettlementSchema(Schema):
    commission_ids = fields.List(fields.Str(validate=Length(min=1, max=64)), required=True,
                                 validate=Length(min=1, max=500))


class CommissionActionSchema(SanitizedSchema):
    notes = fields.Str(validate=Length(max=2000), allow_none=True)


class VehicleSchema(SanitizedSchema):
    """Schema for vehicle create/update"""
    vehicle_type = fields.Str(required=True, validate=validate.OneOf(VEHICLE_TYPES))
    fuel_type = fields.Str(required=True, validate=validate.OneOf(FUEL_TYPES))
    make = fields.Str(required=True, validate=Length(min=1, max=100))
    model = fields.Str(required=True, validate=Length(min=1, max=100))
    year = fields.Int(validate=validate.Range(min=1950, max=2100), allow_none=True)
    registration_number = fields.Str(required=True, validate=Length(min=1, max=20))
    engine_number = fields.Str(validate=Length(max=50), allow_none=True)
    chassis_number = fields.Str(validate=Length(max=50), allow_none=True)
    color = fields.Str(validate=Length(max=50), allow_none=True)
    mileage = fields.Float(validate=validate.Range(min=0), allow_none=True)


def validate_request_data(schema_class, data, partial=False):
    """
    Validate request data against a schema

    Args:
        schema_class: Marshmallow Schema class
        data: Data dictionary to validate
        partial: Allow missing required fields (updates)

    Returns:
        tuple: (validated_data, errors)
        - validated_data: Cleaned and validated data
        - errors: Dictionary of validation errors (empty if valid)
    """
    try:
        schema = schema_class()
        validated_data = schema.load(data or {}, partial=partial)
        return validated_data, {}
    except ValidationError as err:
        return None, err.messages
