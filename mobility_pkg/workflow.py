"""
Status Workflow
Server-owned state machines for ServiceRequest, InventoryOrder, InsuranceLead and Commission.

Every applied action re-reads the entity from the entity API, validates the action
against the stored status, issues exactly one update and records a StatusHistory row.
"""
from datetime import datetime

from mobility_pkg.activity_logger import record_status_change
from mobility_pkg.commission import PLATFORM_COMMISSION_RATE, compute_commission, new_settlement_batch_id


class WorkflowError(Exception):
    """Base class for workflow failures; the message is safe to return to clients"""
    status_code = 400

    def __init__(self, message, allowed_actions=None):
        super().__init__(message)
        self.message = message
        self.allowed_actions = allowed_actions

    def to_dict(self):
        data = {"error": self.message}
        if self.allowed_actions is not None:
            data["allowed_actions"] = self.allowed_actions
        return data


class InvalidTransition(WorkflowError):
    status_code = 409


class UnknownAction(WorkflowError):
    status_code = 400


class ActionNotPermitted(WorkflowError):
    status_code = 403


class StateMachine:
    """
    Enumerated actions for one entity type

    Args:
        entity_type: Name used in history rows and URLs
        resource: EntityClient attribute holding the collection
        actions: dict of action -> (from_states, to_state)
        roles: dict of action -> user_types allowed to run it
        owner_fields: dict of user_type -> entity field that must equal the actor id
        claim_actions: actions exempt from the ownership check (the actor takes ownership)
    """

    def __init__(self, entity_type, resource, actions, roles, owner_fields=None, claim_actions=()):
        self.entity_type = entity_type
        self.resource = resource
        self.actions = actions
        self.roles = roles
        self.owner_fields = owner_fields or {}
        self.claim_actions = set(claim_actions)

    @property
    def states(self):
        found = set()
        for from_states, to_state in self.actions.values():
            found.update(from_states)
            found.add(to_state)
        return found

    def allowed_actions(self, status):
        return [action for action, (from_states, _) in self.actions.items() if status in from_states]

    def next_status(self, action, status):
        if action not in self.actions:
            raise UnknownAction(
                f"Unknown action '{action}' for {self.entity_type}",
                allowed_actions=sorted(self.actions)
            )
        from_states, to_state = self.actions[action]
        if status not in from_states:
            raise InvalidTransition(
                f"Cannot {action} {self.entity_type} in status '{status}'",
                allowed_actions=self.allowed_actions(status)
            )
        return to_state

    def check_role(self, action, actor):
        if action not in self.actions:
            raise UnknownAction(
                f"Unknown action '{action}' for {self.entity_type}",
                allowed_actions=sorted(self.actions)
            )
        role = (actor or {}).get('user_type')
        if role not in self.roles.get(action, ()):
            raise ActionNotPermitted(f"Role '{role}' cannot {action} {self.entity_type}")

    def check_owner(self, action, entity, actor):
        if action in self.claim_actions:
            return
        field = self.owner_fields.get(actor.get('user_type'))
        if field and entity.get(field) != actor.get('id'):
            raise ActionNotPermitted(f"This {self.entity_type} is not assigned to you")


SERVICE_REQUEST_FLOW = StateMachine(
    'service_request',
    'service_requests',
    actions={
        'assign': (('requested',), 'assigned'),
        'start': (('assigned',), 'in_progress'),
        'complete': (('in_progress',), 'completed'),
        'cancel': (('requested', 'assigned', 'in_progress'), 'cancelled'),
    },
    roles={
        'assign': ('admin', 'service_provider'),
        'start': ('admin', 'service_provider'),
        'complete': ('admin', 'service_provider'),
        'cancel': ('admin', 'service_provider', 'vehicle_owner'),
    },
    owner_fields={'service_provider': 'service_provider_id', 'vehicle_owner': 'customer_id'},
    claim_actions=('assign',),
)

INVENTORY_ORDER_FLOW = StateMachine(
    'inventory_order',
    'inventory_orders',
    actions={
        'approve': (('pending',), 'approved'),
        'pack': (('approved',), 'packed'),
        'dispatch': (('packed',), 'dispatched'),
        'deliver': (('dispatched',), 'delivered'),
        'cancel': (('pending', 'approved', 'packed'), 'cancelled'),
    },
    roles={
        'approve': ('admin',),
        'pack': ('admin', 'warehouse_staff'),
        'dispatch': ('admin', 'dispatcher'),
        'deliver': ('admin', 'dispatcher'),
        'cancel': ('admin', 'service_provider'),
    },
    owner_fields={'service_provider': 'service_provider_id'},
)

INSURANCE_LEAD_FLOW = StateMachine(
    'insurance_lead',
    'insurance_leads',
    actions={
        'assign': (('new',), 'contacted'),
        'quote': (('contacted',), 'quoted'),
        'convert': (('quoted',), 'converted'),
        'lose': (('new', 'contacted', 'quoted'), 'lost'),
    },
    roles={
        'assign': ('admin', 'insurance_agent'),
        'quote': ('admin', 'insurance_agent'),
        'convert': ('admin', 'insurance_agent'),
        'lose': ('admin', 'insurance_agent'),
    },
    owner_fields={'insurance_agent': 'insurance_agent_id'},
    claim_actions=('assign',),
)

COMMISSION_FLOW = StateMachine(
    'commission',
    'commissions',
    actions={
        'deduct': (('calculated',), 'deducted'),
        'settle': (('calculated', 'deducted'), 'settled'),
        'dispute': (('calculated', 'deducted'), 'disputed'),
    },
    roles={
        'deduct': ('admin',),
        'settle': ('admin',),
        'dispute': ('admin',),
    },
)

MACHINES = {
    machine.entity_type: machine
    for machine in (SERVICE_REQUEST_FLOW, INVENTORY_ORDER_FLOW, INSURANCE_LEAD_FLOW, COMMISSION_FLOW)
}


def get_machine(entity_type):
    machine = MACHINES.get(entity_type)
    if machine is None:
        raise WorkflowError(f"Unknown entity type '{entity_type}'")
    return machine


def available_actions(entity_type, status):
    """Actions the front end may offer for an entity in the given status"""
    return get_machine(entity_type).allowed_actions(status)


def with_available_actions(entity_type, rows):
    """Copies of the rows with the legal next actions attached"""
    machine = get_machine(entity_type)
    return [dict(row, available_actions=machine.allowed_actions(row.get('status'))) for row in rows]


def utc_now_iso(now=None):
    """UTC timestamp in the entity API's ISO format, e.g. 2024-05-01T10:00:00.000Z"""
    now = now or datetime.utcnow()
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def _positive_cost(value):
    if value is None or value == '':
        return None
    cost = float(value)
    if cost < 0:
        raise WorkflowError("actual_cost cannot be negative")
    return cost if cost > 0 else None


def _cost_fields(data, rate):
    fields = {}
    if 'actual_cost' in data and data['actual_cost'] is not None:
        fields['actual_cost'] = float(data['actual_cost'])
        cost = _positive_cost(data['actual_cost'])
        # Commission always follows the cost written alongside it
        fields['commission_amount'] = compute_commission(cost, rate)[0] if cost else 0.0
    return fields


def _service_request_effects(action, entity, data, actor, now, rate):
    fields = {}
    if action == 'assign':
        provider_id = data.get('service_provider_id')
        if actor.get('user_type') == 'service_provider':
            if provider_id not in (None, actor.get('id')):
                raise ActionNotPermitted("Service providers can only assign requests to themselves")
            provider_id = actor.get('id')
        if not provider_id:
            raise WorkflowError("service_provider_id is required")
        fields['service_provider_id'] = provider_id
        if data.get('estimated_cost') is not None:
            fields['estimated_cost'] = float(data['estimated_cost'])
    elif action in ('start', 'complete'):
        fields.update(_cost_fields(data, rate))
        if action == 'complete':
            fields['completed_date'] = utc_now_iso(now)
    if data.get('notes'):
        fields['notes'] = data['notes']
    return fields


def _inventory_order_effects(action, entity, data, actor, now, rate):
    fields = {}
    if action == 'pack':
        fields['packed_by'] = actor.get('id')
        fields['packed_date'] = utc_now_iso(now)
    elif action == 'dispatch':
        fields['dispatched_by'] = actor.get('id')
        fields['dispatched_date'] = utc_now_iso(now)
        if data.get('tracking_number'):
            fields['tracking_number'] = data['tracking_number']
    if data.get('notes'):
        fields['notes'] = data['notes']
    return fields


def _insurance_lead_effects(action, entity, data, actor, now, rate):
    fields = {}
    if action == 'assign':
        agent_id = data.get('insurance_agent_id')
        if actor.get('user_type') == 'insurance_agent':
            if agent_id not in (None, actor.get('id')):
                raise ActionNotPermitted("Insurance agents can only assign leads to themselves")
            agent_id = actor.get('id')
        if not agent_id:
            raise WorkflowError("insurance_agent_id is required")
        fields['insurance_agent_id'] = agent_id
        fields['priority'] = data.get('priority') or 'medium'
    elif action == 'quote':
        if data.get('quote'):
            fields['quotes_provided'] = list(entity.get('quotes_provided') or []) + [data['quote']]
    elif action == 'convert':
        if data.get('converted_policy'):
            fields['converted_policy'] = data['converted_policy']
    if data.get('notes'):
        fields['notes'] = data['notes']
    return fields


def _commission_effects(action, entity, data, actor, now, rate):
    fields = {}
    if action == 'settle':
        fields['settlement_batch'] = data.get('settlement_batch') or new_settlement_batch_id(now)
        fields['settlement_date'] = utc_now_iso(now)
    if data.get('notes'):
        fields['notes'] = data['notes']
    return fields


SIDE_EFFECTS = {
    'service_request': _service_request_effects,
    'inventory_order': _inventory_order_effects,
    'insurance_lead': _insurance_lead_effects,
    'commission': _commission_effects,
}


def apply_action(client, entity_type, entity_id, action, actor, data=None,
                 rate=PLATFORM_COMMISSION_RATE, now=None, recorder=record_status_change):
    """
    Apply one workflow action

    Args:
        client: EntityClient carrying the caller's token
        entity_type: One of MACHINES
        entity_id: Entity identifier
        action: Action name, e.g. 'complete'
        actor: Authenticated user dict (id, user_type)
        data: Optional action fields (notes, actual_cost, tracking_number, ...)
        rate: Platform commission rate
        now: Override for the current time
        recorder: Callable writing the history row

    Returns:
        dict: {"entity", "from_status", "to_status", "action"}
    """
    machine = get_machine(entity_type)
    machine.check_role(action, actor)
    data = data or {}

    resource = getattr(client, machine.resource)
    entity = resource.get(entity_id)
    machine.check_owner(action, entity, actor)

    from_status = entity.get('status')
    to_status = machine.next_status(action, from_status)

    payload = {'status': to_status}
    payload.update(SIDE_EFFECTS[entity_type](action, entity, data, actor, now, rate))
    updated = resource.update(entity_id, payload)

    recorder(entity_type, entity_id, from_status, to_status, action, actor, notes=data.get('notes'))
    return {
        "entity": updated,
        "from_status": from_status,
        "to_status": to_status,
        "action": action,
    }


def update_service_progress(client, entity_id, actor, data, rate=PLATFORM_COMMISSION_RATE):
    """Edit actual_cost/notes on an assigned or in-progress request without changing status"""
    if actor.get('user_type') not in ('admin', 'service_provider'):
        raise ActionNotPermitted("Only service providers can update service progress")

    entity = client.service_requests.get(entity_id)
    SERVICE_REQUEST_FLOW.check_owner('update', entity, actor)
    if entity.get('status') not in ('assigned', 'in_progress'):
        raise InvalidTransition(
            f"Cannot update a service request in status '{entity.get('status')}'",
            allowed_actions=SERVICE_REQUEST_FLOW.allowed_actions(entity.get('status'))
        )

    payload = _cost_fields(data, rate)
    if data.get('notes'):
        payload['notes'] = data['notes']
    if not payload:
        raise WorkflowError("Nothing to update")
    return client.service_requests.update(entity_id, payload)


def rate_service(client, entity_id, actor, rating, feedback=None):
    """Customer rating of a completed service"""
    rating = int(rating)
    if not 1 <= rating <= 5:
        raise WorkflowError("Rating must be between 1 and 5")

    entity = client.service_requests.get(entity_id)
    if entity.get('customer_id') != actor.get('id'):
        raise ActionNotPermitted("Only the customer who booked this service can rate it")
    if entity.get('status') != 'completed':
        raise InvalidTransition("Only completed services can be rated")

    payload = {'rating': rating}
    if feedback:
        payload['feedback'] = feedback
    return client.service_requests.update(entity_id, payload)


def open_service_request(client, actor, data, recorder=record_status_change):
    """Book a service for one of the caller's vehicles"""
    vehicle = client.vehicles.get(data['vehicle_id'])
    if vehicle.get('owner_id') != actor.get('id'):
        raise ActionNotPermitted("You can only book services for your own vehicles")

    payload = dict(data)
    payload['customer_id'] = actor.get('id')
    payload['status'] = 'requested'
    payload.setdefault('priority', 'medium')
    created = client.service_requests.create(payload)

    recorder('service_request', created.get('id'), None, 'requested', 'open', actor)
    return created


def open_insurance_lead(client, actor, data, recorder=record_status_change):
    """Request an insurance quote as the authenticated customer"""
    if data.get('vehicle_id'):
        vehicle = client.vehicles.get(data['vehicle_id'])
        if vehicle.get('owner_id') != actor.get('id'):
            raise ActionNotPermitted("You can only request insurance for your own vehicles")

    payload = dict(data)
    payload['customer_id'] = actor.get('id')
    payload['status'] = 'new'
    created = client.insurance_leads.create(payload)

    recorder('insurance_lead', created.get('id'), None, 'new', 'open', actor)
    return created


def settle_commissions(client, commission_ids, actor, now=None, recorder=record_status_change):
    """
    Settle a batch of commissions under one settlement id

    Every commission is validated before the first write.

    Returns:
        tuple: (batch_id, list of updated commissions)
    """
    if not commission_ids:
        raise WorkflowError("No commissions selected")
    COMMISSION_FLOW.check_role('settle', actor)

    current = [client.commissions.get(commission_id) for commission_id in commission_ids]
    for commission_id, commission in zip(commission_ids, current):
        try:
            COMMISSION_FLOW.next_status('settle', commission.get('status'))
        except InvalidTransition as e:
            raise InvalidTransition(
                f"Commission {commission_id} cannot be settled from status '{commission.get('status')}'",
                allowed_actions=e.allowed_actions
            ) from e

    batch_id = new_settlement_batch_id(now)
    settled_at = utc_now_iso(now)
    updated = []
    for commission_id, commission in zip(commission_ids, current):
        result = client.commissions.update(commission_id, {
            'status': 'settled',
            'settlement_batch': batch_id,
            'settlement_date': settled_at,
        })
        recorder('commission', commission_id, commission.get('status'), 'settled', 'settle', actor,
                 notes=batch_id)
        updated.append(result)

    return batch_id, updated
