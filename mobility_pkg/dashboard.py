"""
Role-Based Dashboard Aggregator
One RoleDashboard subclass per user_type loads the entities it needs,
computes its stat block and its recent activity feed.
"""
from datetime import datetime

from mobility_pkg.entities import EntityAPIError, fetch_concurrently
from mobility_pkg.formatting import format_currency, humanize, parse_timestamp
from logger_config import log_error_with_context

RECENT_SORT = "-created_date"


def _sum(rows, *keys):
    """Sum the first truthy field of each row (e.g. net_amount, else amount)"""
    total = 0.0
    for row in rows:
        for key in keys:
            value = row.get(key)
            if value:
                total += float(value)
                break
    return round(total, 2)


def _count(rows, **criteria):
    return len([row for row in rows if all(row.get(k) == v for k, v in criteria.items())])


def _same_day(value, today):
    parsed = parse_timestamp(value)
    return parsed is not None and parsed.date() == today


def activity_item(kind, title, row, status_key='status'):
    return {
        "type": kind,
        "title": title,
        "time": row.get('created_date'),
        "status": row.get(status_key),
    }


class RoleDashboard:
    """
    Base strategy

    Subclasses set role, stat_keys, cards and quick_actions and implement
    load/compute_stats/compute_activity.
    """
    role = None
    stat_keys = ()
    # (title, stat key, is_currency)
    cards = ()
    # (title, page)
    quick_actions = ()

    def __init__(self, limit=50, fallback=True):
        self.limit = limit
        self.fallback = fallback
        self.sample_data = []

    def mine(self, name, rows, field, user_id, sample_size):
        """Rows owned by the user, or the first sample_size rows flagged as sample data"""
        owned = [row for row in rows if row.get(field) == user_id]
        if owned or not self.fallback:
            return owned
        if rows[:sample_size]:
            self.sample_data.append(name)
        return rows[:sample_size]

    def load(self, client):
        raise NotImplementedError

    def select(self, data, user_id):
        raise NotImplementedError

    def compute_stats(self, data, user_id, today):
        raise NotImplementedError

    def compute_activity(self, data):
        raise NotImplementedError

    def empty_stats(self):
        return {key: 0 for key in self.stat_keys}

    def build_cards(self, stats):
        cards = []
        for title, key, is_currency in self.cards:
            value = stats.get(key, 0)
            cards.append({
                "title": title,
                "key": key,
                "value": value,
                "display": format_currency(value) if is_currency else str(value),
            })
        return cards

    def build_quick_actions(self):
        return [{"title": title, "page": page} for title, page in self.quick_actions]


class AdminDashboard(RoleDashboard):
    role = "admin"
    stat_keys = ("total_services", "total_orders", "total_payments", "total_leads",
                 "pending_services", "pending_orders")
    cards = (
        ("Total Services", "total_services", False),
        ("Total Orders", "total_orders", False),
        ("Total Revenue", "total_payments", True),
        ("Insurance Leads", "total_leads", False),
    )
    quick_actions = (
        ("Manage Users", "UserManagement"),
        ("View Reports", "Reports"),
        ("System Settings", "Settings"),
    )

    def load(self, client):
        return fetch_concurrently({
            "services": lambda: client.service_requests.list(RECENT_SORT, self.limit),
            "orders": lambda: client.inventory_orders.list(RECENT_SORT, self.limit),
            "payments": lambda: client.payments.list(RECENT_SORT, self.limit),
            "leads": lambda: client.insurance_leads.list(RECENT_SORT, self.limit),
        })

    def select(self, data, user_id):
        # Platform-wide view: no ownership filter and no sample substitution
        return data

    def compute_stats(self, data, user_id, today):
        return {
            "total_services": len(data["services"]),
            "total_orders": len(data["orders"]),
            "total_payments": _sum(data["payments"], "amount"),
            "total_leads": len(data["leads"]),
            "pending_services": _count(data["services"], status="requested"),
            "pending_orders": _count(data["orders"], status="pending"),
        }

    def compute_activity(self, data):
        return (
            [activity_item("service", f"New service request: {s.get('service_type')}", s)
             for s in data["services"][:5]]
            + [activity_item("order", f"Inventory order: {o.get('order_number')}", o)
               for o in data["orders"][:5]]
        )


class ServiceProviderDashboard(RoleDashboard):
    role = "service_provider"
    stat_keys = ("total_services", "active_services", "completed_services",
                 "total_earnings", "pending_orders")
    cards = (
        ("Active Services", "active_services", False),
        ("Total Earnings", "total_earnings", True),
        ("Pending Orders", "pending_orders", False),
        ("Completed Services", "completed_services", False),
    )
    quick_actions = (
        ("Order Parts", "OrderParts"),
        ("View Earnings", "MyPayments"),
        ("Service History", "MyServices"),
    )

    def load(self, client):
        return fetch_concurrently({
            "services": lambda: client.service_requests.list(RECENT_SORT, self.limit),
            "orders": lambda: client.inventory_orders.list(RECENT_SORT, self.limit),
            "payments": lambda: client.payments.list(RECENT_SORT, self.limit),
            "leads": lambda: client.insurance_leads.list(RECENT_SORT, self.limit),
        })

    def select(self, data, user_id):
        return {
            "services": self.mine("services", data["services"], "service_provider_id", user_id, 3),
            "orders": self.mine("orders", data["orders"], "service_provider_id", user_id, 2),
            "payments": self.mine("payments", data["payments"], "payee_id", user_id, 2),
            "leads": self.mine("leads", data["leads"], "service_provider_id", user_id, 2),
        }

    def compute_stats(self, data, user_id, today):
        services = data["services"]
        return {
            "total_services": len(services),
            "active_services": _count(services, status="in_progress"),
            "completed_services": _count(services, status="completed"),
            "total_earnings": _sum(data["payments"], "net_amount", "amount"),
            "pending_orders": _count(data["orders"], status="pending"),
        }

    def compute_activity(self, data):
        return (
            [activity_item("service", f"Service: {humanize(s.get('service_type')) or 'Service'}", s)
             for s in data["services"][:4]]
            + [activity_item("order", f"Parts order: {o.get('order_number') or 'Order'}", o)
               for o in data["orders"][:3]]
            + [activity_item("lead", f"Insurance lead: {humanize(l.get('lead_type')) or 'Lead'}", l)
               for l in data["leads"][:2]]
        )


class VehicleOwnerDashboard(RoleDashboard):
    role = "vehicle_owner"
    stat_keys = ("total_services", "pending_services", "completed_services",
                 "total_spent", "insurance_leads")
    cards = (
        ("Total Services", "total_services", False),
        ("Pending Services", "pending_services", False),
        ("Total Spent", "total_spent", True),
        ("Insurance Leads", "insurance_leads", False),
    )
    quick_actions = (
        ("Book Service", "BookService"),
        ("Add Vehicle", "MyVehicles"),
        ("Get Insurance Quote", "Insurance"),
    )

    def load(self, client):
        return fetch_concurrently({
            "services": lambda: client.service_requests.list(RECENT_SORT, self.limit),
            "leads": lambda: client.insurance_leads.list(RECENT_SORT, self.limit),
        })

    def select(self, data, user_id):
        return {
            "services": self.mine("services", data["services"], "customer_id", user_id, 3),
            "leads": self.mine("leads", data["leads"], "customer_id", user_id, 2),
        }

    def compute_stats(self, data, user_id, today):
        services = data["services"]
        return {
            "total_services": len(services),
            "pending_services": len([s for s in services if s.get("status") != "completed"]),
            "completed_services": _count(services, status="completed"),
            "total_spent": _sum(services, "actual_cost", "estimated_cost"),
            "insurance_leads": len(data["leads"]),
        }

    def compute_activity(self, data):
        return [
            activity_item("service",
                          f"{humanize(s.get('service_type')) or 'Service'} - {s.get('status')}", s)
            for s in data["services"][:6]
        ]


class PaymentCollectorDashboard(RoleDashboard):
    role = "payment_collector"
    stat_keys = ("total_collections", "amount_collected", "pending_collections", "failed_collections")
    cards = (
        ("Total Collections", "total_collections", False),
        ("Amount Collected", "amount_collected", True),
        ("Pending Collections", "pending_collections", False),
        ("Failed Collections", "failed_collections", False),
    )
    quick_actions = (
        ("Pending Collections", "PaymentCollection"),
        ("Search Orders", "PaymentCollection"),
    )

    def load(self, client):
        return {"payments": client.payments.list(RECENT_SORT, self.limit)}

    def select(self, data, user_id):
        return {"payments": self.mine("payments", data["payments"], "collected_by", user_id, 3)}

    def compute_stats(self, data, user_id, today):
        payments = data["payments"]
        collected = [p for p in payments if p.get("payment_status") == "collected"]
        return {
            "total_collections": len(payments),
            "amount_collected": _sum(collected, "amount"),
            "pending_collections": _count(payments, payment_status="pending"),
            "failed_collections": _count(payments, payment_status="failed"),
        }

    def compute_activity(self, data):
        return [
            activity_item("payment", f"Payment {p.get('payment_id')} - {p.get('payment_status')}", p,
                          status_key="payment_status")
            for p in data["payments"][:6]
        ]


class OrderHandlerDashboard(RoleDashboard):
    """Shared shape of the warehouse and dispatch views over inventory orders"""
    handled_by = None
    handled_date = None
    queue_status = None
    fallback_statuses = ()
    queue_key = None
    today_key = None
    total_key = None

    def load(self, client):
        return {"orders": client.inventory_orders.list(RECENT_SORT, self.limit)}

    def select(self, data, user_id):
        all_orders = data["orders"]
        orders = [o for o in all_orders if o.get(self.handled_by) == user_id]
        if not orders and self.fallback:
            orders = [o for o in all_orders if o.get("status") in self.fallback_statuses][:3]
            if orders:
                self.sample_data.append("orders")
        return {"orders": orders, "all_orders": all_orders}

    def compute_stats(self, data, user_id, today):
        handled = [o for o in data["orders"] if o.get(self.handled_by) == user_id]
        return {
            self.queue_key: _count(data["all_orders"], status=self.queue_status),
            self.today_key: len([o for o in handled if _same_day(o.get(self.handled_date), today)]),
            self.total_key: len(handled),
        }

    def compute_activity(self, data):
        return [
            activity_item("order", f"Order {o.get('order_number')} - {o.get('status')}", o)
            for o in data["orders"][:6]
        ]


class WarehouseDashboard(OrderHandlerDashboard):
    role = "warehouse_staff"
    handled_by = "packed_by"
    handled_date = "packed_date"
    queue_status = "approved"
    fallback_statuses = ("approved", "packed")
    queue_key = "pending_packing"
    today_key = "packed_today"
    total_key = "total_packed"
    stat_keys = ("pending_packing", "packed_today", "total_packed")
    cards = (
        ("Pending Packing", "pending_packing", False),
        ("Packed Today", "packed_today", False),
        ("Total Packed", "total_packed", False),
    )
    quick_actions = (
        ("Pack Orders", "PackingOrders"),
        ("Check Inventory", "PackingOrders"),
    )


class DispatcherDashboard(OrderHandlerDashboard):
    role = "dispatcher"
    handled_by = "dispatched_by"
    handled_date = "dispatched_date"
    queue_status = "packed"
    fallback_statuses = ("packed", "dispatched")
    queue_key = "ready_for_dispatch"
    today_key = "dispatched_today"
    total_key = "total_dispatched"
    stat_keys = ("ready_for_dispatch", "dispatched_today", "total_dispatched")
    cards = (
        ("Ready for Dispatch", "ready_for_dispatch", False),
        ("Dispatched Today", "dispatched_today", False),
        ("Total Dispatched", "total_dispatched", False),
    )
    quick_actions = (
        ("Dispatch Orders", "DispatchOrders"),
        ("Track Deliveries", "DispatchOrders"),
    )


class InsuranceAgentDashboard(RoleDashboard):
    role = "insurance_agent"
    stat_keys = ("total_leads", "new_leads", "converted_leads", "total_commission")
    cards = (
        ("Total Leads", "total_leads", False),
        ("New Leads", "new_leads", False),
        ("Converted Leads", "converted_leads", False),
        ("Total Commission", "total_commission", True),
    )
    quick_actions = (
        ("New Leads", "InsuranceAgentLeads"),
        ("Follow Up", "InsuranceAgentLeads"),
    )

    def load(self, client):
        return {"leads": client.insurance_leads.list(RECENT_SORT, self.limit)}

    def select(self, data, user_id):
        return {"leads": self.mine("leads", data["leads"], "insurance_agent_id", user_id, 3)}

    def compute_stats(self, data, user_id, today):
        leads = data["leads"]
        policies = [l["converted_policy"] for l in leads if l.get("converted_policy")]
        return {
            "total_leads": len(leads),
            "new_leads": _count(leads, status="new"),
            "converted_leads": _count(leads, status="converted"),
            "total_commission": _sum(policies, "commission_earned"),
        }

    def compute_activity(self, data):
        return [
            activity_item("lead", f"Insurance lead - {humanize(l.get('lead_type')) or 'Lead'}", l)
            for l in data["leads"][:6]
        ]


DASHBOARDS = {
    dashboard.role: dashboard
    for dashboard in (
        AdminDashboard,
        ServiceProviderDashboard,
        VehicleOwnerDashboard,
        PaymentCollectorDashboard,
        WarehouseDashboard,
        DispatcherDashboard,
        InsuranceAgentDashboard,
    )
}

WELCOME_CARD = {"title": "Dashboard", "key": None, "value": "Welcome", "display": "Welcome"}


def build_dashboard(client, user, *, fallback=True, today=None, limit=50, admin_limit=10):
    """
    Aggregate the dashboard for the authenticated user

    Args:
        client: EntityClient carrying the user's token
        user: User dict from users.me()
        fallback: Substitute sample rows when the user owns nothing
        today: Date used for "today" counters (defaults to UTC today)
        limit: Fetch size for role views
        admin_limit: Fetch size for the admin view

    Returns:
        dict: stats, activity, cards, quick_actions, sample_data, loaded, role
    """
    role = user.get("user_type")
    today = today or datetime.utcnow().date()
    dashboard_class = DASHBOARDS.get(role)

    if dashboard_class is None:
        return {
            "role": role,
            "stats": {},
            "activity": [],
            "cards": [dict(WELCOME_CARD)],
            "quick_actions": [],
            "sample_data": [],
            "loaded": True,
        }

    dashboard = dashboard_class(
        limit=admin_limit if dashboard_class is AdminDashboard else limit,
        fallback=fallback,
    )

    try:
        data = dashboard.select(dashboard.load(client), user.get("id"))
        stats = dashboard.compute_stats(data, user.get("id"), today)
        activity = dashboard.compute_activity(data)
        loaded = True
    except EntityAPIError as e:
        log_error_with_context(e, {
            "operation": "build_dashboard",
            "role": role,
            "user_id": user.get("id"),
            "status_code": e.status_code,
        })
        dashboard.sample_data = []
        stats = dashboard.empty_stats()
        activity = []
        loaded = False

    return {
        "role": role,
        "stats": stats,
        "activity": activity,
        "cards": dashboard.build_cards(stats),
        "quick_actions": dashboard.build_quick_actions(),
        "sample_data": dashboard.sample_data,
        "loaded": loaded,
    }
