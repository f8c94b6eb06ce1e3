"""
Routes package - contains all Flask blueprints
"""
from mobility_pkg.cart import CartError
from mobility_pkg.entities import EntityAPIError
from mobility_pkg.workflow import WorkflowError

# Errors whose status code and message are mapped by error_handler.handle_exception
DOMAIN_ERRORS = (EntityAPIError, WorkflowError, CartError)
