# this is the __init__ file for the routes.
from .sleep import create_sleep_blueprint
from .health_check import health_check_bp
