from .health import health_bp
from .auth import auth_bp
from .users import users_bp
from .stations import station_bp
from .slots import slot_bp
from .booking import booking_bp
from .dashboard import dashboard_bp
from .audit_logs import audit_bp
