# clinicbook/routers/__init__.py
from . import health
from . import auth
from . import doctors
from . import appointments
from . import admin

__all__ = ["health", "auth", "doctors", "appointments", "admin"]
