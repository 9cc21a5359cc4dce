# API Module - FastAPI app and routers

from .main import app, start_api_server
from .services import VaultServices, build_services, get_services, set_services

__all__ = [
    "app",
    "start_api_server",
    "VaultServices",
    "build_services",
    "get_services",
    "set_services",
]
