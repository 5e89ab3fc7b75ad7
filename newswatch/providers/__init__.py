from .backend import BackendGateway, get_backend_gateway, otp_type_for

__all__ = [
    "BackendGateway",
    "get_backend_gateway",
    "otp_type_for",
]
