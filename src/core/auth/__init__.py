from src.core.auth.models import Admin, PrincipalKind
from src.core.auth.principal import Principal
from src.core.auth.jwt import create_access_token, create_refresh_token, decode_token

__all__ = [
    "Admin",
    "PrincipalKind",
    "Principal",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
