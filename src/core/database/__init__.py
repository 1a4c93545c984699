from src.core.database.session import async_session, engine, get_db
from src.core.database.base import Base, BaseModel, BigIntPK, as_utc

__all__ = ["async_session", "engine", "get_db", "Base", "BaseModel", "BigIntPK", "as_utc"]
