from .db import build_engine, build_session_factory, create_schema, open_map_store
from .uow import SQLAlchemyUnitOfWork

__all__ = [
    "build_engine",
    "build_session_factory",
    "create_schema",
    "open_map_store",
    "SQLAlchemyUnitOfWork",
]
