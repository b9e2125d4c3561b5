"""Relational (SQLAlchemy async) backend."""
from repositories.sql.permission_repository import SqlPermissionRepository
from repositories.sql.role_repository import SqlRoleRepository
from repositories.sql.transaction import (
    SqlTransaction,
    SqlTxRepository,
    create_sql_transaction_manager,
    sql_begin_tx,
)
from repositories.sql.user_repository import SqlUserRepository

__all__ = [
    "SqlPermissionRepository",
    "SqlRoleRepository",
    "SqlTransaction",
    "SqlTxRepository",
    "SqlUserRepository",
    "create_sql_transaction_manager",
    "sql_begin_tx",
]
