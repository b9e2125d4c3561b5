"""Document (MongoDB via motor) backend."""
from repositories.mongo.documents import ensure_indexes
from repositories.mongo.permission_repository import MongoPermissionRepository
from repositories.mongo.role_repository import MongoRoleRepository
from repositories.mongo.transaction import (
    MongoTransaction,
    MongoTxRepository,
    create_mongo_transaction_manager,
    mongo_begin_tx,
)
from repositories.mongo.user_repository import MongoUserRepository

__all__ = [
    "MongoPermissionRepository",
    "MongoRoleRepository",
    "MongoTransaction",
    "MongoTxRepository",
    "MongoUserRepository",
    "create_mongo_transaction_manager",
    "ensure_indexes",
    "mongo_begin_tx",
]
