from app.services.credential_vault import CredentialVault
from app.services.kv_store_service import KVStoreService
from app.services.subscription_service import SubscriptionService
from app.services.todo_service import TodoService

__all__ = [
    "CredentialVault",
    "KVStoreService",
    "SubscriptionService",
    "TodoService",
]
