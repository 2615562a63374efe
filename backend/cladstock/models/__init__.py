from .inventory import Item, Transaction, InventoryCount, CountSession
from .auth import User, SessionToken
from .assistant import AICountLog, ChatMessage

__all__ = [
    'Item', 'Transaction', 'InventoryCount', 'CountSession',
    'User', 'SessionToken',
    'AICountLog', 'ChatMessage',
]
