"""Mission Control Client -- 订阅方 REST 客户端与本地对账视图"""

from .api import MissionControlClient
from .exceptions import ApiError, ClientError, ConnectionLostError
from .store import LocalTransition, ReconciliationStore

__all__ = [
    "MissionControlClient",
    "ReconciliationStore",
    "LocalTransition",
    "ClientError",
    "ApiError",
    "ConnectionLostError",
]
