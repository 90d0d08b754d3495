from .handler_models import ExecutionReport, FillEvent
from .user_data_handler import UserDataHandler

__all__ = [
    'ExecutionReport',
    'FillEvent',
    'UserDataHandler'
]
