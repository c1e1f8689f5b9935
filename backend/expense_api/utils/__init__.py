"""
Utility modules for the application.
"""

from .serialization import to_json_safe
from .stripe_objects import get_field, object_id, list_data, first_item, period_end_epoch

__all__ = [
    'to_json_safe',
    'get_field',
    'object_id',
    'list_data',
    'first_item',
    'period_end_epoch',
]
