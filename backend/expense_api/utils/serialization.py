"""
Conversion of Python values into JSON-safe values for PostgREST payloads.
Handles nested dictionaries and lists containing datetimes, decimals, enums and UUIDs.
"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any


def to_json_safe(obj: Any) -> Any:
    """
    Recursively convert a value so the Supabase client can send it as JSON.
    Amounts stay exact by sending Decimals as strings.
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: to_json_safe(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_json_safe(item) for item in obj]
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    else:
        return obj
