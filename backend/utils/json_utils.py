"""
JSON serialization utilities for handling UUID, datetime and enum values
"""

import json
from uuid import UUID
from datetime import datetime, date
from decimal import Decimal
from typing import Any
from enum import Enum
import logging
from dataclasses import is_dataclass, asdict

logger = logging.getLogger(__name__)


class SafeJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles UUID and other common non-serializable types"""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        elif isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif is_dataclass(obj):
            return asdict(obj)
        elif isinstance(obj, set):
            return list(obj)
        return super().default(obj)


def ensure_json_serializable(data: Any) -> Any:
    """
    Recursively ensure all data is JSON serializable.

    Used before writing payloads into JSON columns or the document store.
    """
    if isinstance(data, UUID):
        return str(data)
    elif isinstance(data, (datetime, date)):
        return data.isoformat()
    elif isinstance(data, Decimal):
        return float(data)
    elif isinstance(data, Enum):
        return data.value
    elif isinstance(data, dict):
        return {str(k): ensure_json_serializable(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple, set)):
        return [ensure_json_serializable(item) for item in data]
    elif is_dataclass(data) and not isinstance(data, type):
        return ensure_json_serializable(asdict(data))
    elif hasattr(data, 'model_dump'):
        return ensure_json_serializable(data.model_dump())
    return data


def dumps(data: Any, **kwargs) -> str:
    """json.dumps with SafeJSONEncoder"""
    return json.dumps(data, cls=SafeJSONEncoder, ensure_ascii=False, **kwargs)
