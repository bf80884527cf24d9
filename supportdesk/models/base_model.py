from datetime import datetime
from typing import Optional, Dict, Any, Iterable


class BaseModel:
    # Attributes holding denormalized related data, never written to the table
    RELATED_FIELDS: Iterable[str] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseModel':
        if not data:
            return None

        instance = cls()
        for key, value in data.items():
            # Handle datetime conversion
            if key.endswith('_at') and value and isinstance(value, str):
                value = cls.parse_datetime(value)

            # Set attribute if it exists on the class
            if hasattr(instance, key):
                setattr(instance, key, value)

        return instance

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for attr_name, attr_value in self.__dict__.items():
            if attr_name.startswith('_'):
                continue

            # Convert datetime to ISO string
            if isinstance(attr_value, datetime):
                attr_value = attr_value.isoformat()

            result[attr_name] = attr_value

        return result

    def to_row(self) -> Dict[str, Any]:
        """Column values only, ready for insert/update."""
        data = self.to_dict()
        for key in self.RELATED_FIELDS:
            data.pop(key, None)
        return data

    @staticmethod
    def parse_datetime(value: Any) -> Any:
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.replace('Z', '+00:00'))
            except ValueError:
                return value
        return value

    @staticmethod
    def format_datetime(dt: Optional[datetime]) -> Optional[str]:
        if not dt:
            return None
        return dt.isoformat()
