"""
Generic data insertion mixin for SQLAlchemy models
Provides from_dict and to_dict methods used by the catalog import and the JSON API
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import inspect
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.core.data_insertion")


class DataInsertionMixin:
    """
    Mixin that provides generic data insertion capabilities for SQLAlchemy models

    This mixin adds:
    - from_dict(): Create model instance from dictionary
    - to_dict(): Convert model instance to dictionary
    """

    # Columns only the inventory store may write
    protected_fields = ('id', 'version', 'created_at', 'updated_at')

    @classmethod
    def from_dict(cls, data_dict, skip_fields=None):
        """
        Create a model instance from a dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            skip_fields (list, optional): Fields to skip during creation

        Returns:
            Model instance (not added to the session)
        """
        skip = set(skip_fields or ()) | set(cls.protected_fields)

        mapper = inspect(cls)
        columns = {c.key for c in mapper.columns}

        filtered_data = {}
        ignored = []
        for key, value in data_dict.items():
            if key in columns and key not in skip:
                filtered_data[key] = value
            else:
                ignored.append(key)

        if ignored:
            logger.debug(f"{cls.__name__}.from_dict ignored fields: {sorted(ignored)}")

        return cls(**filtered_data)

    def to_dict(self, include_audit_fields=True):
        """
        Convert model instance to dictionary

        Args:
            include_audit_fields (bool): Whether to include created/updated timestamps

        Returns:
            dict: Dictionary representation of the model
        """
        result = {}

        mapper = inspect(self.__class__)

        for column in mapper.columns:
            if not include_audit_fields and column.key in ('created_at', 'updated_at'):
                continue

            value = getattr(self, column.key)
            if isinstance(value, datetime):
                result[column.key] = value.isoformat()
            elif isinstance(value, Enum):
                result[column.key] = value.value
            else:
                result[column.key] = value

        return result
