# recovery_compass/utils/__init__.py
from .datetime_utils import DateTimeUtils, DATE_FORMAT

__all__ = ['DateTimeUtils', 'DATE_FORMAT']
