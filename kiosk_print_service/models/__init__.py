"""
Kiosk Print Service Models
"""

from .printer import Printer
from .job import ConnectionTarget, Document, PrintJob
from .label import LabelDescriptor

__all__ = ['Printer', 'ConnectionTarget', 'Document', 'PrintJob', 'LabelDescriptor']
