"""
Check-in Label Model
====================

A label descriptor as sent by the check-in web content.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any

# JSON field name -> attribute
_FIELD_NAMES = {
    'FileGuid': 'file_guid',
    'LabelFile': 'label_file',
    'LabelKey': 'label_key',
    'LabelType': 'label_type',
    'MergeFields': 'merge_fields',
    'Order': 'order',
    'PersonId': 'person_id',
    'PrintFrom': 'print_from',
    'PrintTo': 'print_to',
    'PrinterAddress': 'printer_address',
    'PrinterDeviceId': 'printer_device_id',
}


@dataclass
class LabelDescriptor:
    """One label to fetch, merge and print."""

    # Template source
    label_file: str = ""  # URL of the ZPL template
    label_key: str = ""  # cache key for the template
    file_guid: str = ""
    label_type: int = 0

    # Merge data
    merge_fields: Dict[str, str] = field(default_factory=dict)

    # Routing
    printer_address: str = ""
    printer_device_id: int = 0

    order: int = 0
    person_id: int = 0
    print_from: int = 0
    print_to: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelDescriptor':
        """Create from the check-in JSON (PascalCase) or snake_case keys."""
        kwargs = {}
        for key, value in data.items():
            name = _FIELD_NAMES.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        merge_fields = kwargs.get('merge_fields') or {}
        kwargs['merge_fields'] = {str(k): '' if v is None else str(v) for k, v in merge_fields.items()}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
