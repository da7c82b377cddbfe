"""
Label Merge
===========

Merge-field substitution for ZPL label templates.

A merge field is a `^FD<KEY>^FS` block. A non-empty value replaces the
key between the markers. An empty value removes the block together with
the `^FO...^FS` origin block that precedes its `^FT...^FD<KEY>^FS`
pair (used for inverted backgrounds behind the field), so nothing is
drawn for the field at all.
"""

import re
from typing import Dict


def merge_label_content(label_content: str, merge_fields: Dict[str, str]) -> str:
    """
    Apply merge fields to a label template.

    Args:
        label_content: ZPL template text
        merge_fields: Field key -> value

    Returns:
        Merged ZPL text. Keys that do not appear in the template are ignored.
    """
    for key, value in merge_fields.items():
        field_key = re.escape(key)

        if value:
            # merge the contents of the field
            label_content = re.sub(
                rf'(?<=\^FD){field_key}(?=\^FS)',
                lambda _: value,
                label_content,
            )
        else:
            # remove the field origin (used for inverting backgrounds)
            label_content = re.sub(
                rf'\^FO.*\^FS\s*(?=\^FT.*\^FD{field_key}\^FS)',
                '',
                label_content,
            )

            # remove the field data (the actual value)
            label_content = re.sub(rf'\^FD{field_key}\^FS', '', label_content)

    return label_content
