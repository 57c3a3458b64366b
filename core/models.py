from dataclasses import fields
from enum import Enum

# ---------------------------------------------------------------------------
# Partial-update base
# ---------------------------------------------------------------------------


class Patch:
    """Base for dataclasses that describe a partial update.

    Every field defaults to None, meaning "leave unchanged". Subclasses must
    be dataclasses whose field names equal the target column names.
    """

    def changes(self) -> dict:
        """Return only the fields that were set, keyed by column name. Enums become their values."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result

    def is_empty(self) -> bool:
        return not self.changes()
