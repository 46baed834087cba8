# Overview: Typed reference to an identity-provider subject (cashier, receiver).

from __future__ import annotations

import re
from dataclasses import dataclass

from .validation import ValidationError


MAX_SUBJECT_LENGTH = 128

_SUBJECT_RE = re.compile(r"^[A-Za-z0-9_\-.:|@]+$")


@dataclass(frozen=True)
class IdentityRef:
    """
    Opaque subject issued by the external identity provider.

    Only the format is validated. Whether the subject belongs to a real
    staff member is the identity provider's business, not ours.
    """
    subject: str

    def __post_init__(self):
        if not isinstance(self.subject, str):
            raise ValidationError("Identity subject must be a string")
        if not self.subject or self.subject != self.subject.strip():
            raise ValidationError("Identity subject must be a non-empty, trimmed string")
        if len(self.subject) > MAX_SUBJECT_LENGTH:
            raise ValidationError(f"Identity subject exceeds {MAX_SUBJECT_LENGTH} characters")
        if not _SUBJECT_RE.match(self.subject):
            raise ValidationError("Identity subject contains invalid characters")

    @classmethod
    def parse(cls, value) -> "IdentityRef":
        if isinstance(value, IdentityRef):
            return value
        if isinstance(value, str):
            value = value.strip()
        return cls(value)

    def __str__(self) -> str:
        return self.subject
