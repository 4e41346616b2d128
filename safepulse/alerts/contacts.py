"""
contacts.py — Emergency contact registry.

Contacts are kept in insertion order for the life of the process. Nothing
is de-duplicated: adding the same person twice means they are called and
messaged twice. Helpline numbers live outside the registry but shape both
recipient sets (see models.py).
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Sequence, Tuple

from safepulse.alerts.models import HELPLINE_NUMBERS, Contact
from safepulse.core.errors import ValidationError

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please provide both name and number"


class ContactRegistry:
    """Ordered, append-only collection of emergency contacts."""

    def __init__(self, helplines: Sequence[str] = HELPLINE_NUMBERS):
        self._helplines: Tuple[str, ...] = tuple(helplines)
        self._contacts: List[Contact] = []

    @property
    def helplines(self) -> Tuple[str, ...]:
        return self._helplines

    def __len__(self) -> int:
        return len(self._contacts)

    def __iter__(self) -> Iterator[Contact]:
        return iter(tuple(self._contacts))

    def is_helpline(self, number: str) -> bool:
        return number in self._helplines

    def add_contact(self, name: str, number: str) -> Contact:
        """
        Append a contact.

        Raises
        ------
        ValidationError
            If either field is empty or whitespace. The registry is left
            unchanged.
        """
        name = (name or "").strip()
        number = (number or "").strip()

        if not name or not number:
            missing = "name" if not name else "number"
            raise ValidationError(MISSING_FIELDS_MESSAGE, field=missing)

        contact = Contact(name=name, number=number)
        self._contacts.append(contact)
        logger.info(
            "Contact added: %s (%s) — %d on file",
            contact.name, contact.number, len(self._contacts),
        )
        return contact

    def list_contacts(self) -> Tuple[Contact, ...]:
        return tuple(self._contacts)

    def _non_helpline_numbers(self) -> List[str]:
        return [c.number for c in self._contacts if not self.is_helpline(c.number)]

    def message_recipients(self) -> List[str]:
        """Contact numbers for the location text, helplines excluded."""
        return self._non_helpline_numbers()

    def call_recipients(self) -> List[str]:
        """Both helplines in fixed order, then contacts that are not helplines."""
        return list(self._helplines) + self._non_helpline_numbers()
