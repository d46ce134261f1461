"""Data models used across the bot package."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class PersonName:
    first_name: str
    last_name: str
    nickname: Optional[str] = None

    @property
    def display_name(self) -> str:
        first = self.nickname or self.first_name
        return " ".join(part for part in (first, self.last_name) if part)


@dataclass(frozen=True, slots=True)
class Child:
    """A child the guardian may report absent. Never mutated here."""

    id: str
    name: PersonName


@dataclass(frozen=True, slots=True)
class IdentityNumber:
    """Structured representation of a validated personnummer.

    ``canonical`` is ``YYMMDDNNNC``, or ``YYMMDD+NNNC`` for a person aged 100
    or more so the two centuries never share a canonical string.
    """

    canonical: str
    long_form: str
    birth_date: date
    coordination: bool = False

    def __str__(self) -> str:
        return self.canonical


@dataclass(frozen=True, slots=True)
class FullDay:
    """Absence covering the entire school day."""


@dataclass(frozen=True, slots=True)
class Partial:
    start: time
    end: time


AbsenceWindow = Union[FullDay, Partial]


__all__ = ["AbsenceWindow", "Child", "FullDay", "IdentityNumber", "Partial", "PersonName"]
