"""Validation and canonicalization of Swedish personal identity numbers."""

from __future__ import annotations

from datetime import date

from personnummer import personnummer

from absence_bot.errors import InvalidIdentity, MissingIdentity
from absence_bot.models import IdentityNumber

COORDINATION_OFFSET = 60


def parse(raw: str) -> IdentityNumber:
    """Parse a personnummer typed by the guardian.

    Accepts ``YYMMDD-NNNC``, ``YYMMDDNNNC``, ``YYYYMMDD-NNNC`` and
    ``YYYYMMDDNNNC``; ``+`` marks a person aged 100 or more. Coordination
    numbers, where the day is offset by 60, are accepted too.
    """

    if raw is None or not raw.strip():
        raise MissingIdentity("Personnummer saknas")

    text = raw.strip()
    if not text.isascii():
        raise InvalidIdentity("Felaktigt format på personnummer")

    try:
        number = personnummer.parse(text)
    except personnummer.PersonnummerException as exc:
        raise InvalidIdentity("Ogiltigt personnummer") from exc

    long_form = number.format(True)
    day = int(long_form[6:8])
    coordination = day > COORDINATION_OFFSET
    if coordination:
        day -= COORDINATION_OFFSET

    return IdentityNumber(
        # 811218-9876 -> 8112189876; the centenarian marker in 811218+9876 is kept
        canonical=number.format().replace("-", ""),
        long_form=long_form,
        birth_date=date(int(long_form[:4]), int(long_form[4:6]), day),
        coordination=coordination,
    )


def validate(raw: str) -> str:
    """Return the canonical form of ``raw`` or raise."""

    return parse(raw).canonical


def is_valid(raw: str) -> bool:
    try:
        parse(raw)
    except (MissingIdentity, InvalidIdentity):
        return False
    return True


__all__ = ["is_valid", "parse", "validate"]
