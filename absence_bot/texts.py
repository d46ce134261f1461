"""User-facing strings, looked up by translation key."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol

from absence_bot.errors import ErrorKind


class TextProvider(Protocol):
    def translate(self, key: str) -> str:
        raise NotImplementedError


ERROR_KEYS: Dict[ErrorKind, str] = {
    ErrorKind.MISSING_IDENTITY: "abscense.personalNumberMissing",
    ErrorKind.INVALID_IDENTITY: "abscense.invalidPersonalNumber",
    ErrorKind.OUT_OF_RANGE: "abscense.timeOutOfRange",
    ErrorKind.MISALIGNED: "abscense.timeMisaligned",
    ErrorKind.INVERTED_RANGE: "abscense.startAfterEnd",
    ErrorKind.MESSAGING_FAILURE: "abscense.sendFailed",
    ErrorKind.CACHE_UNAVAILABLE: "abscense.cacheUnavailable",
}

SV_TEXTS: Dict[str, str] = {
    "abscense.title": "Anmäl frånvaro",
    "abscense.personalNumberMissing": "Du måste ange ett personnummer",
    "abscense.invalidPersonalNumber": "Ogiltigt personnummer",
    "abscense.timeOutOfRange": "Tiden måste vara inom skoldagen",
    "abscense.timeMisaligned": "Välj en tid i hela tiominuterssteg",
    "abscense.startAfterEnd": "Starttiden kan inte vara efter sluttiden",
    "abscense.sendFailed": "Frånvaroanmälan kunde inte skickas. Försök igen.",
    "abscense.cacheUnavailable": "Sparade uppgifter kunde inte läsas",
    "abscense.entireDay": "Hela dagen",
    "abscense.partOfDay": "Del av dagen",
    "abscense.startTime": "Starttid",
    "abscense.endTime": "Sluttid",
    "abscense.selectChild": "Vilket barn vill du anmäla frånvaro för?",
    "abscense.noChildren": "Inga barn är registrerade.",
    "abscense.enterPersonalNumber": "Skriv barnets personnummer (ÅÅMMDD-NNNN).",
    "abscense.useSavedPersonalNumber": "Använd sparat personnummer",
    "abscense.selectAbscenseStartTime": "Skriv starttid för frånvaron (TT:MM).",
    "abscense.selectAbscenseEndTime": "Skriv sluttid för frånvaron (TT:MM).",
    "abscense.invalidTime": "Kunde inte tolka tiden. Skriv till exempel 09:30.",
    "abscense.confirm": "Följande meddelande skickas till skolan:",
    "abscense.sent": "Frånvaron är anmäld.",
    "abscense.cancelled": "Frånvaroanmälan avbröts.",
    "abscense.busy": "Anmälan skickas redan, vänta lite.",
    "abscense.sessionExpired": "Sessionen har gått ut. Skicka /absence för att börja om.",
    "general.socialSecurityNumber": "Personnummer",
    "general.send": "Skicka",
    "general.abort": "Avbryt",
    "general.start": (
        "Hej! Här kan du anmäla ditt barns frånvaro till skolan.\n"
        "Skicka /absence för att göra en anmälan."
    ),
}


class Texts:
    """Dictionary-backed text provider; unknown keys are returned as-is."""

    def __init__(self, overrides: Optional[Mapping[str, str]] = None) -> None:
        self._texts = dict(SV_TEXTS)
        if overrides:
            self._texts.update(overrides)

    def translate(self, key: str) -> str:
        return self._texts.get(key, key)

    def error(self, kind: ErrorKind) -> str:
        return self.translate(ERROR_KEYS[kind])


__all__ = ["ERROR_KEYS", "SV_TEXTS", "TextProvider", "Texts"]
