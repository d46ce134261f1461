from __future__ import annotations

# Third-party libraries: aiogram, python-dateutil, python-dotenv

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, time
from pathlib import Path
from typing import List, Optional, Union

from dateutil import parser
from dotenv import load_dotenv

from absence_bot.models import Child, PersonName
from absence_bot.utils.window import GRANULARITY_MINUTES, SCHOOL_DAY_END, SCHOOL_DAY_START, WindowPolicy

logger = logging.getLogger(__name__)


@dataclass
class Config:
    bot_token: str
    storage_path: Path
    cache_file: Path
    children_file: Path
    report_chat_id: Optional[Union[int, str]] = None
    policy: WindowPolicy = field(default_factory=WindowPolicy)
    send_timeout: Optional[float] = None
    log_level: str = "INFO"


def parse_time(value: str) -> time:
    """Parse a wall-clock time such as ``09:30``, ``9.30`` or ``0930``."""

    text = value.strip().replace(".", ":")
    if text.isdigit() and len(text) in (3, 4):
        text = f"{text[:-2]}:{text[-2:]}"
    if not text or ":" not in text:
        raise ValueError(f"Not a time of day: {value!r}")
    try:
        parsed = parser.parse(text, default=datetime(2000, 1, 1))
    except (OverflowError, ValueError) as exc:
        raise ValueError(f"Not a time of day: {value!r}") from exc
    return parsed.time().replace(second=0, microsecond=0)


def _env_time(name: str, default: time) -> time:
    raw = os.getenv(name)
    return parse_time(raw) if raw else default


def _chat_id(raw: Optional[str]) -> Optional[Union[int, str]]:
    if not raw:
        return None
    raw = raw.strip()
    try:
        return int(raw)
    except ValueError:
        # @channelusername
        return raw


def load_children(path: Path) -> List[Child]:
    if not path.exists():
        logger.warning("Children file %s not found", path)
        return []
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Children file %s is not valid JSON", path)
        return []

    children: List[Child] = []
    for record in records:
        try:
            children.append(
                Child(
                    id=str(record["id"]),
                    name=PersonName(
                        first_name=record.get("first_name", ""),
                        last_name=record.get("last_name", ""),
                        nickname=record.get("nickname"),
                    ),
                )
            )
        except (KeyError, TypeError, AttributeError):
            logger.warning("Skipping malformed child record: %r", record)
    return children


def load_config() -> Config:
    load_dotenv()
    token = os.getenv("BOT_TOKEN") or os.getenv("TOKEN_BOT")
    if not token:
        raise RuntimeError("BOT_TOKEN (or TOKEN_BOT) environment variable is required")

    base_path = Path(__file__).resolve().parent.parent
    storage_path = Path(os.getenv("STORAGE_PATH") or base_path / "data")
    cache_file = storage_path / "identity_cache.json"
    children_file = Path(os.getenv("CHILDREN_FILE") or storage_path / "children.json")

    storage_path.mkdir(parents=True, exist_ok=True)

    policy = WindowPolicy(
        min=_env_time("SCHOOL_DAY_START", SCHOOL_DAY_START),
        max=_env_time("SCHOOL_DAY_END", SCHOOL_DAY_END),
        granularity_minutes=int(os.getenv("TIME_GRANULARITY_MINUTES", GRANULARITY_MINUTES)),
    )
    send_timeout = os.getenv("SEND_TIMEOUT")

    return Config(
        bot_token=token,
        storage_path=storage_path,
        cache_file=cache_file,
        children_file=children_file,
        report_chat_id=_chat_id(os.getenv("REPORT_CHAT_ID")),
        policy=policy,
        send_timeout=float(send_timeout) if send_timeout else None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
