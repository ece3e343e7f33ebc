"""
Log events and the immutable payloads built from them.
"""

from __future__ import annotations

import re
import socket
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from functools import cached_property
from typing import TYPE_CHECKING, Any, Mapping, Sequence, Union

import orjson

from .levels import DatadogLevel, Severity, map_level

if TYPE_CHECKING:
    from logship.config.datadog import DatadogSettings

DEFAULT_SOURCE = "python"

_PLACEHOLDER = re.compile(r"\{\{|\}\}|\{([^{}]*)\}")


# =============================================================================
# Message templates
# =============================================================================


def _format_value(value: Any, spec: str) -> str:
    if not spec:
        return str(value)
    try:
        return format(value, spec)
    except (TypeError, ValueError):
        return str(value)


def render_template(template: str, args: Sequence[Any] = ()) -> str:
    """Substitute ``{name}`` / ``{0}`` placeholders with positional args.

    Named placeholders consume args left to right; numeric ones index into
    ``args``. ``{{`` and ``}}`` are literal braces. A placeholder with no
    matching argument is left as written. Without args the template is
    returned untouched.
    """
    if not args:
        return template

    cursor = 0

    def _substitute(match: re.Match[str]) -> str:
        nonlocal cursor
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"

        name, _, spec = match.group(1).partition(":")
        name = name.strip().lstrip("@$")
        if name.isdigit():
            index = int(name)
            if index >= len(args):
                return token
            return _format_value(args[index], spec)

        if cursor >= len(args):
            return token
        value = args[cursor]
        cursor += 1
        return _format_value(value, spec)

    return _PLACEHOLDER.sub(_substitute, template)


# =============================================================================
# Timestamps
# =============================================================================


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a literal ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return f"{utc.strftime('%Y-%m-%dT%H:%M:%S')}.{utc.microsecond // 1000:03d}Z"


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class LogEvent:
    """One log call: when, how severe, the template and its arguments."""

    timestamp: datetime
    level: Union[Severity, str, int]
    template: str
    args: tuple[Any, ...] = ()

    @cached_property
    def message(self) -> str:
        return render_template(self.template, self.args)

    @classmethod
    def now(cls, level: Union[Severity, str, int], template: str, *args: Any) -> "LogEvent":
        return cls(timestamp=datetime.now(timezone.utc), level=level, template=template, args=args)

    @classmethod
    def from_event_dict(cls, event_dict: Mapping[str, Any]) -> "LogEvent":
        """Build an event from a structlog event dict produced by the pipeline."""
        if "message_template" in event_dict:
            template = str(event_dict["message_template"])
            args = tuple(event_dict.get("message_args", ()))
        else:
            template = str(event_dict.get("message", event_dict.get("event", "")))
            args = ()
        return cls(
            timestamp=_parse_timestamp(event_dict.get("timestamp")),
            level=event_dict.get("level", Severity.INFO),
            template=template,
            args=args,
        )


@dataclass(frozen=True)
class SinkIdentity:
    """Fixed identity stamped on every payload, resolved once per sink."""

    service: str
    env: str
    hostname: str
    source: str = DEFAULT_SOURCE

    @classmethod
    def from_settings(cls, settings: "DatadogSettings") -> "SinkIdentity":
        return cls(
            service=settings.service,
            env=settings.resolved_env,
            hostname=settings.hostname or socket.gethostname(),
            source=settings.source,
        )


@dataclass(frozen=True)
class DeliveryPayload:
    """Body of one intake request. Field order is the wire order."""

    timestamp: str
    level: DatadogLevel
    message: str
    service: str
    env: str
    hostname: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def to_json(self) -> bytes:
        return orjson.dumps(self)


def build_payload(event: LogEvent, identity: SinkIdentity) -> DeliveryPayload:
    return DeliveryPayload(
        timestamp=format_timestamp(event.timestamp),
        level=map_level(event.level),
        message=event.message,
        service=identity.service,
        env=identity.env,
        hostname=identity.hostname,
        source=identity.source,
    )
