# Record construction: timestamps, truncation and destination naming

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Mapping, Optional

MAX_FIELD_LENGTH = 30000
TRUNCATION_SUFFIX = "..."

_NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class Instant:
	"""A wall-clock reading with nanosecond precision in a fixed UTC offset.

	datetime stops at microseconds, so the full sub-second part is kept in
	nanosecond alongside it.
	"""
	moment: datetime
	nanosecond: int = 0

	@classmethod
	def now(cls, tz=None) -> "Instant":
		seconds, nanos = divmod(time.time_ns(), _NANOS_PER_SECOND)
		moment = datetime.fromtimestamp(seconds, tz=tz)
		if moment.tzinfo is None:
			moment = moment.astimezone()
		return cls(moment.replace(microsecond=nanos // 1000), nanos)

	@classmethod
	def from_datetime(cls, moment: datetime) -> "Instant":
		if moment.tzinfo is None:
			moment = moment.astimezone()
		return cls(moment, moment.microsecond * 1000)

	def strftime(self, template: str) -> str:
		return self.moment.strftime(template)

	def isoformat(self) -> str:
		"""Render as RFC 3339 with up to nine fractional digits.

		Trailing zeros are trimmed and a zero offset is written as Z, matching
		what bulk indexers expect for date_nanos fields.
		"""
		text = self.moment.strftime("%Y-%m-%dT%H:%M:%S")
		fraction = f"{self.nanosecond:09d}".rstrip("0")
		if fraction:
			text += "." + fraction
		return text + _format_offset(self.moment.utcoffset())


def _format_offset(offset: Optional[timedelta]) -> str:
	if not offset:
		return "Z"
	total = int(offset.total_seconds())
	sign = "+" if total >= 0 else "-"
	hours, minutes = divmod(abs(total) // 60, 60)
	return f"{sign}{hours:02d}:{minutes:02d}"


@dataclass(frozen=True)
class IndexRecord:
	destination: str
	fields: Mapping[str, str]

	def __post_init__(self):
		object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


def truncate(value: str, limit: int = MAX_FIELD_LENGTH) -> str:
	"""Cut value to limit characters and mark the cut with a suffix."""
	if len(value) <= limit:
		return value
	return value[:limit] + TRUNCATION_SUFFIX


def destination_name(template: str, now: Instant) -> str:
	return now.strftime(template)


def build_record(line: str, fields: Mapping[str, str], now: Instant, template: str) -> IndexRecord:
	"""Combine a raw line and its extracted fields into an IndexRecord.

	Extracted fields are merged over the mandatory @timestamp and message,
	so a group named "message" replaces the raw line.
	"""
	doc = {
		"@timestamp": now.isoformat(),
		"message": truncate(line),
	}
	for name, value in fields.items():
		doc[name] = truncate(value)
	return IndexRecord(destination=destination_name(template, now), fields=doc)
