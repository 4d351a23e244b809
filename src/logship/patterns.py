# Named extraction patterns and pattern resolution

import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import PatternError

RESERVED_FIELDS = ("@timestamp", "message")


@dataclass(frozen=True)
class PatternInfo:
	identifier: str
	description: str
	source: str


GLOG = r"^\S+ \S+\s+\d+ (?P<file>[^\s:]+):\d+\] (?P<msg>(?P<msgcore>.*?:)?.*)"

ACCESS = (
	r"^(?P<remote>\S+) (?P<host>\S+) (?P<user>\S+) \[[^\]]*\] "
	r'"(?P<method>\S+)(?: +(?P<path>[^ "]*)(?: +[^"]*)?)?" '
	r"(?P<code>\d{3}|-) (?P<size>\d+|-)"
	r'(?: "(?P<referer>[^"]*)" "(?P<agent>[^"]*)")?'
)

ERROR = r"^\S+ \S+ \[(?P<level>[a-z]+)\] (?P<msg>.*)"

APP = r"^\[?(?P<level>[A-Z]+)\]?:?\s+(?P<msg>.*)"

BUILTIN_PATTERNS = {
	"glog": PatternInfo(
		"glog",
		"glog style lines: severity+date, time, thread, file:line] message",
		GLOG,
	),
	"access": PatternInfo(
		"access",
		"HTTP access log (common or combined format)",
		ACCESS,
	),
	"error": PatternInfo(
		"error",
		"web server error log: date time [level] message",
		ERROR,
	),
	"app": PatternInfo(
		"app",
		"application log: SEVERITY marker followed by the message",
		APP,
	),
}

DEFAULT_PATTERN_SOURCE = GLOG


def list_patterns() -> List[PatternInfo]:
	"""Return every built-in pattern, sorted by identifier."""
	return [BUILTIN_PATTERNS[key] for key in sorted(BUILTIN_PATTERNS)]


def compile_pattern(source: str) -> "re.Pattern[str]":
	try:
		return re.compile(source)
	except re.error as e:
		raise PatternError(f"Invalid pattern {source!r}: {e}")


def resolve_pattern(name: Optional[str] = None, source: Optional[str] = None) -> "re.Pattern[str]":
	"""Resolve a named pattern or a freeform pattern to one compiled pattern.

	A name takes precedence over the freeform source. Every failure mode
	raises PatternError so callers can stop before reading any input.
	"""
	if name:
		info = BUILTIN_PATTERNS.get(name)
		if info is None:
			known = ", ".join(sorted(BUILTIN_PATTERNS))
			raise PatternError(f"Unknown named pattern '{name}' (known: {known})")
		return compile_pattern(info.source)
	if not source:
		raise PatternError("No pattern provided")
	return compile_pattern(source)


def reserved_fields(pattern) -> List[str]:
	"""Group names that would overwrite a mandatory record field."""
	return [name for name in pattern.groupindex if name in RESERVED_FIELDS]
