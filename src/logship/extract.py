# Field extraction from a single raw line

from typing import Dict, List, Optional


def group_names(pattern) -> List[Optional[str]]:
	"""Capture group names by position; index 0 is the whole match, None for unnamed groups."""
	names: List[Optional[str]] = [None] * (pattern.groups + 1)
	for name, position in pattern.groupindex.items():
		names[position] = name
	return names


def extract(pattern, line: str) -> Dict[str, str]:
	"""Apply pattern to line and map each named group to its captured text.

	Returns an empty mapping when the pattern does not match. Groups that did
	not take part in the match map to "". Values are copied verbatim.
	"""
	match = pattern.search(line)
	if match is None:
		return {}
	fields: Dict[str, str] = {}
	for position, name in enumerate(group_names(pattern)):
		if position == 0 or not name:
			continue
		value = match.group(position)
		fields[name] = value if value is not None else ""
	return fields
