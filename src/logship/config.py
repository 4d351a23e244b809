# Configuration loading for logship

import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .errors import ConfigError

# Lazy load dotenv - only when config is first accessed
_dotenv_loaded = False
_custom_dotenv_path = None

DEFAULT_INDEX_TEMPLATE = "logstash-%Y.%m.%d"


def _getenv(name, default):
	value = os.getenv(name)
	return value if value else default


def _getenv_number(name, default, kind):
	raw = _getenv(name, default)
	try:
		return kind(raw)
	except (TypeError, ValueError):
		raise ConfigError(f"{name} must be a number, got {raw!r}")


def parse_hosts(value: str) -> Tuple[str, ...]:
	"""Split a comma separated host list, dropping blanks."""
	return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class ShipperConfig:
	"""Immutable settings for one logship run.

	Built once at startup and handed to each component; nothing in the
	pipeline reads the environment after that.
	"""
	hosts: Tuple[str, ...] = ("localhost:9200",)
	opensearch_user: str = "admin"
	opensearch_pass: str = "admin"
	opensearch_timeout: int = 30
	index_template: str = DEFAULT_INDEX_TEMPLATE
	flush_interval: float = 1.0
	drain_grace: float = 2.0
	batch_size: int = 500
	queue_size: int = 10000
	pattern_name: Optional[str] = None
	pattern_source: Optional[str] = None
	verbose: bool = False
	echo: bool = False

	def with_overrides(self, **overrides) -> "ShipperConfig":
		"""Return a copy with every non-None override applied."""
		changes = {key: value for key, value in overrides.items() if value is not None}
		return replace(self, **changes)

	def validate(self) -> "ShipperConfig":
		if not self.hosts:
			raise ConfigError("At least one OpenSearch host is required.")
		if not self.index_template:
			raise ConfigError("Index template must not be empty.")
		if self.flush_interval <= 0:
			raise ConfigError("Flush interval must be positive.")
		if self.drain_grace <= self.flush_interval:
			raise ConfigError(
				f"Drain grace ({self.drain_grace}s) must be longer than the "
				f"flush interval ({self.flush_interval}s)."
			)
		if self.batch_size < 1:
			raise ConfigError("Batch size must be at least 1.")
		if self.queue_size < 0:
			raise ConfigError("Queue size must not be negative.")
		if self.verbose and self.echo:
			raise ConfigError("--verbose and --echo cannot be used together.")
		return self


def set_dotenv_path(path: str):
	"""Set a custom .env file path to load. Must be called before load_config()."""
	global _custom_dotenv_path, _dotenv_loaded
	_custom_dotenv_path = path
	_dotenv_loaded = False  # Reset to force reload with new path


def _load_dotenv():
	global _dotenv_loaded
	if _dotenv_loaded:
		return
	from dotenv import load_dotenv, find_dotenv
	# DOTENV_PATH wins over a path set from the CLI
	dotenv_path = os.getenv("DOTENV_PATH") or _custom_dotenv_path
	if dotenv_path:
		# Explicit files override values already in the environment
		load_dotenv(dotenv_path, override=True)
	else:
		# Search for .env file in current directory and parents
		dotenv_path = find_dotenv(usecwd=True)
		if dotenv_path:
			load_dotenv(dotenv_path)
	_dotenv_loaded = True


def load_config() -> ShipperConfig:
	"""Return a config object with all settings loaded from the environment."""
	_load_dotenv()
	return ShipperConfig(
		hosts=parse_hosts(_getenv("LOGSHIP_HOSTS", "localhost:9200")),
		opensearch_user=_getenv("LOGSHIP_OPENSEARCH_USER", "admin"),
		opensearch_pass=_getenv("LOGSHIP_OPENSEARCH_PASS", "admin"),
		opensearch_timeout=_getenv_number("LOGSHIP_OPENSEARCH_TIMEOUT", "30", int),
		index_template=_getenv("LOGSHIP_INDEX", DEFAULT_INDEX_TEMPLATE),
		flush_interval=_getenv_number("LOGSHIP_FLUSH_INTERVAL", "1.0", float),
		drain_grace=_getenv_number("LOGSHIP_DRAIN_GRACE", "2.0", float),
		batch_size=_getenv_number("LOGSHIP_BATCH_SIZE", "500", int),
		queue_size=_getenv_number("LOGSHIP_QUEUE_SIZE", "10000", int),
	)
