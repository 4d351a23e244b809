# Error hierarchy for logship, each kind carrying its process exit code

EXIT_OK = 0
EXIT_RUNTIME = 1
EXIT_USAGE = 2
EXIT_PATTERN = 3
EXIT_SOURCE_OPEN = 4
EXIT_OPENSEARCH = 5
EXIT_SERIALIZATION = 6


class LogshipError(Exception):
	"""Base exception for logship errors with user-friendly messages."""
	exit_code = EXIT_RUNTIME


class ConfigError(LogshipError):
	"""Raised when configuration values are invalid or contradictory."""
	exit_code = EXIT_USAGE


class PatternError(LogshipError):
	"""Raised when no usable extraction pattern can be resolved."""
	exit_code = EXIT_PATTERN


class SourceOpenError(LogshipError):
	"""Raised when a line source cannot be opened."""
	exit_code = EXIT_SOURCE_OPEN


class SourceReadError(LogshipError):
	"""Raised when reading from a line source fails mid-stream."""
	exit_code = EXIT_RUNTIME


class SerializationError(LogshipError):
	"""Raised when a field set cannot be encoded as a document.

	Field sets are always str -> str, so this means an invariant was broken.
	"""
	exit_code = EXIT_SERIALIZATION


class ShutdownRequested(LogshipError):
	"""Raised in the main thread when a stop signal arrives."""
	exit_code = EXIT_OK
