# The extraction and dispatch loop

import logging
from typing import Callable, Iterable, Optional

from .dispatch import Dispatcher
from .errors import ShutdownRequested, SourceReadError
from .extract import extract
from .records import IndexRecord, Instant, build_record

logger = logging.getLogger(__name__)


class Pipeline:
	"""Drives source -> extract -> build -> dispatch, one line at a time.

	Lines are handled strictly in arrival order. Tracing goes to this
	module's logger at DEBUG; echoing writes the raw line with `out`.
	"""

	def __init__(
		self,
		pattern,
		dispatcher: Dispatcher,
		index_template: str,
		echo: bool = False,
		clock: Callable[[], Instant] = Instant.now,
		out: Optional[Callable[[str], None]] = None,
	):
		self.pattern = pattern
		self.dispatcher = dispatcher
		self.index_template = index_template
		self.echo = echo
		self._clock = clock
		self._out = out or print
		self.shipped = 0

	def process(self, line: str) -> IndexRecord:
		if self.echo:
			self._out(line)
		logger.debug("line: %r", line)
		fields = extract(self.pattern, line)
		record = build_record(line, fields, self._clock(), self.index_template)
		if logger.isEnabledFor(logging.DEBUG):
			logger.debug("index: %s", record.destination)
			logger.debug("fields:")
			for name, value in record.fields.items():
				logger.debug("  %s: %r", name, value)
		self.dispatcher.dispatch(record)
		self.shipped += 1
		return record

	def run(self, source: Iterable[str]) -> int:
		"""Ship every line from source, then drain the sink.

		Returns the number of lines shipped. A SourceReadError is reported
		and re-raised once the drain has finished. A SerializationError
		propagates at once without draining.
		"""
		logger.debug("using pattern: %r", self.pattern.pattern)
		try:
			for line in source:
				self.process(line)
		except ShutdownRequested:
			logger.info("Stop requested, shutting down...")
		except SourceReadError as e:
			logger.error("%s", e)
			self._drain()
			raise
		self._drain()
		return self.shipped

	def _drain(self):
		logger.info("Shipped %d lines, draining sink...", self.shipped)
		self.dispatcher.drain()
