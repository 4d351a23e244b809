# Hand-off of records to the bulk sink and the shutdown drain

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict

from .errors import SerializationError
from .records import IndexRecord

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "legos"


@dataclass(frozen=True)
class IndexOperation:
	"""One bulk index action. No id is set, the backend assigns one.

	doc_type names the envelope type of the record and stays on the client side.
	"""
	index: str
	document: str
	op_type: str = "index"
	doc_type: str = DOCUMENT_TYPE

	def to_action(self) -> Dict[str, Any]:
		# doc_type is not sent: OpenSearch has no mapping types
		return {
			"_op_type": self.op_type,
			"_index": self.index,
			"_source": self.document,
		}


def encode_fields(fields) -> str:
	try:
		return json.dumps(fields, ensure_ascii=False)
	except (TypeError, ValueError) as e:
		raise SerializationError(f"Cannot encode document: {e}")


class Dispatcher:
	"""Serializes records and enqueues them on a sink.

	The sink needs an enqueue(operation) method. When it also offers
	close(timeout) returning True once everything queued was flushed, drain()
	uses it as the acknowledgment; the grace period is still always waited out.
	"""

	def __init__(self, sink, drain_grace: float, sleep=time.sleep, clock=time.monotonic):
		self.sink = sink
		self.drain_grace = drain_grace
		self._sleep = sleep
		self._clock = clock

	def dispatch(self, record: IndexRecord) -> IndexOperation:
		operation = IndexOperation(index=record.destination, document=encode_fields(dict(record.fields)))
		# May block when a bounded sink queue is full
		self.sink.enqueue(operation)
		return operation

	def drain(self) -> bool:
		"""Give the sink the grace period to deliver queued operations."""
		started = self._clock()
		acknowledged = False
		close = getattr(self.sink, "close", None)
		if callable(close):
			acknowledged = bool(close(timeout=self.drain_grace))
		remaining = self.drain_grace - (self._clock() - started)
		if remaining > 0:
			self._sleep(remaining)
		if not acknowledged:
			logger.warning("Sink did not confirm the drain within %.1fs; queued logs may be lost", self.drain_grace)
		return acknowledged
