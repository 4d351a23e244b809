# Batching bulk sink for index operations

import logging
import queue
import threading
import time

from opensearchpy import helpers
from opensearchpy.exceptions import OpenSearchException

logger = logging.getLogger(__name__)

_STOP = object()


class BulkSink:
	"""Queues index operations and flushes them with the bulk API.

	A background thread sends a batch when batch_size operations are waiting
	or flush_interval seconds have passed since the last flush. Delivery is
	best-effort: a failed bulk request is logged and its batch dropped.
	"""

	def __init__(self, client, flush_interval=1.0, batch_size=500, queue_size=10000):
		self.client = client
		self.flush_interval = flush_interval
		self.batch_size = batch_size
		self.sent = 0
		self.failed = 0
		self._queue = queue.Queue(maxsize=queue_size)
		self._closed = threading.Event()
		self._thread = threading.Thread(target=self._run, name="logship-bulk", daemon=True)
		self._thread.start()

	def enqueue(self, operation):
		"""Queue one operation; blocks while a bounded queue is full."""
		if self._closed.is_set():
			raise RuntimeError("BulkSink is closed")
		self._queue.put(operation)

	@property
	def pending_count(self) -> int:
		return self._queue.qsize()

	def close(self, timeout=None) -> bool:
		"""Flush everything queued and stop the flush thread.

		Returns True when the thread finished within timeout.
		"""
		if not self._closed.is_set():
			self._closed.set()
			self._queue.put(_STOP)
		self._thread.join(timeout)
		return not self._thread.is_alive()

	def _run(self):
		batch = []
		deadline = time.monotonic() + self.flush_interval
		while True:
			try:
				item = self._queue.get(timeout=max(0.0, deadline - time.monotonic()))
			except queue.Empty:
				item = None
			if item is _STOP:
				self._flush(batch)
				return
			if item is not None:
				batch.append(item)
			if len(batch) >= self.batch_size or time.monotonic() >= deadline:
				self._flush(batch)
				batch = []
				deadline = time.monotonic() + self.flush_interval

	def _flush(self, batch):
		if not batch:
			return
		actions = [operation.to_action() for operation in batch]
		try:
			success, failed = helpers.bulk(
				self.client,
				actions,
				chunk_size=self.batch_size,
				raise_on_error=False,
				stats_only=True,
			)
		except OpenSearchException as e:
			self.failed += len(batch)
			logger.warning("Bulk request for %d logs failed, dropping batch: %s", len(batch), e)
			return
		self.sent += success
		self.failed += failed
		if failed:
			logger.warning("%d of %d logs were rejected by OpenSearch", failed, len(batch))
		logger.debug("Flushed batch of %d logs", len(batch))
