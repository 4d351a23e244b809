"""Line sources: standard input and a followed file.

Both produce raw lines without their terminator, in arrival order. Iteration
ends normally at end of input; any read failure surfaces as SourceReadError.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from .errors import SourceOpenError, SourceReadError

logger = logging.getLogger(__name__)


def strip_terminator(line: str) -> str:
	if line.endswith("\n"):
		line = line[:-1]
	if line.endswith("\r"):
		line = line[:-1]
	return line


class LineSource(ABC):
	@abstractmethod
	def __iter__(self) -> Iterator[str]:
		...

	def close(self):
		pass


class StdinSource(LineSource):
	"""Reads lines from a text stream until end of input."""

	def __init__(self, stream):
		self._stream = stream

	def __iter__(self) -> Iterator[str]:
		while True:
			try:
				raw = self._stream.readline()
			except OSError as e:
				raise SourceReadError(f"Error reading input: {e}")
			if not raw:
				return
			line = strip_terminator(raw)
			if line:
				yield line


class FileFollower(LineSource):
	"""Follows a log file as it grows, like tail -F.

	Handles:
	- Log rotation (inode change detection)
	- File truncation (seek back to start)
	- Partial lines (held until their newline arrives)

	The file is read as bytes so a multi-byte character split across two
	writes is only decoded once its line is complete.
	"""

	def __init__(
		self,
		path: str,
		stop_event: Optional[threading.Event] = None,
		poll_interval: float = 0.5,
		from_start: bool = False,
		encoding: str = "utf-8",
	):
		self._path = path
		self._stop = stop_event or threading.Event()
		self._poll_interval = poll_interval
		self._from_start = from_start
		self._encoding = encoding
		self._file = None
		self._inode = None
		self._partial = b""

	@property
	def path(self) -> str:
		return self._path

	def open(self):
		"""Open the target file. Raises SourceOpenError when it is missing or unreadable."""
		try:
			self._open_file(seek_end=not self._from_start)
		except OSError as e:
			raise SourceOpenError(f"Cannot open {self._path}: {e.strerror or e}")
		return self

	def stop(self):
		self._stop.set()

	def __iter__(self) -> Iterator[str]:
		if self._file is None:
			self.open()
		try:
			while not self._stop.is_set():
				lines = self._poll()
				if lines:
					yield from lines
				else:
					self._stop.wait(self._poll_interval)
		finally:
			self.close()

	def close(self):
		"""Close the current file handle."""
		if self._file:
			self._file.close()
			self._file = None

	def _open_file(self, seek_end: bool = False):
		self._file = open(self._path, "rb")
		self._inode = os.fstat(self._file.fileno()).st_ino
		self._partial = b""
		if seek_end:
			self._file.seek(0, os.SEEK_END)
		logger.debug("Opened %s (inode=%d)", self._path, self._inode)

	def _poll(self) -> List[str]:
		try:
			rotated = self._check_rotation()
			if rotated is not None:
				return rotated
			self._check_truncation()
			return self._split(self._file.read())
		except OSError as e:
			raise SourceReadError(f"Error reading {self._path}: {e}")

	def _split(self, data: bytes) -> List[str]:
		if not data:
			return []
		chunks = (self._partial + data).split(b"\n")
		# Whatever follows the last newline is incomplete
		self._partial = chunks.pop()
		return self._decode(chunks)

	def _decode(self, chunks) -> List[str]:
		lines = []
		for chunk in chunks:
			line = strip_terminator(chunk.decode(self._encoding, errors="replace"))
			if line:
				lines.append(line)
		return lines

	def _check_rotation(self) -> Optional[List[str]]:
		"""Detect log rotation by comparing inodes.

		Returns the lines left in the old file when it was rotated, else None.
		"""
		try:
			current_inode = os.stat(self._path).st_ino
		except FileNotFoundError:
			# Rotated away and not yet recreated
			return None
		if current_inode == self._inode:
			return None
		logger.info("File rotation detected for %s", self._path)
		lines = self._split(self._file.read())
		if self._partial:
			lines.extend(self._decode([self._partial]))
		self.close()
		self._open_file(seek_end=False)
		return lines

	def _check_truncation(self):
		"""Detect file truncation (e.g., > file) and restart from the top."""
		file_size = os.fstat(self._file.fileno()).st_size
		if self._file.tell() > file_size:
			logger.info("File truncation detected for %s", self._path)
			self._file.seek(0)
			self._partial = b""
