import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
	sys.path.insert(0, SRC_DIR)


class RecordingSink:
	"""Sink double that keeps every enqueued operation in order."""

	def __init__(self, drained=True):
		self.operations = []
		self.closed_with = None
		self._drained = drained

	def enqueue(self, operation):
		self.operations.append(operation)

	def close(self, timeout=None):
		self.closed_with = timeout
		return self._drained


@pytest.fixture
def sink():
	return RecordingSink()


@pytest.fixture
def clean_env(monkeypatch):
	from logship import config
	monkeypatch.setattr(config, "_dotenv_loaded", True)
	monkeypatch.setattr(config, "_custom_dotenv_path", None)
	for key in list(os.environ):
		if key.startswith("LOGSHIP_") or key == "DOTENV_PATH":
			monkeypatch.delenv(key, raising=False)
	return monkeypatch


@pytest.fixture(autouse=True)
def reset_logship_logger():
	"""The CLI reconfigures the logship logger; undo that between tests."""
	import logging
	log = logging.getLogger("logship")
	yield
	log.handlers = []
	log.setLevel(logging.NOTSET)
	log.propagate = True
