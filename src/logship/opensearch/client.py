# OpenSearch client factory and connection checks

from opensearchpy import OpenSearch
from opensearchpy.exceptions import AuthenticationException, ConnectionError as TransportConnectionError

from ..errors import EXIT_OPENSEARCH, ConfigError, LogshipError


class OpenSearchError(LogshipError):
	"""Base exception for OpenSearch errors with user-friendly messages."""
	exit_code = EXIT_OPENSEARCH


class ConnectionFailedError(OpenSearchError):
	"""Raised when OpenSearch is not reachable."""
	pass


class AuthenticationError(OpenSearchError):
	"""Raised when authentication fails."""
	pass


def _parse_host(entry):
	host, _, port = entry.rpartition(":")
	if not host:
		return {"host": entry, "port": 9200}
	try:
		return {"host": host, "port": int(port)}
	except ValueError:
		raise ConfigError(f"Invalid OpenSearch host {entry!r}, expected host:port")


def get_opensearch_client(cfg):
	return OpenSearch(
		hosts=[_parse_host(entry) for entry in cfg.hosts],
		http_auth=(cfg.opensearch_user, cfg.opensearch_pass),
		timeout=cfg.opensearch_timeout,
		use_ssl=False,
		verify_certs=False,
	)


def check_connection(client, cfg):
	"""Check if OpenSearch is reachable. Raises ConnectionFailedError if not."""
	hosts = ",".join(cfg.hosts)
	try:
		client.info()
	except TransportConnectionError:
		raise ConnectionFailedError(
			f"Cannot connect to OpenSearch at {hosts}\n"
			f"Make sure OpenSearch is running and accessible."
		)
	except AuthenticationException:
		raise AuthenticationError(
			f"Authentication failed for OpenSearch at {hosts}\n"
			f"Check LOGSHIP_OPENSEARCH_USER and LOGSHIP_OPENSEARCH_PASS in your .env file."
		)
