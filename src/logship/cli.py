import logging
import signal
import sys
import threading

import typer

from .config import ShipperConfig, load_config, parse_hosts, set_dotenv_path
from .dispatch import Dispatcher
from .errors import LogshipError, ShutdownRequested
from .opensearch.bulk import BulkSink
from .opensearch.client import check_connection, get_opensearch_client
from .opensearch.mappings import TEMPLATE_NAME, build_index_template, index_pattern
from .patterns import DEFAULT_PATTERN_SOURCE, list_patterns, reserved_fields, resolve_pattern
from .pipeline import Pipeline
from .sources import FileFollower, StdinSource

app = typer.Typer(invoke_without_command=True)

logger = logging.getLogger(__name__)


def _fail(error: LogshipError):
	typer.echo(typer.style(f"Error: {error}", fg=typer.colors.RED), err=True)
	raise typer.Exit(error.exit_code)


def _configure_logging(verbose: bool):
	"""Send the logship loggers to stderr; stdout is kept for echoed lines."""
	handler = logging.StreamHandler(sys.stderr)
	handler.setFormatter(logging.Formatter("%(message)s" if verbose else "[logship] %(message)s"))
	root = logging.getLogger("logship")
	root.handlers = [handler]
	root.setLevel(logging.DEBUG if verbose else logging.WARNING)
	root.propagate = False


def _load(**overrides) -> ShipperConfig:
	try:
		return load_config().with_overrides(**overrides).validate()
	except LogshipError as e:
		_fail(e)


def _stdin_stream():
	"""stdin with undecodable bytes replaced by U+FFFD instead of failing the read."""
	stream = sys.stdin
	if hasattr(stream, "reconfigure"):
		stream.reconfigure(errors="replace")
	return stream


def _install_stop_handlers(stop: threading.Event):
	def _request_stop(signum, frame):
		stop.set()
		raise ShutdownRequested(f"received signal {signum}")

	previous = {}
	for signum in (signal.SIGINT, signal.SIGTERM):
		previous[signum] = signal.signal(signum, _request_stop)
	return previous


def _restore_handlers(previous):
	for signum, handler in previous.items():
		signal.signal(signum, handler)


@app.callback()
def main_callback(
	ctx: typer.Context,
	env: str = typer.Option(None, "--env", help="Path to a .env file to load"),
):
	"""Ship unstructured log lines into OpenSearch."""
	if env:
		set_dotenv_path(env)
	if ctx.invoked_subcommand is None:
		typer.echo(ctx.get_help(), err=True)
		raise typer.Exit(0)


@app.command()
def ship(
	file: str = typer.Option(None, "--file", "-f", help="Follow this file instead of reading stdin"),
	from_start: bool = typer.Option(False, "--from-start", help="Read the followed file from its beginning"),
	pattern: str = typer.Option(None, "--pattern", "-p", help="Named pattern, see 'logship patterns'"),
	regexp: str = typer.Option(None, "--regexp", "-r", help="Regexp with named capture groups"),
	index: str = typer.Option(None, "--index", help="strftime template for the index name"),
	hosts: str = typer.Option(None, "--hosts", help="OpenSearch hosts, comma separated host:port"),
	verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace every line to stderr"),
	echo: bool = typer.Option(False, "--echo", "-e", help="Copy every input line to stdout"),
):
	"""Read log lines and ship them to OpenSearch."""
	cfg = _load(
		pattern_name=pattern,
		pattern_source=regexp if regexp is not None else DEFAULT_PATTERN_SOURCE,
		index_template=index,
		hosts=parse_hosts(hosts) if hosts is not None else None,
		verbose=verbose,
		echo=echo,
	)
	_configure_logging(cfg.verbose)
	stop = threading.Event()
	try:
		compiled = resolve_pattern(cfg.pattern_name, cfg.pattern_source)
		for name in reserved_fields(compiled):
			logger.warning("Pattern group '%s' overwrites the mandatory '%s' field", name, name)
		client = get_opensearch_client(cfg)
		if file:
			source = FileFollower(file, stop_event=stop, from_start=from_start).open()
		else:
			source = StdinSource(_stdin_stream())
		sink = BulkSink(
			client,
			flush_interval=cfg.flush_interval,
			batch_size=cfg.batch_size,
			queue_size=cfg.queue_size,
		)
	except LogshipError as e:
		_fail(e)

	pipeline = Pipeline(
		compiled,
		Dispatcher(sink, cfg.drain_grace),
		cfg.index_template,
		echo=cfg.echo,
		out=typer.echo,
	)
	previous = _install_stop_handlers(stop)
	try:
		pipeline.run(source)
	except ShutdownRequested:
		logger.warning("Drain interrupted, queued logs may be lost")
	except LogshipError as e:
		_fail(e)
	finally:
		_restore_handlers(previous)
	logger.info("Done: %d sent, %d failed.", sink.sent, sink.failed)


@app.command()
def patterns():
	"""List the built-in named patterns."""
	for info in list_patterns():
		typer.echo(f"{typer.style(info.identifier, bold=True)}: {info.description}")
		typer.echo(f"    {info.source}")


@app.command()
def init(
	index: str = typer.Option(None, "--index", help="strftime template for the index name"),
	hosts: str = typer.Option(None, "--hosts", help="OpenSearch hosts, comma separated host:port"),
):
	"""Install the OpenSearch index template (idempotent)."""
	cfg = _load(
		index_template=index,
		hosts=parse_hosts(hosts) if hosts is not None else None,
	)
	try:
		body = build_index_template(cfg.index_template)
		client = get_opensearch_client(cfg)
		check_connection(client, cfg)
	except LogshipError as e:
		_fail(e)
	client.indices.put_index_template(name=TEMPLATE_NAME, body=body)
	typer.echo(f"Index template '{TEMPLATE_NAME}' installed for '{index_pattern(cfg.index_template)}'.")


def main():
	try:
		app()
	except typer.Exit:
		raise
	except Exception as e:
		typer.echo(typer.style(
			f"Fatal error: {type(e).__name__}: {e}",
			fg=typer.colors.RED
		), err=True)
		sys.exit(1)


if __name__ == "__main__":
	main()
