# logship: ship unstructured log lines into OpenSearch

__version__ = "0.3.0"
