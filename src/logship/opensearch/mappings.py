# OpenSearch index templates and mappings

from ..errors import ConfigError

TEMPLATE_NAME = "logship-template"

LOG_MAPPINGS = {
	"dynamic_templates": [
		{
			"extracted_strings": {
				"match_mapping_type": "string",
				"mapping": {"type": "keyword", "ignore_above": 8191},
			}
		}
	],
	"properties": {
		"@timestamp": {"type": "date_nanos"},
		"message": {"type": "text"},
		"msg": {"type": "text"},
	},
}


def index_pattern(index_template: str) -> str:
	"""Wildcard pattern covering every index a strftime template can produce."""
	prefix = index_template.split("%", 1)[0]
	if not prefix:
		raise ConfigError(f"Index template {index_template!r} needs a literal prefix to build an index pattern")
	return f"{prefix}*"


def build_index_template(index_template: str) -> dict:
	return {
		"index_patterns": [index_pattern(index_template)],
		"template": {
			"settings": {"number_of_shards": 1},
			"mappings": LOG_MAPPINGS,
		},
	}
