"""
JSON schemas for configuration validation.
"""

REMOTE_SCHEMA = {
    "type": "object",
    "properties": {
        "base_url": {"type": ["string", "null"]},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "headers": {"type": "object", "additionalProperties": {"type": "string"}},
    },
    "additionalProperties": False,
}

DATABASE_SCHEMA = {
    "type": "object",
    "properties": {
        "url": {"type": ["string", "null"]},
        "connect_timeout": {"type": "number", "exclusiveMinimum": 0},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_operations": {"type": "boolean"},
        "log_arguments": {"type": "boolean"},
    },
    "additionalProperties": False,
}

FIELD_SCHEMA = {
    "type": "object",
    "properties": {
        "i18n": {
            "oneOf": [
                {"type": "boolean"},
                {
                    "type": "object",
                    "properties": {
                        "prompt": {"type": "string"},
                        "model": {"type": "string"},
                    },
                    "additionalProperties": False,
                },
            ]
        },
    },
}

ENTITY_SCHEMA = {
    "type": "object",
    "properties": {
        "default_source": {"type": ["string", "null"]},
        "cache": {
            "type": "object",
            "properties": {"ttl": {"type": ["integer", "null"], "minimum": 0}},
        },
        "fields": {"type": "object", "additionalProperties": FIELD_SCHEMA},
    },
    "additionalProperties": False,
}

COLUMN_SCHEMA = {
    "type": "object",
    "properties": {
        "type": {"type": "string"},
        "nullable": {"type": "boolean"},
        "unique": {"type": "boolean"},
        "primary_key": {"type": "boolean"},
        "default": {},
    },
    "required": ["type"],
    "additionalProperties": False,
}

SOURCE_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "entities": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "table": {
                        "type": "object",
                        "properties": {
                            "schema": {"type": "string"},
                            "name": {"type": "string", "minLength": 1},
                            "columns": {"type": "object", "additionalProperties": COLUMN_SCHEMA},
                        },
                        "required": ["name", "columns"],
                    },
                },
            },
        },
    },
    "required": ["id", "entities"],
}

SOURCES_SCHEMA = {
    "type": "object",
    "properties": {
        "sources": {"type": "array", "items": SOURCE_SCHEMA},
    },
    "required": ["sources"],
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "remote": REMOTE_SCHEMA,
        "database": DATABASE_SCHEMA,
        "logging": LOGGING_SCHEMA,
        "entities": {"type": "object", "additionalProperties": ENTITY_SCHEMA},
    },
    "additionalProperties": True,
}
