"""Schema resolution and example synthesis."""

from vocabclient.schema.examples import MAX_EXAMPLE_DEPTH, build_example
from vocabclient.schema.resolver import (
    MAX_RESOLVE_DEPTH,
    RefResolver,
    get_request_body_schema,
    resolve_schema,
)

__all__ = [
    "MAX_EXAMPLE_DEPTH",
    "MAX_RESOLVE_DEPTH",
    "RefResolver",
    "build_example",
    "get_request_body_schema",
    "resolve_schema",
]
