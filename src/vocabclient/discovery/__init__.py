"""Discovery - from an API description to a capability map.

- Operation catalog: flattens paths -> methods into OperationRecord values
- Capability rules: data table of scoring rules per capability
- Discoverer: picks the best-scoring operation for every capability
- Document: fetches the API description with a TTL cache
"""

from vocabclient.discovery.catalog import (
    DEFAULT_TAG,
    HTTP_METHODS,
    OperationRecord,
    build_path,
    find_operation,
    flatten_operations,
    get_operation_parameters,
    get_path_params,
    group_by_tag,
)
from vocabclient.discovery.discoverer import Discovery, discover, match_capabilities
from vocabclient.discovery.document import (
    CACHE_TTL,
    DOCUMENT_PATH,
    CachedDocument,
    cache_key,
    fetch_document,
)
from vocabclient.discovery.rules import (
    CAPABILITY_NAMES,
    CAPABILITY_RULES,
    NO_MATCH,
    CapabilityRule,
    find_best,
    score_operation,
)

__all__ = [
    # Catalog
    "DEFAULT_TAG",
    "HTTP_METHODS",
    "OperationRecord",
    "build_path",
    "find_operation",
    "flatten_operations",
    "get_operation_parameters",
    "get_path_params",
    "group_by_tag",
    # Rules
    "CAPABILITY_NAMES",
    "CAPABILITY_RULES",
    "NO_MATCH",
    "CapabilityRule",
    "find_best",
    "score_operation",
    # Discoverer
    "Discovery",
    "discover",
    "match_capabilities",
    # Document
    "CACHE_TTL",
    "DOCUMENT_PATH",
    "CachedDocument",
    "cache_key",
    "fetch_document",
]
