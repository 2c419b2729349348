"""Index, query and aggregate pandas data frames in Elasticsearch."""

from elastic_frame.api import ElasticFrame
from elastic_frame.domain import (
    ApiFragment,
    ElasticResource,
    FragmentKind,
    aggs,
    combine,
    elastic,
    pretty,
    query,
    render,
    sort_on,
)
from elastic_frame.errors import (
    ApprovalRequiredError,
    BulkIndexingError,
    ElasticFrameError,
    HttpStatusError,
    InvalidArgumentError,
    InvalidCombinationError,
)
from elastic_frame.execution import create_index, delete_documents, index_dataframe, search
from elastic_frame.mappings import mapping_default_simple, mapping_fielddata_true
from elastic_frame.settings import ElasticFrameSettings

__version__ = "0.1.0"

__all__ = [
    "ApiFragment",
    "ApprovalRequiredError",
    "BulkIndexingError",
    "ElasticFrame",
    "ElasticFrameError",
    "ElasticFrameSettings",
    "ElasticResource",
    "FragmentKind",
    "HttpStatusError",
    "InvalidArgumentError",
    "InvalidCombinationError",
    "__version__",
    "aggs",
    "combine",
    "create_index",
    "delete_documents",
    "elastic",
    "index_dataframe",
    "mapping_default_simple",
    "mapping_fielddata_true",
    "pretty",
    "query",
    "render",
    "search",
    "sort_on",
]
