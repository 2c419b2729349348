"""Domain objects for elastic-frame."""

from elastic_frame.domain.enums import BulkAction, FragmentKind, HttpMethod, SearchMode
from elastic_frame.domain.fragments import ApiFragment, aggs, combine, pretty, query, render, sort_on
from elastic_frame.domain.resource import ElasticResource, elastic, valid_url

__all__ = [
    "ApiFragment",
    "BulkAction",
    "ElasticResource",
    "FragmentKind",
    "HttpMethod",
    "SearchMode",
    "aggs",
    "combine",
    "elastic",
    "pretty",
    "query",
    "render",
    "sort_on",
    "valid_url",
]
