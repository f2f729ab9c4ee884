"""Pagination utilities for API v1."""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page number pagination; ``limit`` sets the page size."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100
