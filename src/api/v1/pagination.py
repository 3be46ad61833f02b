"""Pagination of the record listings."""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    # Listings of monthly rows; clients may widen a page up to max_page_size.
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200
