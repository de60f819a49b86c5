"""Utility functions"""

from .projection import (
    project_entities,
    parse_id,
    sort_newest_first,
    max_id
)
from .pagination import total_pages, slice_page
