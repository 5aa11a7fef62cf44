# Utility functions for the course hub backend
from .hashing import generate_object_id
from .logging_utils import setup_logging, build_logging_config
from .formatting import format_amount, format_number, truncate_text
from .pagination import Page, PageInfo, PageParams, get_page_params, paginate_queryset, paginate_results
