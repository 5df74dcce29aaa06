from .query import get_node, get_children, get_top_level, get_sibling_counts, get_children_with_counts
from .breadcrumb import resolve_breadcrumb
from .lifecycle import delete_subtree
from .navigator import (
    next_content,
    previous_content,
    next_content_id,
    previous_content_id,
    first_question,
    last_question,
    first_question_id,
    last_question_id,
    next_question,
    previous_question,
)
from .ordering import next_order, next_question_order
