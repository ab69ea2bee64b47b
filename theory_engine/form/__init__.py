"""Form layer - Compressed, repeat-aware bar charts and their edits.

Pipeline: detected bars -> merge with edited bars -> compress -> sections
"""

from .compression import (
    BarMapping,
    BarSimilarity,
    ExpandedForm,
    FormCompressor,
    compress_expanded_bars,
    expand_sections,
    merge_expanded_bars,
    unlink_repeat_instance,
)
from .editing import (
    set_bar,
    insert_bar,
    remove_bar,
    rename_section,
    replace_section_bars,
    unlink_section_repeat,
)

__all__ = [
    # Compression
    "BarMapping",
    "BarSimilarity",
    "ExpandedForm",
    "FormCompressor",
    "compress_expanded_bars",
    "expand_sections",
    "merge_expanded_bars",
    "unlink_repeat_instance",
    # Editing
    "set_bar",
    "insert_bar",
    "remove_bar",
    "rename_section",
    "replace_section_bars",
    "unlink_section_repeat",
]
