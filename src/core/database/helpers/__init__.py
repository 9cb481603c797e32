"""
Database helper functions package.

Exports:
- File list: get_file_entry, get_child_entries, get_entry_paths, insert_file_entry,
  delete_file_entries, count_file_entries
- Tags: get_tag_by_name, insert_tag, get_or_create_tag, tag_file_entry, get_tagged_file_hits
"""
from .file_list import (
    count_file_entries,
    delete_file_entries,
    get_child_entries,
    get_entry_paths,
    get_file_entry,
    insert_file_entry,
)
from .tags import (
    FILE_LIST_ARTIFACT,
    get_or_create_tag,
    get_tag_by_name,
    get_tagged_file_hits,
    insert_tag,
    tag_file_entry,
)

__all__ = [
    "count_file_entries",
    "delete_file_entries",
    "get_child_entries",
    "get_entry_paths",
    "get_file_entry",
    "insert_file_entry",
    "FILE_LIST_ARTIFACT",
    "get_or_create_tag",
    "get_tag_by_name",
    "get_tagged_file_hits",
    "insert_tag",
    "tag_file_entry",
]
