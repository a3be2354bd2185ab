"""Core type definitions."""

from typing import NewType

# Opaque identifiers supplied by the content index
# Distinct types catch a module id passed where a page id is expected
CourseId = NewType("CourseId", str)
ModuleId = NewType("ModuleId", str)
PageId = NewType("PageId", str)
