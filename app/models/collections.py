"""Collection names, status values and shared field names.

Single source of truth for the document collections touched by the lifecycle
engine. Route and logic modules import from here instead of hardcoding
collection strings.
"""

from __future__ import annotations


class Collection:
    USERS = "users"
    COMPANY = "company"
    PROJECTS = "projects"
    PROJECT_PARTICIPANTS = "project-participants"
    DOCUMENT_LIBRARY = "document-library"
    LIBRARY_DOCUMENT_SECTIONS = "library-document-sections"
    LIBRARY_DOCUMENTS = "library-documents"
    PROJECT_DOCUMENT_SECTIONS = "project-document-sections"
    PROJECT_DOCUMENTS = "project-documents"
    WELD_LOGS = "weld-logs"
    WELD_LOG_DOCUMENTS = "weld-log-documents"
    WELD_LOG_DOCUMENT_SECTIONS = "weld-log-document-sections"
    WELDS = "welds"
    WELD_DOCUMENTS = "weld-documents"
    WELD_DOCUMENT_SECTIONS = "weld-document-sections"
    PARENT_MATERIALS = "parent-materials"
    FILLER_MATERIALS = "filler-materials"
    ALLOY_MATERIALS = "alloy-materials"


ALL_COLLECTIONS = frozenset(
    v for k, v in vars(Collection).items() if k.isupper() and isinstance(v, str)
)


class Status:
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


ALL_STATUSES = frozenset({Status.ACTIVE, Status.ARCHIVED, Status.DELETED})

# Foreign-key fields each collection carries. A cascade edge may only name a
# field listed for its child collection.
FOREIGN_KEYS: dict[str, frozenset[str]] = {
    Collection.PROJECT_PARTICIPANTS: frozenset({"projectId", "userId"}),
    Collection.WELD_LOGS: frozenset({"projectId"}),
    Collection.WELDS: frozenset({"projectId", "weldLogId"}),
    Collection.WELD_LOG_DOCUMENTS: frozenset({"projectId", "weldLogId", "sectionId"}),
    Collection.WELD_LOG_DOCUMENT_SECTIONS: frozenset({"projectId", "weldLogId"}),
    Collection.WELD_DOCUMENTS: frozenset({"projectId", "weldId", "sectionId"}),
    Collection.WELD_DOCUMENT_SECTIONS: frozenset({"projectId", "weldId"}),
    Collection.PROJECT_DOCUMENT_SECTIONS: frozenset({"projectId"}),
    Collection.PROJECT_DOCUMENTS: frozenset({"projectId", "sectionId"}),
    Collection.LIBRARY_DOCUMENT_SECTIONS: frozenset({"libraryId"}),
    Collection.LIBRARY_DOCUMENTS: frozenset({"libraryId", "sectionId"}),
    Collection.PROJECTS: frozenset({"companyId"}),
    Collection.DOCUMENT_LIBRARY: frozenset({"companyId"}),
    Collection.USERS: frozenset({"companyId"}),
    Collection.PARENT_MATERIALS: frozenset(),
    Collection.FILLER_MATERIALS: frozenset(),
    Collection.ALLOY_MATERIALS: frozenset(),
    Collection.COMPANY: frozenset(),
}

MATERIAL_COLLECTIONS: dict[str, str] = {
    "parent": Collection.PARENT_MATERIALS,
    "filler": Collection.FILLER_MATERIALS,
    "alloy": Collection.ALLOY_MATERIALS,
}

# Orderable collections and the direction their lists read in. Sections list
# first-created first; documents list newest first.
ORDERABLE_COLLECTIONS: dict[str, str] = {
    Collection.PROJECT_DOCUMENT_SECTIONS: "ascending",
    Collection.LIBRARY_DOCUMENT_SECTIONS: "ascending",
    Collection.WELD_LOG_DOCUMENT_SECTIONS: "ascending",
    Collection.WELD_DOCUMENT_SECTIONS: "ascending",
    Collection.PROJECT_DOCUMENTS: "descending",
    Collection.LIBRARY_DOCUMENTS: "descending",
    Collection.WELD_LOG_DOCUMENTS: "descending",
    Collection.WELD_DOCUMENTS: "descending",
}

# Parent foreign key every sibling list of an orderable collection is scoped by
ORDER_PARENT_KEYS: dict[str, str] = {
    Collection.PROJECT_DOCUMENT_SECTIONS: "projectId",
    Collection.LIBRARY_DOCUMENT_SECTIONS: "libraryId",
    Collection.WELD_LOG_DOCUMENT_SECTIONS: "weldLogId",
    Collection.WELD_DOCUMENT_SECTIONS: "weldId",
    Collection.PROJECT_DOCUMENTS: "projectId",
    Collection.LIBRARY_DOCUMENTS: "libraryId",
    Collection.WELD_LOG_DOCUMENTS: "weldLogId",
    Collection.WELD_DOCUMENTS: "weldId",
}


__all__ = [
    "Collection",
    "ALL_COLLECTIONS",
    "Status",
    "ALL_STATUSES",
    "FOREIGN_KEYS",
    "MATERIAL_COLLECTIONS",
    "ORDERABLE_COLLECTIONS",
    "ORDER_PARENT_KEYS",
]
