from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .ids import ContainerID, ObjectID

# Object attributes
ATTRIBUTE_FILE_NAME = "FileName"
ATTRIBUTE_FILE_PATH = "FilePath"
ATTRIBUTE_TIMESTAMP = "Timestamp"

# Container attributes
CONTAINER_ATTRIBUTE_NAME = "Name"
CONTAINER_ATTRIBUTE_TIMESTAMP = "Timestamp"

# Basic ACL of a private container: only the owner can read and write.
PRIVATE_BASIC_ACL = 0x1C8C8CCC

MATCH_STRING_EQUAL = "STRING_EQUAL"
MATCH_STRING_NOT_EQUAL = "STRING_NOT_EQUAL"

@dataclass
class ObjectHeader:
    """Metadata for an object."""
    container_id: ContainerID
    owner: str
    attributes: Dict[str, str] = field(default_factory=dict)
    object_id: Optional[ObjectID] = None
    payload_size: int = 0
    root: bool = True

@dataclass
class ContainerInfo:
    """Metadata for a container."""
    container_id: ContainerID
    owner: str
    attributes: Dict[str, str] = field(default_factory=dict)
    policy: str = ""
    basic_acl: int = PRIVATE_BASIC_ACL

@dataclass
class ContainerHeader:
    """Parameters for creating a container."""
    owner: str
    name: str
    policy: str
    basic_acl: int = PRIVATE_BASIC_ACL
    attributes: Dict[str, str] = field(default_factory=dict)

@dataclass
class SearchFilter:
    """Attribute predicate for object search."""
    key: str
    value: str
    match: str = MATCH_STRING_EQUAL

    def matches(self, attributes: Dict[str, str]) -> bool:
        present = attributes.get(self.key)
        if self.match == MATCH_STRING_EQUAL:
            return present == self.value
        if self.match == MATCH_STRING_NOT_EQUAL:
            return present != self.value
        raise ValueError(f"unknown match type {self.match}")

@dataclass
class SearchFilters:
    """Options for searching objects in a container."""
    root: bool = False
    filters: List[SearchFilter] = field(default_factory=list)

    def add_root_filter(self) -> "SearchFilters":
        self.root = True
        return self

    def add_filter(self, key: str, value: str, match: str = MATCH_STRING_EQUAL) -> "SearchFilters":
        self.filters.append(SearchFilter(key, value, match))
        return self

    def matches(self, header: ObjectHeader) -> bool:
        if self.root and not header.root:
            return False
        return all(f.matches(header.attributes) for f in self.filters)
