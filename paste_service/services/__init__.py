# Services package for the paste service

from .ids import IdGenerator
from .descriptor_store import DescriptorStore, RedisDescriptorStore
from .object_store import ObjectNotFound, ObjectStore, S3ObjectStore
from .paste_engine import PasteEngine

__all__ = [
    "IdGenerator",
    "DescriptorStore",
    "RedisDescriptorStore",
    "ObjectNotFound",
    "ObjectStore",
    "S3ObjectStore",
    "PasteEngine",
]
