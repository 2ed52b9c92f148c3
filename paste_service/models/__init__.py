# Models package for the paste service

from .paste import PasteDescriptor, PasteType, UploadTrack

__all__ = [
    "PasteDescriptor",
    "PasteType",
    "UploadTrack",
]
