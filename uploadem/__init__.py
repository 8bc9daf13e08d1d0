from .coordinator import UploadCoordinator
from .models import Destination, FailureMarker, FileResult, TransferJob, UploadBatch
from .resolver import resolve
from .tracker import UploadTracker
from .uploader import BuzzheavierUploader, GofileUploader

__version__ = "0.1.0"

__all__ = [
    "UploadCoordinator",
    "Destination",
    "FailureMarker",
    "FileResult",
    "TransferJob",
    "UploadBatch",
    "resolve",
    "UploadTracker",
    "BuzzheavierUploader",
    "GofileUploader",
]
