# services/file_service/exceptions.py


class FileServiceError(Exception):
    """Base class for every failure raised by the file service."""


class InvalidInput(FileServiceError):
    """The request cannot be processed as sent."""


class NotFound(FileServiceError):
    def __init__(self, file_id: str):
        super().__init__(f"File {file_id} not found")
        self.file_id = file_id


class AlreadyExists(FileServiceError):
    def __init__(self, file_id: str):
        super().__init__(f"File {file_id} already exists")
        self.file_id = file_id


class DecodeError(FileServiceError):
    """The input is not a raster image Pillow can decode."""


class StoreError(FileServiceError, IOError):
    """A blob or metadata store call failed."""


class StoreUnavailable(StoreError):
    """The store could not be reached at all."""


class BlobStoreError(StoreError):
    pass


class MetadataStoreError(StoreError):
    pass


class UploadBatchError(FileServiceError):
    """
    Raised when one file of a batch upload fails.
    Files before it in the batch are already persisted and listed in `persisted`.
    """

    def __init__(self, filename: str, cause: Exception, persisted=None):
        super().__init__(f"Upload of {filename} failed: {cause}")
        self.filename = filename
        self.cause = cause
        self.persisted = list(persisted or [])
