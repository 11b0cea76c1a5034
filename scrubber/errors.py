"""
ERRORS: failure kinds returned to clients as {"error", "message"} JSON.
"""


class MetadataRemovalError(Exception):
    kind = "ServerError"
    status_code = 500
    default_message = "Unexpected server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NoFileProvidedError(MetadataRemovalError):
    kind = "NoFileProvided"
    status_code = 400
    default_message = "Please upload an image file"


class NoUrlProvidedError(MetadataRemovalError):
    kind = "NoUrlProvided"
    status_code = 400
    default_message = "Please provide an imageUrl in the request body"


class UnsupportedTypeError(MetadataRemovalError):
    kind = "UnsupportedType"
    status_code = 400
    default_message = "Only image files are allowed"


class FileTooLargeError(MetadataRemovalError):
    kind = "FileTooLarge"
    status_code = 400
    default_message = "Image is too large"


class InvalidRequestError(MetadataRemovalError):
    kind = "InvalidRequest"
    status_code = 400
    default_message = "Malformed request"


class FetchFailedError(MetadataRemovalError):
    kind = "FetchFailed"
    status_code = 500
    default_message = "Failed to fetch image"


class ProcessingFailedError(MetadataRemovalError):
    kind = "ProcessingFailed"
    status_code = 500
    default_message = "Image processing failed"
