# docverify/utils/exceptions.py


class DocumentVerificationError(Exception):
    """Base class for every error raised by the verification core."""


class InputError(DocumentVerificationError):
    """The uploaded file was rejected before any OCR work started."""


class InvalidImageType(InputError):
    def __init__(self, detail: str = "Please upload an image file (JPEG, PNG, or HEIC)."):
        super().__init__(detail)


class ImageTooLarge(InputError):
    def __init__(self, max_size_mb: float):
        self.max_size_mb = max_size_mb
        super().__init__(f"Image must be under {max_size_mb:g}MB.")


class ConversionError(DocumentVerificationError):
    def __init__(self, detail: str = "Failed to convert HEIC image. Please try JPEG or PNG instead."):
        super().__init__(detail)


class OcrEngineError(DocumentVerificationError):
    """OCR engine could not be started, was already terminated, or failed to recognise."""


class VerificationCancelled(DocumentVerificationError):
    def __init__(self, detail: str = "Verification was cancelled"):
        super().__init__(detail)


class VerificationError(DocumentVerificationError):
    def __init__(self, detail: str = "Failed to verify ID card. Please try again."):
        super().__init__(detail)


class StorageError(DocumentVerificationError):
    def __init__(self, detail: str = "Failed to store the uploaded image."):
        super().__init__(detail)
