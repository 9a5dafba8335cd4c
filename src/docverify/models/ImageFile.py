from dataclasses import dataclass
from typing import Optional

'''
Upload Model
An uploaded image held in memory, as received from the browser or a test.
 '''
@dataclass(frozen=True)
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> Optional[str]:
        if "." not in self.filename:
            return None
        return self.filename.rsplit(".", 1)[-1]

    @classmethod
    def from_storage(cls, storage) -> "ImageFile":
        """Build an ImageFile from a werkzeug FileStorage (``request.files[...]``)."""
        return cls(
            filename=storage.filename or "upload",
            content_type=(storage.mimetype or storage.content_type or ""),
            data=storage.read(),
        )
