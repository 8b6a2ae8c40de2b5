"""In-memory Firebase Storage bucket fake."""

from __future__ import annotations

from typing import Optional

from google.api_core.exceptions import NotFound


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name
        self.metadata: Optional[dict] = None
        self.content_type: Optional[str] = None

    def upload_from_string(self, data: bytes, content_type: Optional[str] = None) -> None:
        self.content_type = content_type
        self.bucket.objects[self.name] = {
            "data": data,
            "content_type": content_type,
            "metadata": dict(self.metadata or {}),
        }

    def exists(self) -> bool:
        return self.name in self.bucket.objects

    def delete(self) -> None:
        if self.name not in self.bucket.objects:
            raise NotFound(f"No such object: {self.bucket.name}/{self.name}")
        del self.bucket.objects[self.name]


class FakeBucket:
    """Drop-in replacement for a ``google.cloud.storage.Bucket``."""

    def __init__(self, name: str = "bookswap-test.appspot.com"):
        self.name = name
        self.objects: dict[str, dict] = {}

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)
