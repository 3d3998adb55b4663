"""Package store exceptions."""

from typing import Optional


class PackageStoreError(Exception):
    """Base exception for package store operations."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.collection = collection
        self.cause = cause


class ReadFailure(PackageStoreError):
    """Collection or document fetch failed."""

    pass


class WriteFailure(PackageStoreError):
    """Add, set or delete failed."""

    pass


class NotFoundFailure(PackageStoreError):
    """No document matches the requested package id."""

    pass


class IdentifierCollision(PackageStoreError):
    """A package id is derived from more than one document key."""

    def __init__(self, package_id: int, document_keys, collection: Optional[str] = None):
        self.package_id = package_id
        self.document_keys = sorted(document_keys)
        super().__init__(
            f"Package id {package_id} is shared by documents {self.document_keys}",
            operation="resolve",
            collection=collection,
        )
