from .exceptions import (
    PackageStoreError,
    ReadFailure,
    WriteFailure,
    NotFoundFailure,
    IdentifierCollision,
)
from .firebase.package_store_connector import (
    PackageStoreConnector,
    PackageSubscription,
    create_package_store,
)

__all__ = [
    'PackageStoreError',
    'ReadFailure',
    'WriteFailure',
    'NotFoundFailure',
    'IdentifierCollision',
    'PackageStoreConnector',
    'PackageSubscription',
    'create_package_store',
]
