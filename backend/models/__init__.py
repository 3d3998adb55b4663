from .package import PackageRecord, InvalidPackageDocument, derive_package_id

__all__ = ["PackageRecord", "InvalidPackageDocument", "derive_package_id"]
