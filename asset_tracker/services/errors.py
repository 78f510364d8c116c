from __future__ import annotations


class AssetTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AssetTrackerError):
    status_code = 400


class NotFoundError(AssetTrackerError):
    status_code = 404


class ConflictError(AssetTrackerError):
    status_code = 409


class StorageError(AssetTrackerError):
    status_code = 500

    def __init__(self, message: str = "A storage error occurred."):
        super().__init__(message)
